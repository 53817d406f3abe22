"""Telegram transport, inbound events and chat commands."""

from .events import decode_update, is_like
from .telegram import TelegramClient, Transport

__all__ = ["TelegramClient", "Transport", "decode_update", "is_like"]
