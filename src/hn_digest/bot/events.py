"""Decode raw Telegram updates into typed inbound events."""

from typing import Any

from loguru import logger
from pydantic import ValidationError

from ..models import InboundEvent, MessageEvent, ReactionEvent

LIKE_EMOJI = "👍"


def decode_update(update: dict[str, Any]) -> InboundEvent | None:
    """Decode one update at the boundary.

    Args:
        update: Raw getUpdates entry

    Returns:
        MessageEvent, ReactionEvent, or None for anything else
    """
    update_id = update.get("update_id")
    try:
        message = update.get("message")
        if message and message.get("text"):
            return MessageEvent(
                update_id=update_id,
                chat_id=message["chat"]["id"],
                text=message["text"],
            )

        reaction = update.get("message_reaction")
        if reaction:
            emojis = [
                r.get("emoji")
                for r in reaction.get("new_reaction") or []
                if r.get("type") == "emoji" and r.get("emoji")
            ]
            return ReactionEvent(
                update_id=update_id,
                chat_id=reaction["chat"]["id"],
                message_id=reaction["message_id"],
                emojis=emojis,
            )
    except (KeyError, TypeError, ValidationError) as e:
        logger.warning(f"Ignoring malformed update {update_id}: {e}")
        return None

    return None


def is_like(event: ReactionEvent) -> bool:
    return LIKE_EMOJI in event.emojis
