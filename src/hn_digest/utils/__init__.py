"""Shared helpers."""

from .clock import Clock, SystemClock
from .locks import KeyedLock

__all__ = ["Clock", "SystemClock", "KeyedLock"]
