"""Digest ranking, rendering and orchestration."""

from .formatter import TelegramHTMLFormatter
from .orchestrator import DigestOrchestrator
from .ranker import PreferenceRanker
from .recency import filter_recent

__all__ = [
    "DigestOrchestrator",
    "PreferenceRanker",
    "TelegramHTMLFormatter",
    "filter_recent",
]
