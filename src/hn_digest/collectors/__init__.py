"""Candidate feed sources"""

from .base import FeedSource
from .hackernews import HackerNewsClient

__all__ = ["FeedSource", "HackerNewsClient"]
