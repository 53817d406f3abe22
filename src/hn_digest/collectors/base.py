"""Base feed source abstract class"""

from abc import ABC, abstractmethod

from ..models import CandidateItem


class FeedSource(ABC):
    """Abstract base class for candidate feeds

    Implementations raise UnavailableError when the feed itself cannot be
    reached; individual items that fail to load are skipped and logged.
    """

    @abstractmethod
    async def top_candidates(self, limit: int) -> list[CandidateItem]:
        """Fetch up to ``limit`` top candidates in feed order"""

    @abstractmethod
    async def fetch_detail(self, item_id: int) -> CandidateItem:
        """Fetch a single candidate by id"""
