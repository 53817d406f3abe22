"""Hacker News feed source with concurrent item fetching"""

import asyncio
from typing import Any

import aiohttp
from loguru import logger
from pydantic import ValidationError

from ..config import settings
from ..errors import InvalidResponseError, UnavailableError
from ..models import CandidateItem
from .base import FeedSource

HN_API_URL = "https://hacker-news.firebaseio.com/v0"


class HackerNewsClient(FeedSource):
    """Feed source backed by the Hacker News Firebase API

    Features:
    - Top story list with per-item detail fetches
    - Bounded concurrent item fetching
    - One attempt per request; the next scheduled run is the retry
    """

    def __init__(
        self,
        base_url: str = HN_API_URL,
        max_concurrent: int = 10,
        request_timeout: float | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root, overridable for tests
            max_concurrent: Maximum item requests in flight
            request_timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.max_concurrent = max_concurrent
        self.request_timeout = request_timeout or settings.request_timeout

    async def top_candidates(self, limit: int) -> list[CandidateItem]:
        """Fetch the top stories with their details.

        Args:
            limit: Maximum number of stories

        Returns:
            Candidates in top-list order; stories that fail to load are skipped

        Raises:
            UnavailableError: If the top story list cannot be fetched
        """
        async with aiohttp.ClientSession() as session:
            ids = await self._get_json(session, f"{self.base_url}/topstories.json")
            if not isinstance(ids, list):
                raise UnavailableError("Unexpected top stories payload")
            ids = ids[:limit]
            logger.info(f"Fetched {len(ids)} top story ids")

            semaphore = asyncio.Semaphore(self.max_concurrent)

            async def fetch(item_id: int) -> CandidateItem | None:
                async with semaphore:
                    try:
                        return await self._fetch_item(session, item_id)
                    except (UnavailableError, InvalidResponseError) as e:
                        logger.warning(f"Skipping story {item_id}: {e}")
                        return None

            results = await asyncio.gather(*(fetch(item_id) for item_id in ids))

        candidates = [item for item in results if item is not None]
        logger.info(f"Loaded {len(candidates)} of {len(ids)} top stories")
        return candidates

    async def fetch_detail(self, item_id: int) -> CandidateItem:
        """Fetch a single story.

        Raises:
            UnavailableError: If the item cannot be fetched or is not a story
            InvalidResponseError: If the item payload is malformed
        """
        async with aiohttp.ClientSession() as session:
            return await self._fetch_item(session, item_id)

    async def _fetch_item(
        self, session: aiohttp.ClientSession, item_id: int
    ) -> CandidateItem:
        data = await self._get_json(session, f"{self.base_url}/item/{item_id}.json")
        if not isinstance(data, dict):
            raise UnavailableError(f"Item {item_id} is missing")
        if data.get("deleted") or data.get("dead") or not data.get("title"):
            raise UnavailableError(f"Item {item_id} is deleted, dead or has no title")

        try:
            return CandidateItem(
                id=data["id"],
                title=data["title"],
                url=data.get("url"),
                popularity=max(0, data.get("score") or 0),
                discussion_count=max(0, data.get("descendants") or 0),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise InvalidResponseError(f"Malformed item {item_id}: {e}") from e

    async def _get_json(self, session: aiohttp.ClientSession, url: str) -> Any:
        """GET a JSON document in a single attempt.

        Raises:
            UnavailableError: On timeout, network error, non-200 status or
                an unparseable body
        """
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)
        logger.debug(f"Fetching {url}")

        try:
            async with session.get(url, timeout=timeout) as response:
                if response.status != 200:
                    raise aiohttp.ClientResponseError(
                        request_info=response.request_info,
                        history=response.history,
                        status=response.status,
                    )
                return await response.json(content_type=None)

        except TimeoutError as e:
            logger.warning(f"Timeout fetching {url}")
            raise UnavailableError(f"Timeout fetching {url}") from e

        except aiohttp.ClientError as e:
            logger.warning(f"Network error fetching {url}: {e}")
            raise UnavailableError(f"Failed to fetch {url}: {e}") from e

        except ValueError as e:
            logger.warning(f"Invalid JSON from {url}: {e}")
            raise UnavailableError(f"Invalid JSON from {url}: {e}") from e
