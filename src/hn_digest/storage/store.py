"""Preference store: the single writer of record for all persisted state."""

import asyncio
from collections.abc import Iterable
from datetime import datetime, timedelta

from loguru import logger

from ..errors import InvalidArgumentError, NotFoundError
from ..models import StoredArticle, TagWeight
from ..utils.clock import Clock, SystemClock
from ..utils.locks import KeyedLock
from .database import DatabaseManager
from .repositories import (
    ArticleRepository,
    LikeRepository,
    SettingRepository,
    TagWeightRepository,
    article_from_db,
)


class PreferenceStore:
    """Persisted tag-weight, like, settings and sent-article ledgers.

    Every operation runs in its own session, so each call is one
    transaction. Boosts and decays both rewrite tag weights and are
    serialized behind one lock; article and setting writes are serialized
    per row key.
    """

    def __init__(self, db_manager: DatabaseManager, clock: Clock | None = None):
        """Initialize the store.

        Args:
            db_manager: Database manager owning the engine
            clock: Time source for timestamps and recency windows
        """
        self.db_manager = db_manager
        self.clock = clock or SystemClock()
        self._weights_lock = asyncio.Lock()
        self._article_locks = KeyedLock()
        self._setting_locks = KeyedLock()

    # Articles

    async def upsert_article(self, article: StoredArticle) -> None:
        """Insert or replace an article by id."""
        async with self._article_locks.hold(article.id):
            async with self.db_manager.get_session() as session:
                await ArticleRepository(session).upsert(article)

    async def mark_sent(
        self, article_id: int, handle: str, sent_at: datetime | None = None
    ) -> None:
        """Set sent_at and delivery handle on an existing article.

        Raises:
            NotFoundError: If the article id is unknown
        """
        sent_at = sent_at or self.clock.now()
        async with self._article_locks.hold(article_id):
            async with self.db_manager.get_session() as session:
                item = await ArticleRepository(session).mark_sent(
                    article_id, handle, sent_at
                )
                if item is None:
                    raise NotFoundError(f"Article {article_id} not found")

    async def find_by_handle(self, handle: str) -> StoredArticle:
        """Look up an article by its delivery handle.

        Raises:
            NotFoundError: If no article carries this handle
        """
        async with self.db_manager.get_session() as session:
            row = await ArticleRepository(session).get_by_handle(handle)
            if row is None:
                raise NotFoundError(f"No article with delivery handle {handle}")
            return article_from_db(row)

    async def get_article(self, article_id: int) -> StoredArticle:
        """Get an article by id.

        Raises:
            NotFoundError: If the article id is unknown
        """
        async with self.db_manager.get_session() as session:
            row = await ArticleRepository(session).get_by_id(article_id)
            if row is None:
                raise NotFoundError(f"Article {article_id} not found")
            return article_from_db(row)

    async def recently_sent_ids(self, window: timedelta) -> set[int]:
        """Ids of articles sent within [now - window, now]."""
        now = self.clock.now()
        async with self.db_manager.get_session() as session:
            return await ArticleRepository(session).get_sent_ids_between(
                now - window, now
            )

    # Likes

    async def is_liked(self, article_id: int) -> bool:
        async with self.db_manager.get_session() as session:
            return await LikeRepository(session).exists(article_id)

    async def record_like(self, article_id: int, at: datetime | None = None) -> bool:
        """Record a like once.

        Returns:
            bool: True only for the call that created the like
        """
        at = at or self.clock.now()
        async with self._article_locks.hold(article_id):
            async with self.db_manager.get_session() as session:
                created = await LikeRepository(session).create_if_absent(article_id, at)
        if created:
            logger.debug(f"Recorded like for article {article_id}")
        return created

    async def like_count(self) -> int:
        async with self.db_manager.get_session() as session:
            return await LikeRepository(session).count()

    # Tag weights

    async def boost_tags(self, tags: Iterable[str], boost_amount: float) -> None:
        """Boost every tag in one transaction.

        Raises:
            InvalidArgumentError: If boost_amount is not positive
        """
        if not boost_amount > 0:
            raise InvalidArgumentError(f"boost_amount must be > 0, got {boost_amount}")
        tags = list(tags)
        if not tags:
            return

        async with self._weights_lock:
            async with self.db_manager.get_session() as session:
                await TagWeightRepository(session).boost(tags, boost_amount)
        logger.debug(f"Boosted {len(tags)} tags by {boost_amount}")

    async def decay_all(self, decay_rate: float, min_weight: float) -> int:
        """Decay every weight toward min_weight.

        Returns:
            int: Number of tags decayed

        Raises:
            InvalidArgumentError: If decay_rate is outside [0, 1) or
                min_weight is not positive
        """
        if not 0.0 <= decay_rate < 1.0:
            raise InvalidArgumentError(f"decay_rate must be in [0, 1), got {decay_rate}")
        if not min_weight > 0:
            raise InvalidArgumentError(f"min_weight must be > 0, got {min_weight}")

        async with self._weights_lock:
            async with self.db_manager.get_session() as session:
                return await TagWeightRepository(session).decay(decay_rate, min_weight)

    async def all_weights(self) -> dict[str, float]:
        async with self.db_manager.get_session() as session:
            return await TagWeightRepository(session).get_all()

    async def get_tag_weight(self, tag: str) -> TagWeight:
        """Get a single tag weight.

        Raises:
            NotFoundError: If the tag has never been boosted
        """
        async with self.db_manager.get_session() as session:
            row = await TagWeightRepository(session).get(tag)
            if row is None:
                raise NotFoundError(f"Tag {tag!r} not found")
            return TagWeight(tag=row.tag, weight=row.weight, occurrences=row.occurrences)

    async def top_tags(self, limit: int) -> list[TagWeight]:
        async with self.db_manager.get_session() as session:
            return await TagWeightRepository(session).get_top(limit)

    # Settings

    async def get_setting(self, key: str) -> str:
        """Get a setting value.

        Raises:
            NotFoundError: If the key has never been set
        """
        async with self.db_manager.get_session() as session:
            value = await SettingRepository(session).get(key)
        if value is None:
            raise NotFoundError(f"Setting {key!r} not found")
        return value

    async def set_setting(self, key: str, value: str) -> None:
        async with self._setting_locks.hold(key):
            async with self.db_manager.get_session() as session:
                await SettingRepository(session).set(key, value)
