"""Repository pattern implementations for database operations."""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import asc, case, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import StoredArticle, TagWeight
from ..utils.clock import as_utc, to_naive_utc
from .models import ArticleDB, LikeDB, SettingDB, TagWeightDB


def article_from_db(row: ArticleDB) -> StoredArticle:
    """Convert an ArticleDB row into a StoredArticle."""
    return StoredArticle(
        id=row.id,
        title=row.title,
        url=row.url,
        summary=row.summary or "",
        tags=row.tags or [],
        popularity=row.popularity or 0,
        fetched_at=as_utc(row.fetched_at),
        sent_at=as_utc(row.sent_at),
        delivery_handle=row.delivery_handle,
    )


class ArticleRepository:
    """Repository for delivered article operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: AsyncSession instance
        """
        self.session = session

    async def upsert(self, article: StoredArticle) -> ArticleDB:
        """Insert or replace an article by id.

        Args:
            article: Article to persist

        Returns:
            ArticleDB: Persisted database record
        """
        db_item = ArticleDB(
            id=article.id,
            title=article.title,
            url=article.url,
            summary=article.summary,
            tags=sorted(article.tags),
            popularity=article.popularity,
            fetched_at=to_naive_utc(article.fetched_at),
            sent_at=to_naive_utc(article.sent_at) if article.sent_at else None,
            delivery_handle=article.delivery_handle,
        )
        merged = await self.session.merge(db_item)
        await self.session.flush()
        return merged

    async def get_by_id(self, article_id: int) -> ArticleDB | None:
        """Get article by id.

        Args:
            article_id: HN item id

        Returns:
            Optional[ArticleDB]: Found article or None
        """
        return await self.session.get(ArticleDB, article_id)

    async def get_by_handle(self, handle: str) -> ArticleDB | None:
        """Get article by the delivery handle assigned at send time.

        Args:
            handle: Transport message id

        Returns:
            Optional[ArticleDB]: Found article or None
        """
        result = await self.session.execute(
            select(ArticleDB).where(ArticleDB.delivery_handle == handle)
        )
        return result.scalar_one_or_none()

    async def mark_sent(
        self, article_id: int, handle: str, sent_at: datetime
    ) -> ArticleDB | None:
        """Record delivery of an article.

        Args:
            article_id: Article id
            handle: Transport message id
            sent_at: Delivery time

        Returns:
            Optional[ArticleDB]: Updated article or None if unknown
        """
        item = await self.get_by_id(article_id)
        if item:
            item.sent_at = to_naive_utc(sent_at)
            item.delivery_handle = handle
            await self.session.flush()
        return item

    async def get_sent_ids_between(self, start: datetime, end: datetime) -> set[int]:
        """Get ids of articles sent within [start, end].

        Args:
            start: Window start (inclusive)
            end: Window end (inclusive)

        Returns:
            Set[int]: Article ids
        """
        result = await self.session.execute(
            select(ArticleDB.id).where(
                ArticleDB.sent_at.is_not(None),
                ArticleDB.sent_at >= to_naive_utc(start),
                ArticleDB.sent_at <= to_naive_utc(end),
            )
        )
        return set(result.scalars().all())


class LikeRepository:
    """Repository for like operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, article_id: int) -> bool:
        return await self.session.get(LikeDB, article_id) is not None

    async def create_if_absent(self, article_id: int, liked_at: datetime) -> bool:
        """Insert a like unless one exists.

        Returns:
            bool: True if a new like row was written
        """
        if await self.exists(article_id):
            return False
        self.session.add(LikeDB(article_id=article_id, liked_at=to_naive_utc(liked_at)))
        await self.session.flush()
        return True

    async def count(self) -> int:
        result = await self.session.execute(select(func.count(LikeDB.article_id)))
        return result.scalar_one()


class TagWeightRepository:
    """Repository for tag weight operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def boost(self, tags: Iterable[str], amount: float) -> list[TagWeightDB]:
        """Add ``amount`` to each tag, creating absent tags at 1.0 + amount.

        Args:
            tags: Tags to boost
            amount: Additive boost

        Returns:
            List[TagWeightDB]: Updated rows, in tag order
        """
        rows = []
        for tag in sorted(set(tags)):
            row = await self.session.get(TagWeightDB, tag)
            if row is None:
                row = TagWeightDB(tag=tag, weight=1.0 + amount, occurrences=1)
                self.session.add(row)
            else:
                row.weight = row.weight + amount
                row.occurrences = row.occurrences + 1
            rows.append(row)
        await self.session.flush()
        return rows

    async def decay(self, decay_rate: float, min_weight: float) -> int:
        """Multiply every weight by (1 - decay_rate), clamped to min_weight.

        Returns:
            int: Number of rows updated
        """
        decayed = TagWeightDB.weight * (1.0 - decay_rate)
        result = await self.session.execute(
            update(TagWeightDB).values(
                weight=case((decayed < min_weight, min_weight), else_=decayed)
            )
        )
        return result.rowcount or 0

    async def get(self, tag: str) -> TagWeightDB | None:
        return await self.session.get(TagWeightDB, tag)

    async def get_all(self) -> dict[str, float]:
        result = await self.session.execute(select(TagWeightDB.tag, TagWeightDB.weight))
        return {tag: weight for tag, weight in result.all()}

    async def get_top(self, limit: int) -> list[TagWeight]:
        """Get the heaviest tags, ties broken by tag name.

        Args:
            limit: Maximum number of tags

        Returns:
            List[TagWeight]: Tags ordered by weight descending
        """
        result = await self.session.execute(
            select(TagWeightDB)
            .order_by(desc(TagWeightDB.weight), asc(TagWeightDB.tag))
            .limit(limit)
        )
        return [
            TagWeight(tag=row.tag, weight=row.weight, occurrences=row.occurrences)
            for row in result.scalars().all()
        ]


class SettingRepository:
    """Repository for key-value settings."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: str) -> str | None:
        row = await self.session.get(SettingDB, key)
        return row.value if row else None

    async def set(self, key: str, value: str) -> None:
        await self.session.merge(SettingDB(key=key, value=value))
        await self.session.flush()
