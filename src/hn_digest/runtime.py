"""Runtime-tunable settings cached in memory and written through to the store."""

import asyncio

from loguru import logger

from .config import Settings, parse_digest_time, settings
from .errors import InvalidArgumentError, NotFoundError
from .storage import PreferenceStore

CHAT_ID_KEY = "chat_id"
DIGEST_TIME_KEY = "digest_time"
ARTICLE_COUNT_KEY = "article_count"

MIN_ARTICLE_COUNT = 1
MAX_ARTICLE_COUNT = 100


class RuntimeSettings:
    """Recipient, delivery time and item count.

    Reads come from the in-memory snapshot. A mutation is committed only
    once the store write succeeds; the cache is updated afterwards.
    """

    def __init__(self, store: PreferenceStore, defaults: Settings | None = None):
        defaults = defaults or settings
        self.store = store
        self._chat_id: int | None = defaults.chat_id
        self._digest_time: str = defaults.digest_time
        self._article_count: int = defaults.article_count
        self._lock = asyncio.Lock()

    @property
    def chat_id(self) -> int | None:
        return self._chat_id

    @property
    def digest_time(self) -> str:
        return self._digest_time

    @property
    def article_count(self) -> int:
        return self._article_count

    async def _load_value(self, key: str) -> str | None:
        try:
            return await self.store.get_setting(key)
        except NotFoundError:
            return None

    async def load(self) -> None:
        """Override defaults with persisted values"""
        async with self._lock:
            chat_id = await self._load_value(CHAT_ID_KEY)
            if chat_id is not None:
                try:
                    self._chat_id = int(chat_id)
                except ValueError:
                    logger.warning(f"Ignoring invalid stored chat_id {chat_id!r}")

            digest_time = await self._load_value(DIGEST_TIME_KEY)
            if digest_time is not None:
                try:
                    parse_digest_time(digest_time)
                    self._digest_time = digest_time
                except ValueError:
                    logger.warning(f"Ignoring invalid stored digest_time {digest_time!r}")

            article_count = await self._load_value(ARTICLE_COUNT_KEY)
            if article_count is not None:
                try:
                    self._article_count = self._validate_count(int(article_count))
                except (ValueError, InvalidArgumentError):
                    logger.warning(
                        f"Ignoring invalid stored article_count {article_count!r}"
                    )

        logger.info(
            f"Runtime settings: chat_id={self._chat_id}, "
            f"digest_time={self._digest_time}, article_count={self._article_count}"
        )

    @staticmethod
    def _validate_count(count: int) -> int:
        if not MIN_ARTICLE_COUNT <= count <= MAX_ARTICLE_COUNT:
            raise InvalidArgumentError(
                f"article_count must be {MIN_ARTICLE_COUNT}-{MAX_ARTICLE_COUNT}, got {count}"
            )
        return count

    async def set_chat_id(self, chat_id: int) -> None:
        async with self._lock:
            await self.store.set_setting(CHAT_ID_KEY, str(chat_id))
            self._chat_id = chat_id
        logger.info(f"Recipient set to chat {chat_id}")

    async def set_digest_time(self, digest_time: str) -> None:
        """Update the daily delivery time.

        Raises:
            InvalidArgumentError: If the time is not HH:MM
        """
        try:
            parse_digest_time(digest_time)
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        async with self._lock:
            await self.store.set_setting(DIGEST_TIME_KEY, digest_time)
            self._digest_time = digest_time
        logger.info(f"Digest time set to {digest_time}")

    async def set_article_count(self, count: int) -> None:
        """Update the items-per-run count.

        Raises:
            InvalidArgumentError: If the count is outside 1-100
        """
        self._validate_count(count)
        async with self._lock:
            await self.store.set_setting(ARTICLE_COUNT_KEY, str(count))
            self._article_count = count
        logger.info(f"Article count set to {count}")
