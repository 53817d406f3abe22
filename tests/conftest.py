"""Shared fixtures for hn_digest tests."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from hn_digest.errors import InvalidResponseError
from hn_digest.models import CandidateItem, SummaryResult
from hn_digest.storage import DatabaseManager, PreferenceStore
from hn_digest.storage.models import TagWeightDB


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime | None = None):
        self.current = now or datetime(2026, 1, 15, 9, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class MockResponse:
    """Mock aiohttp response"""

    def __init__(self, text: str = "", status: int = 200, json_data=None):
        self._text = text
        self._json = json_data
        self.status = status
        self.request_info = MagicMock()
        self.history = []

    async def text(self, **kwargs) -> str:
        return self._text

    async def json(self, **kwargs):
        return self._json

    def release(self) -> None:
        pass

    async def wait_for_close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def db_manager(tmp_path):
    """Create a test database on a temporary file."""
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await manager.init_db()
    yield manager
    await manager.close()


@pytest.fixture
async def store(db_manager, clock):
    return PreferenceStore(db_manager, clock=clock)


@pytest.fixture
def seed_weights(db_manager):
    """Write raw tag weights, bypassing boost semantics."""

    async def seed(weights: dict[str, float]) -> None:
        async with db_manager.get_session() as session:
            for tag, weight in weights.items():
                session.add(TagWeightDB(tag=tag, weight=weight, occurrences=1))

    return seed


def make_candidate(item_id: int, popularity: int = 10, url: str | None = None, **kwargs):
    return CandidateItem(
        id=item_id,
        title=kwargs.pop("title", f"Story {item_id}"),
        url=url,
        popularity=popularity,
        discussion_count=kwargs.pop("discussion_count", 3),
    )


class FakeSummarizer:
    """Summarizer returning preset tags per title; failing titles raise."""

    def __init__(self, tags_by_title: dict[str, list[str]] | None = None, fail_titles=()):
        self.tags_by_title = tags_by_title or {}
        self.fail_titles = set(fail_titles)
        self.calls: list[tuple[str, str]] = []

    async def summarize(self, title: str, content: str) -> SummaryResult:
        self.calls.append((title, content))
        if title in self.fail_titles:
            raise InvalidResponseError(f"bad output for {title}")
        return SummaryResult(
            summary=f"Summary of {title}", tags=self.tags_by_title.get(title, ["general"])
        )
