"""Pydantic models for data validation"""

from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator


def normalize_tags(tags: Iterable[str] | None) -> frozenset[str]:
    """Lowercase, trim and drop empty tags"""
    if not tags:
        return frozenset()
    return frozenset(tag.strip().lower() for tag in tags if tag and tag.strip())


class CandidateItem(BaseModel):
    """Raw feed item before enrichment"""

    id: int = Field(description="Source-assigned item id")
    title: str = Field(description="Story title")
    url: str | None = Field(default=None, description="Linked article URL")
    popularity: int = Field(default=0, ge=0, description="Upvote count")
    discussion_count: int = Field(default=0, ge=0, description="Comment count")

    @field_validator("url", mode="before")
    @classmethod
    def empty_url_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class EnrichedArticle(CandidateItem):
    """Candidate plus summary and tags produced by the content pipeline"""

    summary: str = Field(default="")
    tags: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v: Iterable[str] | None) -> frozenset[str]:
        return normalize_tags(v)


class StoredArticle(BaseModel):
    """Persisted view of a delivered article"""

    id: int
    title: str
    url: str | None = None
    summary: str = ""
    tags: frozenset[str] = Field(default_factory=frozenset)
    popularity: int = 0
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    sent_at: datetime | None = None
    delivery_handle: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v: Iterable[str] | None) -> frozenset[str]:
        return normalize_tags(v)

    @classmethod
    def from_enriched(
        cls, article: EnrichedArticle, fetched_at: datetime
    ) -> "StoredArticle":
        return cls(
            id=article.id,
            title=article.title,
            url=article.url,
            summary=article.summary,
            tags=article.tags,
            popularity=article.popularity,
            fetched_at=fetched_at,
        )


class TagWeight(BaseModel):
    """Learned preference weight for a single tag"""

    tag: str
    weight: float
    occurrences: int = Field(default=0, ge=0)


class SummaryResult(BaseModel):
    """Structured summarizer output"""

    summary: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)


class RankedArticle(BaseModel):
    """Article with its blended ranking score"""

    article: EnrichedArticle
    score: float


class RunState(str, Enum):
    """Digest orchestrator states"""

    IDLE = "idle"
    COLLECTING = "collecting"
    FILTERING = "filtering"
    ENRICHING = "enriching"
    RANKING = "ranking"
    DELIVERING = "delivering"


class RunTrigger(str, Enum):
    """What started a digest run"""

    SCHEDULED = "scheduled"
    MANUAL = "manual"


class DigestRunResult(BaseModel):
    """Outcome of one digest run"""

    trigger: RunTrigger
    state: RunState = RunState.IDLE
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    fetched: int = 0
    filtered: int = 0
    enriched: int = 0
    sent: int = 0
    failed_sends: int = 0
    sent_ids: list[int] = Field(default_factory=list)
    cancelled: bool = False
    skipped_reason: str | None = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class MessageEvent(BaseModel):
    """Inbound chat message"""

    kind: Literal["message"] = "message"
    update_id: int
    chat_id: int
    text: str


class ReactionEvent(BaseModel):
    """Inbound reaction on a previously sent message"""

    kind: Literal["reaction"] = "reaction"
    update_id: int
    chat_id: int
    message_id: int
    emojis: list[str] = Field(default_factory=list)


InboundEvent = MessageEvent | ReactionEvent
