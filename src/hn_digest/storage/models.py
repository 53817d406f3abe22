"""SQLAlchemy models for database persistence."""

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ArticleDB(Base):
    """Database model for delivered articles."""

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=False)  # HN item id
    title = Column(String(512), nullable=False)
    url = Column(String(2048), nullable=True)
    summary = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    popularity = Column(Integer, nullable=False, default=0)
    fetched_at = Column(DateTime, nullable=False, default=_utcnow)
    sent_at = Column(DateTime, nullable=True)
    # Telegram message id; correlates reactions back to the article
    delivery_handle = Column(String(64), nullable=True, unique=True)

    __table_args__ = (Index("idx_article_sent_at", "sent_at"),)

    like = relationship("LikeDB", back_populates="article", uselist=False)


class LikeDB(Base):
    """Database model for article likes, at most one per article."""

    __tablename__ = "likes"

    article_id = Column(Integer, ForeignKey("articles.id"), primary_key=True)
    liked_at = Column(DateTime, nullable=False, default=_utcnow)

    article = relationship("ArticleDB", back_populates="like")


class TagWeightDB(Base):
    """Database model for learned tag weights."""

    __tablename__ = "tag_weights"

    tag = Column(String(128), primary_key=True)
    weight = Column(Float, nullable=False, default=1.0)
    occurrences = Column(Integer, nullable=False, default=0)

    __table_args__ = (Index("idx_tag_weight", "weight"),)


class SettingDB(Base):
    """Database model for runtime-tunable settings."""

    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)
