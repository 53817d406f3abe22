"""Storage module for articles, likes, tag weights and settings."""

from .database import DatabaseManager
from .models import ArticleDB, Base, LikeDB, SettingDB, TagWeightDB
from .repositories import (
    ArticleRepository,
    LikeRepository,
    SettingRepository,
    TagWeightRepository,
)
from .store import PreferenceStore

__all__ = [
    "DatabaseManager",
    "Base",
    "ArticleDB",
    "LikeDB",
    "TagWeightDB",
    "SettingDB",
    "ArticleRepository",
    "LikeRepository",
    "TagWeightRepository",
    "SettingRepository",
    "PreferenceStore",
]
