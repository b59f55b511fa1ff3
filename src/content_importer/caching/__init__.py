"""Run caches and media preprocessing."""

from .caches import (
    CacheStats,
    LegacyIdCache,
    MediaItemCache,
    MemoizingCache,
    ParentLookupCache,
    RunCaches,
)
from .media_preprocessor import MediaPreprocessor

__all__ = [
    "CacheStats",
    "LegacyIdCache",
    "MediaItemCache",
    "MemoizingCache",
    "ParentLookupCache",
    "RunCaches",
    "MediaPreprocessor",
]
