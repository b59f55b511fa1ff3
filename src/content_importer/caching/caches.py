"""Run-scoped memoizing caches.

Overview:
--------
Each import run owns three caches, bundled in RunCaches:

1. ParentLookupCache - parent spec (id, GUID or /path) -> existing item.
   A batch of 5,000 rows usually shares a handful of parents, so each
   distinct spec hits the repository once.

2. MediaItemCache - media reference (URL, path or archive entry) -> media
   key. Filled by the media preprocessor; media binding resolvers only read it.

3. LegacyIdCache - legacy id -> created item. Filled by the pipeline right
   after each creation; deferred pickers and legacy parents read it.

Semantics:
---------
- get_or_compute runs the computation at most once per distinct key until
  clear(). Failures are memoized too, so a bad URL is not downloaded again
  for every row that uses it.
- Expected failures (ImporterError) become failed entries. An unreachable
  repository (RepositoryUnavailableError) and programming errors propagate
  and are not memoized.
- Keys are normalized before lookup: trimmed and, unless configured
  otherwise, case-folded.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar
from uuid import UUID

import structlog

from ..models.records import ContentRef
from ..models.results import CacheEntry
from ..utils.exceptions import ImporterError, RepositoryUnavailableError

logger = structlog.get_logger(__name__)

V = TypeVar("V")


@dataclass
class CacheStats:
    """Hit/miss counters for one cache."""

    hits: int = 0
    misses: int = 0
    computations: int = 0
    failures: int = 0

    def hit(self) -> None:
        self.hits += 1

    def miss(self) -> None:
        self.misses += 1

    @property
    def total_queries(self) -> int:
        return self.hits + self.misses

    def hit_rate(self) -> float:
        """
        Calculate cache hit rate.

        Returns:
            float: Hit rate as a decimal (0.0 to 1.0).
        """
        if self.total_queries == 0:
            return 0.0
        return self.hits / self.total_queries


class MemoizingCache(Generic[V]):
    """
    Key -> CacheEntry table with compute-once semantics.

    Args:
        name: Cache name used in log events
        case_sensitive: Keep key case when normalizing
    """

    def __init__(self, name: str, case_sensitive: bool = False) -> None:
        self.name = name
        self.case_sensitive = case_sensitive
        self._entries: dict[str, CacheEntry[V]] = {}
        self.stats = CacheStats()

    def normalize_key(self, key: str) -> str:
        normalized = key.strip()
        return normalized if self.case_sensitive else normalized.casefold()

    def get_or_compute(
        self, key: str, compute: Callable[[], V | None], missing_message: str | None = None
    ) -> CacheEntry[V]:
        """
        Return the entry for `key`, running `compute` on the first request.

        Args:
            key: Lookup key (normalized before use)
            compute: Produces the value; returning None records a failure
            missing_message: Failure message used when compute returns None

        Returns:
            Memoized entry (successful or failed)

        Raises:
            RepositoryUnavailableError: Propagated from compute, not memoized
        """
        normalized = self.normalize_key(key)
        cached = self._entries.get(normalized)
        if cached is not None:
            self.stats.hit()
            logger.debug("Cache hit", cache=self.name, key=normalized, success=cached.success)
            return cached

        self.stats.miss()
        self.stats.computations += 1
        try:
            value = compute()
        except RepositoryUnavailableError:
            raise
        except ImporterError as e:
            entry: CacheEntry[V] = CacheEntry.failed(normalized, str(e))
        else:
            if value is None:
                message = missing_message or f"Nothing found for '{key}'"
                entry = CacheEntry.failed(normalized, message)
            else:
                entry = CacheEntry.ok(normalized, value)

        if not entry.success:
            self.stats.failures += 1
            logger.debug(
                "Cached failure", cache=self.name, key=normalized, error=entry.error_message
            )

        self._entries[normalized] = entry
        return entry

    def peek(self, key: str) -> CacheEntry[V] | None:
        """Read-only lookup; never computes."""
        entry = self._entries.get(self.normalize_key(key))
        if entry is None:
            self.stats.miss()
        else:
            self.stats.hit()
        return entry

    def get(self, key: str) -> CacheEntry[V] | None:
        """Lookup without touching statistics."""
        return self._entries.get(self.normalize_key(key))

    def put(self, key: str, entry_value: V) -> CacheEntry[V]:
        normalized = self.normalize_key(key)
        entry = CacheEntry.ok(normalized, entry_value)
        self._entries[normalized] = entry
        return entry

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.normalize_key(key) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> dict[str, CacheEntry[V]]:
        return dict(self._entries)

    def clear(self) -> None:
        """Drop every entry and reset statistics."""
        if self._entries:
            logger.debug("Cache cleared", cache=self.name, entries=len(self._entries))
        self._entries.clear()
        self.stats = CacheStats()


class ParentLookupCache(MemoizingCache[ContentRef]):
    """Parent spec -> existing item. Paths compare without surrounding slashes."""

    def __init__(self) -> None:
        super().__init__("parent_lookup")

    def normalize_key(self, key: str) -> str:
        return key.strip().strip("/").casefold()


class MediaItemCache(MemoizingCache[UUID]):
    """Media reference -> media key."""

    def __init__(self) -> None:
        super().__init__("media_items")


class LegacyIdCache(MemoizingCache[ContentRef]):
    """Legacy id -> created item. The first item recorded for an id wins."""

    def __init__(self, case_sensitive: bool = False) -> None:
        super().__init__("legacy_ids", case_sensitive=case_sensitive)

    def record(self, legacy_id: str, ref: ContentRef) -> bool:
        """
        Record the item created for a legacy id.

        Args:
            legacy_id: Source-system identifier
            ref: Created item

        Returns:
            bool: False if the id was already mapped (the earlier mapping is kept)
        """
        existing = self.get(legacy_id)
        if existing is not None and existing.success:
            logger.warning(
                "Legacy id already mapped, keeping first item",
                legacy_id=legacy_id,
                existing_guid=str(existing.value.guid) if existing.value else None,
                ignored_guid=str(ref.guid),
            )
            return False
        self.put(legacy_id, ref)
        return True


@dataclass
class RunCaches:
    """The caches of one import run."""

    parents: ParentLookupCache = field(default_factory=ParentLookupCache)
    media: MediaItemCache = field(default_factory=MediaItemCache)
    legacy_ids: LegacyIdCache = field(default_factory=LegacyIdCache)

    @classmethod
    def create(cls, legacy_ids_case_sensitive: bool = False) -> "RunCaches":
        return cls(legacy_ids=LegacyIdCache(case_sensitive=legacy_ids_case_sensitive))

    def clear_all(self) -> None:
        self.parents.clear()
        self.media.clear()
        self.legacy_ids.clear()

    def stats(self) -> dict[str, CacheStats]:
        return {
            cache.name: cache.stats for cache in (self.parents, self.media, self.legacy_ids)
        }
