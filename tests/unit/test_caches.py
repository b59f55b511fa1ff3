"""Tests for run-scoped memoizing caches."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from src.content_importer.caching.caches import (
    LegacyIdCache,
    MediaItemCache,
    MemoizingCache,
    ParentLookupCache,
    RunCaches,
)
from src.content_importer.models.records import ContentRef
from src.content_importer.utils.exceptions import (
    MediaCreationError,
    RepositoryUnavailableError,
)


class TestMemoizingCache:
    """Test compute-once semantics."""

    def test_computes_once_per_key(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        compute = MagicMock(return_value=42)

        first = cache.get_or_compute("k", compute)
        second = cache.get_or_compute(" K ", compute)

        assert first is second
        assert first.value == 42
        compute.assert_called_once()
        assert cache.stats.hits == 1
        assert cache.stats.misses == 1

    def test_failure_is_memoized_until_clear(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        compute = MagicMock(side_effect=MediaCreationError("k", "down"))

        first = cache.get_or_compute("k", compute)
        second = cache.get_or_compute("k", compute)

        assert not first.success
        assert second is first
        assert "down" in first.error_message
        assert compute.call_count == 1
        assert cache.stats.failures == 1

        cache.clear()
        cache.get_or_compute("k", compute)
        assert compute.call_count == 2

    def test_none_result_is_failure_with_message(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        entry = cache.get_or_compute("k", lambda: None, missing_message="no such thing")
        assert not entry.success
        assert entry.error_message == "no such thing"

    def test_repository_unavailable_propagates_and_is_not_memoized(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        compute = MagicMock(side_effect=RepositoryUnavailableError("offline"))

        with pytest.raises(RepositoryUnavailableError):
            cache.get_or_compute("k", compute)

        assert "k" not in cache
        compute.side_effect = None
        compute.return_value = 1
        assert cache.get_or_compute("k", compute).value == 1

    def test_programming_errors_propagate(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        with pytest.raises(ZeroDivisionError):
            cache.get_or_compute("k", lambda: 1 // 0)
        assert len(cache) == 0

    def test_case_sensitive_keys(self):
        cache: MemoizingCache[str] = MemoizingCache("test", case_sensitive=True)
        cache.put("Key", "a")
        assert "Key" in cache
        assert "key" not in cache

    def test_peek_never_computes(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        assert cache.peek("missing") is None
        assert cache.stats.misses == 1
        assert len(cache) == 0

    def test_get_does_not_count(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        cache.put("k", 1)
        assert cache.get("K").value == 1
        assert cache.stats.total_queries == 0

    def test_hit_rate(self):
        cache: MemoizingCache[int] = MemoizingCache("test")
        assert cache.stats.hit_rate() == 0.0
        cache.get_or_compute("k", lambda: 1)
        cache.get_or_compute("k", lambda: 1)
        cache.get_or_compute("k", lambda: 1)
        assert cache.stats.hit_rate() == pytest.approx(2 / 3)


class TestParentLookupCache:
    def test_paths_compare_without_surrounding_slashes(self):
        cache = ParentLookupCache()
        ref = ContentRef(1, uuid4())
        cache.put("/Home/News/", ref)
        assert cache.peek("home/news").value == ref


class TestLegacyIdCache:
    def test_case_insensitive_by_default(self):
        cache = LegacyIdCache()
        ref = ContentRef(1, uuid4())
        cache.record("ABC", ref)
        assert cache.peek("abc").value == ref

    def test_case_sensitive_option(self):
        cache = LegacyIdCache(case_sensitive=True)
        cache.record("ABC", ContentRef(1, uuid4()))
        assert cache.peek("abc") is None


class TestRunCaches:
    def test_clear_all_empties_every_cache(self):
        caches = RunCaches.create()
        caches.parents.put("/Home", ContentRef(1, uuid4()))
        caches.media.put("a.jpg", uuid4())
        caches.legacy_ids.record("1", ContentRef(2, uuid4()))

        caches.clear_all()

        assert len(caches.parents) == len(caches.media) == len(caches.legacy_ids) == 0

    def test_stats_are_keyed_by_cache_name(self):
        assert set(RunCaches.create().stats()) == {"parent_lookup", "media_items", "legacy_ids"}

    def test_create_passes_case_sensitivity(self):
        assert RunCaches.create(legacy_ids_case_sensitive=True).legacy_ids.case_sensitive
        assert isinstance(RunCaches().media, MediaItemCache)
