"""Tests for batch media preprocessing."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from src.content_importer.caching.media_preprocessor import MediaPreprocessor, infer_media_alias
from src.content_importer.repository.memory import InMemoryRepository
from src.content_importer.utils.exceptions import RepositoryUnavailableError


@pytest.fixture
def store() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def preprocessor(store, caches, registry, config) -> MediaPreprocessor:
    return MediaPreprocessor(store, caches, registry, config=config)


ARCHIVE = {"media/hero.jpg": b"hero", "media/logo.png": b"logo"}


class TestCollect:
    """Test reference discovery."""

    def test_distinct_references_in_first_seen_order(self, preprocessor):
        records = [
            {"image|zipFileToMedia": "media/hero.jpg", "title": "x"},
            {"image|zipFileToMedia": "MEDIA/HERO.JPG"},
            {"image|zipFileToMedia": "media/logo.png"},
        ]
        requests = preprocessor.collect(records, ARCHIVE)
        assert [r.key for r in requests] == ["media/hero.jpg", "media/logo.png"]
        assert requests[0].stream_alias == "zipFileToStream"

    def test_inline_folder_wins_over_header_parameter(self, preprocessor):
        records = [
            {"image|urlToMedia:/Images": "https://cdn.example.com/a.jpg|/Blog"},
            {"image|urlToMedia:/Images": "https://cdn.example.com/b.jpg"},
        ]
        requests = preprocessor.collect(records, {})
        assert [r.parent_spec for r in requests] == ["/Blog", "/Images"]

    def test_block_list_media_is_collected(self, preprocessor):
        guid = uuid4()
        records = [
            {
                "body|multiBlockList:/Blocks": (
                    f"image::media/hero.jpg|Hero;;carousel::{guid},https://cdn.example.com/c.jpg"
                )
            }
        ]
        requests = preprocessor.collect(records, ARCHIVE)
        assert [(r.key, r.resolver_alias) for r in requests] == [
            ("media/hero.jpg", "zipFileToMedia"),
            ("https://cdn.example.com/c.jpg", "urlToMedia"),
        ]
        assert all(r.parent_spec == "/Blocks" for r in requests)

    def test_blank_and_non_media_cells_are_ignored(self, preprocessor):
        records = [{"image|pathToMedia": "  ", "tags|stringArray": "a,b"}]
        assert preprocessor.collect(records, {}) == []


class TestPreprocess:
    """Test media creation."""

    def test_creates_each_reference_once(self, preprocessor, store):
        records = [
            {"image|zipFileToMedia": "media/hero.jpg"},
            {"image|zipFileToMedia": "media/hero.jpg"},
            {"thumb|zipFileToMedia": "hero.jpg"},
        ]

        outcomes = preprocessor.preprocess(records, ARCHIVE, source_file="pages.csv")

        # "hero.jpg" is a different key even though it finds the same entry
        assert len(store.media) == 2
        assert all(entry.success for entry in outcomes.values())
        assert [r.file_name for r in preprocessor.results] == ["hero.jpg", "hero.jpg"]
        assert preprocessor.results[0].source_file == "pages.csv"

    def test_failure_is_recorded_and_memoized(self, preprocessor, caches):
        records = [{"image|zipFileToMedia": "missing.jpg"}]

        outcomes = preprocessor.preprocess(records, ARCHIVE)

        entry = outcomes["missing.jpg"]
        assert not entry.success
        assert "not in the archive" in entry.error_message
        assert caches.media.peek("missing.jpg") is entry
        assert preprocessor.results[0].success is False

    def test_empty_file_fails_creation(self, preprocessor):
        outcomes = preprocessor.preprocess([{"f|zipFileToMedia": "empty.txt"}], {"empty.txt": b""})
        assert "file is empty" in outcomes["empty.txt"].error_message

    def test_media_folder_is_passed_to_store(self, caches, registry, config):
        store = MagicMock()
        store.create_media.return_value = uuid4()
        preprocessor = MediaPreprocessor(store, caches, registry, config=config)

        preprocessor.preprocess([{"image|zipFileToMedia:/Images": "media/logo.png"}], ARCHIVE)

        file_name, stream, parent_spec = store.create_media.call_args.args
        assert file_name == "logo.png"
        assert stream.content == b"logo"
        assert parent_spec == "/Images"

    def test_keys_cached_earlier_are_not_created_again(self, preprocessor, store):
        preprocessor.preprocess([{"image|zipFileToMedia": "media/hero.jpg"}], ARCHIVE)
        preprocessor.preprocess([{"image|zipFileToMedia": "media/hero.jpg"}], ARCHIVE)

        assert len(store.media) == 1
        assert preprocessor.results == []

    def test_unavailable_store_aborts(self, caches, registry, config):
        store = MagicMock()
        store.create_media.side_effect = RepositoryUnavailableError("media store offline")
        preprocessor = MediaPreprocessor(store, caches, registry, config=config)

        with pytest.raises(RepositoryUnavailableError):
            preprocessor.preprocess([{"image|zipFileToMedia": "media/logo.png"}], ARCHIVE)

    @pytest.mark.parametrize("error", [RuntimeError("quota exceeded"), ValueError()])
    def test_store_errors_are_recorded_per_key(self, caches, registry, config, error):
        store = MagicMock()
        store.create_media.side_effect = [error, uuid4()]
        preprocessor = MediaPreprocessor(store, caches, registry, config=config)

        outcomes = preprocessor.preprocess(
            [
                {"image|zipFileToMedia": "media/hero.jpg"},
                {"image|zipFileToMedia": "media/logo.png"},
            ],
            ARCHIVE,
        )

        failed = outcomes["media/hero.jpg"]
        assert not failed.success
        assert failed.error_message.startswith("Could not create media for 'media/hero.jpg'")
        assert (str(error) or type(error).__name__) in failed.error_message
        assert outcomes["media/logo.png"].success
        assert caches.media.peek("media/hero.jpg") is failed

    def test_no_media_columns_is_a_no_op(self, preprocessor):
        assert preprocessor.preprocess([{"title": "x"}]) == {}


class TestInferMediaAlias:
    def test_url(self):
        assert infer_media_alias("https://x.org/a.png", {}) == "urlToMedia"

    def test_archive_entry(self):
        assert infer_media_alias("logo.png", ARCHIVE) == "zipFileToMedia"

    def test_path(self):
        assert infer_media_alias("/srv/media/a.png", ARCHIVE) == "pathToMedia"
