"""Tests for media-upload row translation."""

from uuid import UUID

import pytest

from src.content_importer.core.media_translator import (
    MediaRecordTranslator,
    detect_source_alias,
    infer_file_name,
)
from src.content_importer.models.records import MediaImportObject


@pytest.fixture
def translator(context) -> MediaRecordTranslator:
    return MediaRecordTranslator(context)


@pytest.mark.parametrize(
    "value,alias",
    [
        ("https://cdn.example.com/a.jpg", "urlToStream"),
        ("HTTP://cdn.example.com/a.jpg", "urlToStream"),
        ("/srv/media/a.jpg", "pathToStream"),
        (r"C:\media\a.jpg", "pathToStream"),
        ("images/a.jpg", "zipFileToStream"),
    ],
)
def test_detect_source_alias(value, alias):
    assert detect_source_alias(value) == alias


def test_infer_file_name():
    assert infer_file_name("https://cdn.example.com/img/cat.png?w=200", "urlToStream") == "cat.png"
    assert infer_file_name(r"\\server\share\dog.jpg", "pathToStream") == "dog.jpg"
    assert infer_file_name("photos/bird.gif|/Images", "zipFileToStream") == "bird.gif"


class TestCanImport:
    def test_create_needs_file_and_parent(self):
        assert MediaImportObject(file_name="a.jpg", parent_spec="/Images").can_import
        assert MediaImportObject(source="https://x.test/a.jpg", parent_spec="1").can_import
        assert not MediaImportObject(file_name="a.jpg").can_import
        assert not MediaImportObject(parent_spec="/Images").can_import

    def test_update_needs_media_guid(self):
        assert not MediaImportObject(should_update=True).can_import
        assert MediaImportObject(should_update=True, media_guid=UUID(int=7)).can_import


class TestMediaRecordTranslator:
    def test_standard_columns(self, translator):
        obj = translator.translate(
            {
                "fileName": " hero.jpg ",
                "name": "Hero",
                "parent": "/Images/Blog/",
                "mediaTypeAlias": "image",
                "bulkUploadLegacyId": "55",
            },
            "media.csv",
            2,
        )

        assert obj.file_name == "hero.jpg"
        assert obj.name == "Hero"
        assert obj.parent_spec == "/Images/Blog/"
        assert obj.media_type_alias == "image"
        assert obj.legacy_id == "55"
        assert obj.source is None
        assert obj.properties == {}
        assert obj.source_file == "media.csv"
        assert obj.row_number == 2
        assert obj.can_import

    def test_parent_id_fallback(self, translator):
        obj = translator.translate({"fileName": "a.jpg", "parentId": "1234"})
        assert obj.parent_spec == "1234"

    def test_other_columns_become_properties(self, translator):
        obj = translator.translate(
            {
                "fileName": "a.jpg",
                "parent": "/",
                "altText": "A mountain",
                "tags|stringArray": "a, b",
                "caption": "",
            }
        )
        assert obj.properties == {"altText": "A mountain", "tags": ["a", "b"]}

    def test_bare_media_source_is_detected(self, translator):
        obj = translator.translate(
            {"mediaSource": "https://cdn.example.com/img/cat.png", "parent": "/Images"}
        )

        assert obj.source == "https://cdn.example.com/img/cat.png"
        assert obj.source_alias == "urlToStream"
        assert obj.file_name == "cat.png"
        assert "mediaSource" not in obj.properties

    def test_stream_resolver_column_names_the_source(self, translator):
        obj = translator.translate(
            {"fileName": "renamed.jpg", "file|pathToStream": "/srv/a.jpg", "parent": "/"}
        )

        assert obj.source == "/srv/a.jpg"
        assert obj.source_alias == "pathToStream"
        assert obj.file_name == "renamed.jpg"

    def test_second_source_wins_with_warning(self, translator):
        obj = translator.translate(
            {"mediaSource": "a.jpg", "file|urlToStream": "https://x.test/b.jpg", "parent": "/"}
        )

        assert obj.source_alias == "urlToStream"
        assert any("More than one media source" in w for w in obj.warnings)

    def test_update_columns(self, translator):
        guid = UUID(int=42)
        obj = translator.translate(
            {"bulkUploadMediaGuid": str(guid), "bulkUploadShouldUpdate": "Yes", "name": "New"}
        )

        assert obj.should_update
        assert obj.update_column_present
        assert obj.media_guid == guid
        assert obj.can_import

    def test_update_flag_false(self, translator):
        obj = translator.translate(
            {"fileName": "a.jpg", "parent": "/", "bulkUploadShouldUpdate": "no"}
        )
        assert obj.update_column_present
        assert not obj.should_update

    def test_invalid_guid_is_ignored_with_warning(self, translator):
        obj = translator.translate({"bulkUploadMediaGuid": "nope", "bulkUploadShouldUpdate": "1"})

        assert obj.media_guid is None
        assert not obj.can_import
        assert any("not a valid GUID" in w for w in obj.warnings)

    def test_invalid_parent_is_ignored_with_warning(self, translator):
        obj = translator.translate({"fileName": "a.jpg", "parent": "Images"})

        assert obj.parent_spec is None
        assert any("Unsupported parent 'Images'" in w for w in obj.warnings)

    def test_deferred_resolver_is_not_supported(self, translator):
        obj = translator.translate(
            {"fileName": "a.jpg", "parent": "/", "page|legacyContentPicker": "12"}
        )

        assert obj.properties == {}
        assert any("not supported for media rows" in w for w in obj.warnings)

    def test_unknown_resolver_warns(self, translator):
        obj = translator.translate({"fileName": "a.jpg", "parent": "/", "x|nope": "1"})

        assert obj.properties == {}
        assert any("nope" in w for w in obj.warnings)

    def test_original_record_is_kept(self, translator):
        record = {"fileName": "a.jpg", "parent": "/", "altText": "x"}
        assert translator.translate(record).original_record == record
