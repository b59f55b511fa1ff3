"""Tests for record to pending-object translation."""

from uuid import uuid4

import pytest

from src.content_importer.config import ImporterConfig, PipelineConfig
from src.content_importer.core.translator import RecordToObjectTranslator, is_valid_parent_spec


@pytest.fixture
def translator(context) -> RecordToObjectTranslator:
    return RecordToObjectTranslator(context)


class TestStandardColumns:
    """Test the columns that feed the object itself."""

    def test_basic_record(self, translator, make_record):
        obj = translator.translate(
            make_record("About us", parent="/Home", summary="Who we are"),
            source_file="pages.csv",
            row_number=2,
        )

        assert obj.name == "About us"
        assert obj.content_type_alias == "contentPage"
        assert obj.parent_spec == "/Home"
        assert obj.properties == {"summary": "Who we are"}
        assert obj.source_file == "pages.csv"
        assert obj.row_number == 2
        assert obj.can_import

    def test_standard_columns_match_case_insensitively(self, translator):
        obj = translator.translate({"Name": "x", "DOCTYPEALIAS": "page", "ParentId": "1234"})
        assert obj.name == "x"
        assert obj.content_type_alias == "page"
        assert obj.parent_spec == "1234"
        assert obj.properties == {}

    def test_legacy_columns(self, translator, make_record):
        obj = translator.translate(
            make_record(
                "Child",
                bulkUploadLegacyId=" 42 ",
                bulkUploadLegacyParentId="7",
            )
        )
        assert obj.legacy_id == "42"
        assert obj.legacy_parent_id == "7"
        assert "bulkUploadLegacyId" not in obj.properties

    def test_invalid_parent_is_dropped_with_warning(self, translator, make_record):
        obj = translator.translate(make_record("x", parent="Home"))
        assert obj.parent_spec is None
        assert any("Unsupported parent 'Home'" in w for w in obj.warnings)

    @pytest.mark.parametrize(
        ("flag", "expected"), [("true", True), ("Yes", True), ("1", True), ("no", False)]
    )
    def test_publish_flag(self, translator, make_record, flag, expected):
        obj = translator.translate(make_record("x", bulkUploadShouldPublish=flag))
        assert obj.should_publish is expected

    def test_publish_default_from_config(self, context, make_record):
        context.config = ImporterConfig(pipeline=PipelineConfig(publish_by_default=True))
        obj = RecordToObjectTranslator(context).translate(make_record("x"))
        assert obj.should_publish is True

    def test_update_guids(self, translator, make_record):
        target, parent = uuid4(), uuid4()
        obj = translator.translate(
            make_record(
                "x", bulkUploadContentGuid=str(target), bulkUploadParentGuid=str(parent)
            )
        )
        assert obj.is_update
        assert obj.target_content_guid == target
        assert obj.target_parent_guid == parent

    def test_bad_guid_is_ignored_with_warning(self, translator, make_record):
        obj = translator.translate(make_record("x", bulkUploadContentGuid="not-a-guid"))
        assert obj.target_content_guid is None
        assert not obj.is_update
        assert obj.warnings == ["bulkUploadContentGuid: 'not-a-guid' is not a valid GUID; ignored"]

    def test_missing_name_cannot_import(self, translator):
        obj = translator.translate({"name": "  ", "docTypeAlias": "page", "title": "x"})
        assert not obj.can_import
        assert obj.original_record["title"] == "x"


class TestPropertyColumns:
    """Test resolver dispatch for property columns."""

    def test_resolved_properties(self, translator, make_record, home):
        obj = translator.translate(
            make_record(
                "x",
                **{
                    "tags|stringArray": "a, b",
                    "featured|boolean": "TRUE",
                    "link|contentIdToContentUdi": str(home.id),
                },
            )
        )
        assert obj.properties == {
            "tags": ["a", "b"],
            "featured": True,
            "link": f"umb://document/{home.guid.hex}",
        }

    def test_blank_cells_add_nothing(self, translator, make_record):
        obj = translator.translate(make_record("x", **{"summary": "", "tags|stringArray": " "}))
        assert obj.properties == {}

    def test_failed_cell_is_a_warning_not_a_failure(self, translator, make_record):
        obj = translator.translate(
            make_record("x", **{"published|dateTime": "someday", "title": "kept"})
        )
        assert obj.properties == {"title": "kept"}
        assert obj.warnings == [
            "published|dateTime: invalid_format: Unrecognised date 'someday'"
        ]
        assert obj.can_import

    def test_unknown_resolver_is_a_warning(self, translator, make_record):
        obj = translator.translate(make_record("x", **{"title|shout": "hi"}))
        assert obj.properties == {}
        assert "unknown_resolver" in obj.warnings[0]

    def test_column_warnings_are_collected(self, translator, make_record, home):
        obj = translator.translate(
            make_record("x", **{"links|contentIdsToContentUdis": f"{home.id},bogus"})
        )
        assert obj.properties["links"] == f"umb://document/{home.guid.hex}"
        assert len(obj.warnings) == 1
        assert obj.warnings[0].startswith("links|contentIdsToContentUdis: Skipped 'bogus'")

    def test_media_column_without_preprocessing_is_a_dependency_warning(
        self, translator, make_record
    ):
        obj = translator.translate(make_record("x", **{"image|urlToMedia": "https://x.org/a.png"}))
        assert obj.properties == {}
        assert "dependency_not_resolved" in obj.warnings[0]

    def test_overwritten_property_is_reported(self, translator, make_record):
        obj = translator.translate(make_record("x", **{"title": "first", "title|text": "second"}))
        assert obj.properties == {"title": "second"}
        assert "overwritten" in obj.warnings[0]

    def test_deferred_columns_are_kept_raw(self, translator, make_record):
        obj = translator.translate(
            make_record(
                "x",
                **{
                    "related|legacyContentPickers": "10, 11",
                    "main|legacyContentPicker:primary": "10",
                },
            )
        )
        assert obj.properties == {}
        assert [d.property_name for d in obj.deferred_properties] == ["related", "main"]
        assert obj.deferred_properties[1].parameter == "primary"
        assert obj.deferred_properties[0].column == "related|legacyContentPickers"
        assert obj.reference_dependencies == ["10", "11"]


@pytest.mark.parametrize(
    ("spec", "valid"),
    [
        ("/Home/News", True),
        ("1234", True),
        ("3fa85f64-5717-4562-b3fc-2c963f66afa6", True),
        ("Home", False),
        ("12a", False),
    ],
)
def test_is_valid_parent_spec(spec, valid):
    assert is_valid_parent_spec(spec) is valid
