"""Tests for text, boolean, date, array and JSON resolvers."""

import json

import pytest

from src.content_importer.config import ImporterConfig, PipelineConfig
from src.content_importer.resolvers.scalar import (
    BooleanResolver,
    DateTimeResolver,
    ObjectToJsonResolver,
    StringArrayResolver,
    TextResolver,
    TextToLinkResolver,
    parse_datetime,
)
from src.content_importer.utils.exceptions import ResolveError, ResolveErrorKind


class TestTextResolver:
    def test_passes_value_through(self, context):
        assert TextResolver().resolve("  Hello, world ", None, context) == "  Hello, world "


class TestBooleanResolver:
    """Test boolean coercion."""

    @pytest.mark.parametrize("value", ["true", "TRUE", " True ", "1"])
    def test_truthy_values(self, context, value):
        assert BooleanResolver().resolve(value, None, context) is True

    @pytest.mark.parametrize("value", ["false", "0", "yes", "anything"])
    def test_everything_else_is_false(self, context, value):
        assert BooleanResolver().resolve(value, None, context) is False


class TestDateTimeResolver:
    """Test date parsing."""

    def test_iso_date(self, context):
        assert DateTimeResolver().resolve("2024-03-01", None, context) == "2024-03-01T00:00:00"

    def test_us_date_with_time(self, context):
        result = DateTimeResolver().resolve("03/01/2024 14:30", None, context)
        assert result == "2024-03-01T14:30:00"

    def test_header_parameter_format(self, context):
        result = DateTimeResolver().resolve("01.03.2024", "%d.%m.%Y", context)
        assert result == "2024-03-01T00:00:00"

    def test_blank_is_no_property(self, context):
        assert DateTimeResolver().resolve("   ", None, context) is None

    def test_unparseable_date_is_invalid_format(self, context):
        with pytest.raises(ResolveError) as exc_info:
            DateTimeResolver().resolve("next tuesday", None, context)
        assert exc_info.value.kind == ResolveErrorKind.INVALID_FORMAT
        assert exc_info.value.alias == "dateTime"

    def test_parse_datetime_handles_utc_suffix(self):
        parsed = parse_datetime("2024-03-01T10:00:00Z")
        assert parsed is not None
        assert parsed.utcoffset().total_seconds() == 0


class TestStringArrayResolver:
    """Test delimited text splitting."""

    def test_trims_and_drops_empty_elements(self, context):
        assert StringArrayResolver().resolve("a, b ,,c", None, context) == ["a", "b", "c"]

    def test_parameter_overrides_delimiter(self, context):
        assert StringArrayResolver().resolve("a;b, c", ";", context) == ["a", "b, c"]

    def test_config_delimiter(self, context):
        context.config = ImporterConfig(pipeline=PipelineConfig(string_array_delimiter="/"))
        assert StringArrayResolver().resolve("x/y", None, context) == ["x", "y"]

    def test_only_delimiters_gives_empty_list(self, context):
        assert StringArrayResolver().resolve(" , ,", None, context) == []


class TestObjectToJsonResolver:
    def test_serializes_compact_json(self, context):
        assert ObjectToJsonResolver().resolve('say "hi"', None, context) == '"say \\"hi\\""'


class TestTextToLinkResolver:
    """Test link list construction."""

    def test_builds_single_external_link(self, context):
        result = json.loads(TextToLinkResolver().resolve("https://example.com", None, context))
        assert result == [
            {"name": "https://example.com", "url": "https://example.com", "type": "external"}
        ]

    def test_parameter_is_link_name(self, context):
        result = json.loads(TextToLinkResolver().resolve("https://example.com", "Home", context))
        assert result[0]["name"] == "Home"

    def test_adds_missing_scheme(self, context):
        result = json.loads(TextToLinkResolver().resolve("example.com/about", None, context))
        assert result[0]["url"] == "https://example.com/about"

    def test_blank_is_no_property(self, context):
        assert TextToLinkResolver().resolve("  ", None, context) is None
