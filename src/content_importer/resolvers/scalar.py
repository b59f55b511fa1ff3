"""Scalar resolvers: text, flags, dates, arrays and JSON values."""

import json
from datetime import datetime
from typing import Any

from ..utils.exceptions import ResolveErrorKind
from .base import Resolver, ResolverAlias, ResolverContext

# Accepted date layouts, tried in order after ISO 8601
DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
)

_TRUE_VALUES = frozenset({"true", "1"})


class TextResolver(Resolver):
    alias = ResolverAlias.TEXT.value
    description = "Passes the cell through unchanged"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        return raw_value


class BooleanResolver(Resolver):
    """Case-insensitive true/1 -> True. Anything else is False, never an error."""

    alias = ResolverAlias.BOOLEAN.value
    description = "true/false/1/0 to a boolean"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        return raw_value.strip().casefold() in _TRUE_VALUES


class DateTimeResolver(Resolver):
    alias = ResolverAlias.DATE_TIME.value
    description = "Date or date-time to an ISO 8601 string"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        value = raw_value.strip()
        if not value:
            return None

        parsed = parse_datetime(value, parameter)
        if parsed is None:
            raise self.fail(
                ResolveErrorKind.INVALID_FORMAT,
                f"Unrecognised date '{value}'",
                raw_value=raw_value,
            )
        return parsed.isoformat()


def parse_datetime(value: str, fmt: str | None = None) -> datetime | None:
    """
    Parse a date in one of the accepted layouts.

    Args:
        value: Date text
        fmt: Optional strptime format tried before the defaults

    Returns:
        Parsed datetime, or None if no layout matches
    """
    formats = (fmt, *DATE_FORMATS) if fmt else DATE_FORMATS
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        pass
    for candidate in formats:
        try:
            return datetime.strptime(value, candidate)
        except ValueError:
            continue
    return None


class StringArrayResolver(Resolver):
    """
    Split a cell into a list of strings.

    The header parameter overrides the delimiter: `tags|stringArray:;`.
    """

    alias = ResolverAlias.STRING_ARRAY.value
    description = "Delimited text to a list of strings"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        delimiter = parameter or context.config.pipeline.string_array_delimiter
        return [part.strip() for part in raw_value.split(delimiter) if part.strip()]


class ObjectToJsonResolver(Resolver):
    alias = ResolverAlias.OBJECT_TO_JSON.value
    description = "Serializes the value as compact JSON"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        return json.dumps(raw_value, separators=(",", ":"), ensure_ascii=False)


class TextToLinkResolver(Resolver):
    """URL text to a single-entry link list; bare hosts get an https:// prefix."""

    alias = ResolverAlias.TEXT_TO_LINK.value
    description = "URL to a JSON link list"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        url = raw_value.strip()
        if not url:
            return None
        if not url.startswith(("http://", "https://")):
            url = f"https://{url}"

        links = [{"name": parameter or url, "url": url, "type": "external"}]
        return json.dumps(links, separators=(",", ":"))
