"""Resolver framework.

Overview:
--------
A resolver turns one raw cell value into a content property value. Columns
pick their resolver through the header syntax `property|alias[:parameter]`;
columns without an alias use the `text` resolver.

Resolver Kinds:
--------------
1. Immediate resolvers run during translation (text, boolean, references,
   media bindings, block lists).

2. Deferred resolvers (legacy content pickers) need the LegacyIdCache, which
   only fills as items are created. Translation records their raw value and
   the referenced legacy ids; the pipeline resolves them at creation time.

3. Stream resolvers fetch file bytes for media creation. They are used by the
   media preprocessor only and are rejected as property columns.

Error Contract:
--------------
Resolvers raise ResolveError with a ResolveErrorKind. Returning None means
"no property". The registry wraps anything else a resolver raises, so callers
only ever see ResolveError (or the fatal RepositoryUnavailableError).
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import httpx
import structlog

from ..config import ImporterConfig
from ..constants import REFERENCE_TOKEN_SCHEME
from ..utils.exceptions import ResolveError, ResolveErrorKind

if TYPE_CHECKING:
    from ..caching.caches import RunCaches
    from ..repository.base import ContentRepository
    from .registry import ResolverRegistry

logger = structlog.get_logger(__name__)


class ResolverAlias(str, Enum):
    """Aliases of the built-in resolvers."""

    TEXT = "text"
    BOOLEAN = "boolean"
    DATE_TIME = "dateTime"
    STRING_ARRAY = "stringArray"
    OBJECT_TO_JSON = "objectToJson"
    TEXT_TO_LINK = "textToLink"

    CONTENT_ID_TO_CONTENT_UDI = "contentIdToContentUdi"
    CONTENT_IDS_TO_CONTENT_UDIS = "contentIdsToContentUdis"
    GUID_TO_CONTENT_UDI = "guidToContentUdi"
    GUIDS_TO_CONTENT_UDIS = "guidsToContentUdis"
    MEDIA_ID_TO_MEDIA_UDI = "mediaIdToMediaUdi"
    MEDIA_IDS_TO_MEDIA_UDIS = "mediaIdsToMediaUdis"
    GUID_TO_MEDIA_UDI = "guidToMediaUdi"
    GUIDS_TO_MEDIA_UDIS = "guidsToMediaUdis"

    URL_TO_MEDIA = "urlToMedia"
    PATH_TO_MEDIA = "pathToMedia"
    ZIP_FILE_TO_MEDIA = "zipFileToMedia"
    URL_TO_STREAM = "urlToStream"
    PATH_TO_STREAM = "pathToStream"
    ZIP_FILE_TO_STREAM = "zipFileToStream"

    LEGACY_CONTENT_PICKER = "legacyContentPicker"
    LEGACY_CONTENT_PICKERS = "legacyContentPickers"

    MULTI_BLOCK_LIST = "multiBlockList"
    SAMPLE_BLOCK_LIST_CONTENT = "sampleBlockListContent"


# Media binding resolver -> stream resolver that fetches its bytes
MEDIA_STREAM_ALIASES: dict[str, str] = {
    ResolverAlias.URL_TO_MEDIA.value: ResolverAlias.URL_TO_STREAM.value,
    ResolverAlias.PATH_TO_MEDIA.value: ResolverAlias.PATH_TO_STREAM.value,
    ResolverAlias.ZIP_FILE_TO_MEDIA.value: ResolverAlias.ZIP_FILE_TO_STREAM.value,
}

_MEDIA_ALIAS_LOOKUP = {alias.casefold(): alias for alias in MEDIA_STREAM_ALIASES}


def media_alias(alias: str) -> str | None:
    """Return the canonical media binding alias, or None if `alias` is not one."""
    return _MEDIA_ALIAS_LOOKUP.get(alias.casefold())


def reference_token(entity: str, guid: UUID) -> str:
    """
    Build the reference token addressing a repository item.

    Args:
        entity: "document", "media" or "element"
        guid: Item key

    Returns:
        Token of the form umb://{entity}/{guid-hex}
    """
    return f"{REFERENCE_TOKEN_SCHEME}://{entity}/{guid.hex}"


@dataclass
class ResolverContext:
    """
    Everything a resolver may read while resolving a value.

    Attributes:
        registry: Registry used by composite resolvers for nested values
        caches: Run caches (resolvers only read them)
        config: Importer configuration
        repository: Content repository lookup API
        http_client: Shared HTTP client for URL streams
        archive_entries: Files of the ZIP archive the batch came from
        depth: Nesting depth of composite resolution
        column: Header of the column being resolved
        warnings: Non-fatal diagnostics collected for the current row
        new_guid: Key factory for generated block elements
    """

    registry: "ResolverRegistry"
    caches: "RunCaches"
    config: ImporterConfig = field(default_factory=ImporterConfig)
    repository: "ContentRepository | None" = None
    http_client: httpx.Client | None = None
    archive_entries: Mapping[str, bytes] = field(default_factory=dict)
    depth: int = 0
    column: str | None = None
    warnings: list[str] = field(default_factory=list)
    new_guid: Callable[[], UUID] = uuid4

    def warn(self, message: str) -> None:
        """Record a non-fatal diagnostic for the current row."""
        if self.column:
            message = f"{self.column}: {message}"
        self.warnings.append(message)
        logger.debug("Resolver warning", column=self.column, message=message)

    def for_column(self, column: str) -> "ResolverContext":
        """Copy bound to a column, with a fresh warning list."""
        return replace(self, column=column, warnings=[], depth=0)

    def nested(self) -> "ResolverContext":
        """Copy one composite level deeper, sharing the warning list."""
        return replace(self, depth=self.depth + 1)

    def require_repository(self, alias: str) -> "ContentRepository":
        if self.repository is None:
            raise ResolveError(
                ResolveErrorKind.UNEXPECTED,
                "No content repository available for lookups",
                alias=alias,
            )
        return self.repository


class Resolver(ABC):
    """
    Base class for value resolvers.

    Subclasses set `alias` and implement `resolve`. Deferred resolvers also
    implement `dependencies` so the hierarchy resolver can see what they
    reference before anything is created.
    """

    alias: str = ""
    description: str = ""
    deferred: bool = False
    produces_property: bool = True

    @abstractmethod
    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        """
        Resolve a raw cell value.

        Args:
            raw_value: Raw cell text
            parameter: Header parameter (text after ':'), if any
            context: Resolution context

        Returns:
            Property value, or None for "no property"

        Raises:
            ResolveError: If the value cannot be resolved
        """

    def dependencies(self, raw_value: str, parameter: str | None) -> list[str]:
        """Legacy ids this value refers to (deferred resolvers only)."""
        return []

    def fail(
        self, kind: ResolveErrorKind, message: str, raw_value: Any = None
    ) -> ResolveError:
        """Build a ResolveError tagged with this resolver's alias."""
        return ResolveError(kind, message, alias=self.alias, raw_value=raw_value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(alias={self.alias!r})"
