"""Input-side models: raw records, column specs and pending import objects."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# One spreadsheet row: column header -> raw cell text
RawRecord = Mapping[str, str]


def blank_to_none(v: Any) -> Any:
    """
    Strip string values and turn blank ones into None.

    Spreadsheet exports pad identifiers with whitespace ("  42 ") and write
    empty cells as "", both of which would otherwise break legacy id matching.

    Args:
        v: The value to process.

    Returns:
        Any: Stripped string, None for blank strings, other values unchanged.
    """
    if isinstance(v, str):
        stripped = v.strip()
        return stripped or None
    return v


def strip_text(v: Any) -> Any:
    """Strip surrounding whitespace from strings, keeping empty strings."""
    if isinstance(v, str):
        return v.strip()
    return v


@dataclass(frozen=True)
class ColumnSpec:
    """
    Parsed column header.

    Attributes:
        property_name: Content property the column maps to
        resolver_alias: Resolver used for the cells of this column
        parameter: Optional resolver parameter (text after ':')
    """

    property_name: str
    resolver_alias: str = "text"
    parameter: str | None = None


@dataclass(frozen=True)
class ContentRef:
    """Identifier pair of an existing content or media item."""

    id: int
    guid: UUID


@dataclass(frozen=True)
class MediaStream:
    """
    Bytes fetched by a stream resolver, ready to hand to the media store.

    Attributes:
        file_name: File name to create the media item under
        content: Raw file bytes
        content_type: MIME type when known (HTTP downloads)
    """

    file_name: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


class DeferredProperty(BaseModel):
    """
    A property whose value can only be resolved once other items exist.

    Legacy content pickers reference items by their source-system id, so the
    value is kept raw until the LegacyIdCache holds the referenced items.
    """

    property_name: str
    resolver_alias: str
    parameter: str | None = None
    raw_value: str
    column: Annotated[str, Field(description="Original column header")]


class PendingImportObject(BaseModel):
    """
    One record translated into a creation (or update) request.

    Placement rules:
    - legacy_parent_id wins over parent_spec when it resolves through the
      LegacyIdCache
    - a legacy parent that is absent from the batch is external; the object
      then keeps its own parent_spec placement
    - no parent at all means the repository root
    """

    model_config = ConfigDict(validate_assignment=True)

    content_type_alias: Annotated[str, Field(default=""), BeforeValidator(strip_text)]
    name: Annotated[str, Field(default=""), BeforeValidator(strip_text)]
    parent_spec: Annotated[
        str | None,
        Field(default=None, description="Integer id, GUID or /slash/path"),
        BeforeValidator(blank_to_none),
    ]
    legacy_id: Annotated[str | None, Field(default=None), BeforeValidator(blank_to_none)]
    legacy_parent_id: Annotated[
        str | None, Field(default=None), BeforeValidator(blank_to_none)
    ]
    properties: dict[str, Any] = Field(default_factory=dict)
    deferred_properties: list[DeferredProperty] = Field(default_factory=list)
    reference_dependencies: Annotated[
        list[str],
        Field(default_factory=list, description="Legacy ids referenced by deferred pickers"),
    ]
    target_content_guid: UUID | None = None
    target_parent_guid: UUID | None = None
    should_publish: bool = False
    source_file: str | None = None
    row_number: int | None = None
    warnings: list[str] = Field(default_factory=list)
    original_record: dict[str, str] = Field(default_factory=dict)

    @property
    def can_import(self) -> bool:
        """
        Check whether the object has the minimum needed to be created.

        Returns:
            bool: True if both name and content type alias are non-blank.
        """
        return bool(self.name) and bool(self.content_type_alias)

    @property
    def is_update(self) -> bool:
        """True when the row targets an existing item by GUID."""
        return self.target_content_guid is not None

    @property
    def label(self) -> str:
        """Short identifier for log events and reports."""
        if self.legacy_id:
            return f"{self.name} [{self.legacy_id}]"
        return self.name or f"row {self.row_number}"


class MediaImportObject(BaseModel):
    """
    One media-upload row translated into a media create or update request.

    A row creates a new media item unless should_update is set, in which case
    it updates the item with key media_guid. The file comes from
    source (fetched with the stream resolver source_alias) or, in a ZIP
    upload, from the archive entry named by file_name.
    """

    model_config = ConfigDict(validate_assignment=True)

    file_name: Annotated[str, Field(default=""), BeforeValidator(strip_text)]
    name: Annotated[str | None, Field(default=None), BeforeValidator(blank_to_none)]
    parent_spec: Annotated[
        str | None,
        Field(default=None, description="Integer id, GUID or /slash/path (auto-created)"),
        BeforeValidator(blank_to_none),
    ]
    media_type_alias: Annotated[
        str | None, Field(default=None), BeforeValidator(blank_to_none)
    ]
    source: Annotated[
        str | None,
        Field(default=None, description="URL, file path or archive entry"),
        BeforeValidator(blank_to_none),
    ]
    source_alias: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    legacy_id: Annotated[str | None, Field(default=None), BeforeValidator(blank_to_none)]
    media_guid: UUID | None = None
    should_update: bool = False
    update_column_present: bool = False
    source_file: str | None = None
    row_number: int | None = None
    warnings: list[str] = Field(default_factory=list)
    original_record: dict[str, str] = Field(default_factory=dict)

    @property
    def can_import(self) -> bool:
        """
        Check whether the row carries enough to be imported.

        Returns:
            bool: Updates need a media GUID; creates need a file (name or
            source) and a parent.
        """
        if self.should_update:
            return self.media_guid is not None
        return bool(self.file_name or self.source) and self.parent_spec is not None

    @property
    def display_name(self) -> str:
        return self.name or self.file_name

    @property
    def label(self) -> str:
        return self.display_name or f"row {self.row_number}"
