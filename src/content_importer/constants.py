"""Named constants for the Content Importer.

Column names that form the input contract, resolver defaults, reference token
format and block-list content type keys live here so the translator, the
preprocessor and the resolvers agree on them.
"""

# -----------------------------------------------------------------------------
# Input Columns
# -----------------------------------------------------------------------------

# Standard columns consumed by the translator itself
NAME_COLUMN: str = "name"
CONTENT_TYPE_COLUMN: str = "docTypeAlias"
PARENT_COLUMN: str = "parent"
LEGACY_PARENT_COLUMN_FALLBACK: str = "parentId"  # Older files use parentId

STANDARD_COLUMNS: frozenset[str] = frozenset(
    {NAME_COLUMN, CONTENT_TYPE_COLUMN, PARENT_COLUMN, LEGACY_PARENT_COLUMN_FALLBACK}
)

# Reserved columns carry import metadata and never become content properties.
LEGACY_ID_COLUMN: str = "bulkUploadLegacyId"
LEGACY_PARENT_ID_COLUMN: str = "bulkUploadLegacyParentId"
SHOULD_PUBLISH_COLUMN: str = "bulkUploadShouldPublish"
CONTENT_GUID_COLUMN: str = "bulkUploadContentGuid"
PARENT_GUID_COLUMN: str = "bulkUploadParentGuid"

RESERVED_COLUMNS: frozenset[str] = frozenset(
    {
        LEGACY_ID_COLUMN,
        LEGACY_PARENT_ID_COLUMN,
        SHOULD_PUBLISH_COLUMN,
        CONTENT_GUID_COLUMN,
        PARENT_GUID_COLUMN,
    }
)

# Case-insensitive lookup set for both groups
NON_PROPERTY_COLUMNS: frozenset[str] = frozenset(
    c.casefold() for c in STANDARD_COLUMNS | RESERVED_COLUMNS
)

# Media-upload rows
FILE_NAME_COLUMN: str = "fileName"
MEDIA_TYPE_COLUMN: str = "mediaTypeAlias"
MEDIA_SOURCE_COLUMN: str = "mediaSource"
MEDIA_GUID_COLUMN: str = "bulkUploadMediaGuid"
SHOULD_UPDATE_COLUMN: str = "bulkUploadShouldUpdate"

MEDIA_NON_PROPERTY_COLUMNS: frozenset[str] = frozenset(
    c.casefold()
    for c in (
        FILE_NAME_COLUMN,
        NAME_COLUMN,
        PARENT_COLUMN,
        LEGACY_PARENT_COLUMN_FALLBACK,
        MEDIA_TYPE_COLUMN,
        MEDIA_GUID_COLUMN,
        SHOULD_UPDATE_COLUMN,
        *RESERVED_COLUMNS,
    )
)

# Values accepted as "true" in the flag columns
TRUTHY_FLAG_VALUES: frozenset[str] = frozenset({"true", "yes", "1"})


# -----------------------------------------------------------------------------
# Column Header Syntax
# -----------------------------------------------------------------------------

HEADER_RESOLVER_SEPARATOR: str = "|"
HEADER_PARAMETER_SEPARATOR: str = ":"
DEFAULT_RESOLVER_ALIAS: str = "text"

# Media values may carry an inline parent folder: "photo.jpg|/Images/Blog/"
MEDIA_VALUE_PARAMETER_SEPARATOR: str = "|"


# -----------------------------------------------------------------------------
# Reference Tokens
# -----------------------------------------------------------------------------

REFERENCE_TOKEN_SCHEME: str = "umb"
ENTITY_DOCUMENT: str = "document"
ENTITY_MEDIA: str = "media"
ENTITY_ELEMENT: str = "element"


# -----------------------------------------------------------------------------
# Media
# -----------------------------------------------------------------------------

# Maps content-type headers to file extensions when a URL has no usable name
CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
    "video/mp4": ".mp4",
    "audio/mpeg": ".mp3",
    "application/pdf": ".pdf",
}
DEFAULT_DOWNLOAD_EXTENSION: str = ".bin"


# -----------------------------------------------------------------------------
# Block Lists
# -----------------------------------------------------------------------------

BLOCK_LIST_EDITOR_ALIAS: str = "Umbraco.BlockList"

# Separators for the multiBlockList cell syntax: "type::fields;;type::fields"
BLOCK_SEPARATOR: str = ";;"
BLOCK_TYPE_SEPARATOR: str = "::"
BLOCK_FIELD_SEPARATOR: str = "|"

# Element type keys of the block content types
BLOCK_CONTENT_TYPE_KEYS: dict[str, str] = {
    "richtext": "dd183f78-7d69-4eda-9b4c-a25970583a28",
    "image": "e0df4794-063a-4450-8f4f-c615a5d902e2",
    "video": "f43c8349-0801-44b8-9113-9f7c62cd44fe",
    "code": "f37c2c28-c8ab-48cd-ac07-b13e38bd900f",
    "carousel": "1c43fe2d-4a9a-4336-923f-9d0214950d48",
    "articlelist": "60085a63-b77b-4509-9df4-bcb75db2755f",
    "iconlink": "17db13ba-bbd9-4a44-b28f-986301156754",
}

# Element type keys of the per-block settings types
BLOCK_SETTINGS_TYPE_KEYS: dict[str, str] = {
    "image": "fed88ec5-c150-42af-b444-1f9ac5a100ba",
    "video": "eef34ceb-ddf6-4894-b1ac-f96c8c05d3d2",
    "code": "93638715-f76c-4a11-86b1-6a9d66504901",
    "carousel": "378fde96-51b6-4506-93e3-ec3038e636bb",
    "articlelist": "c56fb5b8-0b89-4206-847e-a6fecd865b84",
    "iconlink": "84e89805-5a53-4dcf-930d-fd87c48572dd",
}
DEFAULT_BLOCK_SETTINGS_TYPE_KEY: str = "da15dc43-43f6-45f6-bda8-1fd17a49d25c"
