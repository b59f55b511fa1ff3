"""Media-upload row translation.

A media-upload file describes media items rather than content:

```
fileName,name,parent,mediaTypeAlias,altText
hero.jpg,Hero image,/Images/Blog/,image,A mountain at dawn
```

Columns:
- fileName, name, parent (or parentId), mediaTypeAlias feed the object.
- bulkUploadMediaGuid plus a truthy bulkUploadShouldUpdate turn the row into
  an update of an existing item. bulkUploadLegacyId is kept for tracking.
- mediaSource without a resolver names an external file; the stream resolver
  is picked from the value (http(s) URL, absolute path, else archive entry).
- Any column using a stream resolver (e.g. `source|urlToStream`) names the
  file explicitly.
- Every other column is a media property, resolved like a content column.
  Deferred resolvers need created content and are not available here.
"""

from pathlib import PureWindowsPath
from typing import Any
from uuid import UUID

import structlog

from ..constants import (
    FILE_NAME_COLUMN,
    HEADER_RESOLVER_SEPARATOR,
    LEGACY_ID_COLUMN,
    LEGACY_PARENT_COLUMN_FALLBACK,
    MEDIA_GUID_COLUMN,
    MEDIA_NON_PROPERTY_COLUMNS,
    MEDIA_SOURCE_COLUMN,
    MEDIA_TYPE_COLUMN,
    NAME_COLUMN,
    PARENT_COLUMN,
    SHOULD_UPDATE_COLUMN,
    TRUTHY_FLAG_VALUES,
)
from ..models.records import MediaImportObject, RawRecord
from ..resolvers.base import ResolverAlias, ResolverContext
from ..resolvers.media import file_name_from_url, split_media_value
from ..utils.exceptions import ResolveError, ResolveErrorKind
from .column_spec import ColumnSpecParser, base_name
from .translator import is_valid_parent_spec

logger = structlog.get_logger(__name__)


def detect_source_alias(value: str) -> str:
    """
    Pick the stream resolver for a bare mediaSource value.

    Returns:
        urlToStream for http(s) URLs, pathToStream for absolute paths (a
        leading '/' or a drive colon), zipFileToStream otherwise
    """
    text = value.strip()
    if text.casefold().startswith(("http://", "https://")):
        return ResolverAlias.URL_TO_STREAM.value
    if text.startswith("/") or ":" in text:
        return ResolverAlias.PATH_TO_STREAM.value
    return ResolverAlias.ZIP_FILE_TO_STREAM.value


def infer_file_name(source: str, source_alias: str) -> str:
    """File name a media source will most likely be stored under."""
    location, _ = split_media_value(source)
    if source_alias.casefold() == ResolverAlias.URL_TO_STREAM.value.casefold():
        return file_name_from_url(location)
    return PureWindowsPath(location).name


class MediaRecordTranslator:
    """
    Translate media-upload records into MediaImportObjects.

    Args:
        context: Resolver context of the current run
        column_parser: Shared header parser
    """

    def __init__(
        self, context: ResolverContext, column_parser: ColumnSpecParser | None = None
    ) -> None:
        self.context = context
        self.registry = context.registry
        self.column_parser = column_parser or ColumnSpecParser()

    def translate(
        self,
        record: RawRecord,
        source_file: str | None = None,
        row_number: int | None = None,
    ) -> MediaImportObject:
        """
        Translate one media-upload record.

        Args:
            record: Header -> cell mapping
            source_file: Input file name, for reporting
            row_number: Line of the record in its file

        Returns:
            Media import object; check `can_import` before importing it
        """
        warnings: list[str] = []
        standard: dict[str, str] = {}
        update_column_present = False
        for header, raw_value in record.items():
            key = base_name(header).casefold()
            if key == SHOULD_UPDATE_COLUMN.casefold():
                update_column_present = True
            if key not in MEDIA_NON_PROPERTY_COLUMNS or raw_value is None:
                continue
            value = raw_value.strip()
            if value and key not in standard:
                standard[key] = value

        parent_spec = standard.get(PARENT_COLUMN.casefold()) or standard.get(
            LEGACY_PARENT_COLUMN_FALLBACK.casefold()
        )
        if parent_spec and not is_valid_parent_spec(parent_spec):
            warnings.append(
                f"Unsupported parent '{parent_spec}' (expected id, GUID or /path); ignored"
            )
            parent_spec = None

        media_guid = None
        guid_text = standard.get(MEDIA_GUID_COLUMN.casefold())
        if guid_text:
            try:
                media_guid = UUID(guid_text)
            except ValueError:
                warnings.append(f"{MEDIA_GUID_COLUMN}: '{guid_text}' is not a valid GUID; ignored")

        update_flag = standard.get(SHOULD_UPDATE_COLUMN.casefold(), "")

        obj = MediaImportObject(
            file_name=standard.get(FILE_NAME_COLUMN.casefold(), ""),
            name=standard.get(NAME_COLUMN.casefold()),
            parent_spec=parent_spec,
            media_type_alias=standard.get(MEDIA_TYPE_COLUMN.casefold()),
            legacy_id=standard.get(LEGACY_ID_COLUMN.casefold()),
            media_guid=media_guid,
            should_update=update_flag.casefold() in TRUTHY_FLAG_VALUES,
            update_column_present=update_column_present,
            source_file=source_file,
            row_number=row_number,
            original_record=dict(record),
        )

        for header, raw_value in record.items():
            if base_name(header).casefold() in MEDIA_NON_PROPERTY_COLUMNS:
                continue
            if raw_value is None or not raw_value.strip():
                continue
            self._translate_cell(obj, header, raw_value, warnings)

        if not obj.file_name and obj.source and obj.source_alias:
            obj.file_name = infer_file_name(obj.source, obj.source_alias)
            logger.debug("Inferred file name from media source", file_name=obj.file_name)

        obj.warnings = warnings
        return obj

    def _translate_cell(
        self, obj: MediaImportObject, header: str, raw_value: str, warnings: list[str]
    ) -> None:
        if (
            base_name(header).casefold() == MEDIA_SOURCE_COLUMN.casefold()
            and HEADER_RESOLVER_SEPARATOR not in header
        ):
            self._set_source(obj, raw_value.strip(), detect_source_alias(raw_value), warnings)
            return

        spec = self.column_parser.parse(header)
        resolver = self.registry.get(spec.resolver_alias)
        if resolver is None:
            warnings.append(
                f"{header}: {ResolveErrorKind.UNKNOWN_RESOLVER.value}: "
                f"no resolver registered for alias '{spec.resolver_alias}'"
            )
            return
        if not resolver.produces_property:
            self._set_source(obj, raw_value.strip(), resolver.alias, warnings)
            return
        if resolver.deferred:
            warnings.append(f"{header}: '{resolver.alias}' is not supported for media rows")
            return

        column_context = self.context.for_column(header)
        try:
            value: Any = self.registry.resolve(
                spec.resolver_alias, raw_value, spec.parameter, column_context
            )
        except ResolveError as e:
            warnings.append(f"{header}: {e.kind.value}: {e}")
            return
        finally:
            warnings.extend(column_context.warnings)

        if value is not None:
            obj.properties[spec.property_name] = value

    def _set_source(
        self, obj: MediaImportObject, source: str, alias: str, warnings: list[str]
    ) -> None:
        if obj.source is not None:
            warnings.append(f"More than one media source; using '{source}'")
        obj.source = source
        obj.source_alias = alias
        logger.debug("Media source detected", alias=alias, source=source)
