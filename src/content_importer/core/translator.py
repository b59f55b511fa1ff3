"""Record to pending-object translation.

Each raw record becomes one PendingImportObject:

- Standard columns (name, docTypeAlias, parent / parentId) and the reserved
  bulkUpload* columns feed the object's own fields. They match
  case-insensitively on the header's base name and never become properties.
- Every other column is parsed with ColumnSpecParser and its cell resolved
  by the column's resolver. A cell that fails adds a warning and contributes
  no property; the row itself still goes ahead.
- Deferred resolvers (legacy content pickers) are not resolved here. Their
  raw value is kept for the pipeline and the legacy ids they reference are
  listed as ordering hints.
- Empty cells contribute nothing.
"""

from typing import Any
from uuid import UUID

import structlog

from ..constants import (
    CONTENT_GUID_COLUMN,
    CONTENT_TYPE_COLUMN,
    LEGACY_ID_COLUMN,
    LEGACY_PARENT_COLUMN_FALLBACK,
    LEGACY_PARENT_ID_COLUMN,
    NAME_COLUMN,
    NON_PROPERTY_COLUMNS,
    PARENT_COLUMN,
    PARENT_GUID_COLUMN,
    SHOULD_PUBLISH_COLUMN,
    TRUTHY_FLAG_VALUES,
)
from ..models.records import DeferredProperty, PendingImportObject, RawRecord
from ..resolvers.base import ResolverContext
from ..utils.exceptions import ResolveError, ResolveErrorKind
from .column_spec import ColumnSpecParser, base_name

logger = structlog.get_logger(__name__)


def is_valid_parent_spec(spec: str) -> bool:
    """
    Check that a parent spec is an integer id, a GUID or a /slash/path.

    Args:
        spec: Stripped parent spec

    Returns:
        bool: True if the repository can look the spec up
    """
    if spec.startswith("/"):
        return True
    try:
        int(spec)
        return True
    except ValueError:
        pass
    try:
        UUID(spec)
        return True
    except ValueError:
        return False


class RecordToObjectTranslator:
    """
    Translate raw records into PendingImportObjects.

    Args:
        context: Resolver context of the current run
        column_parser: Shared header parser (headers repeat on every row)
    """

    def __init__(
        self, context: ResolverContext, column_parser: ColumnSpecParser | None = None
    ) -> None:
        self.context = context
        self.registry = context.registry
        self.config = context.config
        self.column_parser = column_parser or ColumnSpecParser()

    def translate(
        self,
        record: RawRecord,
        source_file: str | None = None,
        row_number: int | None = None,
    ) -> PendingImportObject:
        """
        Translate one record.

        Args:
            record: Header -> cell mapping
            source_file: Input file name, for reporting
            row_number: Line of the record in its file

        Returns:
            Pending object; check `can_import` before ordering it

        Raises:
            RepositoryUnavailableError: If a reference lookup cannot reach the repository
        """
        warnings: list[str] = []
        standard = self._standard_values(record)

        parent_spec = standard.get(PARENT_COLUMN.casefold()) or standard.get(
            LEGACY_PARENT_COLUMN_FALLBACK.casefold()
        )
        if parent_spec and not is_valid_parent_spec(parent_spec):
            warnings.append(
                f"Unsupported parent '{parent_spec}' (expected id, GUID or /path); "
                "placing at root"
            )
            parent_spec = None

        publish_flag = standard.get(SHOULD_PUBLISH_COLUMN.casefold())
        if publish_flag is None:
            should_publish = self.config.pipeline.publish_by_default
        else:
            should_publish = publish_flag.casefold() in TRUTHY_FLAG_VALUES

        obj = PendingImportObject(
            name=standard.get(NAME_COLUMN.casefold(), ""),
            content_type_alias=standard.get(CONTENT_TYPE_COLUMN.casefold(), ""),
            parent_spec=parent_spec,
            legacy_id=standard.get(LEGACY_ID_COLUMN.casefold()),
            legacy_parent_id=standard.get(LEGACY_PARENT_ID_COLUMN.casefold()),
            target_content_guid=self._guid(standard, CONTENT_GUID_COLUMN, warnings),
            target_parent_guid=self._guid(standard, PARENT_GUID_COLUMN, warnings),
            should_publish=should_publish,
            source_file=source_file,
            row_number=row_number,
            original_record=dict(record),
        )

        for header, raw_value in record.items():
            if base_name(header).casefold() in NON_PROPERTY_COLUMNS:
                continue
            if raw_value is None or not raw_value.strip():
                continue
            self._translate_cell(obj, header, raw_value, warnings)

        obj.warnings = warnings
        if warnings:
            logger.debug(
                "Record translated with warnings",
                item=obj.label,
                row=row_number,
                warnings=len(warnings),
            )
        return obj

    def _standard_values(self, record: RawRecord) -> dict[str, str]:
        values: dict[str, str] = {}
        for header, raw_value in record.items():
            key = base_name(header).casefold()
            if key not in NON_PROPERTY_COLUMNS or raw_value is None:
                continue
            value = raw_value.strip()
            if value and key not in values:
                values[key] = value
        return values

    def _guid(self, standard: dict[str, str], column: str, warnings: list[str]) -> UUID | None:
        value = standard.get(column.casefold())
        if not value:
            return None
        try:
            return UUID(value)
        except ValueError:
            warnings.append(f"{column}: '{value}' is not a valid GUID; ignored")
            return None

    def _translate_cell(
        self, obj: PendingImportObject, header: str, raw_value: str, warnings: list[str]
    ) -> None:
        spec = self.column_parser.parse(header)
        resolver = self.registry.get(spec.resolver_alias)
        if resolver is None:
            warnings.append(
                f"{header}: {ResolveErrorKind.UNKNOWN_RESOLVER.value}: "
                f"no resolver registered for alias '{spec.resolver_alias}'"
            )
            return

        if resolver.deferred:
            obj.deferred_properties.append(
                DeferredProperty(
                    property_name=spec.property_name,
                    resolver_alias=resolver.alias,
                    parameter=spec.parameter,
                    raw_value=raw_value,
                    column=header,
                )
            )
            for legacy_id in resolver.dependencies(raw_value, spec.parameter):
                if legacy_id not in obj.reference_dependencies:
                    obj.reference_dependencies.append(legacy_id)
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

        if value is None:
            return
        if spec.property_name in obj.properties:
            warnings.append(
                f"{header}: property '{spec.property_name}' set by an earlier column; overwritten"
            )
        obj.properties[spec.property_name] = value
