"""Import pipeline - drives one run from raw records to created items.

Run Phases:
----------
1. Media preprocessing: every distinct media reference of the batch is
   created once and memoized in the MediaItemCache.
2. Translation: each record becomes a PendingImportObject. Objects without a
   name or content type are rejected here.
3. Hierarchy resolution: importable objects are ordered parent-first; cycle
   members, duplicate legacy ids, children of rejected rows and their
   descendants are excluded.
4. Creation: objects are created (or updated) strictly in order. Deferred
   pickers are resolved right before each creation, and every created item
   with a legacy id is recorded in the LegacyIdCache.

A failing item never stops the run. Only RepositoryUnavailableError aborts it.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import httpx
import structlog

from ..caching.caches import RunCaches
from ..caching.media_preprocessor import MediaPreprocessor
from ..config import ImporterConfig
from ..core.column_spec import ColumnSpecParser
from ..core.reader import ImportBatch
from ..core.translator import RecordToObjectTranslator
from ..dependency.hierarchy import HierarchyResolver
from ..models.records import ContentRef, PendingImportObject, RawRecord
from ..models.results import HierarchyResult, ImportRunResult, ItemOperation, PerItemResult
from ..observability.logger import LogContext
from ..repository.base import ContentRepository, MediaStore
from ..resolvers.base import ResolverContext
from ..resolvers.registry import ResolverRegistry, default_registry
from ..utils.exceptions import (
    RepositoryError,
    RepositoryUnavailableError,
    ResolveError,
    ResolveErrorKind,
)

logger = structlog.get_logger(__name__)

ERROR_KIND_DEPENDENCY = "dependency_not_resolved"
ERROR_KIND_INVALID_VALUE = "invalid_value"
ERROR_KIND_REPOSITORY = "repository_error"


@dataclass
class SourceRows:
    """Records of one input file."""

    records: Sequence[RawRecord]
    source_file: str | None = None
    row_numbers: Sequence[int] | None = None

    def numbered(self) -> Iterable[tuple[int, RawRecord]]:
        for position, record in enumerate(self.records):
            if self.row_numbers is not None and position < len(self.row_numbers):
                yield self.row_numbers[position], record
            else:
                # Header occupies line 1
                yield position + 2, record


def _legacy_ids(objects: Iterable[PendingImportObject]) -> list[str]:
    return [obj.legacy_id for obj in objects if obj.legacy_id]


class ImportPipeline:
    """
    Import records into a content repository.

    Args:
        repository: Content repository to create items in
        media_store: Store for media items; without one, media columns fail
            as unresolved dependencies
        registry: Resolver registry (defaults to the built-in resolvers)
        config: Importer configuration
        http_client: Shared client for URL downloads; a private one is opened
            per run when omitted
        new_guid: Key factory for generated block elements
    """

    def __init__(
        self,
        repository: ContentRepository,
        media_store: MediaStore | None = None,
        registry: ResolverRegistry | None = None,
        config: ImporterConfig | None = None,
        http_client: httpx.Client | None = None,
        new_guid: Callable[[], UUID] = uuid4,
    ) -> None:
        self.repository = repository
        self.media_store = media_store
        self.registry = registry or default_registry()
        self.config = config or ImporterConfig()
        self.http_client = http_client
        self.new_guid = new_guid
        self.column_parser = ColumnSpecParser()
        self.hierarchy_resolver = HierarchyResolver(self.config.pipeline)

    def run_import(
        self,
        records: Sequence[RawRecord],
        source_file: str | None = None,
        archive_entries: Mapping[str, bytes] | None = None,
        caches: RunCaches | None = None,
        row_numbers: Sequence[int] | None = None,
    ) -> ImportRunResult:
        """
        Import the records of one file.

        Args:
            records: Header -> cell mappings in file order
            source_file: Input file name, for reporting
            archive_entries: Files of the ZIP archive the records came with
            caches: Caches to use; they are cleared before the run starts
            row_numbers: Line of each record in its file

        Returns:
            ImportRunResult for the run

        Raises:
            RepositoryUnavailableError: If the repository cannot be reached
        """
        rows = [SourceRows(records, source_file, row_numbers)]
        return self._run(rows, archive_entries or {}, caches)

    def run_batch(self, batch: ImportBatch, caches: RunCaches | None = None) -> ImportRunResult:
        """
        Import every file of a batch as a single run.

        Legacy ids resolve across files, so a child in one CSV may name a
        parent from another.
        """
        rows = [SourceRows(f.records, f.name, f.row_numbers) for f in batch.files]
        return self._run(rows, batch.archive_entries, caches)

    def plan_batch(self, batch: ImportBatch) -> tuple[HierarchyResult, list[PendingImportObject]]:
        """
        Translate and order a batch without creating anything.

        Media is not preprocessed, so media columns show up as warnings.

        Returns:
            Tuple of (hierarchy result, rejected objects)
        """
        caches = RunCaches.create(self.config.pipeline.legacy_ids_case_sensitive)
        context = ResolverContext(
            registry=self.registry,
            caches=caches,
            config=self.config,
            repository=self.repository,
            archive_entries=batch.archive_entries,
            new_guid=self.new_guid,
        )
        rows = [SourceRows(f.records, f.name, f.row_numbers) for f in batch.files]
        scratch = ImportRunResult(run_id="plan")
        importable = self._translate(rows, context, scratch)
        hierarchy = self.hierarchy_resolver.resolve(importable, _legacy_ids(scratch.rejected))
        return hierarchy, scratch.rejected

    def _run(
        self,
        sources: list[SourceRows],
        archive_entries: Mapping[str, bytes],
        caches: RunCaches | None,
    ) -> ImportRunResult:
        result = ImportRunResult(run_id=str(uuid4()), started_at=datetime.now(timezone.utc))

        if caches is None:
            caches = RunCaches.create(self.config.pipeline.legacy_ids_case_sensitive)
        else:
            caches.clear_all()

        owns_client = self.http_client is None
        http_client = self.http_client or httpx.Client(
            timeout=self.config.media.timeout, follow_redirects=True
        )

        try:
            with LogContext(run_id=result.run_id):
                logger.info(
                    "Import run started",
                    files=len(sources),
                    records=sum(len(s.records) for s in sources),
                )
                context = ResolverContext(
                    registry=self.registry,
                    caches=caches,
                    config=self.config,
                    repository=self.repository,
                    http_client=http_client,
                    archive_entries=archive_entries,
                    new_guid=self.new_guid,
                )

                if self.media_store is not None:
                    self._preprocess_media(
                        self.media_store, sources, archive_entries, caches, http_client, result
                    )

                importable = self._translate(sources, context, result)
                hierarchy = self.hierarchy_resolver.resolve(
                    importable, _legacy_ids(result.rejected)
                )
                result.hierarchy_failures = hierarchy.failures

                for obj in hierarchy.ordered:
                    result.ordered_results.append(
                        self._import_item(obj, context, caches, hierarchy)
                    )

                result.completed_at = datetime.now(timezone.utc)
                logger.info(
                    "Import run complete",
                    duration_seconds=round(result.duration_seconds, 3),
                    **result.counts(),
                )
        finally:
            if owns_client:
                http_client.close()

        return result

    def _preprocess_media(
        self,
        media_store: MediaStore,
        sources: list[SourceRows],
        archive_entries: Mapping[str, bytes],
        caches: RunCaches,
        http_client: httpx.Client,
        result: ImportRunResult,
    ) -> None:
        preprocessor = MediaPreprocessor(
            media_store,
            caches,
            self.registry,
            config=self.config,
            http_client=http_client,
            column_parser=self.column_parser,
        )
        for source in sources:
            outcomes = preprocessor.preprocess(source.records, archive_entries, source.source_file)
            details = {r.key: r for r in preprocessor.results}
            # Keys reused from an earlier file carry no new detail
            for key in outcomes:
                if key in details:
                    result.media_preprocessing_results[key] = details[key]

    def _translate(
        self, sources: list[SourceRows], context: ResolverContext, result: ImportRunResult
    ) -> list[PendingImportObject]:
        translator = RecordToObjectTranslator(context, self.column_parser)
        importable: list[PendingImportObject] = []

        for source in sources:
            for row_number, record in source.numbered():
                obj = translator.translate(record, source.source_file, row_number)
                if obj.can_import:
                    importable.append(obj)
                else:
                    result.rejected.append(obj)
                    logger.warning(
                        "Record rejected: name and content type are required",
                        source_file=source.source_file,
                        row=row_number,
                    )

        return importable

    def _import_item(
        self,
        obj: PendingImportObject,
        context: ResolverContext,
        caches: RunCaches,
        hierarchy: HierarchyResult,
    ) -> PerItemResult:
        operation = ItemOperation.UPDATE if obj.is_update else ItemOperation.CREATE
        item_result = PerItemResult(
            name=obj.name,
            success=False,
            operation=operation,
            legacy_id=obj.legacy_id,
            warnings=list(obj.warnings),
            source_file=obj.source_file,
            row_number=obj.row_number,
            original_record=obj.original_record,
        )

        try:
            properties = dict(obj.properties)
            properties.update(self._resolve_deferred(obj, context, item_result.warnings))

            if obj.target_content_guid is not None:
                ref = self.repository.update(
                    obj.target_content_guid,
                    obj.name,
                    properties,
                    obj.target_parent_guid,
                    obj.should_publish,
                )
                parent = None
            else:
                parent = self._placement(obj, caches, hierarchy)
                ref = self.repository.create(
                    obj.content_type_alias, obj.name, parent, properties, obj.should_publish
                )
        except RepositoryUnavailableError:
            raise
        except ResolveError as e:
            item_result.error_message = str(e)
            item_result.error_kind = (
                ERROR_KIND_DEPENDENCY if e.is_dependency_miss else ERROR_KIND_INVALID_VALUE
            )
            logger.warning(
                "Item failed", item=obj.label, error_kind=item_result.error_kind, error=str(e)
            )
            return item_result
        except RepositoryError as e:
            item_result.error_message = str(e)
            item_result.error_kind = ERROR_KIND_REPOSITORY
            logger.warning("Repository rejected item", item=obj.label, error=str(e))
            return item_result

        item_result.success = True
        item_result.created_id = ref.id
        item_result.created_guid = ref.guid
        item_result.parent_guid = parent.guid if parent else obj.target_parent_guid
        if obj.legacy_id:
            caches.legacy_ids.record(obj.legacy_id, ref)

        logger.debug(
            "Item imported",
            item=obj.label,
            operation=operation.value,
            id=ref.id,
            guid=str(ref.guid),
        )
        return item_result

    def _resolve_deferred(
        self, obj: PendingImportObject, context: ResolverContext, warnings: list[str]
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for deferred in obj.deferred_properties:
            column_context = context.for_column(deferred.column)
            try:
                value = self.registry.resolve(
                    deferred.resolver_alias,
                    deferred.raw_value,
                    deferred.parameter,
                    column_context,
                )
            except ResolveError as e:
                warnings.append(f"{deferred.column}: {e.kind.value}: {e}")
                continue
            finally:
                warnings.extend(column_context.warnings)

            if value is not None:
                values[deferred.property_name] = value
        return values

    def _placement(
        self, obj: PendingImportObject, caches: RunCaches, hierarchy: HierarchyResult
    ) -> ContentRef | None:
        """
        Pick the parent for a new item.

        Order: legacy parent created in this run, explicit parent GUID, parent
        spec, repository root. A legacy parent that belongs to the batch but
        was not created fails the item.
        """
        if obj.legacy_parent_id and not hierarchy.is_external_parent(obj.legacy_parent_id):
            entry = caches.legacy_ids.peek(obj.legacy_parent_id)
            if entry is None or not entry.success or entry.value is None:
                raise ResolveError(
                    ResolveErrorKind.DEPENDENCY_NOT_RESOLVED,
                    f"Legacy parent '{obj.legacy_parent_id}' was not created",
                    raw_value=obj.legacy_parent_id,
                )
            return entry.value

        if obj.target_parent_guid is not None:
            return self._lookup_parent(str(obj.target_parent_guid), caches)
        if obj.parent_spec:
            return self._lookup_parent(obj.parent_spec, caches)
        return None

    def _lookup_parent(self, spec: str, caches: RunCaches) -> ContentRef:
        entry = caches.parents.get_or_compute(
            spec,
            lambda: self.repository.find_parent(spec),
            missing_message=f"Parent '{spec}' does not exist",
        )
        if not entry.success or entry.value is None:
            raise ResolveError(
                ResolveErrorKind.NOT_FOUND,
                entry.error_message or f"Parent '{spec}' does not exist",
                raw_value=spec,
            )
        return entry.value
