"""Media-upload pipeline - imports rows that describe media items.

Each row is handled on its own, in file order:

1. Translate the row into a MediaImportObject. Rows that cannot be imported
   (an update without a media GUID, a create without a file or a parent)
   fail without touching the store.
2. Fetch the file through a stream resolver: the row's media source, or in a
   ZIP upload the archive entry named by fileName. An update may go without a
   file; it then only changes name, folder and properties.
3. Resolve the folder. /slash/paths are created on demand; ids and GUIDs must
   exist. Every distinct folder spec hits the store once per run through the
   ParentLookupCache.
4. Save: create a new media item, or update the one named by
   bulkUploadMediaGuid.

A failing row never stops the run. Only RepositoryUnavailableError aborts it.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from uuid import UUID, uuid4

import httpx
import structlog

from ..caching.caches import RunCaches
from ..config import ImporterConfig
from ..constants import ENTITY_MEDIA
from ..core.column_spec import ColumnSpecParser
from ..core.media_translator import MediaRecordTranslator
from ..core.reader import ImportBatch
from ..models.records import ContentRef, MediaImportObject, MediaStream, RawRecord
from ..models.results import ItemOperation, MediaImportItemResult, MediaImportRunResult
from ..observability.logger import LogContext
from ..repository.base import ContentRepository, MediaStore
from ..repository.memory import media_type_for
from ..resolvers.base import ResolverAlias, ResolverContext, reference_token
from ..resolvers.registry import ResolverRegistry, default_registry
from ..utils.exceptions import (
    ImporterError,
    MediaCreationError,
    RepositoryUnavailableError,
    ResolveError,
    ResolveErrorKind,
)
from .pipeline import SourceRows

logger = structlog.get_logger(__name__)

_ZIP_STREAM_ALIAS = ResolverAlias.ZIP_FILE_TO_STREAM.value


class MediaImportPipeline:
    """
    Import media-upload records into a media store.

    Args:
        media_store: Store that creates, updates and organizes media
        registry: Resolver registry (defaults to the built-in resolvers)
        config: Importer configuration
        http_client: Shared client for URL downloads; a private one is opened
            per run when omitted
        repository: Content repository for reference columns, if any
    """

    def __init__(
        self,
        media_store: MediaStore,
        registry: ResolverRegistry | None = None,
        config: ImporterConfig | None = None,
        http_client: httpx.Client | None = None,
        repository: ContentRepository | None = None,
    ) -> None:
        self.media_store = media_store
        self.registry = registry or default_registry()
        self.config = config or ImporterConfig()
        self.http_client = http_client
        self.repository = repository
        self.column_parser = ColumnSpecParser()

    def run_import(
        self,
        records: Sequence[RawRecord],
        source_file: str | None = None,
        archive_entries: Mapping[str, bytes] | None = None,
        caches: RunCaches | None = None,
        row_numbers: Sequence[int] | None = None,
    ) -> MediaImportRunResult:
        """
        Import the media rows of one file.

        Args:
            records: Header -> cell mappings in file order
            source_file: Input file name, for reporting
            archive_entries: Files of the ZIP archive the records came with;
                fileName then names an entry of the archive
            caches: Caches to use; they are cleared before the run starts
            row_numbers: Line of each record in its file

        Returns:
            MediaImportRunResult for the run

        Raises:
            RepositoryUnavailableError: If the media store cannot be reached
        """
        rows = [SourceRows(records, source_file, row_numbers)]
        return self._run(rows, archive_entries, caches)

    def run_batch(
        self, batch: ImportBatch, caches: RunCaches | None = None
    ) -> MediaImportRunResult:
        """Import every file of a media-upload batch as a single run."""
        rows = [SourceRows(f.records, f.name, f.row_numbers) for f in batch.files]
        archive_entries = batch.archive_entries if batch.from_archive else None
        return self._run(rows, archive_entries, caches)

    def _run(
        self,
        sources: list[SourceRows],
        archive_entries: Mapping[str, bytes] | None,
        caches: RunCaches | None,
    ) -> MediaImportRunResult:
        result = MediaImportRunResult(
            run_id=str(uuid4()), started_at=datetime.now(timezone.utc)
        )

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
                    "Media import run started",
                    files=len(sources),
                    records=sum(len(s.records) for s in sources),
                    archive=archive_entries is not None,
                )
                context = ResolverContext(
                    registry=self.registry,
                    caches=caches,
                    config=self.config,
                    repository=self.repository,
                    http_client=http_client,
                    archive_entries=archive_entries or {},
                )
                translator = MediaRecordTranslator(context, self.column_parser)

                for source in sources:
                    for row_number, record in source.numbered():
                        obj = translator.translate(record, source.source_file, row_number)
                        result.results.append(
                            self._import_row(obj, context, caches, archive_entries is not None)
                        )

                result.completed_at = datetime.now(timezone.utc)
                logger.info(
                    "Media import run complete",
                    duration_seconds=round(result.duration_seconds, 3),
                    **result.counts(),
                )
        finally:
            if owns_client:
                http_client.close()

        return result

    def _import_row(
        self,
        obj: MediaImportObject,
        context: ResolverContext,
        caches: RunCaches,
        from_archive: bool,
    ) -> MediaImportItemResult:
        item_result = MediaImportItemResult(
            file_name=obj.file_name,
            success=False,
            operation=ItemOperation.UPDATE if obj.should_update else ItemOperation.CREATE,
            name=obj.name,
            legacy_id=obj.legacy_id,
            warnings=list(obj.warnings),
            source_file=obj.source_file,
            row_number=obj.row_number,
            original_record=obj.original_record,
        )

        if not obj.can_import:
            item_result.error_message = (
                f"Missing required fields: {_missing_fields(obj)}"
            )
            logger.warning(
                "Media row rejected", row=obj.row_number, error=item_result.error_message
            )
            return item_result

        try:
            stream = self._fetch(obj, context, from_archive, item_result.warnings)
            if obj.should_update and obj.media_guid is not None:
                parent = (
                    self._resolve_folder(obj.parent_spec, caches, item_result.warnings)
                    if obj.parent_spec
                    else None
                )
                ref = self.media_store.update_media(
                    obj.media_guid, obj.name, parent, stream, obj.properties
                )
            else:
                if stream is None:
                    raise MediaCreationError(obj.label, "no file stream available for import")
                parent = self._resolve_folder(obj.parent_spec, caches, item_result.warnings)
                ref = self.media_store.save_media(
                    obj.name or stream.file_name,
                    obj.media_type_alias or media_type_for(stream.file_name),
                    parent,
                    stream,
                    obj.properties,
                )
        except RepositoryUnavailableError:
            raise
        except ImporterError as e:
            item_result.error_message = str(e)
            logger.warning("Media row failed", item=obj.label, error=str(e))
            return item_result

        item_result.success = True
        item_result.media_guid = ref.guid
        item_result.media_token = reference_token(ENTITY_MEDIA, ref.guid)
        item_result.parent_guid = parent.guid if parent else None
        if stream is not None:
            item_result.file_name = stream.file_name

        logger.debug(
            "Media imported",
            item=obj.label,
            operation=item_result.operation.value,
            id=ref.id,
            guid=str(ref.guid),
        )
        return item_result

    def _fetch(
        self,
        obj: MediaImportObject,
        context: ResolverContext,
        from_archive: bool,
        warnings: list[str],
    ) -> MediaStream | None:
        """Fetch the row's file; None means there is nothing to upload."""
        alias, source = obj.source_alias, obj.source
        if source is None and from_archive and obj.file_name:
            alias, source = _ZIP_STREAM_ALIAS, obj.file_name
        if source is None or alias is None:
            return None

        if alias.casefold() == _ZIP_STREAM_ALIAS.casefold() and not from_archive:
            raise ResolveError(
                ResolveErrorKind.INVALID_FORMAT,
                f"'{source}' names an archive entry, but the upload is not a ZIP archive",
                alias=alias,
                raw_value=source,
            )

        try:
            stream = self.registry.resolve(alias, source, None, context, allow_stream=True)
        except ResolveError as e:
            if obj.should_update and e.kind == ResolveErrorKind.NOT_FOUND:
                warnings.append(f"{e}; updating properties only")
                return None
            raise

        if not isinstance(stream, MediaStream):
            raise MediaCreationError(source, f"{alias} returned no file")
        return stream

    def _resolve_folder(
        self, spec: str | None, caches: RunCaches, warnings: list[str]
    ) -> ContentRef | None:
        """
        Resolve a folder spec to a media folder; None is the media root.

        Paths are created when missing. An unknown integer id or a path that
        cannot be created falls back to the media root with a warning. An
        unknown GUID fails the row.
        """
        if spec is None or not spec.strip().strip("/").strip():
            return None
        spec = spec.strip()

        if spec.startswith("/"):
            entry = caches.parents.get_or_compute(
                spec, lambda: self.media_store.ensure_media_folder(spec)
            )
        else:
            entry = caches.parents.get_or_compute(
                spec,
                lambda: self.media_store.find_media_parent(spec),
                missing_message=f"Parent '{spec}' not found",
            )

        if entry.success and entry.value is not None:
            return entry.value

        if _is_guid(spec):
            raise ResolveError(
                ResolveErrorKind.NOT_FOUND,
                f"Parent with GUID {spec} not found",
                raw_value=spec,
            )
        warnings.append(f"{entry.error_message}; using the media root")
        return None


def _is_guid(value: str) -> bool:
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def _missing_fields(obj: MediaImportObject) -> str:
    if obj.should_update:
        return "bulkUploadMediaGuid"
    missing = []
    if not (obj.file_name or obj.source):
        missing.append("fileName or mediaSource")
    if obj.parent_spec is None:
        missing.append("parent")
    return ", ".join(missing)
