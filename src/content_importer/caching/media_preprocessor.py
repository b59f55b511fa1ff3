"""Media preprocessing.

Runs once per batch, before any record is translated:

1. Scan every record for media columns (urlToMedia, pathToMedia,
   zipFileToMedia) and for media references inside multiBlockList cells.
2. Collect the distinct media references of the whole batch. The media
   folder is the value's inline parameter ("photo.jpg|/Images/") if present,
   otherwise the header parameter ("hero|urlToMedia:/Images/").
3. Fetch each reference once through its stream resolver and create it in the
   media store. The outcome, success or failure, is memoized in the
   MediaItemCache so media binding resolvers can look it up later.

A failing reference is recorded and preprocessing moves on to the next one.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from urllib.parse import urlparse
from uuid import UUID

import httpx
import structlog

from ..config import ImporterConfig
from ..core.column_spec import ColumnSpecParser
from ..models.records import MediaStream, RawRecord
from ..models.results import CacheEntry, MediaPreprocessingResult
from ..repository.base import MediaStore
from ..resolvers.base import MEDIA_STREAM_ALIASES, ResolverAlias, ResolverContext, media_alias
from ..resolvers.blocks import block_media_references
from ..resolvers.media import find_archive_entry, split_media_value
from ..resolvers.registry import ResolverRegistry
from ..utils.exceptions import ImporterError, MediaCreationError
from .caches import RunCaches

logger = structlog.get_logger(__name__)

_BLOCK_LIST_ALIAS = ResolverAlias.MULTI_BLOCK_LIST.value.casefold()


@dataclass
class MediaRequest:
    """One distinct media reference found in the batch."""

    key: str
    resolver_alias: str
    stream_alias: str
    parent_spec: str | None
    source_file: str | None = None
    file_name: str | None = None


class MediaPreprocessor:
    """
    Create every media item a batch references, once per distinct reference.

    Args:
        media_store: Store that creates media items
        caches: Run caches; results land in caches.media
        registry: Registry providing the stream resolvers
        config: Importer configuration
        http_client: Shared client for URL downloads
    """

    def __init__(
        self,
        media_store: MediaStore,
        caches: RunCaches,
        registry: ResolverRegistry,
        config: ImporterConfig | None = None,
        http_client: httpx.Client | None = None,
        column_parser: ColumnSpecParser | None = None,
    ) -> None:
        self.media_store = media_store
        self.caches = caches
        self.registry = registry
        self.config = config or ImporterConfig()
        self.http_client = http_client
        self.column_parser = column_parser or ColumnSpecParser()
        self.results: list[MediaPreprocessingResult] = []

    def preprocess(
        self,
        records: Iterable[RawRecord],
        archive_entries: Mapping[str, bytes] | None = None,
        source_file: str | None = None,
    ) -> dict[str, CacheEntry[UUID]]:
        """
        Create the media referenced by a batch.

        Args:
            records: Raw records of the batch
            archive_entries: Files of the uploaded archive, if any
            source_file: Name of the input file, for reporting

        Returns:
            Cache entry per distinct media reference, keyed by the raw reference

        Raises:
            RepositoryUnavailableError: If the media store cannot be reached
        """
        archive_entries = archive_entries or {}
        requests = self.collect(records, archive_entries, source_file)
        self.results = []

        if not requests:
            return {}

        logger.info("Preprocessing media", distinct_references=len(requests))

        context = ResolverContext(
            registry=self.registry,
            caches=self.caches,
            config=self.config,
            http_client=self.http_client,
            archive_entries=archive_entries,
        )

        outcomes: dict[str, CacheEntry[UUID]] = {}
        for request in requests:
            # Created by an earlier file of the same run
            existing = self.caches.media.get(request.key)
            if existing is not None:
                outcomes[request.key] = existing
                continue

            entry = self.caches.media.get_or_compute(
                request.key, lambda request=request: self._create(request, context)
            )
            outcomes[request.key] = entry
            self.results.append(
                MediaPreprocessingResult(
                    key=request.key,
                    resolver_alias=request.resolver_alias,
                    success=entry.success,
                    media_guid=entry.value,
                    file_name=request.file_name,
                    parent_spec=request.parent_spec,
                    error_message=entry.error_message,
                    source_file=request.source_file,
                )
            )
            if not entry.success:
                logger.warning(
                    "Media creation failed", key=request.key, error=entry.error_message
                )

        created = sum(1 for r in self.results if r.success)
        logger.info(
            "Media preprocessing complete",
            created=created,
            failed=len(self.results) - created,
        )
        return outcomes

    def collect(
        self,
        records: Iterable[RawRecord],
        archive_entries: Mapping[str, bytes],
        source_file: str | None = None,
    ) -> list[MediaRequest]:
        """
        Find the distinct media references of a batch, in first-seen order.

        Returns:
            One request per distinct (normalized) reference
        """
        requests: dict[str, MediaRequest] = {}

        def add(request: MediaRequest) -> None:
            normalized = self.caches.media.normalize_key(request.key)
            if normalized not in requests:
                requests[normalized] = request

        for record in records:
            for header, value in record.items():
                if not value or not value.strip():
                    continue
                spec = self.column_parser.parse(header)

                alias = media_alias(spec.resolver_alias)
                if alias is not None:
                    key, inline_parent = split_media_value(value)
                    if key:
                        add(
                            MediaRequest(
                                key=key,
                                resolver_alias=alias,
                                stream_alias=MEDIA_STREAM_ALIASES[alias],
                                parent_spec=inline_parent or spec.parameter,
                                source_file=source_file,
                            )
                        )
                    continue

                if spec.resolver_alias.casefold() == _BLOCK_LIST_ALIAS:
                    for reference in block_media_references(value):
                        alias = infer_media_alias(reference, archive_entries)
                        add(
                            MediaRequest(
                                key=reference,
                                resolver_alias=alias,
                                stream_alias=MEDIA_STREAM_ALIASES[alias],
                                parent_spec=spec.parameter,
                                source_file=source_file,
                            )
                        )

        return list(requests.values())

    def _create(self, request: MediaRequest, context: ResolverContext) -> UUID:
        stream = self.registry.resolve(
            request.stream_alias, request.key, None, context, allow_stream=True
        )
        if not isinstance(stream, MediaStream):
            raise MediaCreationError(request.key, f"{request.stream_alias} returned no file")

        try:
            guid = self.media_store.create_media(stream.file_name, stream, request.parent_spec)
        except ImporterError:
            raise
        except Exception as e:
            raise MediaCreationError(request.key, str(e) or type(e).__name__) from e

        request.file_name = stream.file_name
        logger.debug(
            "Media created",
            key=request.key,
            file_name=stream.file_name,
            parent=request.parent_spec,
            guid=str(guid),
        )
        return guid


def infer_media_alias(reference: str, archive_entries: Mapping[str, bytes]) -> str:
    """Pick the media binding alias for a bare reference found inside a block."""
    if urlparse(reference).scheme.lower() in ("http", "https"):
        return ResolverAlias.URL_TO_MEDIA.value
    if archive_entries and find_archive_entry(archive_entries, reference) is not None:
        return ResolverAlias.ZIP_FILE_TO_MEDIA.value
    return ResolverAlias.PATH_TO_MEDIA.value
