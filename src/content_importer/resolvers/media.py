"""Media resolvers.

Two groups live here:

1. Media binding resolvers (urlToMedia, pathToMedia, zipFileToMedia) used in
   property columns. They never create media. The media preprocessor has
   already created every distinct media reference of the batch, so binding a
   cell is a MediaItemCache lookup. A miss means preprocessing failed for that
   key and is reported as an unresolved dependency.

2. Stream resolvers (urlToStream, pathToStream, zipFileToStream) that fetch
   the bytes the preprocessor hands to the media store. They are not
   memoized and cannot be used as property columns.

Cell values may carry an inline media folder after a pipe:
`photo.jpg|/Images/Blog/`. Only the part before the pipe identifies the file.
"""

import mimetypes
from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import unquote, urlparse

import httpx
import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    CONTENT_TYPE_EXTENSIONS,
    DEFAULT_DOWNLOAD_EXTENSION,
    ENTITY_MEDIA,
    MEDIA_VALUE_PARAMETER_SEPARATOR,
)
from ..models.records import MediaStream
from ..utils.exceptions import ResolveErrorKind
from .base import Resolver, ResolverAlias, ResolverContext, reference_token

logger = structlog.get_logger(__name__)


def split_media_value(raw_value: str) -> tuple[str, str | None]:
    """
    Split a media cell into the file reference and its inline folder.

    Args:
        raw_value: Cell text, e.g. "photo.jpg|/Images/Blog/"

    Returns:
        Tuple of (file reference, folder or None)
    """
    key, _, folder = raw_value.partition(MEDIA_VALUE_PARAMETER_SEPARATOR)
    return key.strip(), folder.strip() or None


class MediaBindingResolver(Resolver):
    """Look up a preprocessed media item and return its media token."""

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        key, _ = split_media_value(raw_value)
        if not key:
            return None

        entry = context.caches.media.peek(key)
        if entry is None:
            raise self.fail(
                ResolveErrorKind.DEPENDENCY_NOT_RESOLVED,
                f"Media '{key}' was not created during preprocessing",
                raw_value=raw_value,
            )
        if not entry.success or entry.value is None:
            raise self.fail(
                ResolveErrorKind.DEPENDENCY_NOT_RESOLVED,
                f"Media '{key}' could not be created: {entry.error_message}",
                raw_value=raw_value,
            )
        return reference_token(ENTITY_MEDIA, entry.value)


class UrlToMediaResolver(MediaBindingResolver):
    alias = ResolverAlias.URL_TO_MEDIA.value
    description = "Binds media downloaded from a URL"


class PathToMediaResolver(MediaBindingResolver):
    alias = ResolverAlias.PATH_TO_MEDIA.value
    description = "Binds media read from a file path"


class ZipFileToMediaResolver(MediaBindingResolver):
    alias = ResolverAlias.ZIP_FILE_TO_MEDIA.value
    description = "Binds media read from the uploaded archive"


class StreamResolver(Resolver):
    produces_property = False

    def _check_size(self, content: bytes, source: str, context: ResolverContext) -> None:
        limit = context.config.media.max_bytes
        if len(content) > limit:
            raise self.fail(
                ResolveErrorKind.FETCH_FAILED,
                f"'{source}' is {len(content)} bytes, limit is {limit}",
                raw_value=source,
            )


class UrlToStreamResolver(StreamResolver):
    """
    Download a file over HTTP(S).

    Network errors and timeouts are retried with exponential backoff; HTTP
    error statuses are not.
    """

    alias = ResolverAlias.URL_TO_STREAM.value
    description = "Downloads file bytes from an http(s) URL"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        url, _ = split_media_value(raw_value)
        parsed = urlparse(url)
        allowed = context.config.media.allowed_schemes
        if parsed.scheme.lower() not in allowed or not parsed.netloc:
            raise self.fail(
                ResolveErrorKind.INVALID_FORMAT,
                f"'{url}' is not an allowed URL (schemes: {', '.join(allowed)})",
                raw_value=raw_value,
            )

        try:
            response = self._fetch(url, context)
        except httpx.HTTPError as e:
            raise self.fail(
                ResolveErrorKind.FETCH_FAILED, f"Download of '{url}' failed: {e}", raw_value=url
            ) from e

        if response.status_code >= 400:
            raise self.fail(
                ResolveErrorKind.FETCH_FAILED,
                f"Download of '{url}' returned HTTP {response.status_code}",
                raw_value=url,
            )

        content = response.content
        self._check_size(content, url, context)

        content_type = response.headers.get("content-type", "").split(";")[0].strip() or None
        file_name = file_name_from_url(url, content_type)
        logger.debug("Downloaded media", url=url, file_name=file_name, bytes=len(content))
        return MediaStream(file_name=file_name, content=content, content_type=content_type)

    def _fetch(self, url: str, context: ResolverContext) -> httpx.Response:
        media_config = context.config.media
        retrying = Retrying(
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            stop=stop_after_attempt(max(1, media_config.max_retries)),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

        if context.http_client is not None:
            return retrying(context.http_client.get, url)

        with httpx.Client(timeout=media_config.timeout, follow_redirects=True) as client:
            return retrying(client.get, url)


def file_name_from_url(url: str, content_type: str | None = None) -> str:
    """
    Derive a media file name from a URL.

    Falls back to "download" plus an extension guessed from the content type
    when the URL path has no usable last segment.
    """
    name = unquote(PurePosixPath(urlparse(url).path).name)
    if name and "." in name:
        return name

    extension = None
    if content_type:
        extension = CONTENT_TYPE_EXTENSIONS.get(content_type) or mimetypes.guess_extension(
            content_type
        )
    return f"{name or 'download'}{extension or DEFAULT_DOWNLOAD_EXTENSION}"


class PathToStreamResolver(StreamResolver):
    alias = ResolverAlias.PATH_TO_STREAM.value
    description = "Reads file bytes from a local or network path"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        path_text, _ = split_media_value(raw_value)
        if not path_text:
            raise self.fail(ResolveErrorKind.INVALID_FORMAT, "Empty file path", raw_value=raw_value)

        path = Path(path_text)
        base_directory = context.config.media.base_directory
        if not path.is_absolute() and base_directory is not None:
            path = base_directory / path

        if not path.is_file():
            raise self.fail(
                ResolveErrorKind.NOT_FOUND, f"File not found: {path}", raw_value=raw_value
            )

        try:
            content = path.read_bytes()
        except OSError as e:
            raise self.fail(
                ResolveErrorKind.FETCH_FAILED, f"Cannot read {path}: {e}", raw_value=raw_value
            ) from e

        self._check_size(content, str(path), context)
        content_type, _ = mimetypes.guess_type(path.name)
        return MediaStream(file_name=path.name, content=content, content_type=content_type)


class ZipFileToStreamResolver(StreamResolver):
    """
    Read a file from the archive the batch was uploaded in.

    Entries match case-insensitively on their full path first, then on the
    bare file name.
    """

    alias = ResolverAlias.ZIP_FILE_TO_STREAM.value
    description = "Reads file bytes from the uploaded archive"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        entry_name, _ = split_media_value(raw_value)
        if not entry_name:
            raise self.fail(
                ResolveErrorKind.INVALID_FORMAT, "Empty entry name", raw_value=raw_value
            )

        match = find_archive_entry(context.archive_entries, entry_name)
        if match is None:
            raise self.fail(
                ResolveErrorKind.NOT_FOUND,
                f"'{entry_name}' is not in the archive",
                raw_value=raw_value,
            )

        name, content = match
        self._check_size(content, name, context)
        file_name = PurePosixPath(name).name
        content_type, _ = mimetypes.guess_type(file_name)
        return MediaStream(file_name=file_name, content=content, content_type=content_type)


def find_archive_entry(
    entries: Mapping[str, bytes], entry_name: str
) -> tuple[str, bytes] | None:
    wanted = entry_name.replace("\\", "/").strip("/").casefold()
    by_basename = None
    for name, content in entries.items():
        normalized = name.replace("\\", "/").strip("/").casefold()
        if normalized == wanted:
            return name, content
        if by_basename is None and PurePosixPath(normalized).name == wanted:
            by_basename = (name, content)
    return by_basename
