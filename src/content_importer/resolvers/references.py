"""Repository reference resolvers.

Each resolver turns an existing item's id or GUID into its reference token.
The singular forms fail the cell when the item is missing or the value is
malformed. The plural forms split on commas, drop elements they cannot
resolve (with a warning) and comma-join the tokens that remain.
"""

from typing import Any
from uuid import UUID

from ..constants import ENTITY_DOCUMENT, ENTITY_MEDIA
from ..models.records import ContentRef
from ..repository.base import ContentRepository
from ..utils.exceptions import ResolveError, ResolveErrorKind
from .base import Resolver, ResolverAlias, ResolverContext, reference_token


def parse_int_id(value: str) -> int | None:
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_guid(value: str) -> UUID | None:
    try:
        return UUID(value.strip())
    except ValueError:
        return None


class ReferenceResolver(Resolver):
    """
    Look up one repository item and return its reference token.

    Subclasses pick the identifier parser, the repository lookup and the
    token entity.
    """

    entity: str = ENTITY_DOCUMENT
    id_label: str = "id"
    multiple: bool = False

    def parse_identifier(self, value: str) -> Any:
        raise NotImplementedError

    def lookup(self, repository: ContentRepository, identifier: Any) -> ContentRef | None:
        raise NotImplementedError

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        if self.multiple:
            return self._resolve_many(raw_value, context)

        value = raw_value.strip()
        if not value:
            return None
        return self._resolve_one(value, context)

    def _resolve_one(self, value: str, context: ResolverContext) -> str:
        identifier = self.parse_identifier(value)
        if identifier is None:
            raise self.fail(
                ResolveErrorKind.INVALID_FORMAT,
                f"'{value}' is not a valid {self.id_label}",
                raw_value=value,
            )

        repository = context.require_repository(self.alias)
        ref = self.lookup(repository, identifier)
        if ref is None:
            raise self.fail(
                ResolveErrorKind.NOT_FOUND,
                f"No {self.entity} found for {self.id_label} '{value}'",
                raw_value=value,
            )
        return reference_token(self.entity, ref.guid)

    def _resolve_many(self, raw_value: str, context: ResolverContext) -> Any:
        tokens: list[str] = []
        for element in raw_value.split(","):
            element = element.strip()
            if not element:
                continue
            try:
                tokens.append(self._resolve_one(element, context))
            except ResolveError as e:
                if e.kind == ResolveErrorKind.UNEXPECTED:
                    raise
                context.warn(f"Skipped '{element}': {e}")

        if not tokens:
            return None
        return ",".join(tokens)


class _IdReference(ReferenceResolver):
    id_label = "integer id"

    def parse_identifier(self, value: str) -> Any:
        return parse_int_id(value)


class _GuidReference(ReferenceResolver):
    id_label = "GUID"

    def parse_identifier(self, value: str) -> Any:
        return parse_guid(value)


class ContentIdToContentUdiResolver(_IdReference):
    alias = ResolverAlias.CONTENT_ID_TO_CONTENT_UDI.value
    description = "Content id to a document token"

    def lookup(self, repository: ContentRepository, identifier: Any) -> ContentRef | None:
        return repository.find_content_by_id(identifier)


class ContentIdsToContentUdisResolver(ContentIdToContentUdiResolver):
    alias = ResolverAlias.CONTENT_IDS_TO_CONTENT_UDIS.value
    description = "Comma-separated content ids to document tokens"
    multiple = True


class GuidToContentUdiResolver(_GuidReference):
    alias = ResolverAlias.GUID_TO_CONTENT_UDI.value
    description = "Content GUID to a document token"

    def lookup(self, repository: ContentRepository, identifier: Any) -> ContentRef | None:
        return repository.find_content_by_guid(identifier)


class GuidsToContentUdisResolver(GuidToContentUdiResolver):
    alias = ResolverAlias.GUIDS_TO_CONTENT_UDIS.value
    description = "Comma-separated content GUIDs to document tokens"
    multiple = True


class MediaIdToMediaUdiResolver(_IdReference):
    alias = ResolverAlias.MEDIA_ID_TO_MEDIA_UDI.value
    description = "Media id to a media token"
    entity = ENTITY_MEDIA

    def lookup(self, repository: ContentRepository, identifier: Any) -> ContentRef | None:
        return repository.find_media_by_id(identifier)


class MediaIdsToMediaUdisResolver(MediaIdToMediaUdiResolver):
    alias = ResolverAlias.MEDIA_IDS_TO_MEDIA_UDIS.value
    description = "Comma-separated media ids to media tokens"
    multiple = True


class GuidToMediaUdiResolver(_GuidReference):
    alias = ResolverAlias.GUID_TO_MEDIA_UDI.value
    description = "Media GUID to a media token"
    entity = ENTITY_MEDIA

    def lookup(self, repository: ContentRepository, identifier: Any) -> ContentRef | None:
        return repository.find_media_by_guid(identifier)


class GuidsToMediaUdisResolver(GuidToMediaUdiResolver):
    alias = ResolverAlias.GUIDS_TO_MEDIA_UDIS.value
    description = "Comma-separated media GUIDs to media tokens"
    multiple = True
