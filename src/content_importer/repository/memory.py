"""In-memory repository and media store.

Backs the CLI's simulate command and the test suite. Items live in plain
dictionaries; ids are assigned sequentially and GUIDs randomly.
"""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

import structlog

from ..models.records import ContentRef, MediaStream
from ..utils.exceptions import MediaCreationError, RepositoryError
from .base import ContentRepository, MediaStore

logger = structlog.get_logger(__name__)

MEDIA_FOLDER_TYPE = "folder"
DEFAULT_MEDIA_TYPES = frozenset({"image", "file", "video", "audio", MEDIA_FOLDER_TYPE})


@dataclass
class StoredItem:
    """A content or media item held by the in-memory repository."""

    id: int
    guid: UUID
    name: str
    type_alias: str
    parent_guid: UUID | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    published: bool = False
    size: int = 0

    @property
    def ref(self) -> ContentRef:
        return ContentRef(id=self.id, guid=self.guid)


class InMemoryRepository(ContentRepository, MediaStore):
    """
    Content repository and media store kept in memory.

    Args:
        allowed_content_types: When given, creating any other content type
            is rejected like a real repository would
        first_id: First id handed out
        media_types: Media type aliases save_media accepts
    """

    def __init__(
        self,
        allowed_content_types: set[str] | None = None,
        first_id: int = 1000,
        media_types: set[str] | None = None,
    ) -> None:
        self.allowed_content_types = (
            {alias.casefold() for alias in allowed_content_types}
            if allowed_content_types
            else None
        )
        self.media_types = {alias.casefold() for alias in (media_types or DEFAULT_MEDIA_TYPES)}
        self._next_id = first_id
        self.content: dict[UUID, StoredItem] = {}
        self.media: dict[UUID, StoredItem] = {}
        self.created_order: list[UUID] = []

    def _allocate_id(self) -> int:
        self._next_id += 1
        return self._next_id

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_content(
        self,
        name: str,
        type_alias: str = "folder",
        parent: ContentRef | None = None,
        guid: UUID | None = None,
    ) -> ContentRef:
        """Seed an existing content item (not counted as created)."""
        item = StoredItem(
            id=self._allocate_id(),
            guid=guid or uuid4(),
            name=name,
            type_alias=type_alias,
            parent_guid=parent.guid if parent else None,
        )
        self.content[item.guid] = item
        return item.ref

    def add_media(
        self,
        name: str,
        guid: UUID | None = None,
        type_alias: str = "file",
        parent: ContentRef | None = None,
    ) -> ContentRef:
        """Seed an existing media item or folder."""
        item = StoredItem(
            id=self._allocate_id(),
            guid=guid or uuid4(),
            name=name,
            type_alias=type_alias,
            parent_guid=parent.guid if parent else None,
        )
        self.media[item.guid] = item
        return item.ref

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_parent(self, spec: str) -> ContentRef | None:
        spec = spec.strip()
        if spec.startswith("/"):
            item = self._find_by_path(spec)
            return item.ref if item else None

        try:
            return self.find_content_by_id(int(spec))
        except ValueError:
            pass
        try:
            return self.find_content_by_guid(UUID(spec))
        except ValueError:
            return None

    def _find_by_path(self, path: str) -> StoredItem | None:
        segments = [s.strip().casefold() for s in path.strip("/").split("/") if s.strip()]
        if not segments:
            return None

        parent_guid: UUID | None = None
        current: StoredItem | None = None
        for segment in segments:
            current = next(
                (
                    item
                    for item in self.content.values()
                    if item.parent_guid == parent_guid and item.name.casefold() == segment
                ),
                None,
            )
            if current is None:
                return None
            parent_guid = current.guid
        return current

    def find_content_by_id(self, content_id: int) -> ContentRef | None:
        item = next((i for i in self.content.values() if i.id == content_id), None)
        return item.ref if item else None

    def find_content_by_guid(self, guid: UUID) -> ContentRef | None:
        item = self.content.get(guid)
        return item.ref if item else None

    def find_media_by_id(self, media_id: int) -> ContentRef | None:
        item = next((i for i in self.media.values() if i.id == media_id), None)
        return item.ref if item else None

    def find_media_by_guid(self, guid: UUID) -> ContentRef | None:
        item = self.media.get(guid)
        return item.ref if item else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        content_type_alias: str,
        name: str,
        parent: ContentRef | None,
        properties: dict[str, Any],
        should_publish: bool,
    ) -> ContentRef:
        if (
            self.allowed_content_types is not None
            and content_type_alias.casefold() not in self.allowed_content_types
        ):
            raise RepositoryError(f"Unknown content type '{content_type_alias}'", identifier=name)
        if parent is not None and parent.guid not in self.content:
            raise RepositoryError(f"Parent {parent.guid} does not exist", identifier=name)

        item = StoredItem(
            id=self._allocate_id(),
            guid=uuid4(),
            name=name,
            type_alias=content_type_alias,
            parent_guid=parent.guid if parent else None,
            properties=dict(properties),
            published=should_publish,
        )
        self.content[item.guid] = item
        self.created_order.append(item.guid)
        logger.debug("Content stored", name=name, id=item.id, parent=str(item.parent_guid))
        return item.ref

    def update(
        self,
        target_guid: UUID,
        name: str | None,
        properties: dict[str, Any],
        new_parent_guid: UUID | None,
        should_publish: bool,
    ) -> ContentRef:
        item = self.content.get(target_guid)
        if item is None:
            raise RepositoryError(
                f"Content {target_guid} does not exist", identifier=str(target_guid)
            )
        if new_parent_guid is not None:
            if new_parent_guid not in self.content:
                raise RepositoryError(
                    f"Parent {new_parent_guid} does not exist", identifier=str(target_guid)
                )
            item.parent_guid = new_parent_guid

        if name:
            item.name = name
        item.properties.update(properties)
        item.published = item.published or should_publish
        return item.ref

    def create_media(
        self, file_name: str, stream: MediaStream, parent_spec: str | None
    ) -> UUID:
        if not stream.content:
            raise MediaCreationError(file_name, "file is empty")

        item = StoredItem(
            id=self._allocate_id(),
            guid=uuid4(),
            name=file_name,
            type_alias=media_type_for(file_name),
            properties={"folder": parent_spec} if parent_spec else {},
            size=stream.size,
        )
        self.media[item.guid] = item
        return item.guid

    def find_media_parent(self, spec: str) -> ContentRef | None:
        spec = spec.strip()
        try:
            return self.find_media_by_id(int(spec))
        except ValueError:
            pass
        try:
            return self.find_media_by_guid(UUID(spec))
        except ValueError:
            return None

    def ensure_media_folder(self, path: str) -> ContentRef | None:
        parent: StoredItem | None = None
        for segment in (s.strip() for s in path.strip().strip("/").split("/")):
            if not segment:
                continue
            parent_guid = parent.guid if parent else None
            folder = next(
                (
                    item
                    for item in self.media.values()
                    if item.parent_guid == parent_guid
                    and item.type_alias == MEDIA_FOLDER_TYPE
                    and item.name.casefold() == segment.casefold()
                ),
                None,
            )
            if folder is None:
                folder = StoredItem(
                    id=self._allocate_id(),
                    guid=uuid4(),
                    name=segment,
                    type_alias=MEDIA_FOLDER_TYPE,
                    parent_guid=parent_guid,
                )
                self.media[folder.guid] = folder
                logger.debug("Media folder created", name=segment, id=folder.id)
            parent = folder
        return parent.ref if parent else None

    def save_media(
        self,
        name: str,
        media_type_alias: str,
        parent: ContentRef | None,
        stream: MediaStream,
        properties: dict[str, Any],
    ) -> ContentRef:
        if media_type_alias.casefold() not in self.media_types:
            raise RepositoryError(f"Media type '{media_type_alias}' not found", identifier=name)
        if parent is not None and parent.guid not in self.media:
            raise RepositoryError(f"Parent with GUID {parent.guid} not found", identifier=name)
        if not stream.content:
            raise MediaCreationError(stream.file_name, "file is empty")

        item = StoredItem(
            id=self._allocate_id(),
            guid=uuid4(),
            name=name,
            type_alias=media_type_alias,
            parent_guid=parent.guid if parent else None,
            properties={"file": stream.file_name, **properties},
            size=stream.size,
        )
        self.media[item.guid] = item
        return item.ref

    def update_media(
        self,
        guid: UUID,
        name: str | None,
        parent: ContentRef | None,
        stream: MediaStream | None,
        properties: dict[str, Any],
    ) -> ContentRef:
        item = self.media.get(guid)
        if item is None:
            raise RepositoryError(f"Media with GUID {guid} not found", identifier=str(guid))
        if parent is not None:
            if parent.guid not in self.media:
                raise RepositoryError(
                    f"Parent with GUID {parent.guid} not found", identifier=str(guid)
                )
            item.parent_guid = parent.guid

        if name:
            item.name = name
        if stream is not None and stream.content:
            item.properties["file"] = stream.file_name
            item.size = stream.size
        item.properties.update(properties)
        return item.ref

    def get_media(self, guid: UUID) -> StoredItem | None:
        return self.media.get(guid)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get(self, guid: UUID) -> StoredItem | None:
        return self.content.get(guid)

    def children_of(self, parent: ContentRef | None) -> list[StoredItem]:
        parent_guid = parent.guid if parent else None
        return [item for item in self.content.values() if item.parent_guid == parent_guid]

    def created_items(self) -> list[StoredItem]:
        return [self.content[guid] for guid in self.created_order]


_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".bmp"})
_VIDEO_EXTENSIONS = frozenset({".mp4", ".webm", ".mov", ".avi", ".wmv"})
_AUDIO_EXTENSIONS = frozenset({".mp3", ".wav", ".ogg", ".wma"})


def media_type_for(file_name: str) -> str:
    """Pick a media type alias from the file extension."""
    extension = "." + file_name.rsplit(".", 1)[-1].casefold() if "." in file_name else ""
    if extension in _IMAGE_EXTENSIONS:
        return "image"
    if extension in _VIDEO_EXTENSIONS:
        return "video"
    if extension in _AUDIO_EXTENSIONS:
        return "audio"
    return "file"
