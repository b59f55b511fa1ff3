"""Collaborator interfaces for the content repository and media store.

The pipeline only talks to these abstract classes. Implementations raise
RepositoryError when a single operation is rejected (the item fails, the
run continues) and RepositoryUnavailableError when the backend cannot be
reached at all (the run aborts).
"""

from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from ..models.records import ContentRef, MediaStream


class ContentRepository(ABC):
    """Read/write API of the hierarchical content repository."""

    @abstractmethod
    def find_parent(self, spec: str) -> ContentRef | None:
        """
        Find a parent item by integer id, GUID or /slash/path.

        Args:
            spec: Parent specification

        Returns:
            The item, or None if nothing matches
        """

    @abstractmethod
    def find_content_by_id(self, content_id: int) -> ContentRef | None: ...

    @abstractmethod
    def find_content_by_guid(self, guid: UUID) -> ContentRef | None: ...

    @abstractmethod
    def find_media_by_id(self, media_id: int) -> ContentRef | None: ...

    @abstractmethod
    def find_media_by_guid(self, guid: UUID) -> ContentRef | None: ...

    @abstractmethod
    def create(
        self,
        content_type_alias: str,
        name: str,
        parent: ContentRef | None,
        properties: dict[str, Any],
        should_publish: bool,
    ) -> ContentRef:
        """
        Create a content item.

        Args:
            content_type_alias: Content type of the new item
            name: Item name
            parent: Parent item, None for the repository root
            properties: Resolved property values
            should_publish: Publish after saving

        Returns:
            Identifier pair of the created item

        Raises:
            RepositoryError: If the repository rejects the item
            RepositoryUnavailableError: If the repository cannot be reached
        """

    @abstractmethod
    def update(
        self,
        target_guid: UUID,
        name: str | None,
        properties: dict[str, Any],
        new_parent_guid: UUID | None,
        should_publish: bool,
    ) -> ContentRef:
        """
        Update an existing item, optionally moving it under a new parent.

        Raises:
            RepositoryError: If the item does not exist or the update is rejected
            RepositoryUnavailableError: If the repository cannot be reached
        """


class MediaStore(ABC):
    """Creates, updates and organizes media items."""

    @abstractmethod
    def create_media(
        self, file_name: str, stream: MediaStream, parent_spec: str | None
    ) -> UUID:
        """
        Create a media item.

        Args:
            file_name: Name of the media item
            stream: File bytes
            parent_spec: Media folder (id, GUID or path); None for the media root

        Returns:
            Key of the created media item

        Raises:
            MediaCreationError: If the store rejects the file
            RepositoryUnavailableError: If the store cannot be reached
        """

    @abstractmethod
    def find_media_parent(self, spec: str) -> ContentRef | None:
        """Find a media folder or item by integer id or GUID."""

    @abstractmethod
    def ensure_media_folder(self, path: str) -> ContentRef | None:
        """
        Find a media folder by /slash/path, creating missing folders on the way.

        Returns:
            The innermost folder, or None when the path names the media root

        Raises:
            RepositoryError: If a folder cannot be created
            RepositoryUnavailableError: If the store cannot be reached
        """

    @abstractmethod
    def save_media(
        self,
        name: str,
        media_type_alias: str,
        parent: ContentRef | None,
        stream: MediaStream,
        properties: dict[str, Any],
    ) -> ContentRef:
        """
        Create a media item of an explicit type under a resolved folder.

        Raises:
            MediaCreationError: If the file is rejected
            RepositoryError: If the media type or the parent does not exist
            RepositoryUnavailableError: If the store cannot be reached
        """

    @abstractmethod
    def update_media(
        self,
        guid: UUID,
        name: str | None,
        parent: ContentRef | None,
        stream: MediaStream | None,
        properties: dict[str, Any],
    ) -> ContentRef:
        """
        Update an existing media item.

        Args:
            guid: Key of the item
            name: New name, None keeps the current one
            parent: Folder to move the item to, None leaves it where it is
            stream: Replacement file, None for a property-only update
            properties: Property values merged into the item

        Raises:
            RepositoryError: If the item or the new parent does not exist
            RepositoryUnavailableError: If the store cannot be reached
        """
