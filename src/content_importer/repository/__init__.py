"""Content repository and media store interfaces."""

from .base import ContentRepository, MediaStore
from .memory import InMemoryRepository, StoredItem

__all__ = [
    "ContentRepository",
    "MediaStore",
    "InMemoryRepository",
    "StoredItem",
]
