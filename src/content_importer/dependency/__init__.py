"""Creation ordering for pending objects."""

from .hierarchy import HierarchyNode, HierarchyResolver

__all__ = [
    "HierarchyNode",
    "HierarchyResolver",
]
