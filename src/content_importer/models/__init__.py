"""Data models for records, pending objects and run results."""

from .records import (
    ColumnSpec,
    ContentRef,
    DeferredProperty,
    MediaImportObject,
    MediaStream,
    PendingImportObject,
    RawRecord,
)
from .results import (
    CacheEntry,
    HierarchyFailure,
    HierarchyFailureReason,
    HierarchyResult,
    ImportRunResult,
    ItemOperation,
    MediaImportItemResult,
    MediaImportRunResult,
    MediaPreprocessingResult,
    PerItemResult,
)

__all__ = [
    "RawRecord",
    "ColumnSpec",
    "ContentRef",
    "DeferredProperty",
    "MediaImportObject",
    "MediaStream",
    "PendingImportObject",
    "CacheEntry",
    "HierarchyFailure",
    "HierarchyFailureReason",
    "HierarchyResult",
    "ImportRunResult",
    "ItemOperation",
    "MediaImportItemResult",
    "MediaImportRunResult",
    "MediaPreprocessingResult",
    "PerItemResult",
]
