"""Result types for import runs."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from .records import PendingImportObject

V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """
    Outcome of one memoized computation.

    Failed computations are stored too, so a key that failed once is not
    retried within the same run.

    Attributes:
        key: Normalized lookup key
        value: Computed value (None on failure)
        success: Whether the computation produced a value
        error_message: Failure cause when success is False
    """

    key: str
    value: V | None = None
    success: bool = True
    error_message: str | None = None

    @classmethod
    def ok(cls, key: str, value: V) -> "CacheEntry[V]":
        return cls(key=key, value=value, success=True)

    @classmethod
    def failed(cls, key: str, error_message: str) -> "CacheEntry[V]":
        return cls(key=key, value=None, success=False, error_message=error_message)


class ItemOperation(str, Enum):
    """What the pipeline did (or tried to do) with an item."""

    CREATE = "create"
    UPDATE = "update"


class HierarchyFailureReason(str, Enum):
    """Why the hierarchy resolver excluded an object."""

    DUPLICATE_LEGACY_ID = "duplicate_legacy_id"
    CYCLE = "cycle"
    ANCESTOR_EXCLUDED = "ancestor_excluded"


@dataclass
class HierarchyFailure:
    """An object excluded from the creation order."""

    item: PendingImportObject
    reason: HierarchyFailureReason
    message: str


@dataclass
class HierarchyResult:
    """
    Creation order produced by the hierarchy resolver.

    Attributes:
        ordered: Objects in creation order (legacy graph first, then flat set)
        failures: Objects excluded from the order with their cause
        external_parent_ids: Legacy parent ids that no object in the batch owns
    """

    ordered: list[PendingImportObject] = field(default_factory=list)
    failures: list[HierarchyFailure] = field(default_factory=list)
    external_parent_ids: set[str] = field(default_factory=set)
    case_sensitive: bool = False

    def is_external_parent(self, legacy_parent_id: str | None) -> bool:
        if not legacy_parent_id:
            return False
        key = legacy_parent_id.strip()
        if not self.case_sensitive:
            key = key.casefold()
        return key in self.external_parent_ids


@dataclass
class MediaPreprocessingResult:
    """
    Outcome of creating one distinct media item before the main pass.

    Attributes:
        key: Raw media reference (URL, path or archive entry)
        resolver_alias: Media resolver of the column the key came from
        success: Whether the media item exists after preprocessing
        media_guid: Key of the created media item
        file_name: File name the item was created under
        parent_spec: Media folder the item was created in
        error_message: Failure cause
        source_file: Input file the first reference came from
    """

    key: str
    resolver_alias: str
    success: bool
    media_guid: UUID | None = None
    file_name: str | None = None
    parent_spec: str | None = None
    error_message: str | None = None
    source_file: str | None = None


@dataclass
class PerItemResult:
    """
    Result of creating or updating a single item.

    error_kind separates cache misses ("dependency_not_resolved") from bad
    input ("invalid_value") and repository rejections ("repository_error").
    """

    name: str
    success: bool
    operation: ItemOperation = ItemOperation.CREATE
    created_id: int | None = None
    created_guid: UUID | None = None
    parent_guid: UUID | None = None
    error_message: str | None = None
    error_kind: str | None = None
    legacy_id: str | None = None
    warnings: list[str] = field(default_factory=list)
    source_file: str | None = None
    row_number: int | None = None
    original_record: dict[str, str] = field(default_factory=dict)


@dataclass
class ImportRunResult:
    """
    Overall result of one pipeline run.

    Attributes:
        run_id: Unique run identifier
        ordered_results: One result per object that reached the creation step,
            in creation order
        hierarchy_failures: Objects the hierarchy resolver excluded
        rejected: Objects dropped before ordering (missing name or type)
        media_preprocessing_results: Outcome per distinct media reference, keyed
            by the reference as first seen in the batch
        started_at: Start timestamp
        completed_at: Completion timestamp
    """

    run_id: str
    ordered_results: list[PerItemResult] = field(default_factory=list)
    hierarchy_failures: list[HierarchyFailure] = field(default_factory=list)
    rejected: list[PendingImportObject] = field(default_factory=list)
    media_preprocessing_results: dict[str, MediaPreprocessingResult] = field(
        default_factory=dict
    )
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.ordered_results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.ordered_results if not r.success)

    @property
    def excluded(self) -> int:
        return len(self.hierarchy_failures) + len(self.rejected)

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def success_rate(self) -> float:
        """
        Calculate success rate over every object in the run.

        Returns:
            float: Success rate percentage (0.0 to 100.0).
        """
        total = len(self.ordered_results) + self.excluded
        if total == 0:
            return 0.0
        return (self.succeeded / total) * 100

    @property
    def is_complete_success(self) -> bool:
        return self.failed == 0 and self.excluded == 0

    def counts(self) -> dict[str, Any]:
        media_failed = sum(1 for m in self.media_preprocessing_results.values() if not m.success)
        return {
            "created": sum(
                1
                for r in self.ordered_results
                if r.success and r.operation == ItemOperation.CREATE
            ),
            "updated": sum(
                1
                for r in self.ordered_results
                if r.success and r.operation == ItemOperation.UPDATE
            ),
            "failed": self.failed,
            "hierarchy_excluded": len(self.hierarchy_failures),
            "rejected": len(self.rejected),
            "media_created": len(self.media_preprocessing_results) - media_failed,
            "media_failed": media_failed,
        }

    def get_summary(self) -> str:
        """
        Get a human-readable summary.

        Returns:
            str: Summary string with run ID, counts, and success rate.
        """
        return (
            f"Run {self.run_id}: "
            f"{self.succeeded}/{len(self.ordered_results)} items succeeded, "
            f"{self.failed} failed, {self.excluded} excluded "
            f"({self.success_rate:.1f}% success rate)"
        )


@dataclass
class MediaImportItemResult:
    """
    Result of importing one media-upload row.

    Attributes:
        file_name: File name the row named (or the one inferred from its source)
        success: Whether the media item was saved
        operation: Create or update
        media_guid: Key of the saved media item
        media_token: Reference token other rows can use to point at the item
        parent_guid: Folder the item was saved in, None for the media root
        error_message: Failure cause
        legacy_id: Source-system id of the row, for tracking only
    """

    file_name: str
    success: bool
    operation: ItemOperation = ItemOperation.CREATE
    name: str | None = None
    media_guid: UUID | None = None
    media_token: str | None = None
    parent_guid: UUID | None = None
    error_message: str | None = None
    legacy_id: str | None = None
    warnings: list[str] = field(default_factory=list)
    source_file: str | None = None
    row_number: int | None = None
    original_record: dict[str, str] = field(default_factory=dict)


@dataclass
class MediaImportRunResult:
    """Overall result of one media-upload run."""

    run_id: str
    results: list[MediaImportItemResult] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def is_complete_success(self) -> bool:
        return self.failed == 0

    @property
    def duration_seconds(self) -> float:
        if self.started_at is None or self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def counts(self) -> dict[str, int]:
        return {
            "created": sum(
                1 for r in self.results if r.success and r.operation == ItemOperation.CREATE
            ),
            "updated": sum(
                1 for r in self.results if r.success and r.operation == ItemOperation.UPDATE
            ),
            "failed": self.failed,
        }

    def get_summary(self) -> str:
        return (
            f"Run {self.run_id}: {self.succeeded}/{len(self.results)} media items imported, "
            f"{self.failed} failed"
        )
