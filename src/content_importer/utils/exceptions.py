"""Custom exceptions for the Content Importer.

Exception Hierarchy:
-------------------
ImporterError (base)
├── ConfigurationError          # Invalid configuration file or environment
├── CSVReadError                # Unreadable CSV / ZIP input
├── ResolveError                # A single cell could not be resolved (typed by kind)
├── MediaCreationError          # Media fetch or creation failed for one key
└── RepositoryError             # Content repository rejected a single write
    └── RepositoryUnavailableError  # Repository/media store unreachable (fatal)

Usage Guidelines:
----------------
1. ResolveError is never fatal for a row. The translator folds it into the
   row's warnings and omits the property.

2. RepositoryError marks one item as failed; the batch continues.

3. RepositoryUnavailableError aborts the whole run. It is the only error the
   pipeline lets escape to its caller.

4. Include context in exceptions:
   - Column / property name for resolver errors
   - Raw lookup key for cache and media errors
   - Original exception when wrapping errors
"""

from enum import Enum


class ImporterError(Exception):
    """Base exception for all importer errors."""

    pass


class ConfigurationError(ImporterError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass


class CSVReadError(ImporterError):
    """Raised when an input batch cannot be read."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        source_file: str | None = None,
    ) -> None:
        """
        Initialize CSVReadError.

        Args:
            message: Error message.
            line_number: Optional line number where the error occurred.
            source_file: Optional name of the file being read.
        """
        super().__init__(message)
        self.line_number = line_number
        self.source_file = source_file

    def __str__(self) -> str:
        """
        Return string representation with file and line if available.

        Returns:
            str: Error message prefixed with location if set.
        """
        prefix = ""
        if self.source_file:
            prefix = f"{self.source_file}: "
        if self.line_number:
            prefix = f"{prefix}Line {self.line_number}: "
        return f"{prefix}{self.args[0]}" if self.args else "CSV read error"


class ResolveErrorKind(str, Enum):
    """Why a resolver could not produce a value."""

    INVALID_FORMAT = "invalid_format"  # Raw value is malformed
    NOT_FOUND = "not_found"  # Referenced entity does not exist
    DEPENDENCY_NOT_RESOLVED = "dependency_not_resolved"  # Cache miss (media / legacy id)
    UNKNOWN_RESOLVER = "unknown_resolver"  # Alias not registered
    NOT_A_PROPERTY_RESOLVER = "not_a_property_resolver"  # e.g. stream resolvers in a column
    RECURSION_LIMIT = "recursion_limit"  # Composite resolver nested too deeply
    FETCH_FAILED = "fetch_failed"  # Stream could not be read
    UNEXPECTED = "unexpected"  # Resolver raised something untyped


class ResolveError(ImporterError):
    """
    Raised when a resolver cannot turn a raw value into a property value.

    The kind distinguishes "value invalid" from "dependency not resolved" so
    callers can report cache misses separately from bad input.
    """

    def __init__(
        self,
        kind: ResolveErrorKind,
        message: str,
        alias: str | None = None,
        raw_value: object | None = None,
    ) -> None:
        """
        Initialize ResolveError.

        Args:
            kind: Category of the failure.
            message: Human-readable cause.
            alias: Resolver alias that failed, if known.
            raw_value: The raw value that could not be resolved.
        """
        super().__init__(message)
        self.kind = kind
        self.alias = alias
        self.raw_value = raw_value

    @property
    def is_dependency_miss(self) -> bool:
        """True when the failure is a cache miss rather than a bad value."""
        return self.kind == ResolveErrorKind.DEPENDENCY_NOT_RESOLVED


class MediaCreationError(ImporterError):
    """Raised when a media item cannot be fetched or created."""

    def __init__(self, media_key: str, reason: str) -> None:
        """
        Initialize MediaCreationError.

        Args:
            media_key: Raw media reference (URL, path or archive entry name).
            reason: Why creation failed.
        """
        super().__init__(f"Could not create media for '{media_key}': {reason}")
        self.media_key = media_key
        self.reason = reason


class RepositoryError(ImporterError):
    """Raised when the content repository rejects a single operation."""

    def __init__(self, message: str, identifier: str | None = None) -> None:
        """
        Initialize RepositoryError.

        Args:
            message: Error message from the repository.
            identifier: Optional identifier (name, id or GUID) of the item involved.
        """
        super().__init__(message)
        self.identifier = identifier


class RepositoryUnavailableError(RepositoryError):
    """
    Raised when the repository or media store cannot be reached at all.

    This is the only infrastructure fault that aborts a run: continuing would
    fail every remaining item for the same reason.
    """

    pass
