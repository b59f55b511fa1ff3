"""Utility functions and exceptions."""

from .exceptions import (
    ConfigurationError,
    CSVReadError,
    ImporterError,
    MediaCreationError,
    RepositoryError,
    RepositoryUnavailableError,
    ResolveError,
    ResolveErrorKind,
)

__all__ = [
    "ImporterError",
    "ConfigurationError",
    "CSVReadError",
    "ResolveError",
    "ResolveErrorKind",
    "MediaCreationError",
    "RepositoryError",
    "RepositoryUnavailableError",
]
