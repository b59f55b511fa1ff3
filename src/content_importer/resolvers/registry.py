"""Resolver registry.

Resolvers are looked up by alias, case-insensitively. `default_registry()`
returns a registry holding every built-in resolver; projects add their own
with `register()`.
"""

from collections.abc import Iterator
from typing import Any

import structlog

from ..utils.exceptions import RepositoryUnavailableError, ResolveError, ResolveErrorKind
from .base import Resolver, ResolverContext
from .blocks import MultiBlockListResolver, SampleBlockListContentResolver
from .legacy import LegacyContentPickerResolver, LegacyContentPickersResolver
from .media import (
    PathToMediaResolver,
    PathToStreamResolver,
    UrlToMediaResolver,
    UrlToStreamResolver,
    ZipFileToMediaResolver,
    ZipFileToStreamResolver,
)
from .references import (
    ContentIdsToContentUdisResolver,
    ContentIdToContentUdiResolver,
    GuidsToContentUdisResolver,
    GuidsToMediaUdisResolver,
    GuidToContentUdiResolver,
    GuidToMediaUdiResolver,
    MediaIdsToMediaUdisResolver,
    MediaIdToMediaUdiResolver,
)
from .scalar import (
    BooleanResolver,
    DateTimeResolver,
    ObjectToJsonResolver,
    StringArrayResolver,
    TextResolver,
    TextToLinkResolver,
)

logger = structlog.get_logger(__name__)

BUILTIN_RESOLVERS: tuple[type[Resolver], ...] = (
    TextResolver,
    BooleanResolver,
    DateTimeResolver,
    StringArrayResolver,
    ObjectToJsonResolver,
    TextToLinkResolver,
    ContentIdToContentUdiResolver,
    ContentIdsToContentUdisResolver,
    GuidToContentUdiResolver,
    GuidsToContentUdisResolver,
    MediaIdToMediaUdiResolver,
    MediaIdsToMediaUdisResolver,
    GuidToMediaUdiResolver,
    GuidsToMediaUdisResolver,
    UrlToMediaResolver,
    PathToMediaResolver,
    ZipFileToMediaResolver,
    UrlToStreamResolver,
    PathToStreamResolver,
    ZipFileToStreamResolver,
    LegacyContentPickerResolver,
    LegacyContentPickersResolver,
    MultiBlockListResolver,
    SampleBlockListContentResolver,
)


class ResolverRegistry:
    """Case-insensitive alias -> resolver table."""

    def __init__(self, resolvers: list[Resolver] | None = None) -> None:
        self._resolvers: dict[str, Resolver] = {}
        for resolver in resolvers or []:
            self.register(resolver)

    def register(self, resolver: Resolver, replace: bool = False) -> None:
        """
        Register a resolver under its alias.

        Args:
            resolver: Resolver instance with a non-blank alias
            replace: Allow overriding an existing alias

        Raises:
            ValueError: If the alias is blank or already taken and replace is False
        """
        if not resolver.alias:
            raise ValueError(f"{type(resolver).__name__} has no alias")

        key = resolver.alias.casefold()
        if key in self._resolvers and not replace:
            raise ValueError(f"Resolver alias '{resolver.alias}' is already registered")

        self._resolvers[key] = resolver
        logger.debug("Registered resolver", alias=resolver.alias)

    def get(self, alias: str) -> Resolver | None:
        return self._resolvers.get(alias.strip().casefold())

    def require(self, alias: str) -> Resolver:
        resolver = self.get(alias)
        if resolver is None:
            raise ResolveError(
                ResolveErrorKind.UNKNOWN_RESOLVER,
                f"No resolver registered for alias '{alias}'",
                alias=alias,
            )
        return resolver

    def __contains__(self, alias: object) -> bool:
        return isinstance(alias, str) and self.get(alias) is not None

    def __iter__(self) -> Iterator[Resolver]:
        return iter(sorted(self._resolvers.values(), key=lambda r: r.alias.casefold()))

    def __len__(self) -> int:
        return len(self._resolvers)

    def aliases(self) -> list[str]:
        return [resolver.alias for resolver in self]

    def resolve(
        self,
        alias: str,
        raw_value: str,
        parameter: str | None,
        context: ResolverContext,
        allow_stream: bool = False,
    ) -> Any:
        """
        Resolve a value with the resolver registered under `alias`.

        Args:
            alias: Resolver alias
            raw_value: Raw cell text
            parameter: Header parameter, if any
            context: Resolution context
            allow_stream: Permit resolvers that do not produce properties
                (used by the media preprocessor for stream resolvers)

        Returns:
            Resolved value (None means "no property")

        Raises:
            ResolveError: For any resolution failure, including unexpected
                exceptions raised by the resolver
            RepositoryUnavailableError: If the repository cannot be reached
        """
        resolver = self.require(alias)
        if not resolver.produces_property and not allow_stream:
            raise ResolveError(
                ResolveErrorKind.NOT_A_PROPERTY_RESOLVER,
                f"'{resolver.alias}' fetches file bytes and cannot fill a property",
                alias=resolver.alias,
                raw_value=raw_value,
            )

        try:
            return resolver.resolve(raw_value, parameter, context)
        except (ResolveError, RepositoryUnavailableError):
            raise
        except Exception as e:
            logger.warning(
                "Resolver raised unexpected error",
                alias=resolver.alias,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ResolveError(
                ResolveErrorKind.UNEXPECTED,
                f"{type(e).__name__}: {e}",
                alias=resolver.alias,
                raw_value=raw_value,
            ) from e


def default_registry() -> ResolverRegistry:
    """Create a registry holding every built-in resolver."""
    return ResolverRegistry([resolver_class() for resolver_class in BUILTIN_RESOLVERS])
