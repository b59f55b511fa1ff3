"""Value resolvers turning raw cells into content property values."""

from .base import (
    MEDIA_STREAM_ALIASES,
    Resolver,
    ResolverAlias,
    ResolverContext,
    media_alias,
    reference_token,
)
from .registry import BUILTIN_RESOLVERS, ResolverRegistry, default_registry

__all__ = [
    "BUILTIN_RESOLVERS",
    "MEDIA_STREAM_ALIASES",
    "Resolver",
    "ResolverAlias",
    "ResolverContext",
    "ResolverRegistry",
    "default_registry",
    "media_alias",
    "reference_token",
]
