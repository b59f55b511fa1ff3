"""Deferred content pickers addressed by legacy id.

A picker cell names other rows of the batch by their legacy id. Those rows
may not exist yet when the cell is translated, so the translator only records
the referenced ids. The pipeline resolves the cell right before the owning
item is created, when the LegacyIdCache holds every item created so far.
"""

from typing import Any

from ..constants import ENTITY_DOCUMENT
from ..utils.exceptions import ResolveErrorKind
from .base import Resolver, ResolverAlias, ResolverContext, reference_token


class LegacyContentPickerResolver(Resolver):
    """Single picker. The header parameter is accepted and ignored."""

    alias = ResolverAlias.LEGACY_CONTENT_PICKER.value
    description = "Legacy id to a document token (resolved at creation)"
    deferred = True

    def dependencies(self, raw_value: str, parameter: str | None) -> list[str]:
        legacy_id = raw_value.strip()
        return [legacy_id] if legacy_id else []

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        legacy_id = raw_value.strip()
        if not legacy_id:
            return None

        entry = context.caches.legacy_ids.peek(legacy_id)
        if entry is None or not entry.success or entry.value is None:
            raise self.fail(
                ResolveErrorKind.DEPENDENCY_NOT_RESOLVED,
                f"Legacy id '{legacy_id}' has not been imported",
                raw_value=raw_value,
            )
        return reference_token(ENTITY_DOCUMENT, entry.value.guid)


class LegacyContentPickersResolver(Resolver):
    """
    Multi picker. The header parameter overrides the "," delimiter.

    Ids that are not mapped yet are dropped with a warning; the property keeps
    the tokens that did resolve.
    """

    alias = ResolverAlias.LEGACY_CONTENT_PICKERS.value
    description = "Delimited legacy ids to document tokens (resolved at creation)"
    deferred = True

    def dependencies(self, raw_value: str, parameter: str | None) -> list[str]:
        delimiter = parameter or ","
        return [part.strip() for part in raw_value.split(delimiter) if part.strip()]

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        tokens: list[str] = []
        for legacy_id in self.dependencies(raw_value, parameter):
            entry = context.caches.legacy_ids.peek(legacy_id)
            if entry is None or not entry.success or entry.value is None:
                context.warn(f"Legacy id '{legacy_id}' has not been imported; reference dropped")
                continue
            tokens.append(reference_token(ENTITY_DOCUMENT, entry.value.guid))

        if not tokens:
            return None
        return ",".join(tokens)
