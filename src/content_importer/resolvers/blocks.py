"""Block list resolvers.

Overview:
--------
`multiBlockList` builds a Block Collection from a compact cell syntax:

```
richtext::<p>Intro</p>;;image::photo.jpg|Caption;;code::print(1)|Example
```

Blocks are separated by ";;", the block type and its fields by "::", and the
fields by "|". Each block gets a content element and a settings element, both
addressed by freshly generated element tokens, and one layout entry linking
the two.

Block Types:
-----------
- richtext:    markup (wrapped in <p> unless it already looks like HTML)
- image:       media reference | caption
- video:       url | caption
- code:        code | title
- carousel:    comma-separated media references
- articlelist: document token | pageSize:N | showPagination:0/1
- iconlink:    media reference | link url | link name

Media references are either a media GUID or a value the media preprocessor
already created (URL, path or archive entry). Block text fields are resolved
through the registry like any other cell, one nesting level deeper. A block
that cannot be built is dropped with a warning; the others are kept.

`sampleBlockListContent` is a single rich text block, built by delegating to
`multiBlockList`.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog

from ..constants import (
    BLOCK_CONTENT_TYPE_KEYS,
    BLOCK_FIELD_SEPARATOR,
    BLOCK_LIST_EDITOR_ALIAS,
    BLOCK_SEPARATOR,
    BLOCK_SETTINGS_TYPE_KEYS,
    BLOCK_TYPE_SEPARATOR,
    DEFAULT_BLOCK_SETTINGS_TYPE_KEY,
    ENTITY_ELEMENT,
)
from ..utils.exceptions import ResolveError, ResolveErrorKind
from .base import Resolver, ResolverAlias, ResolverContext, reference_token
from .references import parse_guid

logger = structlog.get_logger(__name__)

BlockBuilder = Callable[[list[str], ResolverContext], dict[str, Any]]


@dataclass(frozen=True)
class BlockType:
    """One supported block: its element type keys and how its fields are built."""

    name: str
    content_type_key: str
    settings_type_key: str
    build: BlockBuilder
    max_fields: int | None = None


def parse_blocks(raw_value: str) -> list[tuple[str, str]]:
    """
    Split a multiBlockList cell into (block type, field text) pairs.

    Entries without a "::" separator are returned with an empty type so the
    caller can report them.
    """
    blocks = []
    for chunk in raw_value.split(BLOCK_SEPARATOR):
        if not chunk.strip():
            continue
        block_type, separator, body = chunk.partition(BLOCK_TYPE_SEPARATOR)
        if not separator:
            blocks.append(("", chunk.strip()))
            continue
        blocks.append((block_type.strip().casefold(), body.strip()))
    return blocks


def _field(fields: list[str], index: int) -> str:
    return fields[index].strip() if index < len(fields) else ""


def _text(value: str, context: ResolverContext) -> Any:
    """Resolve a block text field through the registry."""
    return context.registry.resolve(ResolverAlias.TEXT.value, value, None, context)


def media_key(reference: str, context: ResolverContext) -> UUID:
    """
    Resolve a block media reference to a media key.

    Raises:
        ResolveError: If the reference is neither a GUID nor a created media item
    """
    guid = parse_guid(reference)
    if guid is not None:
        return guid

    entry = context.caches.media.peek(reference)
    if entry is None or not entry.success or entry.value is None:
        raise ResolveError(
            ResolveErrorKind.DEPENDENCY_NOT_RESOLVED,
            f"Media '{reference}' was not created during preprocessing",
            alias=ResolverAlias.MULTI_BLOCK_LIST.value,
            raw_value=reference,
        )
    return entry.value


def _media_picker_value(reference: str, context: ResolverContext) -> list[dict[str, str]]:
    return [{"key": str(context.new_guid()), "mediaKey": str(media_key(reference, context))}]


def looks_like_html(markup: str) -> bool:
    stripped = markup.strip()
    return stripped.startswith("<") and stripped.endswith(">")


def _build_richtext(fields: list[str], context: ResolverContext) -> dict[str, Any]:
    markup = _text(BLOCK_FIELD_SEPARATOR.join(fields).strip(), context)
    if not looks_like_html(markup):
        markup = f"<p>{markup}</p>"
    return {"content": {"markup": markup, "blocks": {"contentData": [], "settingsData": []}}}


def _build_image(fields: list[str], context: ResolverContext) -> dict[str, Any]:
    return {
        "caption": _text(_field(fields, 1), context),
        "image": _media_picker_value(_field(fields, 0), context),
    }


def _build_video(fields: list[str], context: ResolverContext) -> dict[str, Any]:
    return {
        "videoUrl": _text(_field(fields, 0), context),
        "caption": _text(_field(fields, 1), context),
    }


def _build_code(fields: list[str], context: ResolverContext) -> dict[str, Any]:
    return {
        "code": _text(_field(fields, 0), context),
        "title": _text(_field(fields, 1), context),
    }


def _build_carousel(fields: list[str], context: ResolverContext) -> dict[str, Any]:
    references = [r.strip() for r in _field(fields, 0).split(",") if r.strip()]
    images = []
    for reference in references:
        images.extend(_media_picker_value(reference, context))
    return {"images": images}


def _build_articlelist(fields: list[str], context: ResolverContext) -> dict[str, Any]:
    options = {"pagesize": "5", "showpagination": "1"}
    for option in fields[1:]:
        key, separator, value = option.partition(":")
        if separator and key.strip().casefold() in options:
            options[key.strip().casefold()] = value.strip()
    return {
        "articleList": _text(_field(fields, 0), context),
        "pageSize": options["pagesize"],
        "showPagination": options["showpagination"],
    }


def _build_iconlink(fields: list[str], context: ResolverContext) -> dict[str, Any]:
    return {
        "icon": _media_picker_value(_field(fields, 0), context),
        "link": [
            {
                "name": _text(_field(fields, 2), context),
                "target": "_blank",
                "url": _text(_field(fields, 1), context),
            }
        ],
    }


def _block_type(name: str, build: BlockBuilder, max_fields: int | None = None) -> BlockType:
    return BlockType(
        name=name,
        content_type_key=BLOCK_CONTENT_TYPE_KEYS[name],
        settings_type_key=BLOCK_SETTINGS_TYPE_KEYS.get(name, DEFAULT_BLOCK_SETTINGS_TYPE_KEY),
        build=build,
        max_fields=max_fields,
    )


BLOCK_TYPES: dict[str, BlockType] = {
    block.name: block
    for block in (
        _block_type("richtext", _build_richtext),
        _block_type("image", _build_image, max_fields=2),
        _block_type("video", _build_video, max_fields=2),
        _block_type("code", _build_code, max_fields=2),
        _block_type("carousel", _build_carousel),
        _block_type("articlelist", _build_articlelist),
        _block_type("iconlink", _build_iconlink, max_fields=3),
    )
}

# Block types whose first field (or comma list, for carousel) names media
MEDIA_BLOCK_TYPES: frozenset[str] = frozenset({"image", "carousel", "iconlink"})


def block_media_references(raw_value: str) -> list[str]:
    """
    List the non-GUID media references of a multiBlockList cell.

    The media preprocessor uses this to create block media up front.
    """
    references: list[str] = []
    for block_type, body in parse_blocks(raw_value):
        if block_type not in MEDIA_BLOCK_TYPES:
            continue
        first = body.split(BLOCK_FIELD_SEPARATOR, 1)[0]
        candidates = first.split(",") if block_type == "carousel" else [first]
        for candidate in candidates:
            candidate = candidate.strip()
            if candidate and parse_guid(candidate) is None:
                references.append(candidate)
    return references


def _split_fields(body: str, max_fields: int | None) -> list[str]:
    if max_fields is None:
        return body.split(BLOCK_FIELD_SEPARATOR)
    return body.split(BLOCK_FIELD_SEPARATOR, max_fields - 1)


class MultiBlockListResolver(Resolver):
    alias = ResolverAlias.MULTI_BLOCK_LIST.value
    description = "Block syntax to a Block Collection"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        if not raw_value.strip():
            return None

        max_depth = context.config.pipeline.max_block_depth
        if context.depth > max_depth:
            raise self.fail(
                ResolveErrorKind.RECURSION_LIMIT,
                f"Block nesting deeper than {max_depth} levels",
                raw_value=raw_value,
            )

        nested = context.nested()
        layout: list[dict[str, str]] = []
        content_data: list[dict[str, Any]] = []
        settings_data: list[dict[str, str]] = []

        for position, (type_name, body) in enumerate(parse_blocks(raw_value), start=1):
            block_type = BLOCK_TYPES.get(type_name)
            if block_type is None:
                context.warn(f"Block {position}: unknown block type '{type_name}', skipped")
                continue

            try:
                fields = block_type.build(_split_fields(body, block_type.max_fields), nested)
            except ResolveError as e:
                if e.kind == ResolveErrorKind.RECURSION_LIMIT:
                    raise
                context.warn(f"Block {position} ({type_name}) skipped: {e}")
                continue

            content_token = reference_token(ENTITY_ELEMENT, context.new_guid())
            settings_token = reference_token(ENTITY_ELEMENT, context.new_guid())

            layout.append({"contentUdi": content_token, "settingsUdi": settings_token})
            content_data.append(
                {"contentTypeKey": block_type.content_type_key, "udi": content_token, **fields}
            )
            settings_data.append(
                {
                    "contentTypeKey": block_type.settings_type_key,
                    "udi": settings_token,
                    "hide": "0",
                }
            )

        logger.debug("Built block list", blocks=len(layout), column=context.column)
        return json.dumps(
            {
                "layout": {BLOCK_LIST_EDITOR_ALIAS: layout},
                "contentData": content_data,
                "settingsData": settings_data,
            },
            separators=(",", ":"),
            ensure_ascii=False,
        )


class SampleBlockListContentResolver(Resolver):
    """A single rich text block holding the cell's markup."""

    alias = ResolverAlias.SAMPLE_BLOCK_LIST_CONTENT.value
    description = "Markup to a one-block Block Collection"

    def resolve(self, raw_value: str, parameter: str | None, context: ResolverContext) -> Any:
        markup = raw_value.strip()
        if not markup:
            return None
        return context.registry.resolve(
            ResolverAlias.MULTI_BLOCK_LIST.value,
            f"richtext{BLOCK_TYPE_SEPARATOR}{markup}",
            None,
            context.nested(),
        )
