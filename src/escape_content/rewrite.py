"""Rewrite engine: replace marked elements with escaped verbatim content.

Pipeline for one document:

1. Wrap the document in a synthetic ``<div>`` root and scan it with a fresh
   ``TagScanner``.
2. Record a ``MatchedRegion`` for every element carrying the marker
   attribute. A marker seen while a region is open is ignored, so the inner
   element stays in the outer region's content verbatim.
3. For each region, dedent the raw content, then either escape it into a
   template literal or pass it through the highlighter and embed the result
   as raw HTML.
4. Turn the regions into an ordered edit list and apply it in one pass
   against the original text, producing the code and its offset map.

Example:
    >>> transform("escape-content", "<pre escape-content>{x}</pre>", "A.svelte").code
    '<pre>{`\\\\{x\\\\}` }</pre>'
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from escape_content.dedent import dedent
from escape_content.escaper import escape
from escape_content.offset_map import OffsetMap
from escape_content.scanner import OpenTag, ParseError, TagScanner, locate
from escape_content.splice import Edit, apply_edits

logger = logging.getLogger(__name__)

DEFAULT_MARKER_ATTRIBUTE = "escape-content"
DEFAULT_LANG_ATTRIBUTE = "lang"

# Synthetic root so the scanner always sees exactly one top-level element
_ROOT_OPEN = "<div>"
_ROOT_CLOSE = "</div>"

Highlighter = Callable[[str, str], str]
AsyncHighlighter = Callable[[str, str], str | Awaitable[str]]


class UnsupportedNestingError(Exception):
    """A marked element was found inside another marked element."""

    def __init__(self, message: str, offset: int) -> None:
        self.offset = offset
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class MatchedRegion:
    """A marked element, in original-document offsets.

    ``tag_start <= content_start <= content_end <= tag_end``.
    """

    tag_name: str
    attributes: dict[str, str]
    tag_start: int
    content_start: int
    content_end: int
    tag_end: int
    self_closing: bool = False


@dataclass(frozen=True, slots=True)
class TransformResult:
    """Rewritten code and the map back to the original document."""

    code: str
    map: OffsetMap


def _attribute(attributes: dict[str, str], name: str) -> str | None:
    """Case-insensitive attribute lookup."""
    wanted = name.lower()
    for key, value in attributes.items():
        if key.lower() == wanted:
            return value
    return None


def is_marked(attributes: dict[str, str], marker_attribute: str) -> bool:
    """Whether the attributes flag the element for escaping.

    The marker must be present and either empty or equal to its own name
    (``<pre escape-content>`` and ``<pre escape-content="escape-content">``).
    """
    value = _attribute(attributes, marker_attribute)
    return value is not None and value.lower() in ("", marker_attribute.lower())


def serialize_attributes(attributes: dict[str, str], marker_attribute: str) -> str:
    """Render all attributes except the marker, in their original order.

    Shorthand and spread attributes (``{value}``, ``{...props}``) are emitted
    as written, ``{expression}`` values unquoted, and values containing a
    double quote single-quoted.
    """
    parts: list[str] = []
    for name, value in attributes.items():
        if name.lower() == marker_attribute.lower():
            continue
        if name.startswith("{"):
            parts.append(f" {name}")
        elif value.startswith("{") and value.endswith("}"):
            parts.append(f" {name}={value}")
        elif '"' in value:
            parts.append(f" {name}='{value}'")
        else:
            parts.append(f' {name}="{value}"')
    return "".join(parts)


def find_regions(
    marker_attribute: str,
    document_text: str,
    *,
    strict_nesting: bool = False,
    label: str | None = None,
) -> list[MatchedRegion]:
    """Locate every top-level marked element in ``document_text``.

    Raises:
        ParseError: If the document cannot be tokenised. Offsets refer to
            ``document_text``.
        UnsupportedNestingError: If ``strict_nesting`` and a marked element
            sits inside another one.
    """
    shift = len(_ROOT_OPEN)
    limit = shift + len(document_text)
    scanner = TagScanner(_ROOT_OPEN + document_text + _ROOT_CLOSE)

    regions: list[MatchedRegion] = []
    active: OpenTag | None = None
    try:
        for event in scanner.events():
            if isinstance(event, OpenTag):
                if not is_marked(event.attributes, marker_attribute):
                    continue
                if active is not None:
                    offset = event.start - shift
                    msg = (
                        f"Nested <{event.name} {marker_attribute}> at offset "
                        f"{offset} inside <{active.name}> is not supported"
                    )
                    if strict_nesting:
                        raise UnsupportedNestingError(msg, offset)
                    logger.warning("%s; left unescaped in %s", msg, label)
                    continue
                active = event
            elif active is not None and event.opened is active:
                regions.append(
                    MatchedRegion(
                        tag_name=active.name,
                        attributes=active.attributes,
                        tag_start=active.start - shift,
                        content_start=min(active.end, limit) - shift,
                        content_end=min(event.start, limit) - shift,
                        tag_end=min(event.end, limit) - shift,
                        self_closing=active.self_closing,
                    )
                )
                active = None
    except ParseError as exc:
        offset = min(max(exc.offset - shift, 0), len(document_text))
        line, column = locate(document_text, offset)
        raise ParseError(exc.message, offset, line, column, filename=label) from exc

    return regions


def _render(
    region: MatchedRegion,
    content: str,
    highlighted: str | None,
    marker_attribute: str,
) -> str:
    """Build the replacement markup for one region."""
    name = region.tag_name
    attrs = serialize_attributes(region.attributes, marker_attribute)
    if region.self_closing:
        return f"<{name}{attrs} />"
    if highlighted is not None:
        text = f"{{@html `{highlighted}` }}"
    else:
        text = f"{{`{escape(content)}` }}"
    return f"<{name}{attrs}>{text}</{name}>"


def _region_content(region: MatchedRegion, document_text: str) -> str:
    return dedent(document_text[region.content_start : region.content_end])


def _finish(
    document_text: str, edits: list[Edit], label: str | None
) -> TransformResult:
    code, offset_map = apply_edits(document_text, edits, file=label)
    logger.debug("Rewrote %d marked element(s) in %s", len(edits), label)
    return TransformResult(code=code, map=offset_map)


def transform(
    marker_attribute: str,
    document_text: str,
    label: str | None = None,
    highlighter: Highlighter | None = None,
    *,
    lang_attribute: str = DEFAULT_LANG_ATTRIBUTE,
    strict_nesting: bool = False,
) -> TransformResult:
    """Rewrite every marked element of a document.

    Args:
        marker_attribute: Attribute that flags an element.
        document_text: The component source.
        label: File name recorded in the offset map and in errors.
        highlighter: ``(text, language) -> html``, used for elements that
            carry ``lang_attribute``.
        lang_attribute: Attribute naming the highlighter language.
        strict_nesting: Raise instead of ignoring nested marked elements.

    Returns:
        The rewritten code and its offset map. A document without marked
        elements comes back unchanged with an identity map.

    Raises:
        ParseError: The document could not be tokenised.
        UnsupportedNestingError: Nested marker with ``strict_nesting``.
    """
    regions = find_regions(
        marker_attribute, document_text, strict_nesting=strict_nesting, label=label
    )
    edits: list[Edit] = []
    for region in regions:
        content = _region_content(region, document_text)
        lang = _attribute(region.attributes, lang_attribute)
        highlighted = None
        if highlighter is not None and lang is not None and not region.self_closing:
            highlighted = highlighter(content, lang)
        edits.append(
            Edit(
                region.tag_start,
                region.tag_end,
                _render(region, content, highlighted, marker_attribute),
            )
        )
    return _finish(document_text, edits, label)


async def transform_async(
    marker_attribute: str,
    document_text: str,
    label: str | None = None,
    highlighter: AsyncHighlighter | None = None,
    *,
    lang_attribute: str = DEFAULT_LANG_ATTRIBUTE,
    strict_nesting: bool = False,
) -> TransformResult:
    """``transform`` for highlighters that may return an awaitable.

    Highlighter calls are awaited one at a time, in document order.
    """
    regions = find_regions(
        marker_attribute, document_text, strict_nesting=strict_nesting, label=label
    )
    edits: list[Edit] = []
    for region in regions:
        content = _region_content(region, document_text)
        lang = _attribute(region.attributes, lang_attribute)
        highlighted = None
        if highlighter is not None and lang is not None and not region.self_closing:
            result = highlighter(content, lang)
            highlighted = await result if inspect.isawaitable(result) else result
        edits.append(
            Edit(
                region.tag_start,
                region.tag_end,
                _render(region, content, highlighted, marker_attribute),
            )
        )
    return _finish(document_text, edits, label)
