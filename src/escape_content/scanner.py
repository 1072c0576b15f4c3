"""Tag scanner: element boundary events for permissive component markup.

Tokenises a document with a Lark ``basic`` lexer whose terminals are
comments, declarations, end tags, the head of an open tag (``<name``) and
text runs. The attribute part of an open tag is read by a cursor that counts
brace depth, so Svelte expressions such as ``on:click={() => { n += 1 }}``
stay inside their attribute. The tokens are walked with a stack of open
elements and each open and close is reported as an event carrying character
offsets into the scanned text.

Scanner state, per element:

    searching -> open tag -> (self-closed | in content) -> close tag -> searching

A ``<`` that does not begin a well-formed tag is text (``{#if a<b}``,
``i<n``). Only constructs that never end raise ``ParseError``: a comment or
CDATA section, a quoted attribute value, a brace expression, or a tag
running to the end of input. A ``TagScanner`` holds the stack and must be
used for exactly one document. The compiled lexer grammar is immutable and
shared.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Generator, Iterator
from dataclasses import dataclass, field

from lark import Lark, Token

logger = logging.getLogger(__name__)

# Elements that never have content or an end tag (lowercase HTML names only;
# capitalised names are components)
VOID_ELEMENTS = frozenset(
    (
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    )
)

# Elements whose body is not markup, with the pattern that ends them
_RAW_TEXT_END = {
    name: re.compile(rf"</{name}\s*>", re.IGNORECASE) for name in ("script", "style")
}

_NAME = r"[A-Za-z][A-Za-z0-9:._\-]*"

_TAG_GRAMMAR = "\n".join(
    (
        r"COMMENT.2: /<!--.*?-->/s",
        r"CDATA.2: /<!\[CDATA\[.*?\]\]>/s",
        r"DECLARATION.2: /<![A-Za-z][^>]*>/",
        r"INSTRUCTION.2: /<\?.*?\?>/s",
        r"CLOSE_TAG.2: /<\/" + _NAME + r"\s*>/",
        "TAG_HEAD.2: /<" + _NAME + "/",
        # Openings whose terminator never appears
        r"OPEN_COMMENT.1: /<!--/",
        r"OPEN_CDATA.1: /<!\[CDATA\[/",
        r"TEXT: /[^<]+/",
        # Any other '<' is text ("a < b", "</ p>")
        r"LESS_THAN: /</",
    )
)

# Compile once at module load
_tag_lexer = Lark(_TAG_GRAMMAR, parser=None, lexer="basic")

_CLOSE_TAG_RE = re.compile(r"<\/(?P<name>" + _NAME + r")\s*>")
_EQUALS_RE = re.compile(r"\s*=\s*")
_ATTR_NAME_RE = re.compile(r"[^\s\"'<>\/={]+")
_UNQUOTED_VALUE_RE = re.compile(r"(?:[^\s\"'<>=`\/]|\/(?!>))+")

# Tokens that carry no structure and may overlap the end of an open tag
_INERT_TOKENS = frozenset(("TEXT", "LESS_THAN"))

_UNTERMINATED = {
    "OPEN_COMMENT": "comment",
    "OPEN_CDATA": "CDATA section",
}


class ParseError(Exception):
    """The markup could not be tokenised at ``offset``."""

    def __init__(
        self,
        message: str,
        offset: int,
        line: int | None = None,
        column: int | None = None,
        filename: str | None = None,
    ) -> None:
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column
        self.filename = filename
        super().__init__(message)

    def __str__(self) -> str:
        location = f"{self.filename}:" if self.filename else ""
        if self.line is not None:
            location += f"{self.line}:{self.column}"
        else:
            location += f"offset {self.offset}"
        return f"{self.message} ({location})"


def locate(text: str, offset: int) -> tuple[int, int]:
    """Return the 1-based ``(line, column)`` of ``offset`` in ``text``."""
    line_start = text.rfind("\n", 0, offset) + 1
    return text.count("\n", 0, offset) + 1, offset - line_start + 1


def _unterminated(what: str, text: str, offset: int) -> ParseError:
    line, column = locate(text, offset)
    snippet = text[offset : offset + 20]
    msg = f"Malformed markup: unterminated {what} at {snippet!r}"
    return ParseError(msg, offset, line, column)


@dataclass(frozen=True, slots=True)
class OpenTag:
    """An element's opening tag.

    Attributes:
        name: Tag name as written in the source.
        attributes: Attributes in source order. Valueless attributes carry
            their own name as value; quotes are removed, ``{expr}`` kept.
        start: Offset of the opening ``<``.
        end: Offset just after the closing ``>``.
        self_closing: ``<x />`` syntax, or an HTML void element.
    """

    name: str
    attributes: dict[str, str]
    start: int
    end: int
    self_closing: bool = False


@dataclass(frozen=True, slots=True)
class CloseTag:
    """The end of an element.

    Attributes:
        name: Tag name of the element being closed.
        attributes: Attributes of the element being closed.
        start: Offset just before the closing tag's ``<``.
        end: Offset just after the closing tag's ``>``.
        implicit: True when no end tag of its own closed the element (self
            closing, void, or closed by an ancestor's end tag); ``start`` and
            ``end`` are then equal.
        opened: The ``OpenTag`` event this closes.
    """

    name: str
    attributes: dict[str, str]
    start: int
    end: int
    implicit: bool = False
    opened: OpenTag | None = field(default=None, compare=False, repr=False)


TagEvent = OpenTag | CloseTag


# ---------------------------------------------------------------------------
# Attribute reading
# ---------------------------------------------------------------------------
def _string_end(text: str, start: int) -> int | None:
    """Offset after the quote closing the JS string opened at ``start``."""
    quote = text[start]
    pos = start + 1
    while pos < len(text):
        char = text[pos]
        if char == "\\":
            pos += 2
            continue
        if char == quote:
            return pos + 1
        pos += 1
    return None


def _expression_end(text: str, start: int, tag_start: int) -> int:
    """Offset after the ``}`` matching the ``{`` at ``start``.

    Braces inside quoted or template strings are not counted.
    """
    depth = 0
    pos = start
    while pos < len(text):
        char = text[pos]
        if char in "\"'`":
            end = _string_end(text, pos)
            if end is None:
                break
            pos = end
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return pos + 1
        pos += 1
    raise _unterminated("expression", text, tag_start)


def _read_value(text: str, pos: int, tag_start: int) -> tuple[str, int] | None:
    """Read an attribute value at ``pos``; None if there is no valid one."""
    if pos >= len(text):
        raise _unterminated("tag", text, tag_start)
    char = text[pos]
    if char in "\"'":
        close = text.find(char, pos + 1)
        if close == -1:
            raise _unterminated("attribute value", text, tag_start)
        return text[pos + 1 : close], close + 1
    if char == "{":
        end = _expression_end(text, pos, tag_start)
        return text[pos:end], end
    match = _UNQUOTED_VALUE_RE.match(text, pos)
    if match is None:
        return None
    return match.group(), match.end()


def _read_attributes(
    text: str, pos: int, tag_start: int
) -> tuple[dict[str, str], int] | None:
    """Read attributes from ``pos`` up to the tag's ``>`` or ``/>``.

    Returns the attributes and the offset of the terminator, or None when
    the text is not an attribute list (the ``<`` was not a tag).

    Raises:
        ParseError: A value, expression or the tag never ends.
    """
    attributes: dict[str, str] = {}
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if pos >= len(text):
            raise _unterminated("tag", text, tag_start)
        if text[pos] == ">" or text.startswith("/>", pos):
            return attributes, pos

        if text[pos] == "{":
            # Svelte shorthand and spread: {value}, {...props}
            end = _expression_end(text, pos, tag_start)
            name = value = text[pos:end]
            pos = end
        else:
            match = _ATTR_NAME_RE.match(text, pos)
            if match is None:
                return None
            name = value = match.group()
            pos = match.end()
            equals = _EQUALS_RE.match(text, pos)
            if equals is not None:
                read = _read_value(text, equals.end(), tag_start)
                if read is None:
                    return None
                value, pos = read

        if name in attributes:
            logger.debug("Ignoring duplicate attribute %r", name)
            continue
        attributes[name] = value


def parse_attributes(source: str) -> dict[str, str]:
    """Parse the attribute part of an open tag into an ordered mapping.

    The first occurrence of a duplicated attribute wins.

    Raises:
        ValueError: If ``source`` is not an attribute list.
    """
    parsed = _read_attributes(source + ">", 0, 0)
    if parsed is None:
        msg = f"Not an attribute list: {source!r}"
        raise ValueError(msg)
    return parsed[0]


class TagScanner:
    """Single-use scanner over one document.

    Example:
        >>> [type(e).__name__ for e in TagScanner("<p>x</p>").events()]
        ['OpenTag', 'CloseTag']
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self._stack: list[OpenTag] = []
        self._started = False
        # Offset up to which the text has been consumed by an open tag
        self._resume = 0

    def events(self) -> Iterator[TagEvent]:
        """Yield open and close events in document order.

        Elements still open at the end of input are closed implicitly there.

        Raises:
            ParseError: If a comment, attribute value, expression or tag
                never ends.
            RuntimeError: If called a second time.
        """
        if self._started:
            msg = "TagScanner instances scan a single document once"
            raise RuntimeError(msg)
        self._started = True

        offset: int | None = 0
        while offset is not None:
            offset = yield from self._lex_from(offset)

        end = len(self.text)
        while self._stack:
            yield self._close(self._stack.pop(), end, end, implicit=True)

    def _lex_from(self, offset: int) -> Generator[TagEvent, None, int | None]:
        """Handle tokens from ``offset``; returns where to restart, if anywhere."""
        text = self.text[offset:] if offset else self.text
        for token in _tag_lexer.lex(text):
            start = offset + (token.start_pos or 0)
            if start < self._resume:
                # Lexed from inside an open tag or raw-text body
                end = start + len(token.value)
                if end > self._resume and token.type not in _INERT_TOKENS:
                    return self._resume
                continue
            yield from self._handle(token, start)
        return None

    def _handle(self, token: Token, start: int) -> Iterator[TagEvent]:
        if token.type == "TAG_HEAD":
            yield from self._open_tag(start, start + len(token.value))
        elif token.type == "CLOSE_TAG":
            yield from self._close_tag(token.value, start)
        elif token.type in _UNTERMINATED:
            raise _unterminated(_UNTERMINATED[token.type], self.text, start)
        # Text, comments, declarations and instructions carry no boundaries

    def _parse_open(self, start: int, head_end: int) -> OpenTag | None:
        text = self.text
        if head_end >= len(text):
            raise _unterminated("tag", text, start)
        if not (text[head_end].isspace() or text[head_end] in "/>"):
            return None
        parsed = _read_attributes(text, head_end, start)
        if parsed is None:
            return None
        attributes, pos = parsed
        slash = text[pos] == "/"
        name = text[start + 1 : head_end]
        return OpenTag(
            name=name,
            attributes=attributes,
            start=start,
            end=pos + (2 if slash else 1),
            self_closing=slash or name in VOID_ELEMENTS,
        )

    def _open_tag(self, start: int, head_end: int) -> Iterator[TagEvent]:
        tag = self._parse_open(start, head_end)
        if tag is None:
            logger.debug("Treating '<' at offset %d as text", start)
            return
        self._resume = tag.end
        yield tag
        if tag.self_closing:
            yield self._close(tag, tag.end, tag.end, implicit=True)
        elif tag.name in _RAW_TEXT_END:
            yield self._raw_text_close(tag)
        else:
            self._stack.append(tag)

    def _raw_text_close(self, tag: OpenTag) -> CloseTag:
        """Close a script/style element at its end tag, or at end of input."""
        match = _RAW_TEXT_END[tag.name].search(self.text, tag.end)
        if match is None:
            end = len(self.text)
            self._resume = end
            return self._close(tag, end, end, implicit=True)
        self._resume = match.end()
        return self._close(tag, match.start(), match.end())

    def _close_tag(self, value: str, start: int) -> Iterator[TagEvent]:
        match = _CLOSE_TAG_RE.match(value)
        name = match.group("name").lower() if match else ""
        for depth in range(len(self._stack) - 1, -1, -1):
            if self._stack[depth].name.lower() == name:
                break
        else:
            logger.debug("Ignoring stray end tag %r at offset %d", value, start)
            return

        # Elements left open inside the matched one end where its end tag starts
        while len(self._stack) > depth + 1:
            yield self._close(self._stack.pop(), start, start, implicit=True)
        yield self._close(self._stack.pop(), start, start + len(value))

    @staticmethod
    def _close(
        tag: OpenTag, start: int, end: int, *, implicit: bool = False
    ) -> CloseTag:
        return CloseTag(
            name=tag.name,
            attributes=tag.attributes,
            start=start,
            end=end,
            implicit=implicit,
            opened=tag,
        )


def scan(text: str) -> list[TagEvent]:
    """Scan ``text`` with a fresh ``TagScanner`` and return all events."""
    return list(TagScanner(text).events())
