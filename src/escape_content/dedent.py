"""Indentation normalisation for extracted element content.

Adapted from ts-dedent by Tamino Martinius (MIT), with these differences:

- in a multi-line block the start of the first segment counts as a line
  start, so an indented first line takes part in the common indent;
- lines holding only tabs or spaces never limit the common indent, and a
  first line of that kind is removed along with the leading break;
- a block made only of whitespace comes back empty.

A template is a string, or a sequence of literal segments with ``values``
interpolated between them (``len(values) == len(segments) - 1``).
"""

from __future__ import annotations

import re
from collections.abc import Sequence

# Trailing line break plus indentation at the very end of the block
_TRAILING_BREAK = re.compile(r"\r?\n[\t ]*\Z")

# Indentation of a line start with content after it; a segment end is
# followed by an interpolated value, which counts as content
_INDENT_AFTER_BREAK = re.compile(r"\n([\t ]*)(?=\S|\Z)")
_INDENT_AT_START = re.compile(r"\A([\t ]*)(?=\S|\Z)")

# First line break, with the first line if it holds only tabs/spaces
_LEADING_BREAK = re.compile(r"\A[\t ]*\r?\n")

# Run of spaces between the last line break (or string start) and the end
_ENDENTATION = re.compile(r"(?:\A|\n)( *)\Z")


def _indent_width(match: re.Match[str]) -> int:
    return len(match.group(1))


def _indent_widths(segments: list[str], *, first_line: bool) -> list[int]:
    """Indentation widths of every line start in the literal segments."""
    widths: list[int] = []
    for i, segment in enumerate(segments):
        if i == 0 and first_line:
            first = _INDENT_AT_START.match(segment)
            if first:
                widths.append(_indent_width(first))
        widths.extend(_indent_width(m) for m in _INDENT_AFTER_BREAK.finditer(segment))
    return widths


def _reindent(value: object, prefix: str) -> str:
    """Indent every line of a multi-line string value except its first."""
    text = str(value)
    if not isinstance(value, str) or "\n" not in value:
        return text
    lines = text.split("\n")
    return "\n".join([lines[0], *(prefix + line for line in lines[1:])])


def dedent(template: str | Sequence[str], *values: object) -> str:
    """Strip the common indentation from a block of text.

    Steps, in order:

    1. Remove one trailing line break (and the indentation after it).
    2. Find the smallest indentation over the line starts in the literal
       segments that have content after them, and remove that many
       tabs/spaces from each line start.
    3. Remove one leading line break (and a blank first line before it).
    4. Interpolate ``values``, re-indenting multi-line strings to the
       column they are inserted at.

    Args:
        template: The text block, or its literal segments.
        *values: Values placed between consecutive segments.

    Returns:
        The normalised text.

    Example:
        >>> dedent("\\n    a\\n      b\\n    ")
        'a\\n  b'
    """
    segments = [template] if isinstance(template, str) else list(template)
    if not segments or (not values and not "".join(segments).strip()):
        return ""
    if len(values) != len(segments) - 1:
        msg = f"Expected {len(segments) - 1} value(s) for template, got {len(values)}"
        raise ValueError(msg)

    # A single line has no indentation structure to normalise
    multiline = any("\n" in segment for segment in segments)

    segments[-1] = _TRAILING_BREAK.sub("", segments[-1])

    widths = _indent_widths(segments, first_line=multiline)
    if widths:
        common = min(widths)
        after_break = re.compile(rf"\n[\t ]{{{common}}}")
        segments = [after_break.sub("\n", segment) for segment in segments]
        if multiline:
            segments[0] = re.sub(rf"\A[\t ]{{{common}}}", "", segments[0])

    segments[0] = _LEADING_BREAK.sub("", segments[0])

    result = segments[0]
    for value, segment in zip(values, segments[1:], strict=True):
        endentation = _ENDENTATION.search(result)
        prefix = endentation.group(1) if endentation else ""
        result += _reindent(value, prefix) + segment

    return result
