"""Offset mapping between rewritten output and the original document.

An ``OffsetMap`` is an ordered list of segments, each pairing a range of
generated text with the range of original text it came from. Unedited
segments map character for character; edited segments (splice
replacements) map as a whole to the span they replaced.

``to_dict()`` renders the map as a Source Map revision 3 object so
standard tooling can consume it.
"""

from __future__ import annotations

import base64
import bisect
import json
from dataclasses import dataclass
from typing import Any

# Source name used when the document has no label
UNKNOWN_SOURCE = "<unknown>"

_BASE64_DIGITS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def encode_vlq(value: int) -> str:
    """Encode one integer as a base64 VLQ field.

    Example:
        >>> [encode_vlq(n) for n in (0, 1, -1, 16)]
        ['A', 'C', 'D', 'gB']
    """
    vlq = ((-value) << 1) | 1 if value < 0 else value << 1
    digits: list[str] = []
    while True:
        digit = vlq & 0b11111
        vlq >>= 5
        if vlq:
            digit |= 0b100000
        digits.append(_BASE64_DIGITS[digit])
        if not vlq:
            return "".join(digits)


@dataclass(frozen=True, slots=True)
class Segment:
    """A generated range and the original range it came from."""

    generated_start: int
    generated_end: int
    original_start: int
    original_end: int
    edited: bool = False


class _LineIndex:
    """Offset to 0-based (line, column) lookup for one text."""

    def __init__(self, text: str) -> None:
        self.starts = [0]
        self.starts.extend(i + 1 for i, ch in enumerate(text) if ch == "\n")

    def position(self, offset: int) -> tuple[int, int]:
        line = bisect.bisect_right(self.starts, offset) - 1
        return line, offset - self.starts[line]


@dataclass(frozen=True)
class OffsetMap:
    """Monotonic mapping from generated offsets to original offsets.

    Attributes:
        file: Label of the document, used as ``file`` and source name.
        source: The original document text.
        generated: The rewritten text.
        segments: Ordered, contiguous segments covering both texts.
    """

    file: str | None
    source: str
    generated: str
    segments: tuple[Segment, ...]

    @classmethod
    def identity(cls, text: str, file: str | None = None) -> OffsetMap:
        """Map for a document that was not changed."""
        segments = (Segment(0, len(text), 0, len(text)),) if text else ()
        return cls(file=file, source=text, generated=text, segments=segments)

    @property
    def is_identity(self) -> bool:
        return self.source == self.generated and not any(
            segment.edited for segment in self.segments
        )

    def _find(self, offset: int, *, generated: bool) -> Segment | None:
        """Segment containing ``offset`` on the given side (half-open)."""
        for segment in self.segments:
            start, end = (
                (segment.generated_start, segment.generated_end)
                if generated
                else (segment.original_start, segment.original_end)
            )
            if start <= offset < end:
                return segment
        return None

    def original_offset(self, generated_offset: int) -> int:
        """Original offset for a generated offset.

        Offsets inside a replacement map to the start of the replaced span.

        Raises:
            ValueError: If the offset is outside the generated text.
        """
        if not 0 <= generated_offset <= len(self.generated):
            msg = f"Generated offset {generated_offset} out of range"
            raise ValueError(msg)
        if generated_offset == len(self.generated):
            return len(self.source)
        segment = self._find(generated_offset, generated=True)
        if segment is None:
            return generated_offset
        if segment.edited:
            return segment.original_start
        return segment.original_start + generated_offset - segment.generated_start

    def generated_offset(self, original_offset: int) -> int:
        """Generated offset for an original offset (inverse of the above).

        Raises:
            ValueError: If the offset is outside the original text.
        """
        if not 0 <= original_offset <= len(self.source):
            msg = f"Original offset {original_offset} out of range"
            raise ValueError(msg)
        if original_offset == len(self.source):
            return len(self.generated)
        segment = self._find(original_offset, generated=False)
        if segment is None:
            return original_offset
        if segment.edited:
            return segment.generated_start
        return segment.generated_start + original_offset - segment.original_start

    # ------------------------------------------------------------------
    # Source Map v3
    # ------------------------------------------------------------------
    def _mapping_lines(self) -> list[list[tuple[int, int, int]]]:
        """Per generated line, ``(gen_column, orig_line, orig_column)`` entries."""
        lines: list[list[tuple[int, int, int]]] = [
            [] for _ in range(self.generated.count("\n") + 1)
        ]
        generated_index = _LineIndex(self.generated)
        original_index = _LineIndex(self.source)

        for segment in self.segments:
            chunk = self.generated[segment.generated_start : segment.generated_end]
            if not chunk:
                continue
            gen_line, gen_col = generated_index.position(segment.generated_start)
            orig_line, orig_col = original_index.position(segment.original_start)
            lines[gen_line].append((gen_col, orig_line, orig_col))

            # A mapping at the start of each further line the chunk spans
            newline = chunk.find("\n")
            while newline != -1 and newline + 1 < len(chunk):
                gen_line += 1
                if segment.edited:
                    lines[gen_line].append((0, orig_line, orig_col))
                else:
                    line, col = original_index.position(
                        segment.original_start + newline + 1
                    )
                    lines[gen_line].append((0, line, col))
                newline = chunk.find("\n", newline + 1)
        return lines

    def mappings(self) -> str:
        """The VLQ-encoded ``mappings`` field."""
        encoded_lines: list[str] = []
        previous_line = previous_col = 0
        for entries in self._mapping_lines():
            previous_gen_col = 0
            encoded: list[str] = []
            for gen_col, orig_line, orig_col in entries:
                encoded.append(
                    encode_vlq(gen_col - previous_gen_col)
                    + encode_vlq(0)
                    + encode_vlq(orig_line - previous_line)
                    + encode_vlq(orig_col - previous_col)
                )
                previous_gen_col = gen_col
                previous_line, previous_col = orig_line, orig_col
            encoded_lines.append(",".join(encoded))
        return ";".join(encoded_lines)

    def to_dict(self) -> dict[str, Any]:
        """Source Map v3 object; ``file`` is omitted for unlabelled documents."""
        source_map: dict[str, Any] = {"version": 3}
        if self.file:
            source_map["file"] = self.file
        source_map.update(
            sources=[self.file or UNKNOWN_SOURCE],
            sourcesContent=[self.source],
            names=[],
            mappings=self.mappings(),
        )
        return source_map

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_url(self) -> str:
        """The source map as a ``data:`` URL."""
        payload = base64.b64encode(self.to_json().encode("utf-8")).decode("ascii")
        return f"data:application/json;charset=utf-8;base64,{payload}"
