"""Non-overlapping text edits applied in one pass.

Edits are expressed against the original, immutable text. They are checked
for ordering and overlap up front, then applied left to right while the
offset map is built from the same walk.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from escape_content.offset_map import OffsetMap, Segment


@dataclass(frozen=True, slots=True)
class Edit:
    """Replace ``text[start:end]`` with ``replacement``."""

    start: int
    end: int
    replacement: str


def _validate(text: str, edits: Sequence[Edit]) -> None:
    previous_end = 0
    for edit in edits:
        if not 0 <= edit.start <= edit.end <= len(text):
            msg = f"Edit [{edit.start}:{edit.end}] outside text of length {len(text)}"
            raise ValueError(msg)
        if edit.start < previous_end:
            msg = (
                f"Edit [{edit.start}:{edit.end}] overlaps or precedes "
                f"the previous edit ending at {previous_end}"
            )
            raise ValueError(msg)
        previous_end = edit.end


def apply_edits(
    text: str, edits: Sequence[Edit], *, file: str | None = None
) -> tuple[str, OffsetMap]:
    """Apply sorted, non-overlapping edits to ``text``.

    Args:
        text: The original text.
        edits: Edits ordered by position, none overlapping another.
        file: Label recorded in the offset map.

    Returns:
        ``(new_text, offset_map)``.

    Raises:
        ValueError: If an edit is out of bounds, unsorted or overlapping.
    """
    _validate(text, edits)
    if not edits:
        return text, OffsetMap.identity(text, file)

    parts: list[str] = []
    segments: list[Segment] = []
    original_pos = 0
    generated_pos = 0

    def keep(end: int) -> None:
        nonlocal original_pos, generated_pos
        if end > original_pos:
            length = end - original_pos
            parts.append(text[original_pos:end])
            segments.append(
                Segment(generated_pos, generated_pos + length, original_pos, end)
            )
            original_pos = end
            generated_pos += length

    for edit in edits:
        keep(edit.start)
        parts.append(edit.replacement)
        segments.append(
            Segment(
                generated_pos,
                generated_pos + len(edit.replacement),
                edit.start,
                edit.end,
                edited=True,
            )
        )
        original_pos = edit.end
        generated_pos += len(edit.replacement)
    keep(len(text))

    generated = "".join(parts)
    return generated, OffsetMap(
        file=file, source=text, generated=generated, segments=tuple(segments)
    )
