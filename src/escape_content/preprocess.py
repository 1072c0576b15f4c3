"""Preprocessor adapter for component build pipelines.

``process(options)`` returns an object with an async ``markup`` hook, the
shape build tools call once per component file. Files whose name does not
end with one of the configured extensions are returned untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from escape_content.config import Settings, get_settings
from escape_content.offset_map import OffsetMap
from escape_content.rewrite import (
    DEFAULT_LANG_ATTRIBUTE,
    DEFAULT_MARKER_ATTRIBUTE,
    transform_async,
)

logger = logging.getLogger(__name__)


class Options(BaseModel):
    """Preprocessor options."""

    model_config = ConfigDict(frozen=True)

    tag: str = DEFAULT_MARKER_ATTRIBUTE
    extensions: tuple[str, ...] = (".svelte",)
    highlighter: Callable[[str, str], Any] | None = None
    lang_attribute: str = DEFAULT_LANG_ATTRIBUTE
    strict_nesting: bool = False

    @field_validator("tag")
    @classmethod
    def non_empty_tag(cls, value: str) -> str:
        if not value.strip():
            msg = "Marker attribute name must not be empty"
            raise ValueError(msg)
        return value

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Options:
        """Build options from configuration, with Pygments when enabled."""
        settings = settings or get_settings()
        highlighter = None
        if settings.highlight.enabled:
            from escape_content.highlight import PygmentsHighlighter

            highlighter = PygmentsHighlighter.from_config(settings.highlight)
        return cls(
            tag=settings.marker_attribute,
            extensions=settings.extensions,
            highlighter=highlighter,
            lang_attribute=settings.lang_attribute,
            strict_nesting=settings.strict_nesting,
        )


@dataclass(frozen=True, slots=True)
class Processed:
    """Result of one ``markup`` call; ``map`` is None for skipped files."""

    code: str
    map: OffsetMap | None = None


def matches_extension(filename: str, extensions: tuple[str, ...]) -> bool:
    """Whether the file's full extension is one of ``extensions``.

    The full extension is everything from the first dot of the final path
    component, so ``App.test.svelte`` has ``.test.svelte`` and is skipped
    unless that is configured. Dotted directory names play no part.
    """
    _, dot, rest = PurePath(filename).name.partition(".")
    return bool(dot) and "." + rest in extensions


class EscapePreprocessor:
    """Markup preprocessor rewriting marked elements of matching files."""

    def __init__(self, options: Options) -> None:
        self.options = options

    async def markup(self, content: str, filename: str) -> Processed:
        """Transform one component.

        Raises:
            ParseError: The component could not be tokenised.
            UnsupportedNestingError: Nested markers with ``strict_nesting``.
        """
        if not matches_extension(filename, self.options.extensions):
            logger.debug(
                "Skipping %s: extension not in %s", filename, self.options.extensions
            )
            return Processed(code=content)

        result = await transform_async(
            self.options.tag,
            content,
            filename,
            self.options.highlighter,
            lang_attribute=self.options.lang_attribute,
            strict_nesting=self.options.strict_nesting,
        )
        return Processed(code=result.code, map=result.map)


def process(options: Options | None = None) -> EscapePreprocessor:
    """Create a preprocessor; defaults come from ``Options()``."""
    return EscapePreprocessor(options or Options())
