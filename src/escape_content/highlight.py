"""Pygments highlighter for marked elements with a language attribute.

The rewrite engine embeds highlighter output verbatim inside a template
literal, so the HTML produced here must not contain characters a template
literal would interpret. Backticks, dollar signs and backslashes are
emitted as numeric character references; they render identically.
"""

from __future__ import annotations

import logging

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexer import Lexer
from pygments.lexers import HtmlLexer, TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from escape_content.config import HighlightConfig

logger = logging.getLogger(__name__)

# Characters significant inside a JavaScript template literal
_TEMPLATE_LITERAL_REFS: dict[str, str] = {
    "`": "&#96;",
    "$": "&#36;",
    "\\": "&#92;",
}
_TEMPLATE_LITERAL_TABLE = str.maketrans(_TEMPLATE_LITERAL_REFS)

# Languages without a dedicated Pygments lexer that read fine as HTML
_HTML_ALIASES = frozenset(("svelte", "vue"))


def _lexer_for(lang: str) -> Lexer:
    name = lang.strip()
    if not name:
        return TextLexer()
    try:
        return get_lexer_by_name(name)
    except ClassNotFound:
        if name.lower() in _HTML_ALIASES:
            return HtmlLexer()
        logger.warning("No Pygments lexer for %r, highlighting as plain text", lang)
        return TextLexer()


class PygmentsHighlighter:
    """``(text, lang) -> html`` highlighter backed by Pygments."""

    def __init__(
        self,
        style: str = "default",
        css_class: str = "highlight",
        *,
        line_numbers: bool = False,
    ) -> None:
        self.formatter = HtmlFormatter(
            style=style,
            cssclass=css_class,
            linenos="inline" if line_numbers else False,
        )

    @classmethod
    def from_config(cls, config: HighlightConfig) -> PygmentsHighlighter:
        return cls(config.style, config.css_class, line_numbers=config.line_numbers)

    def __call__(self, text: str, lang: str) -> str:
        html = highlight(text, _lexer_for(lang), self.formatter)
        return html.rstrip("\n").translate(_TEMPLATE_LITERAL_TABLE)

    def stylesheet(self) -> str:
        """CSS rules for the configured style, scoped to the CSS class."""
        return self.formatter.get_style_defs(f".{self.formatter.cssclass}")
