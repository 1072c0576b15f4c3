"""Escaping of template-significant characters in extracted content.

The rewritten element embeds its content inside a JavaScript template
literal wrapped in a Svelte expression (``{`...` }``). Backticks, quotes,
slashes and braces are backslash-escaped so the content is read as text.
"""

from __future__ import annotations

import re

# Map of characters that must be escaped inside the embedded literal
ESCAPES: dict[str, str] = {
    "`": "\\`",
    "'": "\\'",
    "/": "\\/",
    "{": "\\{",
    "}": "\\}",
}

_UNESCAPED = re.compile(r"[`'/{}]")


def escape(text: str) -> str:
    """Backslash-escape every backtick, single quote, slash and brace.

    Not idempotent: escaping already escaped text escapes it again, so call
    this exactly once per piece of raw content.
    """
    return _UNESCAPED.sub(lambda match: ESCAPES[match.group(0)], text)
