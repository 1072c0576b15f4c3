"""Command-line entry point for escape-content.

Runs the preprocessor over component files outside a build pipeline.

Usage:
    escape-content src/lib/Code.svelte               # rewritten code to stdout
    escape-content src -o build/escaped --source-map  # tree, with .map files
    escape-content --highlight --print-css            # Pygments stylesheet
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console

from escape_content import __version__, setup_logging
from escape_content.config import get_settings
from escape_content.highlight import PygmentsHighlighter
from escape_content.preprocess import (
    EscapePreprocessor,
    Options,
    matches_extension,
    process,
)
from escape_content.rewrite import UnsupportedNestingError
from escape_content.scanner import ParseError

logger = logging.getLogger(__name__)

console = Console(stderr=True)

STDIN = "-"


@dataclass(frozen=True, slots=True)
class _Source:
    """An input file and the path of its output relative to ``--out-dir``."""

    path: Path | None
    relative: Path


def _collect_sources(paths: list[str], extensions: tuple[str, ...]) -> list[_Source]:
    """Expand directories into matching files; files are taken as given."""
    sources: list[_Source] = []
    for raw in paths:
        if raw == STDIN:
            # Named with a processed extension so stdin is never skipped
            relative = Path("stdin" + extensions[0])
            sources.append(_Source(path=None, relative=relative))
            continue
        path = Path(raw)
        if path.is_dir():
            for child in sorted(path.rglob("*")):
                if child.is_file() and matches_extension(child.name, extensions):
                    relative = child.relative_to(path)
                    sources.append(_Source(path=child, relative=relative))
        elif path.is_file():
            sources.append(_Source(path=path, relative=Path(path.name)))
        else:
            console.print(f"[red]Error:[/] {raw} does not exist")
            sys.exit(2)
    return sources


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="escape-content",
        description="Rewrite marked elements of component files as verbatim text.",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Component files or directories ('-' reads stdin).",
    )
    parser.add_argument(
        "-o",
        "--out-dir",
        type=Path,
        help="Write rewritten files here instead of to stdout.",
    )
    parser.add_argument("--tag", help="Marker attribute name.")
    parser.add_argument(
        "--ext",
        action="append",
        dest="extensions",
        help="File extension to process (repeatable).",
    )
    parser.add_argument(
        "--highlight",
        action="store_true",
        default=None,
        help="Highlight elements with a lang attribute using Pygments.",
    )
    parser.add_argument("--style", help="Pygments style name.")
    parser.add_argument(
        "--source-map",
        action="store_true",
        help="Write a .map file next to each output (requires --out-dir).",
    )
    parser.add_argument(
        "--strict-nesting",
        action="store_true",
        default=None,
        help="Fail on marked elements nested inside marked elements.",
    )
    parser.add_argument(
        "--print-css",
        action="store_true",
        help="Print the Pygments stylesheet for the configured style and exit.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def _options_from_args(args: argparse.Namespace) -> Options:
    settings = get_settings()
    highlight = settings.highlight.model_copy(
        update={
            key: value
            for key, value in (("enabled", args.highlight), ("style", args.style))
            if value is not None
        }
    )
    settings = settings.model_copy(update={"highlight": highlight})

    options = Options.from_settings(settings)
    overrides = {
        key: value
        for key, value in (
            ("tag", args.tag),
            ("extensions", tuple(args.extensions) if args.extensions else None),
            ("strict_nesting", args.strict_nesting),
        )
        if value is not None
    }
    return options.model_copy(update=overrides) if overrides else options


async def _run(
    preprocessor: EscapePreprocessor,
    sources: list[_Source],
    out_dir: Path | None,
    *,
    source_map: bool,
) -> int:
    """Transform each source; returns the number of failures."""
    failures = 0
    for source in sources:
        label = str(source.path) if source.path else "<stdin>"
        if source.path is None:
            content = sys.stdin.read()
        else:
            content = source.path.read_text(encoding="utf-8")
        filename = str(source.path or source.relative)

        try:
            processed = await preprocessor.markup(content, filename)
            code, offset_map = processed.code, processed.map
        except (ParseError, UnsupportedNestingError) as exc:
            failures += 1
            console.print(f"[red]Error[/] in {label}: {exc}")
            console.print("  [dim]Emitting original content unchanged[/]")
            code, offset_map = content, None

        if out_dir is None:
            sys.stdout.write(code)
            continue

        target = out_dir / source.relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(code, encoding="utf-8")
        if source_map and offset_map is not None:
            target.with_name(target.name + ".map").write_text(
                offset_map.to_json(), encoding="utf-8"
            )
        logger.info("Wrote %s", target)

    return failures


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    level = "DEBUG" if args.verbose else settings.log.level
    setup_logging(level, settings.log.file)

    options = _options_from_args(args)

    if args.print_css:
        highlighter = PygmentsHighlighter(
            args.style or settings.highlight.style,
            settings.highlight.css_class,
        )
        sys.stdout.write(highlighter.stylesheet() + "\n")
        return

    if not args.paths:
        parser.error("no input paths given")
    if args.source_map and args.out_dir is None:
        parser.error("--source-map requires --out-dir")

    sources = _collect_sources(args.paths, options.extensions)
    if not sources:
        console.print("[yellow]No matching files.[/]")
        return

    failures = asyncio.run(
        _run(process(options), sources, args.out_dir, source_map=args.source_map)
    )

    if args.out_dir is not None:
        console.print(
            f"Processed [bold]{len(sources)}[/] file(s), "
            f"[{'red' if failures else 'green'}]{failures} failed[/]."
        )
    if failures:
        sys.exit(1)
