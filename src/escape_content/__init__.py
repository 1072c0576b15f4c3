"""escape-content - verbatim code blocks for component templates.

Rewrites elements flagged with an ``escape-content`` attribute so that their
text is embedded verbatim (dedented, escaped, optionally highlighted), with
an offset map back to the original source.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from escape_content.dedent import dedent
from escape_content.escaper import escape
from escape_content.offset_map import OffsetMap
from escape_content.preprocess import EscapePreprocessor, Options, Processed, process
from escape_content.rewrite import (
    MatchedRegion,
    TransformResult,
    UnsupportedNestingError,
    find_regions,
    transform,
    transform_async,
)
from escape_content.scanner import ParseError, TagScanner, scan

__version__ = "0.1.0"

__all__ = [
    "EscapePreprocessor",
    "MatchedRegion",
    "OffsetMap",
    "Options",
    "ParseError",
    "Processed",
    "TagScanner",
    "TransformResult",
    "UnsupportedNestingError",
    "dedent",
    "escape",
    "find_regions",
    "process",
    "scan",
    "setup_logging",
    "transform",
    "transform_async",
]


def setup_logging(level: str = "WARNING", log_file: Path | None = None) -> None:
    """Configure logging to the console and, optionally, a rotating file."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Console handler - less verbose
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    if log_file is None:
        return

    log_file.parent.mkdir(parents=True, exist_ok=True)

    # File handler - detailed logging with rotation (10MB, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    logging.info("Logging configured. Log file: %s", log_file.absolute())
