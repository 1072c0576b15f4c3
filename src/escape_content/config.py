"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class HighlightConfig(BaseModel):
    """Pygments highlighting for elements carrying a language attribute."""

    enabled: bool = False
    style: str = "default"
    css_class: str = "highlight"
    line_numbers: bool = False


class LogConfig(BaseModel):
    """Logging destinations."""

    level: str = "WARNING"
    file: Path | None = None

    @field_validator("level")
    @classmethod
    def known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            msg = f"Unknown log level {value!r}"
            raise ValueError(msg)
        return level


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables are prefixed with ``ESCAPE_CONTENT_`` and use a
    double-underscore delimiter for nesting: ``ESCAPE_CONTENT_MARKER_ATTRIBUTE``,
    ``ESCAPE_CONTENT_HIGHLIGHT__ENABLED``, ``ESCAPE_CONTENT_LOG__FILE``, etc.
    """

    model_config = SettingsConfigDict(
        env_prefix="ESCAPE_CONTENT_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    marker_attribute: str = "escape-content"
    extensions: tuple[str, ...] = (".svelte",)
    lang_attribute: str = "lang"
    strict_nesting: bool = False
    highlight: HighlightConfig = HighlightConfig()
    log: LogConfig = LogConfig()

    @field_validator("marker_attribute", "lang_attribute")
    @classmethod
    def attribute_name(cls, value: str) -> str:
        if not value or any(ch.isspace() for ch in value):
            msg = f"Attribute name must be non-empty without whitespace: {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("extensions")
    @classmethod
    def dotted_extensions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            msg = "At least one file extension is required"
            raise ValueError(msg)
        for ext in value:
            if not ext.startswith(".") or len(ext) < 2:
                msg = f"File extensions must start with '.': {ext!r}"
                raise ValueError(msg)
        return value


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)

    return settings
