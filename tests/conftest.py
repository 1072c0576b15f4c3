"""Shared pytest fixtures for escape-content tests."""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest

from escape_content.config import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Generator[None]:
    """Run every test without ESCAPE_CONTENT_* env vars or a stray .env file."""
    for name in list(os.environ):
        if name.startswith("ESCAPE_CONTENT_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def marker() -> str:
    """The default marker attribute."""
    return "escape-content"
