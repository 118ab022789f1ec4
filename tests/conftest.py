"""Shared test fixtures for filecache.

Provides an isolated cache folder per test and a config factory pointing at
it, and resets the global output manager and CLI log handlers between tests.
Plain helper functions live in ``helpers.py`` next to this file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import pytest

from filecache.models import CacheConfig
from filecache.output import reset_output


# ---------------------------------------------------------------------------
# Global state resets
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> None:
    """Reset the OutputManager and CLI log handlers after every test.

    The CLI callback installs a Rich log handler bound to the stream that
    Typer's CliRunner captured; once the test ends that stream is closed.
    """
    yield
    reset_output()
    logger = logging.getLogger("filecache")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Cache folder and config
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """An existing, empty cache folder."""
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def make_config(cache_dir: Path) -> Callable[..., CacheConfig]:
    """Factory for configs rooted at ``cache_dir``."""

    def _make(**overrides: Any) -> CacheConfig:
        data: dict[str, Any] = {"folder": cache_dir}
        data.update(overrides)
        return CacheConfig(**data)

    return _make
