# tests/conftest.py

"""Shared pytest fixtures for all catalog console tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from catalog_console.config.settings import Settings


@pytest.fixture(autouse=True)
def fast_retries() -> Generator[None, None, None]:
    """Zero the read-retry backoff so retry loops run instantly."""
    with patch.object(Settings, "RETRY_DELAY", 0.0):
        yield


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path: Path) -> Generator[None, None, None]:
    """Write per-run log files under a temporary logs/ directory."""
    with patch.object(Settings, "LOGS_DIR", tmp_path / "logs"):
        yield
