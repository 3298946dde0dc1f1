# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def mock_sleep() -> Generator[None, None, None]:
    """Patch time.sleep globally so request pacing runs instantly."""
    with patch("time.sleep"):
        yield


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path: Path) -> Generator[None, None, None]:
    """Keep client cache files and run logs out of the working tree."""
    with patch.object(Settings, "CACHE_DIR", tmp_path / "cache"), \
            patch.object(Settings, "LOGS_DIR", tmp_path / "logs"):
        yield
