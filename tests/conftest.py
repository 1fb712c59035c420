"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def project_root() -> Path:
    """Project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def fake_cli() -> list[str]:
    """argv prefix that runs the fake command with this interpreter."""
    return [sys.executable, str(FIXTURES_DIR / "fake_cli.py")]


@pytest.fixture
def restore_config():
    """Reload the global config after a test patched the environment."""
    from buffer_helpers.config import reload_config

    yield
    reload_config()
