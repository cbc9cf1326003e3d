"""Pytest configuration and shared fixtures."""

import logging
from collections.abc import Generator
from pathlib import Path

import logfire
import pytest

from chorecycle.core import module_registry
from chorecycle.core.module_registry import _registry


logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def quiet_logfire() -> None:
    """Configure Logfire so spans are recorded locally and nothing is exported."""
    logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
def isolated_registry() -> Generator[None]:
    """Run a test against an empty module registry, restoring the original afterwards."""
    saved = module_registry.get_modules()
    _registry.modules.clear()
    try:
        yield
    finally:
        _registry.modules.clear()
        _registry.modules.update(saved)


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Path to a fresh SQLite database file for one test."""
    return str(tmp_path / "chorecycle-test.db")
