"""Pytest configuration and fixtures for integration tests against a real SQLite file."""

from collections.abc import AsyncGenerator
from datetime import date

import pytest

from chorecycle.core import db_client
from chorecycle.core.clock import HouseholdClock
from chorecycle.core.schema import init_db
from chorecycle.modules.tasks.definition_store import SqliteDefinitionStore
from chorecycle.modules.tasks.deps import EngineDeps
from chorecycle.modules.tasks.instance_store import SqliteInstanceStore
from chorecycle.services.notification_service import LoggingNotifier


@pytest.fixture
async def sqlite_db(db_path: str) -> AsyncGenerator[str]:
    """Initialize the schema in a temporary database and close it afterwards."""
    await init_db(db_path=db_path)
    yield db_path
    await db_client.close_connection(db_path=db_path)


@pytest.fixture
def sqlite_deps(sqlite_db: str) -> EngineDeps:
    """Engine dependencies backed by the temporary SQLite database."""
    return EngineDeps(
        instances=SqliteInstanceStore(db_path=sqlite_db),
        definitions=SqliteDefinitionStore(db_path=sqlite_db),
        clock=HouseholdClock.fixed(date(2025, 3, 1), "America/New_York"),
        notifier=LoggingNotifier(),
        horizon_days=30,
        early_completion_bonus_ratio=0.1,
    )
