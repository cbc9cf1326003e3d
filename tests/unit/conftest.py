"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

import pytest

from chorecycle.core.clock import HouseholdClock
from chorecycle.domain.task import RecurrenceType, TaskDefinition
from chorecycle.modules.tasks.deps import EngineDeps
from tests.unit.mocks import InMemoryDefinitionStore, InMemoryInstanceStore, RecordingNotifier


TODAY = date(2025, 3, 1)
HOUSEHOLD_TZ = "America/New_York"


@pytest.fixture
def clock() -> HouseholdClock:
    """Household clock frozen at noon on 2025-03-01, New York time."""
    return HouseholdClock.fixed(TODAY, HOUSEHOLD_TZ)


@pytest.fixture
def instance_store() -> InMemoryInstanceStore:
    """Provides a fresh InMemoryInstanceStore for each test."""
    return InMemoryInstanceStore()


@pytest.fixture
def definition_store() -> InMemoryDefinitionStore:
    """Provides a fresh InMemoryDefinitionStore for each test."""
    return InMemoryDefinitionStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Notifier that records every assignment notification."""
    return RecordingNotifier()


@pytest.fixture
def deps(
    instance_store: InMemoryInstanceStore,
    definition_store: InMemoryDefinitionStore,
    clock: HouseholdClock,
    notifier: RecordingNotifier,
) -> EngineDeps:
    """Engine dependencies wired to the in-memory stores."""
    return EngineDeps(
        instances=instance_store,
        definitions=definition_store,
        clock=clock,
        notifier=notifier,
        horizon_days=30,
        early_completion_bonus_ratio=0.1,
    )


@pytest.fixture
def make_definition(definition_store: InMemoryDefinitionStore) -> Callable[..., Awaitable[TaskDefinition]]:
    """Factory that stores a definition and returns it.

    Usage:
        definition = await make_definition(recurrence_type="daily", default_assignee="alice")
    """

    async def _make(**overrides: Any) -> TaskDefinition:
        fields: dict[str, Any] = {
            "title": "Empty Dishwasher",
            "description": None,
            "category_id": None,
            "points": 10,
            "due_time": None,
            "require_approval": False,
            "active": True,
            "recurrence_type": RecurrenceType.DAILY,
            "recurrence_interval": 1,
            "start_date": TODAY,
            "end_date": None,
            "default_assignee": None,
        }
        fields.update(overrides)
        return await definition_store.create_definition(fields)

    return _make
