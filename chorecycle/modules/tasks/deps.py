"""Collaborators injected into instance engine operations."""

from dataclasses import dataclass, field

from chorecycle.core.clock import HouseholdClock
from chorecycle.core.config import settings
from chorecycle.modules.tasks.definition_store import DefinitionStore, SqliteDefinitionStore
from chorecycle.modules.tasks.instance_store import InstanceStore, SqliteInstanceStore
from chorecycle.services.notification_service import Notifier


@dataclass
class EngineDeps:
    """Dependencies passed to every engine operation."""

    instances: InstanceStore
    definitions: DefinitionStore
    clock: HouseholdClock
    notifier: Notifier | None = None
    horizon_days: int = field(default_factory=lambda: settings.instance_horizon_days)
    early_completion_bonus_ratio: float = field(default_factory=lambda: settings.early_completion_bonus_ratio)


def build_default_deps(*, notifier: Notifier | None = None, db_path: str | None = None) -> EngineDeps:
    """Wire the SQLite stores and a household clock from settings."""
    return EngineDeps(
        instances=SqliteInstanceStore(db_path=db_path),
        definitions=SqliteDefinitionStore(db_path=db_path),
        clock=HouseholdClock(),
        notifier=notifier,
    )
