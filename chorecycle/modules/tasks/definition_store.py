"""Definition store: persisted task definitions and their embedded recurrence rules."""

import logging
from collections.abc import Mapping
from datetime import date, time
from enum import Enum
from typing import Any, Protocol

from pydantic import ValidationError

from chorecycle.core import db_client
from chorecycle.core.errors import DefinitionNotFoundError, InvalidRecurrenceError
from chorecycle.domain.task import RecurrenceRule, TaskDefinition


logger = logging.getLogger(__name__)

# Definition columns that map 1:1 onto an update payload
DEFINITION_COLUMNS = frozenset(
    {
        "title",
        "description",
        "category_id",
        "points",
        "due_time",
        "require_approval",
        "active",
        "recurrence_type",
        "recurrence_interval",
        "start_date",
        "end_date",
        "default_assignee",
    }
)


class DefinitionStore(Protocol):
    """Storage collaborator for task definitions."""

    async def get_definition(self, definition_id: str) -> TaskDefinition:
        """Fetch one definition, raising DefinitionNotFoundError if missing."""
        ...

    async def create_definition(self, fields: Mapping[str, Any]) -> TaskDefinition:
        """Insert a definition from column values and return it."""
        ...

    async def update_definition(self, definition_id: str, fields: Mapping[str, Any]) -> TaskDefinition:
        """Apply column values to a definition and return the updated record."""
        ...

    async def list_active_definition_ids(self) -> list[str]:
        """IDs of every definition with active = true, ascending."""
        ...

    async def delete_definition(self, definition_id: str) -> None:
        """Physically delete a definition."""
        ...


def definition_to_columns(definition: TaskDefinition) -> dict[str, Any]:
    """Flatten a definition into its column values."""
    rule = definition.recurrence
    return {
        "title": definition.title,
        "description": definition.description,
        "category_id": definition.category_id,
        "points": definition.points,
        "due_time": definition.due_time,
        "require_approval": definition.require_approval,
        "active": definition.active,
        "recurrence_type": rule.type,
        "recurrence_interval": rule.interval,
        "start_date": rule.start_date,
        "end_date": rule.end_date,
        "default_assignee": rule.default_assignee,
    }


def row_to_definition(row: Mapping[str, Any]) -> TaskDefinition:
    """Build a TaskDefinition from a task_definitions row.

    Raises:
        InvalidRecurrenceError: If the stored recurrence columns do not form a valid rule
    """
    try:
        rule = RecurrenceRule(
            type=row["recurrence_type"],
            interval=row["recurrence_interval"],
            start_date=row["start_date"],
            end_date=row.get("end_date"),
            default_assignee=row.get("default_assignee"),
        )
    except ValidationError as e:
        raise InvalidRecurrenceError(f"Definition {row['id']} has an invalid recurrence rule: {e}") from e

    return TaskDefinition(
        id=str(row["id"]),
        title=row["title"],
        description=row.get("description"),
        category_id=row.get("category_id"),
        points=row["points"],
        due_time=row.get("due_time"),
        require_approval=bool(row["require_approval"]),
        active=bool(row["active"]),
        recurrence=rule,
    )


def _serialize(value: Any) -> Any:
    if isinstance(value, date | time):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Enum):
        return value.value
    return value


class SqliteDefinitionStore:
    """DefinitionStore backed by the task_definitions SQLite table."""

    def __init__(self, *, db_path: str | None = None) -> None:
        self._db_path = db_path

    async def get_definition(self, definition_id: str) -> TaskDefinition:
        row = await db_client.fetch_one(
            "SELECT * FROM task_definitions WHERE id = ?",
            (int(definition_id),),
            db_path=self._db_path,
        )
        if row is None:
            raise DefinitionNotFoundError(f"Definition not found: {definition_id}")
        return row_to_definition(row)

    async def create_definition(self, fields: Mapping[str, Any]) -> TaskDefinition:
        self._check_columns(fields)
        columns = list(fields)
        placeholders = ", ".join("?" for _ in columns)

        _, definition_id = await db_client.execute(
            f"INSERT INTO task_definitions ({', '.join(columns)}) VALUES ({placeholders})",  # noqa: S608 - columns are whitelisted
            [_serialize(fields[column]) for column in columns],
            db_path=self._db_path,
        )
        logger.info("Created definition", extra={"definition_id": definition_id})
        return await self.get_definition(str(definition_id))

    async def update_definition(self, definition_id: str, fields: Mapping[str, Any]) -> TaskDefinition:
        self._check_columns(fields)
        if not fields:
            return await self.get_definition(definition_id)

        set_clause = ", ".join(f"{column} = ?" for column in fields)
        updated, _ = await db_client.execute(
            f"UPDATE task_definitions SET {set_clause}, updated = datetime('now') WHERE id = ?",  # noqa: S608 - columns are whitelisted
            [*(_serialize(value) for value in fields.values()), int(definition_id)],
            db_path=self._db_path,
        )
        if updated == 0:
            raise DefinitionNotFoundError(f"Definition not found: {definition_id}")
        return await self.get_definition(definition_id)

    async def list_active_definition_ids(self) -> list[str]:
        rows = await db_client.fetch_all(
            "SELECT id FROM task_definitions WHERE active = 1 ORDER BY id ASC",
            db_path=self._db_path,
        )
        return [str(row["id"]) for row in rows]

    async def delete_definition(self, definition_id: str) -> None:
        deleted, _ = await db_client.execute(
            "DELETE FROM task_definitions WHERE id = ?",
            (int(definition_id),),
            db_path=self._db_path,
        )
        if deleted == 0:
            raise DefinitionNotFoundError(f"Definition not found: {definition_id}")

    @staticmethod
    def _check_columns(fields: Mapping[str, Any]) -> None:
        unknown = set(fields) - DEFINITION_COLUMNS
        if unknown:
            msg = f"Unsupported definition fields: {sorted(unknown)}"
            raise ValueError(msg)
