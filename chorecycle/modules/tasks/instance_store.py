"""Instance store: the engine's only view of persisted task instances."""

import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, Protocol

from chorecycle.core import db_client
from chorecycle.core.errors import InstanceNotFoundError
from chorecycle.domain.task import InstanceStatus, TaskInstance


logger = logging.getLogger(__name__)

# Columns a status change may write alongside the status itself
STATUS_METADATA_FIELDS = frozenset(
    {
        "completed_by",
        "completed_at",
        "completion_notes",
        "points_awarded",
        "approved_by",
        "approved_at",
        "rejection_reason",
    }
)


class InstanceStore(Protocol):
    """Storage collaborator for task instances.

    Implementations must enforce uniqueness of (definition_id, due_date) and raise
    DuplicateInstanceError when an insert collides with it.
    """

    async def find_existing(self, definition_id: str, start: date, end: date) -> set[date]:
        """Due dates already present for the definition within [start, end], any status."""
        ...

    async def insert_many(self, definition_id: str, rows: Sequence[tuple[date, str | None]]) -> int:
        """Insert pending instances for (due_date, assignee) rows atomically. Returns the count inserted."""
        ...

    async def delete_future_pending(self, definition_id: str, from_date: date) -> int:
        """Delete pending instances due on or after from_date. Returns the count deleted."""
        ...

    async def update_future_pending_assignee(self, definition_id: str, from_date: date, assignee: str | None) -> int:
        """Reassign pending instances due on or after from_date. Returns the count updated."""
        ...

    async def update_status(
        self,
        instance_id: str,
        status: InstanceStatus,
        metadata: Mapping[str, Any],
        *,
        expected_status: InstanceStatus,
    ) -> TaskInstance | None:
        """Set status and metadata if the instance is still in expected_status. None if it was not."""
        ...

    async def get_instance(self, instance_id: str) -> TaskInstance:
        """Fetch one instance, raising InstanceNotFoundError if missing."""
        ...

    async def list_instances(
        self, definition_id: str, *, start: date | None = None, end: date | None = None
    ) -> list[TaskInstance]:
        """Instances of a definition ordered by due date, optionally bounded."""
        ...

    async def update_assignee(
        self, instance_id: str, assignee: str | None, *, expected_status: InstanceStatus
    ) -> TaskInstance | None:
        """Reassign one instance if it is still in expected_status. None if it was not."""
        ...

    async def delete_all(self, definition_id: str) -> int:
        """Delete every instance of a definition. Returns the count deleted."""
        ...


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, InstanceStatus):
        return value.value
    return value


def _to_instance(row: dict[str, Any]) -> TaskInstance:
    record = {key: value for key, value in row.items() if key not in {"created", "updated"}}
    record["id"] = str(record["id"])
    record["definition_id"] = str(record["definition_id"])
    return TaskInstance.model_validate(record)


class SqliteInstanceStore:
    """InstanceStore backed by the task_instances SQLite table."""

    def __init__(self, *, db_path: str | None = None) -> None:
        self._db_path = db_path

    async def find_existing(self, definition_id: str, start: date, end: date) -> set[date]:
        rows = await db_client.fetch_all(
            "SELECT due_date FROM task_instances WHERE definition_id = ? AND due_date >= ? AND due_date <= ?",
            (int(definition_id), start.isoformat(), end.isoformat()),
            db_path=self._db_path,
        )
        return {date.fromisoformat(row["due_date"]) for row in rows}

    async def insert_many(self, definition_id: str, rows: Sequence[tuple[date, str | None]]) -> int:
        if not rows:
            return 0

        inserted = await db_client.execute_many(
            "INSERT INTO task_instances (definition_id, due_date, assignee, status) VALUES (?, ?, ?, ?)",
            [(int(definition_id), due.isoformat(), assignee, InstanceStatus.PENDING.value) for due, assignee in rows],
            db_path=self._db_path,
        )
        logger.info("Inserted instances", extra={"definition_id": definition_id, "count": inserted})
        return inserted

    async def delete_future_pending(self, definition_id: str, from_date: date) -> int:
        deleted, _ = await db_client.execute(
            "DELETE FROM task_instances WHERE definition_id = ? AND due_date >= ? AND status = ?",
            (int(definition_id), from_date.isoformat(), InstanceStatus.PENDING.value),
            db_path=self._db_path,
        )
        logger.info("Deleted future pending instances", extra={"definition_id": definition_id, "count": deleted})
        return deleted

    async def update_future_pending_assignee(self, definition_id: str, from_date: date, assignee: str | None) -> int:
        updated, _ = await db_client.execute(
            "UPDATE task_instances SET assignee = ?, updated = datetime('now') "
            "WHERE definition_id = ? AND due_date >= ? AND status = ?",
            (assignee, int(definition_id), from_date.isoformat(), InstanceStatus.PENDING.value),
            db_path=self._db_path,
        )
        return updated

    async def update_status(
        self,
        instance_id: str,
        status: InstanceStatus,
        metadata: Mapping[str, Any],
        *,
        expected_status: InstanceStatus,
    ) -> TaskInstance | None:
        unknown = set(metadata) - STATUS_METADATA_FIELDS
        if unknown:
            msg = f"Unsupported instance fields: {sorted(unknown)}"
            raise ValueError(msg)

        columns = ["status", *metadata.keys()]
        set_clause = ", ".join(f"{column} = ?" for column in columns)
        values = [status.value, *(_serialize(value) for value in metadata.values())]

        updated, _ = await db_client.execute(
            f"UPDATE task_instances SET {set_clause}, updated = datetime('now') WHERE id = ? AND status = ?",  # noqa: S608 - columns are whitelisted
            (*values, int(instance_id), expected_status.value),
            db_path=self._db_path,
        )
        if updated == 0:
            return None
        return await self.get_instance(instance_id)

    async def get_instance(self, instance_id: str) -> TaskInstance:
        row = await db_client.fetch_one(
            "SELECT * FROM task_instances WHERE id = ?",
            (int(instance_id),),
            db_path=self._db_path,
        )
        if row is None:
            raise InstanceNotFoundError(f"Instance not found: {instance_id}")
        return _to_instance(row)

    async def list_instances(
        self, definition_id: str, *, start: date | None = None, end: date | None = None
    ) -> list[TaskInstance]:
        conditions = ["definition_id = ?"]
        params: list[Any] = [int(definition_id)]
        if start is not None:
            conditions.append("due_date >= ?")
            params.append(start.isoformat())
        if end is not None:
            conditions.append("due_date <= ?")
            params.append(end.isoformat())

        rows = await db_client.fetch_all(
            f"SELECT * FROM task_instances WHERE {' AND '.join(conditions)} ORDER BY due_date ASC",  # noqa: S608
            params,
            db_path=self._db_path,
        )
        return [_to_instance(row) for row in rows]

    async def update_assignee(
        self, instance_id: str, assignee: str | None, *, expected_status: InstanceStatus
    ) -> TaskInstance | None:
        updated, _ = await db_client.execute(
            "UPDATE task_instances SET assignee = ?, updated = datetime('now') WHERE id = ? AND status = ?",
            (assignee, int(instance_id), expected_status.value),
            db_path=self._db_path,
        )
        if updated == 0:
            return None
        return await self.get_instance(instance_id)

    async def delete_all(self, definition_id: str) -> int:
        deleted, _ = await db_client.execute(
            "DELETE FROM task_instances WHERE definition_id = ?",
            (int(definition_id),),
            db_path=self._db_path,
        )
        return deleted
