"""Task definition service for managing definitions and their instances."""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from chorecycle.core.errors import DefinitionValidationError
from chorecycle.core.logging import log_with_definition_context, span
from chorecycle.domain.create_models import TaskDefinitionCreate
from chorecycle.domain.task import RecurrenceRule, TaskDefinition, build_recurrence_rule
from chorecycle.domain.update_models import RECURRENCE_FIELDS, TaskDefinitionUpdate
from chorecycle.modules.tasks.deps import EngineDeps
from chorecycle.modules.tasks.materializer import materialize
from chorecycle.modules.tasks.regeneration import propagate_assignment, regenerate


logger = logging.getLogger(__name__)

# Definition columns that can't be set back to NULL
_REQUIRED_FIELDS = frozenset({"title", "points", "require_approval", "recurrence_type", "recurrence_interval"})


def _rule_columns(rule: RecurrenceRule) -> dict[str, Any]:
    return {
        "recurrence_type": rule.type,
        "recurrence_interval": rule.interval,
        "start_date": rule.start_date,
        "end_date": rule.end_date,
        "default_assignee": rule.default_assignee,
    }


def _coerce(model: type[TaskDefinitionCreate] | type[TaskDefinitionUpdate], data: Any) -> Any:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DefinitionValidationError(f"Invalid task definition: {e}") from e


async def create_definition(
    *,
    deps: EngineDeps,
    data: TaskDefinitionCreate | Mapping[str, Any],
) -> TaskDefinition:
    """Create a task definition and materialize its first instances.

    The default assignee, if any, is notified once about the new instances.

    Args:
        deps: Engine collaborators
        data: Definition fields (start_date defaults to today)

    Returns:
        Created definition

    Raises:
        DefinitionValidationError: If the definition fields are invalid
        InvalidRecurrenceError: If the recurrence fields are invalid
        DatabaseError: If a store fails
    """
    with span("task_service.create_definition"):
        payload = _coerce(TaskDefinitionCreate, data)
        rule = build_recurrence_rule(
            type=payload.recurrence_type,
            interval=payload.recurrence_interval,
            start_date=payload.start_date or deps.clock.today(),
            end_date=payload.end_date,
            default_assignee=payload.default_assignee,
        )

        definition = await deps.definitions.create_definition(
            {
                "title": payload.title,
                "description": payload.description,
                "category_id": payload.category_id,
                "points": payload.points,
                "due_time": payload.due_time,
                "require_approval": payload.require_approval,
                "active": True,
                **_rule_columns(rule),
            }
        )

        inserted = await materialize(deps=deps, definition=definition, notify=True)

        log_with_definition_context(
            logger,
            "info",
            "Created task definition",
            definition_id=definition.id,
            title=definition.title,
            recurrence_type=rule.type.value,
            instances=inserted,
        )
        return definition


async def update_definition(
    *,
    deps: EngineDeps,
    definition_id: str,
    update: TaskDefinitionUpdate | Mapping[str, Any],
) -> TaskDefinition:
    """Apply a partial update to a definition.

    A changed recurrence regenerates future pending instances. A changed default
    assignee alone is pushed onto future pending instances instead. Past and
    non-pending instances are never touched.

    Raises:
        DefinitionNotFoundError: If the definition does not exist
        DefinitionValidationError: If a required field is cleared or invalid
        InvalidRecurrenceError: If the merged recurrence rule is invalid
        DatabaseError: If a store fails
    """
    with span("task_service.update_definition"):
        payload = _coerce(TaskDefinitionUpdate, update)
        changes = payload.changes()

        cleared = sorted(name for name in _REQUIRED_FIELDS if name in changes and changes[name] is None)
        if cleared:
            msg = f"Fields cannot be cleared: {cleared}"
            raise DefinitionValidationError(msg)

        current = await deps.definitions.get_definition(definition_id)
        current_rule = current.recurrence

        merged = current_rule.model_dump()
        renamed = {"recurrence_type": "type", "recurrence_interval": "interval"}
        for name in (*RECURRENCE_FIELDS, "default_assignee"):
            if name in changes:
                merged[renamed.get(name, name)] = changes[name]
        if merged["start_date"] is None:
            merged["start_date"] = deps.clock.today()
        rule = build_recurrence_rule(**merged)

        fields = {name: value for name, value in changes.items() if name not in RECURRENCE_FIELDS}
        fields.update(_rule_columns(rule))
        definition = await deps.definitions.update_definition(definition_id, fields)

        if not definition.active:
            logger.info("Updated retired definition %s, instances left alone", definition_id)
            return definition

        recurrence_changed = (
            rule.type != current_rule.type
            or rule.interval != current_rule.interval
            or rule.start_date != current_rule.start_date
            or rule.end_date != current_rule.end_date
        )
        if recurrence_changed:
            # Regeneration re-creates future instances with the new assignee as well
            await regenerate(deps=deps, definition_id=definition_id)
        elif rule.default_assignee != current_rule.default_assignee:
            await propagate_assignment(deps=deps, definition_id=definition_id, new_assignee=rule.default_assignee)

        log_with_definition_context(
            logger,
            "info",
            "Updated task definition",
            definition_id=definition_id,
            fields=sorted(changes),
            recurrence_changed=recurrence_changed,
        )
        return definition


async def retire_definition(*, deps: EngineDeps, definition_id: str) -> TaskDefinition:
    """Soft-delete a definition and drop its future pending instances.

    Completed, approved, rejected and skipped instances, and past pending ones,
    remain as history.

    Raises:
        DefinitionNotFoundError: If the definition does not exist
        DatabaseError: If a store fails
    """
    with span("task_service.retire_definition"):
        definition = await deps.definitions.update_definition(definition_id, {"active": False})
        removed = await deps.instances.delete_future_pending(definition_id, deps.clock.today())

        log_with_definition_context(
            logger,
            "info",
            "Retired task definition",
            definition_id=definition_id,
            removed_instances=removed,
        )
        return definition


async def delete_definition(*, deps: EngineDeps, definition_id: str) -> int:
    """Permanently delete a definition together with all of its instances.

    Returns:
        Number of instances deleted

    Raises:
        DefinitionNotFoundError: If the definition does not exist
        DatabaseError: If a store fails
    """
    with span("task_service.delete_definition"):
        await deps.definitions.get_definition(definition_id)
        removed = await deps.instances.delete_all(definition_id)
        await deps.definitions.delete_definition(definition_id)

        log_with_definition_context(
            logger,
            "warning",
            "Hard deleted task definition",
            definition_id=definition_id,
            removed_instances=removed,
        )
        return removed
