"""Regeneration and assignee propagation for already-materialized definitions.

Both operations only ever touch instances that are still pending and due today or
later. Anything completed, approved, rejected or skipped, and anything in the past,
is history and stays exactly as it is.
"""

import logging

from chorecycle.core.errors import DefinitionNotFoundError
from chorecycle.core.logging import log_with_definition_context, span
from chorecycle.modules.tasks.deps import EngineDeps
from chorecycle.modules.tasks.materializer import materialize


logger = logging.getLogger(__name__)


async def regenerate(*, deps: EngineDeps, definition_id: str) -> int:
    """Discard future pending instances and re-materialize them from the current rule.

    Assignees are not notified again.

    Returns:
        Number of instances created

    Raises:
        DefinitionNotFoundError: If the definition does not exist or is retired
        DatabaseError: If a store fails
    """
    with span("regeneration.regenerate"):
        definition = await deps.definitions.get_definition(definition_id)
        if not definition.active:
            raise DefinitionNotFoundError(f"Definition {definition_id} is retired")

        today = deps.clock.today()
        deleted = await deps.instances.delete_future_pending(definition_id, today)
        inserted = await materialize(deps=deps, definition=definition, notify=False)

        log_with_definition_context(
            logger,
            "info",
            "Regenerated instances",
            definition_id=definition_id,
            deleted=deleted,
            inserted=inserted,
            from_date=str(today),
        )
        return inserted


async def propagate_assignment(*, deps: EngineDeps, definition_id: str, new_assignee: str | None) -> int:
    """Push a definition's new default assignee onto its future pending instances.

    Returns:
        Number of instances reassigned
    """
    with span("regeneration.propagate_assignment"):
        today = deps.clock.today()
        affected = await deps.instances.update_future_pending_assignee(definition_id, today, new_assignee)

        log_with_definition_context(
            logger,
            "info",
            "Propagated assignee to future instances",
            definition_id=definition_id,
            assignee=new_assignee or "unassigned",
            affected=affected,
        )
        return affected
