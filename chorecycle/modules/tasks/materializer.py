"""Instance materialization: create the instances a definition's rule calls for."""

import logging
from datetime import date

from chorecycle.core.errors import DuplicateInstanceError
from chorecycle.core.logging import log_with_definition_context, span
from chorecycle.domain.task import RecurrenceType, TaskDefinition
from chorecycle.modules.tasks.deps import EngineDeps
from chorecycle.modules.tasks.instance_store import InstanceStore
from chorecycle.modules.tasks.recurrence import expand
from chorecycle.services.notification_service import notify_assigned_safely


logger = logging.getLogger(__name__)


async def _insert_one_by_one(
    store: InstanceStore,
    definition_id: str,
    rows: list[tuple[date, str | None]],
) -> list[date]:
    """Insert rows individually, skipping any that already exist."""
    inserted: list[date] = []
    for due_date, assignee in rows:
        try:
            count = await store.insert_many(definition_id, [(due_date, assignee)])
        except DuplicateInstanceError:
            logger.debug(
                "Instance already materialized",
                extra={"definition_id": definition_id, "due_date": str(due_date)},
            )
            continue
        if count:
            inserted.append(due_date)
    return inserted


async def materialize(
    *,
    deps: EngineDeps,
    definition: TaskDefinition,
    horizon_days: int | None = None,
    notify: bool = True,
) -> int:
    """Create the missing instances of a definition within the horizon.

    Candidate due dates come from the recurrence rule; dates that already have an
    instance (in any status) are left alone, so calling this twice in a row inserts
    nothing the second time.

    Args:
        deps: Engine collaborators
        definition: Definition to materialize
        horizon_days: Days past today to cover for rules without an end date
            (defaults to deps.horizon_days)
        notify: Tell the default assignee about the new instances (once per call)

    Returns:
        Number of instances actually inserted

    Raises:
        InvalidRecurrenceError: If the definition's rule cannot be expanded
        DatabaseError: If the instance store fails
    """
    with span("materializer.materialize"):
        if not definition.active:
            log_with_definition_context(logger, "debug", "Skipping retired definition", definition_id=definition.id)
            return 0

        horizon = deps.horizon_days if horizon_days is None else horizon_days
        candidates = expand(definition.recurrence, clock=deps.clock, horizon_days=horizon)
        if not candidates:
            return 0

        rule = definition.recurrence
        if rule.type == RecurrenceType.ONCE:
            # A once rule is satisfied by any instance since its start, whatever day it landed on
            if await deps.instances.find_existing(definition.id, rule.start_date, candidates[-1]):
                log_with_definition_context(
                    logger, "debug", "Once rule already materialized", definition_id=definition.id
                )
                return 0

        existing = await deps.instances.find_existing(definition.id, candidates[0], candidates[-1])
        assignee = definition.default_assignee
        rows = [(due_date, assignee) for due_date in candidates if due_date not in existing]
        if not rows:
            log_with_definition_context(
                logger, "debug", "All candidate instances already exist", definition_id=definition.id
            )
            return 0

        try:
            inserted_count = await deps.instances.insert_many(definition.id, rows)
            inserted = [due_date for due_date, _ in rows]
        except DuplicateInstanceError:
            # A concurrent call got there first for at least one date
            log_with_definition_context(
                logger,
                "info",
                "Batch insert collided with existing instances, retrying row by row",
                definition_id=definition.id,
            )
            inserted = await _insert_one_by_one(deps.instances, definition.id, rows)
            inserted_count = len(inserted)

        log_with_definition_context(
            logger,
            "info",
            "Materialized instances",
            definition_id=definition.id,
            inserted=inserted_count,
            candidates=len(candidates),
        )

        if notify and assignee and inserted_count > 0:
            await notify_assigned_safely(
                deps.notifier,
                assignee_id=assignee,
                definition_title=definition.title,
                instance_count=inserted_count,
                first_due_date=min(inserted),
            )

        return inserted_count
