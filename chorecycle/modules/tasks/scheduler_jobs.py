"""Scheduled jobs for the tasks module."""

import logging

from pydantic import BaseModel

from chorecycle.core.config import constants, settings
from chorecycle.core.errors import DefinitionNotFoundError, InvalidRecurrenceError
from chorecycle.core.logging import span
from chorecycle.core.module import ScheduledJob
from chorecycle.core.scheduler_tracker import retry_job_with_backoff
from chorecycle.modules.tasks.deps import EngineDeps, build_default_deps
from chorecycle.modules.tasks.materializer import materialize


logger = logging.getLogger(__name__)


class RolloverSummary(BaseModel):
    """Outcome of one rollover run."""

    definitions: int = 0
    inserted: int = 0
    skipped: list[str] = []


async def rollover_instances(deps: EngineDeps | None = None) -> RolloverSummary:
    """Extend every active definition's instances to the current horizon.

    Runs daily. Assignees are not notified about rolled-over instances. A definition
    whose stored rule is invalid, or that disappears mid-run, is logged and skipped;
    storage failures propagate so the job can be retried.
    """
    logger.info("Running instance rollover job")
    deps = deps or build_default_deps()
    summary = RolloverSummary()

    with span("scheduler_jobs.rollover_instances"):
        for definition_id in await deps.definitions.list_active_definition_ids():
            try:
                definition = await deps.definitions.get_definition(definition_id)
                summary.inserted += await materialize(deps=deps, definition=definition, notify=False)
            except (InvalidRecurrenceError, DefinitionNotFoundError) as e:
                logger.warning("Skipping definition %s during rollover: %s", definition_id, e)
                summary.skipped.append(definition_id)
                continue
            summary.definitions += 1

    logger.info(
        "Completed instance rollover job: %d instances across %d definitions (%d skipped)",
        summary.inserted,
        summary.definitions,
        len(summary.skipped),
    )
    return summary


async def run_rollover_job() -> None:
    """Scheduled entry point: rollover with retries and failure tracking."""
    await retry_job_with_backoff(rollover_instances, constants.ROLLOVER_JOB_ID)


def get_scheduled_jobs() -> list[ScheduledJob]:
    """Return scheduled jobs for tasks module."""
    if not settings.enable_rollover_job:
        return []

    return [
        ScheduledJob(
            id=constants.ROLLOVER_JOB_ID,
            name="Roll Task Instances Forward",
            hour=settings.rollover_hour,
            func=run_rollover_job,
        ),
    ]
