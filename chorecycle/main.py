"""chorecycle - recurring household chores materialized into dated instances.

Runs the background worker: schema bootstrap, an initial rollover, then the daily
rollover job on the household calendar.
"""

import asyncio
import logging
import sys

from chorecycle.core.config import constants, settings
from chorecycle.core.db_client import close_connection
from chorecycle.core.logging import configure_logfire
from chorecycle.core.scheduler import start_scheduler, stop_scheduler
from chorecycle.core.scheduler_tracker import job_tracker
from chorecycle.core.schema import init_db
from chorecycle.modules.tasks.scheduler_jobs import run_rollover_job


logger = logging.getLogger(__name__)


async def start_worker() -> None:
    """Bootstrap the schema and, when rollover is enabled, catch up and schedule it."""
    configure_logfire()
    await init_db()
    logger.info(
        "startup_validation",
        extra={"database": settings.sqlite_db_path, "timezone": settings.household_timezone},
    )

    if not settings.enable_rollover_job:
        logger.info("Rollover job disabled, skipping catch-up and scheduler")
        return

    # Catch up immediately in case the process was down over a rollover
    await run_rollover_job()
    start_scheduler()


async def stop_worker() -> None:
    """Stop the scheduler and release the database connection."""
    if settings.enable_rollover_job:
        stop_scheduler()
    await close_connection()
    logger.info("Shutdown complete", extra=await job_tracker.get_job_status(constants.ROLLOVER_JOB_ID))


async def run() -> None:
    """Start the worker and block until cancelled."""
    await start_worker()
    try:
        await asyncio.Event().wait()
    finally:
        await stop_worker()


def main() -> None:
    """Console entry point."""
    logging.basicConfig(stream=sys.stdout, level=logging.INFO)
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


if __name__ == "__main__":
    main()
