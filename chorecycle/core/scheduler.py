"""Scheduler for automated jobs contributed by registered modules."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from chorecycle.core.config import settings
from chorecycle.core.module_registry import get_all_scheduled_jobs


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=settings.household_timezone)


def start_scheduler() -> None:
    """Register every module's scheduled jobs and start the scheduler.

    Job hours are household-local. This should be called once the event loop is running.
    """
    logger.info("Starting scheduler")

    for job in get_all_scheduled_jobs():
        scheduler.add_job(
            job.func,
            trigger=CronTrigger(hour=job.hour, minute=job.minute, timezone=settings.household_timezone),
            id=job.id,
            name=job.name,
            replace_existing=True,
        )
        logger.info("Scheduled %s job: daily at %d:%02d", job.id, job.hour, job.minute)

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler."""
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
