"""Notification hook for newly assigned chore work.

Delivery (in-app, email, push) lives outside the engine. The engine only talks to a
Notifier and never lets a delivery failure undo or block the write it followed.
"""

import logging
from datetime import date
from typing import Protocol

from chorecycle.core.logging import span


logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Collaborator told about work assigned to a member."""

    async def notify_assigned(
        self,
        *,
        assignee_id: str,
        definition_title: str,
        instance_count: int,
        first_due_date: date,
    ) -> None:
        """Tell a member that instances of a chore were assigned to them."""
        ...


def build_assignment_message(*, definition_title: str, instance_count: int, first_due_date: date) -> str:
    """Render the one-line summary sent for a batch of new assignments.

    Usage:
        build_assignment_message(definition_title="Dishes", instance_count=3, first_due_date=date(2025, 3, 1))
        # '"Dishes" has been assigned to you (3 upcoming instances)'
    """
    if instance_count > 1:
        detail = f"{instance_count} upcoming instances"
    else:
        detail = f"due {first_due_date.strftime('%a, %b')} {first_due_date.day}"
    return f'"{definition_title}" has been assigned to you ({detail})'


async def notify_assigned_safely(
    notifier: Notifier | None,
    *,
    assignee_id: str,
    definition_title: str,
    instance_count: int,
    first_due_date: date,
) -> bool:
    """Dispatch an assignment notification, absorbing any failure.

    Returns:
        True if the notifier accepted the notification, False if it was skipped or failed
    """
    if notifier is None:
        return False

    with span("notification_service.notify_assigned"):
        try:
            await notifier.notify_assigned(
                assignee_id=assignee_id,
                definition_title=definition_title,
                instance_count=instance_count,
                first_due_date=first_due_date,
            )
        except Exception as e:
            logger.error(
                "Failed to notify assignee",
                extra={"assignee_id": assignee_id, "definition_title": definition_title, "error": str(e)},
            )
            return False

        logger.info(
            "Notified assignee of new work",
            extra={"assignee_id": assignee_id, "instance_count": instance_count, "first_due_date": str(first_due_date)},
        )
        return True


class LoggingNotifier:
    """Notifier that only records the message it would deliver."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def notify_assigned(
        self,
        *,
        assignee_id: str,
        definition_title: str,
        instance_count: int,
        first_due_date: date,
    ) -> None:
        message = build_assignment_message(
            definition_title=definition_title,
            instance_count=instance_count,
            first_due_date=first_due_date,
        )
        self.sent.append((assignee_id, message))
        logger.info("Assignment notification", extra={"assignee_id": assignee_id, "message": message})
