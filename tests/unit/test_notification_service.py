"""Unit tests for notification_service module."""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from chorecycle.services import notification_service


@pytest.mark.unit
class TestBuildAssignmentMessage:
    """Tests for build_assignment_message."""

    def test_multiple_instances(self):
        """Test a batch is summarized by count."""
        message = notification_service.build_assignment_message(
            definition_title="Dishes", instance_count=3, first_due_date=date(2025, 3, 1)
        )

        assert message == '"Dishes" has been assigned to you (3 upcoming instances)'

    def test_single_instance(self):
        """Test a single instance shows its due date."""
        message = notification_service.build_assignment_message(
            definition_title="Dishes", instance_count=1, first_due_date=date(2025, 3, 1)
        )

        assert message == '"Dishes" has been assigned to you (due Sat, Mar 1)'


@pytest.mark.unit
class TestNotifyAssignedSafely:
    """Tests for notify_assigned_safely."""

    async def test_dispatches_to_notifier(self):
        """Test the notifier receives the assignment."""
        notifier = AsyncMock()

        sent = await notification_service.notify_assigned_safely(
            notifier,
            assignee_id="alice",
            definition_title="Dishes",
            instance_count=2,
            first_due_date=date(2025, 3, 1),
        )

        assert sent is True
        notifier.notify_assigned.assert_awaited_once_with(
            assignee_id="alice",
            definition_title="Dishes",
            instance_count=2,
            first_due_date=date(2025, 3, 1),
        )

    async def test_no_notifier(self):
        """Test a missing notifier is skipped quietly."""
        sent = await notification_service.notify_assigned_safely(
            None,
            assignee_id="alice",
            definition_title="Dishes",
            instance_count=2,
            first_due_date=date(2025, 3, 1),
        )

        assert sent is False

    async def test_failure_is_absorbed_and_logged(self, caplog):
        """Test a raising notifier is logged and reported as not sent."""
        notifier = AsyncMock()
        notifier.notify_assigned.side_effect = ConnectionError("SMTP unreachable")

        sent = await notification_service.notify_assigned_safely(
            notifier,
            assignee_id="alice",
            definition_title="Dishes",
            instance_count=2,
            first_due_date=date(2025, 3, 1),
        )

        assert sent is False
        assert "Failed to notify assignee" in caplog.text


@pytest.mark.unit
class TestLoggingNotifier:
    """Tests for LoggingNotifier."""

    async def test_records_rendered_message(self):
        """Test the notifier keeps the message it would deliver."""
        notifier = notification_service.LoggingNotifier()

        await notifier.notify_assigned(
            assignee_id="bob",
            definition_title="Vacuum",
            instance_count=4,
            first_due_date=date(2025, 3, 1),
        )

        assert notifier.sent == [("bob", '"Vacuum" has been assigned to you (4 upcoming instances)')]
