"""Tests for the instance lifecycle state machine."""

from datetime import date

import pytest

from chorecycle.core.errors import InstanceNotFoundError, InvalidTransitionError, TransitionNotPermittedError
from chorecycle.domain.task import Actor, InstanceStatus
from chorecycle.modules.tasks.state_machine import (
    TERMINAL_STATES,
    TRANSITIONS,
    calculate_points,
    can_transition,
    complete_instance,
    reassign_instance,
    transition,
)


ADMIN = Actor(id="parent", is_admin=True)
ALICE = Actor(id="alice")
BOB = Actor(id="bob")

TODAY = date(2025, 3, 1)
NEXT_WEEK = date(2025, 3, 8)


@pytest.mark.unit
class TestTransitionTable:
    """Tests for the transition graph itself."""

    def test_terminal_states(self):
        """Test completed, approved and skipped have no way out."""
        assert TERMINAL_STATES == {InstanceStatus.COMPLETED, InstanceStatus.APPROVED, InstanceStatus.SKIPPED}

    def test_every_status_has_an_entry(self):
        """Test the table covers every status."""
        assert set(TRANSITIONS) == set(InstanceStatus)

    def test_rejected_is_the_only_backward_edge(self):
        """Test only rejected can return to pending."""
        sources = [status for status in InstanceStatus if can_transition(status, InstanceStatus.PENDING)]
        assert sources == [InstanceStatus.REJECTED]


@pytest.mark.unit
class TestCalculatePoints:
    """Tests for calculate_points."""

    def test_early_completion_earns_bonus(self):
        """Test completing before the due date adds the floored bonus."""
        assert calculate_points(points=10, due_date=NEXT_WEEK, completed_on=TODAY, bonus_ratio=0.1) == 11

    def test_bonus_is_floored(self):
        """Test fractional bonuses round down."""
        assert calculate_points(points=15, due_date=NEXT_WEEK, completed_on=TODAY, bonus_ratio=0.1) == 16
        assert calculate_points(points=5, due_date=NEXT_WEEK, completed_on=TODAY, bonus_ratio=0.1) == 5

    def test_on_time_or_late_earns_base_points(self):
        """Test no bonus on or after the due date."""
        assert calculate_points(points=10, due_date=TODAY, completed_on=TODAY, bonus_ratio=0.1) == 10
        assert calculate_points(points=10, due_date=date(2025, 2, 1), completed_on=TODAY, bonus_ratio=0.1) == 10


@pytest.mark.unit
class TestCompletion:
    """Tests for completing pending instances."""

    async def test_assignee_completes_without_approval(self, deps, instance_store, make_definition):
        """Test completion records the actor, time and points."""
        definition = await make_definition(points=10)
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        updated = await transition(
            deps=deps, instance_id=instance.id, target_status=InstanceStatus.COMPLETED, actor=ALICE, notes="done"
        )

        assert updated.status == InstanceStatus.COMPLETED
        assert updated.completed_by == "alice"
        assert updated.completed_at == deps.clock.now()
        assert updated.completion_notes == "done"
        assert updated.points_awarded == 10

    async def test_early_completion_bonus(self, deps, instance_store, make_definition):
        """Test completing ahead of the due date awards the bonus."""
        definition = await make_definition(points=20)
        instance = instance_store.seed(definition.id, NEXT_WEEK, assignee="alice")

        updated = await complete_instance(deps=deps, instance_id=instance.id, actor=ALICE)

        assert updated.points_awarded == 22

    async def test_bonus_ratio_comes_from_deps(self, deps, instance_store, make_definition):
        """Test the configured bonus ratio is applied."""
        deps.early_completion_bonus_ratio = 0.5
        definition = await make_definition(points=10)
        instance = instance_store.seed(definition.id, NEXT_WEEK)

        updated = await complete_instance(deps=deps, instance_id=instance.id, actor=BOB)

        assert updated.points_awarded == 15

    async def test_requires_approval_goes_to_pending_approval(self, deps, instance_store, make_definition):
        """Test completion of an approval-gated chore awards nothing yet."""
        definition = await make_definition(require_approval=True)
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        updated = await complete_instance(deps=deps, instance_id=instance.id, actor=ALICE, notes="all clean")

        assert updated.status == InstanceStatus.PENDING_APPROVAL
        assert updated.completed_by == "alice"
        assert updated.completion_notes == "all clean"
        assert updated.points_awarded is None

    async def test_target_must_match_approval_flag(self, deps, instance_store, make_definition):
        """Test completed is refused when approval is required and vice versa."""
        gated = await make_definition(require_approval=True)
        open_ = await make_definition(title="Feed Cat")
        gated_instance = instance_store.seed(gated.id, TODAY)
        open_instance = instance_store.seed(open_.id, TODAY)

        with pytest.raises(InvalidTransitionError, match="requires pending_approval"):
            await transition(
                deps=deps, instance_id=gated_instance.id, target_status=InstanceStatus.COMPLETED, actor=ADMIN
            )
        with pytest.raises(InvalidTransitionError, match="requires completed"):
            await transition(
                deps=deps, instance_id=open_instance.id, target_status=InstanceStatus.PENDING_APPROVAL, actor=ADMIN
            )

    async def test_other_member_cannot_complete(self, deps, instance_store, make_definition):
        """Test a non-admin cannot complete someone else's instance."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        with pytest.raises(TransitionNotPermittedError, match="assigned to alice"):
            await complete_instance(deps=deps, instance_id=instance.id, actor=BOB)

        assert (await instance_store.get_instance(instance.id)).status == InstanceStatus.PENDING

    async def test_admin_completes_on_behalf(self, deps, instance_store, make_definition):
        """Test an admin may complete an instance assigned to someone else."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        updated = await complete_instance(deps=deps, instance_id=instance.id, actor=ADMIN)

        assert updated.completed_by == "parent"

    async def test_anyone_completes_unassigned(self, deps, instance_store, make_definition):
        """Test unassigned instances are open to every member."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY)

        updated = await complete_instance(deps=deps, instance_id=instance.id, actor=BOB)

        assert updated.status == InstanceStatus.COMPLETED

    async def test_cannot_complete_twice(self, deps, instance_store, make_definition):
        """Test a completed instance is terminal."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")
        await complete_instance(deps=deps, instance_id=instance.id, actor=ALICE)

        with pytest.raises(InvalidTransitionError, match="from completed"):
            await complete_instance(deps=deps, instance_id=instance.id, actor=ALICE)


@pytest.mark.unit
class TestApproval:
    """Tests for approving and rejecting completions."""

    async def _pending_approval(self, deps, instance_store, make_definition, points=10):
        definition = await make_definition(require_approval=True, points=points)
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")
        return await complete_instance(deps=deps, instance_id=instance.id, actor=ALICE)

    async def test_admin_approves(self, deps, instance_store, make_definition):
        """Test approval records the admin and awards base points."""
        instance = await self._pending_approval(deps, instance_store, make_definition, points=30)

        updated = await transition(
            deps=deps, instance_id=instance.id, target_status=InstanceStatus.APPROVED, actor=ADMIN
        )

        assert updated.status == InstanceStatus.APPROVED
        assert updated.approved_by == "parent"
        assert updated.approved_at == deps.clock.now()
        assert updated.points_awarded == 30

    async def test_member_cannot_approve(self, deps, instance_store, make_definition):
        """Test approval is admin only."""
        instance = await self._pending_approval(deps, instance_store, make_definition)

        with pytest.raises(TransitionNotPermittedError, match="approve"):
            await transition(deps=deps, instance_id=instance.id, target_status=InstanceStatus.APPROVED, actor=ALICE)

    async def test_admin_rejects_with_reason(self, deps, instance_store, make_definition):
        """Test rejection records the reason and awards nothing."""
        instance = await self._pending_approval(deps, instance_store, make_definition)

        updated = await transition(
            deps=deps,
            instance_id=instance.id,
            target_status=InstanceStatus.REJECTED,
            actor=ADMIN,
            reason="Dishes still dirty",
        )

        assert updated.status == InstanceStatus.REJECTED
        assert updated.rejection_reason == "Dishes still dirty"
        assert updated.points_awarded is None

    async def test_rejected_returns_to_pending_for_redo(self, deps, instance_store, make_definition):
        """Test the assignee can pick a rejected instance back up, clearing the old completion."""
        instance = await self._pending_approval(deps, instance_store, make_definition)
        await transition(
            deps=deps,
            instance_id=instance.id,
            target_status=InstanceStatus.REJECTED,
            actor=ADMIN,
            reason="Streaks on the glasses",
        )

        updated = await transition(
            deps=deps, instance_id=instance.id, target_status=InstanceStatus.PENDING, actor=ALICE
        )

        assert updated.status == InstanceStatus.PENDING
        assert updated.completed_by is None
        assert updated.completed_at is None
        assert updated.points_awarded is None
        assert updated.rejection_reason is None

    async def test_other_member_cannot_reopen(self, deps, instance_store, make_definition):
        """Test only the assignee or an admin may reopen a rejected instance."""
        instance = await self._pending_approval(deps, instance_store, make_definition)
        await transition(deps=deps, instance_id=instance.id, target_status=InstanceStatus.REJECTED, actor=ADMIN)

        with pytest.raises(TransitionNotPermittedError):
            await transition(deps=deps, instance_id=instance.id, target_status=InstanceStatus.PENDING, actor=BOB)

    async def test_cannot_approve_pending(self, deps, instance_store, make_definition):
        """Test approval requires a completion to approve."""
        definition = await make_definition(require_approval=True)
        instance = instance_store.seed(definition.id, TODAY)

        with pytest.raises(InvalidTransitionError, match="from pending to approved"):
            await transition(deps=deps, instance_id=instance.id, target_status=InstanceStatus.APPROVED, actor=ADMIN)


@pytest.mark.unit
class TestSkip:
    """Tests for skipping instances."""

    async def test_admin_skips(self, deps, instance_store, make_definition):
        """Test an admin can skip a pending instance for no points."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        updated = await transition(deps=deps, instance_id=instance.id, target_status=InstanceStatus.SKIPPED, actor=ADMIN)

        assert updated.status == InstanceStatus.SKIPPED
        assert updated.points_awarded is None

    async def test_member_cannot_skip(self, deps, instance_store, make_definition):
        """Test members cannot skip even their own instance."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        with pytest.raises(TransitionNotPermittedError, match="skip"):
            await transition(deps=deps, instance_id=instance.id, target_status=InstanceStatus.SKIPPED, actor=ALICE)


@pytest.mark.unit
class TestTransitionErrors:
    """Tests for lookup and concurrency failures."""

    async def test_unknown_instance(self, deps):
        """Test a missing instance raises InstanceNotFoundError."""
        with pytest.raises(InstanceNotFoundError, match="Instance not found: 4242"):
            await transition(deps=deps, instance_id="4242", target_status=InstanceStatus.SKIPPED, actor=ADMIN)

    async def test_concurrent_change_is_not_a_lost_update(self, deps, instance_store, make_definition):
        """Test a status that changed after it was read surfaces as an invalid transition."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")
        original_get = instance_store.get_instance

        async def stale_get(instance_id):
            stale = await original_get(instance_id)
            # Another request skips the instance between our read and our write
            await instance_store.update_status(
                instance_id, InstanceStatus.SKIPPED, {}, expected_status=InstanceStatus.PENDING
            )
            return stale

        instance_store.get_instance = stale_get

        with pytest.raises(InvalidTransitionError, match="changed status"):
            await complete_instance(deps=deps, instance_id=instance.id, actor=ALICE)

        instance_store.get_instance = original_get
        assert (await instance_store.get_instance(instance.id)).status == InstanceStatus.SKIPPED


@pytest.mark.unit
class TestReassignInstance:
    """Tests for reassigning a single instance."""

    async def test_admin_reassigns_and_notifies(self, deps, instance_store, notifier, make_definition):
        """Test the new assignee gets the instance and one notification."""
        definition = await make_definition(title="Take Out Trash")
        instance = instance_store.seed(definition.id, NEXT_WEEK, assignee="alice")

        updated = await reassign_instance(deps=deps, instance_id=instance.id, assignee="bob", actor=ADMIN)

        assert updated.assignee == "bob"
        assert notifier.calls == [
            {
                "assignee_id": "bob",
                "definition_title": "Take Out Trash",
                "instance_count": 1,
                "first_due_date": NEXT_WEEK,
            }
        ]

    async def test_member_cannot_reassign(self, deps, instance_store, make_definition):
        """Test reassignment is admin only."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        with pytest.raises(TransitionNotPermittedError, match="reassign"):
            await reassign_instance(deps=deps, instance_id=instance.id, assignee="bob", actor=ALICE)

    async def test_only_pending_can_be_reassigned(self, deps, instance_store, make_definition):
        """Test finished instances keep their assignee."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, status=InstanceStatus.COMPLETED, assignee="alice")

        with pytest.raises(InvalidTransitionError, match="it is completed"):
            await reassign_instance(deps=deps, instance_id=instance.id, assignee="bob", actor=ADMIN)

    async def test_unassign_does_not_notify(self, deps, instance_store, notifier, make_definition):
        """Test clearing the assignee sends nothing."""
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        updated = await reassign_instance(deps=deps, instance_id=instance.id, assignee=None, actor=ADMIN)

        assert updated.assignee is None
        assert notifier.calls == []

    async def test_notification_failure_keeps_reassignment(self, deps, instance_store, notifier, make_definition):
        """Test a failing notifier does not undo the reassignment."""
        notifier.fail_with = ConnectionError("push gateway down")
        definition = await make_definition()
        instance = instance_store.seed(definition.id, TODAY, assignee="alice")

        updated = await reassign_instance(deps=deps, instance_id=instance.id, assignee="bob", actor=ADMIN)

        assert updated.assignee == "bob"
        assert (await instance_store.get_instance(instance.id)).assignee == "bob"
