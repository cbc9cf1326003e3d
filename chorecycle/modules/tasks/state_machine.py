"""Lifecycle state machine for a single task instance."""

import logging
import math
from datetime import date
from typing import Any

from chorecycle.core.errors import InvalidTransitionError, TransitionNotPermittedError
from chorecycle.core.logging import log_with_context, span
from chorecycle.domain.task import Actor, InstanceStatus, TaskDefinition, TaskInstance
from chorecycle.modules.tasks.deps import EngineDeps
from chorecycle.services.notification_service import notify_assigned_safely


logger = logging.getLogger(__name__)


# Allowed transitions; rejected -> pending is the only backward edge
TRANSITIONS: dict[InstanceStatus, set[InstanceStatus]] = {
    InstanceStatus.PENDING: {InstanceStatus.COMPLETED, InstanceStatus.PENDING_APPROVAL, InstanceStatus.SKIPPED},
    InstanceStatus.PENDING_APPROVAL: {InstanceStatus.APPROVED, InstanceStatus.REJECTED},
    InstanceStatus.REJECTED: {InstanceStatus.PENDING},
    InstanceStatus.COMPLETED: set(),
    InstanceStatus.APPROVED: set(),
    InstanceStatus.SKIPPED: set(),
}

TERMINAL_STATES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)


def can_transition(current: InstanceStatus, target: InstanceStatus) -> bool:
    """Whether target is a direct successor of current."""
    return target in TRANSITIONS[current]


def calculate_points(*, points: int, due_date: date, completed_on: date, bonus_ratio: float) -> int:
    """Points for a completion, including the early-completion bonus.

    Finishing before the due date earns floor(points * bonus_ratio) on top.
    """
    bonus = math.floor(points * bonus_ratio) if completed_on < due_date else 0
    return points + bonus


def _require_admin(actor: Actor, action: str, instance_id: str) -> None:
    if not actor.is_admin:
        msg = f"Only an admin may {action} instance {instance_id}"
        raise TransitionNotPermittedError(msg)


def _check_can_complete(instance: TaskInstance, actor: Actor) -> None:
    if actor.is_admin or instance.assignee is None or instance.assignee == actor.id:
        return
    msg = f"Instance {instance.id} is assigned to {instance.assignee}, not {actor.id}"
    raise TransitionNotPermittedError(msg)


def _completion_target(definition: TaskDefinition) -> InstanceStatus:
    return InstanceStatus.PENDING_APPROVAL if definition.require_approval else InstanceStatus.COMPLETED


def _build_metadata(  # noqa: PLR0913
    *,
    deps: EngineDeps,
    instance: TaskInstance,
    definition: TaskDefinition,
    target: InstanceStatus,
    actor: Actor,
    notes: str | None,
    reason: str | None,
) -> dict[str, Any]:
    """Guard the transition and return the fields it writes."""
    now = deps.clock.now()

    match target:
        case InstanceStatus.COMPLETED | InstanceStatus.PENDING_APPROVAL:
            _check_can_complete(instance, actor)
            expected = _completion_target(definition)
            if target != expected:
                msg = (
                    f"Cannot move instance {instance.id} to {target}: "
                    f"definition {definition.id} requires {expected}"
                )
                raise InvalidTransitionError(msg)

            metadata: dict[str, Any] = {
                "completed_by": actor.id,
                "completed_at": now,
                "completion_notes": notes,
            }
            if target == InstanceStatus.COMPLETED:
                metadata["points_awarded"] = calculate_points(
                    points=definition.points,
                    due_date=instance.due_date,
                    completed_on=now.date(),
                    bonus_ratio=deps.early_completion_bonus_ratio,
                )
            return metadata

        case InstanceStatus.APPROVED:
            _require_admin(actor, "approve", instance.id)
            return {"approved_by": actor.id, "approved_at": now, "points_awarded": definition.points}

        case InstanceStatus.REJECTED:
            _require_admin(actor, "reject", instance.id)
            return {"rejection_reason": reason, "points_awarded": None}

        case InstanceStatus.SKIPPED:
            _require_admin(actor, "skip", instance.id)
            return {"points_awarded": None}

        case InstanceStatus.PENDING:
            # Returned for redo: the assignee may pick it back up, or an admin may reopen it
            _check_can_complete(instance, actor)
            return {
                "completed_by": None,
                "completed_at": None,
                "completion_notes": None,
                "points_awarded": None,
                "approved_by": None,
                "approved_at": None,
                "rejection_reason": None,
            }

    msg = f"Unsupported target status: {target}"
    raise InvalidTransitionError(msg)


async def _apply_transition(  # noqa: PLR0913
    *,
    deps: EngineDeps,
    instance: TaskInstance,
    definition: TaskDefinition,
    target: InstanceStatus,
    actor: Actor,
    notes: str | None = None,
    reason: str | None = None,
) -> TaskInstance:
    if not can_transition(instance.status, target):
        msg = f"Cannot move instance {instance.id} from {instance.status} to {target}"
        raise InvalidTransitionError(msg)

    metadata = _build_metadata(
        deps=deps,
        instance=instance,
        definition=definition,
        target=target,
        actor=actor,
        notes=notes,
        reason=reason,
    )

    updated = await deps.instances.update_status(instance.id, target, metadata, expected_status=instance.status)
    if updated is None:
        msg = f"Instance {instance.id} changed status while moving to {target}"
        raise InvalidTransitionError(msg)

    log_with_context(
        logger,
        "info",
        "Transitioned instance",
        instance_id=instance.id,
        definition_id=instance.definition_id,
        from_status=instance.status.value,
        to_status=target.value,
        actor_id=actor.id,
        points_awarded=updated.points_awarded,
    )
    return updated


async def transition(  # noqa: PLR0913
    *,
    deps: EngineDeps,
    instance_id: str,
    target_status: InstanceStatus,
    actor: Actor,
    notes: str | None = None,
    reason: str | None = None,
) -> TaskInstance:
    """Move an instance to target_status.

    Args:
        deps: Engine collaborators
        instance_id: Instance to move
        target_status: Desired status
        actor: Member performing the action (admin flag decided by the caller)
        notes: Completion notes (completed / pending_approval)
        reason: Rejection reason (rejected)

    Returns:
        The updated instance

    Raises:
        InstanceNotFoundError: If the instance does not exist
        InvalidTransitionError: If target_status is not reachable from the current status
        TransitionNotPermittedError: If the actor may not perform this transition
    """
    with span("task_state_machine.transition"):
        instance = await deps.instances.get_instance(instance_id)
        definition = await deps.definitions.get_definition(instance.definition_id)
        return await _apply_transition(
            deps=deps,
            instance=instance,
            definition=definition,
            target=target_status,
            actor=actor,
            notes=notes,
            reason=reason,
        )


async def complete_instance(
    *,
    deps: EngineDeps,
    instance_id: str,
    actor: Actor,
    notes: str | None = None,
) -> TaskInstance:
    """Complete a pending instance, routing it through approval when the definition requires it."""
    with span("task_state_machine.complete_instance"):
        instance = await deps.instances.get_instance(instance_id)
        definition = await deps.definitions.get_definition(instance.definition_id)
        return await _apply_transition(
            deps=deps,
            instance=instance,
            definition=definition,
            target=_completion_target(definition),
            actor=actor,
            notes=notes,
        )


async def reassign_instance(
    *,
    deps: EngineDeps,
    instance_id: str,
    assignee: str | None,
    actor: Actor,
) -> TaskInstance:
    """Give one pending instance to a different member (admin only).

    The new assignee is notified; a notification failure does not undo the reassignment.

    Raises:
        InstanceNotFoundError: If the instance does not exist
        InvalidTransitionError: If the instance is no longer pending
        TransitionNotPermittedError: If the actor is not an admin
    """
    with span("task_state_machine.reassign_instance"):
        instance = await deps.instances.get_instance(instance_id)
        _require_admin(actor, "reassign", instance.id)
        if instance.status != InstanceStatus.PENDING:
            msg = f"Cannot reassign instance {instance.id}: it is {instance.status}"
            raise InvalidTransitionError(msg)

        updated = await deps.instances.update_assignee(instance.id, assignee, expected_status=InstanceStatus.PENDING)
        if updated is None:
            msg = f"Instance {instance.id} changed status while being reassigned"
            raise InvalidTransitionError(msg)

        logger.info(
            "Reassigned instance %s from %s to %s",
            instance.id,
            instance.assignee or "unassigned",
            assignee or "unassigned",
        )

        if assignee and assignee != instance.assignee:
            definition = await deps.definitions.get_definition(instance.definition_id)
            await notify_assigned_safely(
                deps.notifier,
                assignee_id=assignee,
                definition_title=definition.title,
                instance_count=1,
                first_due_date=instance.due_date,
            )

        return updated
