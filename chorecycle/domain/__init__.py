"""Domain models and DTOs."""

from chorecycle.domain.task import (
    Actor,
    InstanceStatus,
    RecurrenceRule,
    RecurrenceType,
    TaskDefinition,
    TaskInstance,
    build_recurrence_rule,
)


__all__ = [
    "Actor",
    "InstanceStatus",
    "RecurrenceRule",
    "RecurrenceType",
    "TaskDefinition",
    "TaskInstance",
    "build_recurrence_rule",
]
