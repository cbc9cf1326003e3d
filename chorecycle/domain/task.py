"""Task definition, recurrence rule and instance models."""

from datetime import date, datetime, time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from chorecycle.core.errors import InvalidRecurrenceError


class RecurrenceType(StrEnum):
    """How often a definition repeats."""

    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    INTERVAL_DAYS = "interval_days"


# Legacy names for a fixed N-day interval
_RECURRENCE_ALIASES = {"custom": RecurrenceType.INTERVAL_DAYS, "x_days": RecurrenceType.INTERVAL_DAYS}


class InstanceStatus(StrEnum):
    """Task instance lifecycle state."""

    PENDING = "pending"
    COMPLETED = "completed"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class RecurrenceRule(BaseModel):
    """Recurrence rule embedded in a task definition."""

    type: RecurrenceType = Field(default=RecurrenceType.ONCE, description="Recurrence kind")
    interval: int = Field(default=1, ge=1, description="Step multiple (days for interval_days)")
    start_date: date = Field(..., description="First calendar date expansion may produce")
    end_date: date | None = Field(default=None, description="Last calendar date expansion may produce")
    default_assignee: str | None = Field(default=None, description="Member ID given to new instances")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _RECURRENCE_ALIASES.get(value.lower(), value.lower())
        return value

    @model_validator(mode="after")
    def _check_bounds(self) -> "RecurrenceRule":
        if self.end_date is not None and self.end_date < self.start_date:
            msg = f"end_date {self.end_date} is before start_date {self.start_date}"
            raise ValueError(msg)
        return self


def build_recurrence_rule(**fields: Any) -> RecurrenceRule:
    """Validate raw recurrence fields into a RecurrenceRule.

    Raises:
        InvalidRecurrenceError: If any field is missing or malformed
    """
    try:
        return RecurrenceRule(**fields)
    except ValidationError as e:
        raise InvalidRecurrenceError(f"Invalid recurrence rule: {e}") from e


class TaskDefinition(BaseModel):
    """Reusable description of a recurring household task."""

    id: str = Field(..., description="Unique definition ID from database")
    title: str = Field(..., description="Task title (e.g., 'Empty Dishwasher')")
    description: str | None = Field(default=None, description="Detailed task description")
    category_id: str | None = Field(default=None, description="Category ID")
    points: int = Field(default=10, ge=0, description="Points awarded on completion")
    due_time: time | None = Field(default=None, description="Time of day the task is due")
    require_approval: bool = Field(default=False, description="Completion must be approved by an admin")
    active: bool = Field(default=True, description="False once the definition is retired")
    recurrence: RecurrenceRule = Field(..., description="When instances are due")

    @property
    def default_assignee(self) -> str | None:
        """Member that new instances are assigned to."""
        return self.recurrence.default_assignee


class TaskInstance(BaseModel):
    """One dated occurrence of a task definition."""

    id: str = Field(..., description="Unique instance ID from database")
    definition_id: str = Field(..., description="Owning definition ID")
    due_date: date = Field(..., description="Calendar date the instance is due")
    assignee: str | None = Field(default=None, description="Assigned member ID")
    status: InstanceStatus = Field(default=InstanceStatus.PENDING, description="Lifecycle state")
    completed_by: str | None = Field(default=None, description="Member who completed the instance")
    completed_at: datetime | None = Field(default=None, description="Completion timestamp")
    completion_notes: str | None = Field(default=None, description="Notes left on completion")
    points_awarded: int | None = Field(default=None, description="Points credited for this instance")
    approved_by: str | None = Field(default=None, description="Admin who approved the instance")
    approved_at: datetime | None = Field(default=None, description="Approval timestamp")
    rejection_reason: str | None = Field(default=None, description="Why the completion was rejected")


class Actor(BaseModel):
    """Member performing a lifecycle action.

    is_admin is decided by the caller's permission layer.
    """

    id: str
    is_admin: bool = False
