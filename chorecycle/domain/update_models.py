"""Update models for database operations."""

from datetime import date, time

from pydantic import BaseModel, Field, field_validator

from chorecycle.core.config import Constants
from chorecycle.domain.task import RecurrenceType


# Fields whose change invalidates already-materialized future instances
RECURRENCE_FIELDS = frozenset({"recurrence_type", "recurrence_interval", "start_date", "end_date"})


class TaskDefinitionUpdate(BaseModel):
    """Partial update payload for a task definition.

    Only fields explicitly set are applied, so default_assignee=None unassigns
    while leaving it out keeps the current assignee.
    """

    title: str | None = None
    description: str | None = None
    category_id: str | None = None
    points: int | None = Field(None, ge=0)
    due_time: time | None = None
    require_approval: bool | None = None
    recurrence_type: RecurrenceType | str | None = None
    recurrence_interval: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    default_assignee: str | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """Validate title is at least two characters once trimmed."""
        if v is None:
            return v
        title = v.strip()
        if len(title) < Constants.MIN_TITLE_LENGTH:
            msg = f"Title is required (min {Constants.MIN_TITLE_LENGTH} characters)"
            raise ValueError(msg)
        return title

    def changes(self) -> dict:
        """Fields the caller explicitly set."""
        return self.model_dump(include=self.model_fields_set)
