"""Pydantic models for creating records in database."""

from datetime import date, time

from pydantic import BaseModel, Field, field_validator

from chorecycle.core.config import Constants
from chorecycle.domain.task import RecurrenceType


class TaskDefinitionCreate(BaseModel):
    """Pydantic model for creating a task definition record."""

    title: str = Field(..., description="Task title")
    description: str | None = Field(None, description="Detailed task description")
    category_id: str | None = Field(None, description="Category ID")
    points: int = Field(default=Constants.DEFAULT_POINTS, ge=0, description="Points awarded on completion")
    due_time: time | None = Field(None, description="Time of day the task is due")
    require_approval: bool = Field(default=False, description="Completion must be approved by an admin")
    recurrence_type: RecurrenceType | str = Field(default=RecurrenceType.ONCE, description="Recurrence kind")
    recurrence_interval: int = Field(default=1, description="Step multiple for the recurrence")
    start_date: date | None = Field(None, description="First due date (defaults to today)")
    end_date: date | None = Field(None, description="Last possible due date")
    default_assignee: str | None = Field(None, description="Member ID new instances are assigned to")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is at least two characters once trimmed."""
        title = v.strip()
        if len(title) < Constants.MIN_TITLE_LENGTH:
            msg = f"Title is required (min {Constants.MIN_TITLE_LENGTH} characters)"
            raise ValueError(msg)
        return title
