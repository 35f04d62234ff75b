"""Task domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


NULLABLE_TASK_FIELDS = frozenset({"notes", "assigned_to", "room_id"})


class Priority(StrEnum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    completed: bool = Field(default=False, description="Whether the task is done")
    estimated_time: str = Field(default="", description="Free-text duration label (e.g. '45 mins')")
    notes: str | None = Field(default=None, description="Internal coordination notes")
    assigned_to: str | None = Field(default=None, description="Assigned user ID")
    room_id: str | None = Field(default=None, description="Room ID, None when uncategorized")
    created_by: str = Field(..., description="User ID of the admin who created the task")
    room_name: str | None = Field(default=None, description="Room display name (enrichment, not persisted)")

    @property
    def resolved_assignee(self) -> str:
        """Assigned user, falling back to the creator."""
        return self.assigned_to or self.created_by


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title cannot be empty")
    return value


class TaskCreate(BaseModel):
    """Fields accepted when creating a task."""

    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    estimated_time: str = Field(default="", description="Free-text duration label")
    notes: str | None = Field(default=None, description="Internal coordination notes")
    assigned_to: str | None = Field(default=None, description="Assignee; defaults to the creator")
    room_id: str | None = Field(default=None, description="Room to file the task under")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is not blank."""
        return _require_text(v)


class TaskUpdate(BaseModel):
    """Partial task update. Only explicitly provided fields are written."""

    title: str | None = None
    description: str | None = None
    priority: Priority | None = None
    completed: bool | None = None
    estimated_time: str | None = None
    notes: str | None = None
    assigned_to: str | None = None
    room_id: str | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        """Validate title is not blank when provided."""
        return None if v is None else _require_text(v)

    def to_record(self) -> dict[str, object]:
        """Store payload holding only the explicitly set fields.

        An explicit None is kept only for nullable fields; elsewhere it means "unchanged".
        """
        dumped = self.model_dump(include=set(self.model_fields_set), mode="json")
        return {key: value for key, value in dumped.items() if value is not None or key in NULLABLE_TASK_FIELDS}
