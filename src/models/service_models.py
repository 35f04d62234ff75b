"""Pydantic models for service layer return types.

These models provide type safety at service boundaries. Task operations never
raise store errors; they report failure through ``error`` so callers can show
a message and, for optimistic updates, reload the list.
"""

from pydantic import BaseModel, Field

from src.core.errors import ErrorCategory
from src.domain.notification import NotificationIntent
from src.domain.task import Task


class TaskResult(BaseModel):
    """Outcome of a single-task operation."""

    task: Task | None = None
    error: ErrorCategory | None = None
    message: str | None = None
    intents: list[NotificationIntent] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class TaskListResult(BaseModel):
    """Outcome of a task listing."""

    tasks: list[Task] = Field(default_factory=list)
    error: ErrorCategory | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DeleteResult(BaseModel):
    """Outcome of a delete operation."""

    deleted: bool = False
    error: ErrorCategory | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class NotificationResult(BaseModel):
    """Result of sending a notification to one recipient."""

    user_id: str
    push_token: str
    success: bool
    error: str | None = None


class RoomTaskGroup(BaseModel):
    """Tasks filed under one room, incomplete tasks first."""

    room_id: str | None
    room_name: str
    tasks: list[Task]
    incomplete_count: int


class TaskSummary(BaseModel):
    """Remaining/completed counts for a task list."""

    total: int
    remaining: int
    completed: int
