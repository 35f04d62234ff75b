"""Request and response bodies for the HTTP API."""

from pydantic import BaseModel, Field

from src.domain.actor import Actor, Role
from src.models.service_models import RoomTaskGroup, TaskSummary


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str
    full_name: str | None = None


class SignInRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    """Bearer token and the actor it resolves to."""

    token: str
    actor: Actor


class PasswordChangeRequest(BaseModel):
    new_password: str


class PushTokenRequest(BaseModel):
    push_token: str | None = None


class CompletionRequest(BaseModel):
    completed: bool


class AssigneeRequest(BaseModel):
    user_id: str | None = None


class RoomAssignmentRequest(BaseModel):
    room_id: str | None = None


class NotesRequest(BaseModel):
    notes: str


class RoleChangeRequest(BaseModel):
    role: Role


class NotificationPreference(BaseModel):
    enabled: bool


class GroupedTasksResponse(BaseModel):
    """Tasks grouped by room with overall counts."""

    groups: list[RoomTaskGroup]
    summary: TaskSummary
