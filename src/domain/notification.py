"""Notification intent models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from src.domain.actor import Role


class NotificationAudience(StrEnum):
    """Who a notification intent is addressed to."""

    ROLES = "roles"
    USERS = "users"


class NotificationIntent(BaseModel):
    """A notification the service layer wants delivered.

    Intents are returned alongside operation results and delivered separately,
    so a failed delivery never affects the operation that produced it.
    """

    audience: NotificationAudience
    roles: list[Role] = Field(default_factory=list)
    user_ids: list[str] = Field(default_factory=list)
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_roles(
        cls, roles: list[Role], *, title: str, body: str, data: dict[str, Any] | None = None
    ) -> "NotificationIntent":
        return cls(audience=NotificationAudience.ROLES, roles=roles, title=title, body=body, data=data or {})

    @classmethod
    def for_users(
        cls, user_ids: list[str], *, title: str, body: str, data: dict[str, Any] | None = None
    ) -> "NotificationIntent":
        return cls(audience=NotificationAudience.USERS, user_ids=user_ids, title=title, body=body, data=data or {})
