"""Profile domain models."""

import re
from datetime import date

from pydantic import BaseModel, Field, field_validator

from src.domain.actor import Actor, Role


# Constants for validation
MAX_NAME_LENGTH = 80


class Profile(BaseModel):
    """Profile data transfer object."""

    id: str = Field(..., description="User ID (same as the identity ID)")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    role: Role = Field(default=Role.HOUSEKEEPER, description="Staff role")
    full_name: str | None = Field(default=None, description="Display name")
    bio: str | None = Field(default=None, description="Short biography")
    date_of_birth: str | None = Field(default=None, description="Date of birth (YYYY-MM-DD)")
    push_token: str | None = Field(default=None, description="Expo push token, if registered")

    def to_actor(self) -> Actor:
        return Actor(id=self.id, role=self.role, full_name=self.full_name)


class ProfileUpdate(BaseModel):
    """Self-service profile update. Role is deliberately absent."""

    full_name: str | None = None
    bio: str | None = None
    date_of_birth: date | None = None

    @field_validator("full_name")
    @classmethod
    def validate_name_usable(cls, v: str | None) -> str | None:
        """Validate name is usable - allows Unicode letters, spaces, hyphens, apostrophes, periods."""
        if v is None:
            return v
        v = v.strip()

        if not v:
            raise ValueError("Name cannot be empty")

        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")

        if not re.match(r"^[\w\s'.-]+$", v, re.UNICODE):
            raise ValueError("Name can only contain letters, spaces, hyphens, periods, and apostrophes")

        return v
