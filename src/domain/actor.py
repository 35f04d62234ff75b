"""Actor domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Staff role. An actor holds exactly one role at a time."""

    ADMIN = "admin"
    HOUSEKEEPER = "housekeeper"


class Actor(BaseModel):
    """A signed-in identity passed explicitly into every service call."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable user ID assigned at account creation")
    role: Role = Field(..., description="Current role")
    full_name: str | None = Field(default=None, description="Display name, if set")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
