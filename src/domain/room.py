"""Room domain models."""

from pydantic import BaseModel, Field, field_validator


class Room(BaseModel):
    """Room data transfer object. Rooms only group tasks."""

    id: str = Field(..., description="Unique room ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    name: str = Field(..., description="Room display name (e.g., 'Master Bedroom')")
    description: str | None = Field(default=None, description="Optional room description")
    created_by: str = Field(..., description="User ID of the admin who created the room")


class RoomCreate(BaseModel):
    """Fields accepted when creating a room."""

    name: str
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate name is not blank."""
        v = v.strip()
        if not v:
            raise ValueError("Room name cannot be empty")
        return v


class RoomUpdate(BaseModel):
    """Partial room update."""

    name: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        """Validate name is not blank when provided."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Room name cannot be empty")
        return v
