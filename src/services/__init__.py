from src.services import (
    identity_service,
    notification_service,
    preference_service,
    profile_service,
    room_service,
    task_service,
)


__all__ = [
    "identity_service",
    "notification_service",
    "preference_service",
    "profile_service",
    "room_service",
    "task_service",
]
