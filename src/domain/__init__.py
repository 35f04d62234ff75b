"""Domain models and DTOs."""

from src.domain.actor import Actor, Role
from src.domain.notification import NotificationAudience, NotificationIntent
from src.domain.profile import Profile, ProfileUpdate
from src.domain.room import Room, RoomCreate, RoomUpdate
from src.domain.task import Priority, Task, TaskCreate, TaskUpdate


__all__ = [
    "Actor",
    "NotificationAudience",
    "NotificationIntent",
    "Priority",
    "Profile",
    "ProfileUpdate",
    "Role",
    "Room",
    "RoomCreate",
    "RoomUpdate",
    "Task",
    "TaskCreate",
    "TaskUpdate",
]
