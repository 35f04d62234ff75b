"""Role capability table and the single authorization gate for task operations."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from src.core.errors import PermissionDeniedError
from src.domain.actor import Actor, Role


logger = logging.getLogger(__name__)


class Operation(StrEnum):
    """Task operations subject to authorization."""

    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    TOGGLE_COMPLETION = "toggle_completion"
    DELETE = "delete"
    ASSIGN = "assign"
    ASSIGN_ROOM = "assign_room"
    SET_NOTES = "set_notes"
    MANAGE_ROOMS = "manage_rooms"
    MANAGE_PROFILES = "manage_profiles"
    MANAGE_PREFERENCES = "manage_preferences"


TASK_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "priority",
        "completed",
        "estimated_time",
        "notes",
        "assigned_to",
        "room_id",
    }
)


@dataclass(frozen=True)
class Capability:
    """What a role may do with tasks."""

    operations: frozenset[Operation]
    writable_fields: frozenset[str]
    own_tasks_only: bool


ROLE_CAPABILITIES: dict[Role, Capability] = {
    Role.ADMIN: Capability(
        operations=frozenset(Operation),
        writable_fields=TASK_FIELDS,
        own_tasks_only=False,
    ),
    Role.HOUSEKEEPER: Capability(
        operations=frozenset({Operation.LIST, Operation.UPDATE, Operation.TOGGLE_COMPLETION}),
        writable_fields=frozenset({"completed"}),
        own_tasks_only=True,
    ),
}


def capability_for(actor: Actor) -> Capability:
    """Look up the capability entry for the actor's role."""
    return ROLE_CAPABILITIES[actor.role]


def authorize(actor: Actor, operation: Operation, fields: Iterable[str] = ()) -> None:
    """Raise PermissionDeniedError unless the actor may perform the operation on the given fields.

    Args:
        actor: The acting user
        operation: Operation being attempted
        fields: Task fields the operation would write

    Raises:
        PermissionDeniedError: If the role lacks the operation or any field is not writable
    """
    capability = capability_for(actor)

    if operation not in capability.operations:
        logger.warning(
            "Operation denied",
            extra={"user_id": actor.id, "role": actor.role, "operation": operation},
        )
        raise PermissionDeniedError(f"Role {actor.role} may not {operation} tasks")

    forbidden = sorted(set(fields) - capability.writable_fields)
    if forbidden:
        logger.warning(
            "Field write denied",
            extra={"user_id": actor.id, "role": actor.role, "operation": operation, "fields": forbidden},
        )
        raise PermissionDeniedError(f"Role {actor.role} may not change: {', '.join(forbidden)}")


def requires_ownership(actor: Actor) -> bool:
    """Whether store queries for this actor must be restricted to tasks assigned to them."""
    return capability_for(actor).own_tasks_only
