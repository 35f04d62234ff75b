"""Room service: CRUD for rooms and grouping of tasks by room."""

import logging

from src.core import db_client
from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.logging import log_with_context, span
from src.core.permissions import Operation, authorize
from src.domain.actor import Actor
from src.domain.room import Room, RoomCreate, RoomUpdate
from src.domain.task import Task
from src.models.service_models import RoomTaskGroup, TaskSummary


logger = logging.getLogger(__name__)

ROOMS_COLLECTION = "rooms"
UNCATEGORIZED_ROOM_NAME = "Uncategorized"


async def list_rooms() -> list[Room]:
    """List all rooms ordered by name. Returns an empty list when the store fails."""
    with span("room_service.list_rooms"):
        try:
            records = await db_client.list_records(
                collection=ROOMS_COLLECTION,
                sort="name",
                per_page=Constants.MAX_PER_PAGE_LIMIT,
            )
        except db_client.DatabaseError as e:
            logger.error("Error fetching rooms: %s", e)
            return []

        return [Room(**record) for record in records]


async def get_room(*, room_id: str) -> Room | None:
    """Get a room by ID, or None if it does not exist."""
    with span("room_service.get_room"):
        try:
            record = await db_client.get_record(collection=ROOMS_COLLECTION, record_id=room_id)
        except db_client.RecordNotFoundError:
            return None
        return Room(**record)


async def create_room(*, actor: Actor, fields: RoomCreate) -> Room | None:
    """Create a room (admin only).

    Args:
        actor: The acting user
        fields: Room name and description

    Returns:
        Created Room, or None if the store write failed

    Raises:
        PermissionDeniedError: If the actor may not manage rooms
    """
    with span("room_service.create_room"):
        authorize(actor, Operation.MANAGE_ROOMS)

        try:
            record = await db_client.create_record(
                collection=ROOMS_COLLECTION,
                data={**fields.model_dump(), "created_by": actor.id},
            )
        except db_client.DatabaseError as e:
            logger.error("Error creating room '%s': %s", fields.name, e)
            return None

        logger.info("Created room: %s", fields.name)
        return Room(**record)


async def update_room(*, actor: Actor, room_id: str, fields: RoomUpdate) -> Room | None:
    """Rename or re-describe a room (admin only).

    Returns:
        Updated Room, or None if the room is missing or the write failed

    Raises:
        PermissionDeniedError: If the actor may not manage rooms
    """
    with span("room_service.update_room"):
        authorize(actor, Operation.MANAGE_ROOMS)

        data = fields.model_dump(exclude_unset=True)
        try:
            if not data:
                record = await db_client.get_record(collection=ROOMS_COLLECTION, record_id=room_id)
            else:
                record = await db_client.update_record(collection=ROOMS_COLLECTION, record_id=room_id, data=data)
        except db_client.RecordNotFoundError:
            logger.warning("Room not found: %s", room_id)
            return None
        except db_client.DatabaseError as e:
            logger.error("Error updating room %s: %s", room_id, e)
            return None

        return Room(**record)


async def delete_room(*, actor: Actor, room_id: str) -> bool:
    """Delete a room (admin only).

    Tasks filed under the room keep existing with their room cleared.

    Returns:
        True if the room was deleted

    Raises:
        PermissionDeniedError: If the actor may not manage rooms
    """
    with span("room_service.delete_room"):
        authorize(actor, Operation.MANAGE_ROOMS)

        try:
            cleared = await db_client.update_records(
                collection="tasks",
                filter_query=f'room_id = "{sanitize_param(room_id)}"',
                data={"room_id": None},
            )
            await db_client.delete_record(collection=ROOMS_COLLECTION, record_id=room_id)
        except db_client.RecordNotFoundError:
            logger.warning("Room not found: %s", room_id)
            return False
        except db_client.DatabaseError as e:
            logger.error("Error deleting room %s: %s", room_id, e)
            return False

        log_with_context(logger, "info", "Room deleted", room_id=room_id, cleared_tasks=len(cleared))
        return True


def _incomplete_first(tasks: list[Task]) -> list[Task]:
    # sorted() is stable, so store order is kept within each half
    return sorted(tasks, key=lambda task: task.completed)


def group_tasks_by_room(tasks: list[Task], rooms: list[Room]) -> list[RoomTaskGroup]:
    """Group tasks under their rooms.

    Rooms keep the order they are given in and only rooms holding tasks are
    returned. Tasks without a room, or whose room no longer exists, are
    collected under "Uncategorized" at the end.
    """
    known_room_ids = {room.id for room in rooms}
    by_room: dict[str | None, list[Task]] = {}
    for task in tasks:
        key = task.room_id if task.room_id in known_room_ids else None
        by_room.setdefault(key, []).append(task)

    groups = []
    for room in rooms:
        room_tasks = by_room.get(room.id)
        if room_tasks:
            groups.append(
                RoomTaskGroup(
                    room_id=room.id,
                    room_name=room.name,
                    tasks=_incomplete_first(room_tasks),
                    incomplete_count=sum(1 for task in room_tasks if not task.completed),
                )
            )

    uncategorized = by_room.get(None)
    if uncategorized:
        groups.append(
            RoomTaskGroup(
                room_id=None,
                room_name=UNCATEGORIZED_ROOM_NAME,
                tasks=_incomplete_first(uncategorized),
                incomplete_count=sum(1 for task in uncategorized if not task.completed),
            )
        )

    return groups


def summarize_tasks(tasks: list[Task]) -> TaskSummary:
    """Count remaining and completed tasks."""
    completed = sum(1 for task in tasks if task.completed)
    return TaskSummary(total=len(tasks), remaining=len(tasks) - completed, completed=completed)

