"""Task access controller.

Decides, for an explicitly passed actor, which tasks are visible, which writes
are allowed, and which notifications an operation should trigger. Every
operation returns a typed result instead of raising store errors; notification
intents ride along on the result and are delivered by
``notification_service.dispatch_intents``.
"""

import asyncio
import logging
from typing import Any

from src.core import db_client
from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.errors import ErrorCategory, PermissionDeniedError
from src.core.logging import log_with_actor, span
from src.core.permissions import Operation, authorize, requires_ownership
from src.domain.actor import Actor, Role
from src.domain.notification import NotificationIntent
from src.domain.task import Task, TaskCreate, TaskUpdate
from src.models.service_models import DeleteResult, TaskListResult, TaskResult
from src.services import preference_service


logger = logging.getLogger(__name__)

TASKS_COLLECTION = "tasks"


async def _lookup_room_name(room_id: str) -> str | None:
    """Resolve a room's display name; a missing room resolves to None."""
    try:
        room = await db_client.get_record(collection="rooms", record_id=room_id)
    except db_client.RecordNotFoundError:
        logger.debug("Task references missing room %s", room_id, extra={"error": ErrorCategory.STALE_REFERENCE.value})
        return None
    except db_client.DatabaseError as e:
        logger.warning("Room lookup failed for %s: %s", room_id, e)
        return None
    return room.get("name")


async def _to_tasks(records: list[dict[str, Any]]) -> list[Task]:
    """Validate task records and attach room names, looking rooms up concurrently."""
    room_ids = sorted({record["room_id"] for record in records if record.get("room_id")})
    names = await asyncio.gather(*(_lookup_room_name(room_id) for room_id in room_ids))
    room_names = dict(zip(room_ids, names, strict=True))

    return [
        Task.model_validate({**record, "room_name": room_names.get(record.get("room_id") or "")})
        for record in records
    ]


async def _to_task(record: dict[str, Any]) -> Task:
    return (await _to_tasks([record]))[0]


def _scope_filter(actor: Actor, task_id: str) -> str:
    """Filter selecting the task only if the actor may touch it."""
    filters = [f'id = "{sanitize_param(task_id)}"']
    if requires_ownership(actor):
        filters.append(f'assigned_to = "{sanitize_param(actor.id)}"')
    return " && ".join(filters)


async def _explain_miss(task_id: str) -> ErrorCategory:
    """Tell apart a task that does not exist from one the actor may not touch."""
    try:
        await db_client.get_record(collection=TASKS_COLLECTION, record_id=task_id)
    except db_client.RecordNotFoundError:
        return ErrorCategory.NOT_FOUND
    return ErrorCategory.PERMISSION_DENIED


def _denied(actor: Actor, operation: Operation, error: PermissionDeniedError) -> TaskResult:
    log_with_actor(logger, "warning", "Task operation denied", actor, operation=operation, reason=str(error))
    return TaskResult(error=ErrorCategory.PERMISSION_DENIED, message=str(error))


def _in_room(task: Task) -> str:
    return f" in {task.room_name}" if task.room_name else ""


async def _creation_intents(task: Task) -> list[NotificationIntent]:
    """Notifications for a newly created task.

    Admins get one announcement; housekeepers as a role get a second one
    whenever the task has an assignee, not just the assignee.
    """
    if not await preference_service.are_notifications_enabled():
        return []

    data = {"task_id": task.id}
    intents = [
        NotificationIntent.for_roles(
            [Role.ADMIN],
            title="New task created",
            body=f'"{task.title}" was added{_in_room(task)}.',
            data=data,
        )
    ]
    if task.resolved_assignee:
        intents.append(
            NotificationIntent.for_roles(
                [Role.HOUSEKEEPER],
                title="New task assigned",
                body=f'"{task.title}"{_in_room(task)} has been assigned.',
                data=data,
            )
        )
    return intents


async def _assignment_intents(task: Task, user_id: str) -> list[NotificationIntent]:
    if not await preference_service.are_notifications_enabled():
        return []

    return [
        NotificationIntent.for_users(
            [user_id],
            title="Task assigned to you",
            body=f'You have been assigned "{task.title}"{_in_room(task)}.',
            data={"task_id": task.id},
        )
    ]


async def _apply_update(
    *,
    actor: Actor,
    task_id: str,
    operation: Operation,
    data: dict[str, Any],
) -> TaskResult:
    """Authorize and write a partial update through the actor-scoped filter.

    The assignee filter in the store query is the real ownership check; the
    field gate only rejects writes early.
    """
    try:
        authorize(actor, operation, data.keys())
    except PermissionDeniedError as e:
        return _denied(actor, operation, e)

    scope = _scope_filter(actor, task_id)

    try:
        if "assigned_to" in data and data["assigned_to"] is None:
            current = await db_client.get_first_record(collection=TASKS_COLLECTION, filter_query=scope)
            if current is None:
                category = await _explain_miss(task_id)
                return TaskResult(error=category, message=f"Task {task_id} is not available")
            # Unassigning falls back to the creator so the assignee is never null
            data = {**data, "assigned_to": current["created_by"]}

        if data:
            records = await db_client.update_records(collection=TASKS_COLLECTION, filter_query=scope, data=data)
        else:
            record = await db_client.get_first_record(collection=TASKS_COLLECTION, filter_query=scope)
            records = [record] if record else []

        if not records:
            category = await _explain_miss(task_id)
            log_with_actor(
                logger, "warning", "Task update matched nothing", actor, task_id=task_id, error=category.value
            )
            return TaskResult(error=category, message=f"Task {task_id} is not available")

        task = await _to_task(records[0])
    except db_client.DatabaseError as e:
        logger.error("Error updating task %s: %s", task_id, e)
        return TaskResult(error=ErrorCategory.UPDATE_FAILED, message=str(e))

    log_with_actor(
        logger, "info", "Task updated", actor, task_id=task_id, operation=operation, fields=sorted(data)
    )
    return TaskResult(task=task)


async def list_visible_tasks(*, actor: Actor, room_id: str | None = None) -> TaskListResult:
    """List the tasks the actor may see, newest first.

    Args:
        actor: The acting user
        room_id: Optional room to restrict the listing to

    Returns:
        TaskListResult with tasks enriched with their room names
    """
    with span("task_service.list_visible_tasks"):
        try:
            authorize(actor, Operation.LIST)
        except PermissionDeniedError as e:
            return TaskListResult(error=ErrorCategory.PERMISSION_DENIED, message=str(e))

        filters = []
        if requires_ownership(actor):
            filters.append(f'assigned_to = "{sanitize_param(actor.id)}"')
        if room_id:
            filters.append(f'room_id = "{sanitize_param(room_id)}"')

        try:
            records = await db_client.list_records(
                collection=TASKS_COLLECTION,
                filter_query=" && ".join(filters),
                sort="-created",
                per_page=Constants.MAX_PER_PAGE_LIMIT,
            )
            tasks = await _to_tasks(records)
        except db_client.DatabaseError as e:
            logger.error("Error fetching tasks: %s", e)
            return TaskListResult(error=ErrorCategory.FETCH_FAILED, message=str(e))

        logger.debug("Listed %d tasks for user=%s role=%s", len(tasks), actor.id, actor.role)
        return TaskListResult(tasks=tasks)


async def get_task(*, actor: Actor, task_id: str) -> TaskResult:
    """Fetch one task if the actor may see it."""
    with span("task_service.get_task"):
        try:
            authorize(actor, Operation.LIST)
        except PermissionDeniedError as e:
            return _denied(actor, Operation.LIST, e)

        try:
            record = await db_client.get_first_record(
                collection=TASKS_COLLECTION, filter_query=_scope_filter(actor, task_id)
            )
            if record is None:
                category = await _explain_miss(task_id)
                return TaskResult(error=category, message=f"Task {task_id} is not available")
            return TaskResult(task=await _to_task(record))
        except db_client.DatabaseError as e:
            logger.error("Error fetching task %s: %s", task_id, e)
            return TaskResult(error=ErrorCategory.FETCH_FAILED, message=str(e))


async def create_task(*, actor: Actor, fields: TaskCreate) -> TaskResult:
    """Create a task (admin only).

    The task is assigned to its creator unless an assignee is given.

    Args:
        actor: The acting user
        fields: Task fields

    Returns:
        TaskResult with the created task and any notification intents
    """
    with span("task_service.create_task"):
        try:
            authorize(actor, Operation.CREATE)
        except PermissionDeniedError as e:
            return _denied(actor, Operation.CREATE, e)

        data = fields.model_dump(mode="json")
        data["completed"] = False
        data["created_by"] = actor.id
        data["assigned_to"] = fields.assigned_to or actor.id

        try:
            record = await db_client.create_record(collection=TASKS_COLLECTION, data=data)
            task = await _to_task(record)
        except db_client.DatabaseError as e:
            logger.error("Error creating task '%s': %s", fields.title, e)
            return TaskResult(error=ErrorCategory.CREATION_FAILED, message=str(e))

        logger.info("Created task: %s (assigned to: %s)", task.title, task.assigned_to)
        return TaskResult(task=task, intents=await _creation_intents(task))


async def update_task(*, actor: Actor, task_id: str, fields: TaskUpdate) -> TaskResult:
    """Update a task.

    Admins may change any field on any task. Housekeepers may only change
    ``completed`` on tasks assigned to them.
    """
    with span("task_service.update_task"):
        return await _apply_update(actor=actor, task_id=task_id, operation=Operation.UPDATE, data=fields.to_record())


async def toggle_completion(*, actor: Actor, task_id: str, completed: bool) -> TaskResult:
    """Set a task's completion state.

    Callers that flip local state optimistically must reload the list when the
    result is not ok; the store holds the authoritative state.
    """
    with span("task_service.toggle_completion"):
        return await _apply_update(
            actor=actor,
            task_id=task_id,
            operation=Operation.TOGGLE_COMPLETION,
            data={"completed": completed},
        )


async def delete_task(*, actor: Actor, task_id: str) -> DeleteResult:
    """Delete a task (admin only)."""
    with span("task_service.delete_task"):
        try:
            authorize(actor, Operation.DELETE)
        except PermissionDeniedError as e:
            _denied(actor, Operation.DELETE, e)
            return DeleteResult(error=ErrorCategory.PERMISSION_DENIED, message=str(e))

        try:
            await db_client.delete_record(collection=TASKS_COLLECTION, record_id=task_id)
        except db_client.RecordNotFoundError as e:
            return DeleteResult(error=ErrorCategory.NOT_FOUND, message=str(e))
        except db_client.DatabaseError as e:
            logger.error("Error deleting task %s: %s", task_id, e)
            return DeleteResult(error=ErrorCategory.DELETE_FAILED, message=str(e))

        log_with_actor(logger, "info", "Task deleted", actor, task_id=task_id)
        return DeleteResult(deleted=True)


async def assign_task(*, actor: Actor, task_id: str, user_id: str | None) -> TaskResult:
    """Assign a task to a user (admin only).

    Passing None hands the task back to its creator. A non-null assignee is
    notified directly when notifications are enabled.
    """
    with span("task_service.assign_task"):
        result = await _apply_update(
            actor=actor,
            task_id=task_id,
            operation=Operation.ASSIGN,
            data={"assigned_to": user_id},
        )
        if not result.ok or result.task is None or not user_id:
            return result

        return result.model_copy(update={"intents": await _assignment_intents(result.task, user_id)})


async def assign_task_to_room(*, actor: Actor, task_id: str, room_id: str | None) -> TaskResult:
    """File a task under a room, or clear its room with None (admin only)."""
    with span("task_service.assign_task_to_room"):
        return await _apply_update(
            actor=actor,
            task_id=task_id,
            operation=Operation.ASSIGN_ROOM,
            data={"room_id": room_id},
        )


async def set_notes(*, actor: Actor, task_id: str, notes: str) -> TaskResult:
    """Replace a task's internal notes (admin only)."""
    with span("task_service.set_notes"):
        return await _apply_update(actor=actor, task_id=task_id, operation=Operation.SET_NOTES, data={"notes": notes})
