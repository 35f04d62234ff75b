"""HTTP API router for tasks, rooms, profiles and sessions."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Response, status

from src.core import db_client
from src.core.errors import (
    AuthenticationError,
    ErrorCategory,
    PermissionDeniedError,
    classify_error_with_response,
    error_response_for,
)
from src.domain.actor import Actor
from src.domain.profile import Profile, ProfileUpdate
from src.domain.room import Room, RoomCreate, RoomUpdate
from src.domain.task import Task, TaskCreate, TaskUpdate
from src.models.api_models import (
    AssigneeRequest,
    CompletionRequest,
    GroupedTasksResponse,
    NotesRequest,
    NotificationPreference,
    PasswordChangeRequest,
    PushTokenRequest,
    RoleChangeRequest,
    RoomAssignmentRequest,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
)
from src.models.service_models import DeleteResult, TaskListResult, TaskResult
from src.services import notification_service, preference_service, profile_service, room_service, task_service
from src.services.identity_service import IdentityService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

identity = IdentityService()

_STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.AUTHENTICATION_FAILED: status.HTTP_401_UNAUTHORIZED,
}


def _error(category: ErrorCategory) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_CATEGORY.get(category, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error_response_for(category).model_dump(mode="json"),
    )


def _unwrap(result: TaskResult, background_tasks: BackgroundTasks) -> Task:
    """Return the task or raise the HTTP error for a failed outcome.

    Notification intents are delivered after the response is sent.
    """
    if not result.ok or result.task is None:
        raise _error(result.error or ErrorCategory.UNKNOWN)
    if result.intents:
        background_tasks.add_task(notification_service.dispatch_intents, result.intents)
    return result.task


def _unwrap_list(result: TaskListResult) -> list[Task]:
    if not result.ok:
        raise _error(result.error or ErrorCategory.UNKNOWN)
    return result.tasks


async def get_actor(authorization: str | None = Header(default=None)) -> Actor:
    """Resolve the bearer token in the Authorization header to an actor."""
    if not authorization or not authorization.lower().startswith("bearer "):
        logger.warning("api_auth_missing_token")
        raise _error(ErrorCategory.AUTHENTICATION_FAILED)

    try:
        actor = await identity.resolve_token(authorization.split(" ", 1)[1].strip())
    except db_client.DatabaseError as e:
        logger.error("Failed to resolve session: %s", e)
        raise _error(ErrorCategory.FETCH_FAILED) from e
    if actor is None:
        raise _error(ErrorCategory.AUTHENTICATION_FAILED)
    return actor


# Sessions


@router.post("/auth/signup", status_code=status.HTTP_201_CREATED)
async def sign_up(body: SignUpRequest) -> Actor:
    try:
        return await identity.sign_up(email=body.email, password=body.password, full_name=body.full_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except db_client.DatabaseError as e:
        logger.error("Sign-up failed: %s", e)
        raise _error(ErrorCategory.CREATION_FAILED) from e


@router.post("/auth/signin")
async def sign_in(body: SignInRequest) -> SessionResponse:
    try:
        session = await identity.sign_in(email=body.email, password=body.password)
    except AuthenticationError as e:
        raise _error(ErrorCategory.AUTHENTICATION_FAILED) from e
    except db_client.DatabaseError as e:
        logger.error("Sign-in failed: %s", e)
        raise _error(ErrorCategory.FETCH_FAILED) from e
    return SessionResponse(token=session.token, actor=session.actor)


@router.post("/auth/signout", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(_actor: Actor = Depends(get_actor)) -> Response:
    """Tokens are stateless; clients drop theirs."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/auth/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(body: PasswordChangeRequest, actor: Actor = Depends(get_actor)) -> Response:
    try:
        await identity.change_password(actor=actor, new_password=body.new_password)
    except AuthenticationError as e:
        raise _error(ErrorCategory.AUTHENTICATION_FAILED) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Own profile


@router.get("/me")
async def get_me(actor: Actor = Depends(get_actor)) -> Profile:
    profile = await profile_service.get_profile(user_id=actor.id)
    if profile is None:
        raise _error(ErrorCategory.NOT_FOUND)
    return profile


@router.patch("/me")
async def update_me(body: ProfileUpdate, actor: Actor = Depends(get_actor)) -> Profile:
    try:
        return await profile_service.update_own_profile(actor=actor, fields=body)
    except db_client.DatabaseError as e:
        raise _error(ErrorCategory.UPDATE_FAILED) from e


@router.put("/me/push-token", status_code=status.HTTP_204_NO_CONTENT)
async def register_push_token(body: PushTokenRequest, actor: Actor = Depends(get_actor)) -> Response:
    try:
        await profile_service.register_push_token(actor=actor, push_token=body.push_token)
    except db_client.DatabaseError as e:
        raise _error(ErrorCategory.UPDATE_FAILED) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Tasks


@router.get("/tasks")
async def list_tasks(room_id: str | None = None, actor: Actor = Depends(get_actor)) -> list[Task]:
    return _unwrap_list(await task_service.list_visible_tasks(actor=actor, room_id=room_id))


@router.get("/tasks/grouped")
async def list_tasks_grouped(actor: Actor = Depends(get_actor)) -> GroupedTasksResponse:
    tasks = _unwrap_list(await task_service.list_visible_tasks(actor=actor))
    rooms = await room_service.list_rooms()
    return GroupedTasksResponse(
        groups=room_service.group_tasks_by_room(tasks, rooms),
        summary=room_service.summarize_tasks(tasks),
    )


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(body: TaskCreate, background_tasks: BackgroundTasks, actor: Actor = Depends(get_actor)) -> Task:
    return _unwrap(await task_service.create_task(actor=actor, fields=body), background_tasks)


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, background_tasks: BackgroundTasks, actor: Actor = Depends(get_actor)) -> Task:
    return _unwrap(await task_service.get_task(actor=actor, task_id=task_id), background_tasks)


@router.patch("/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdate,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
) -> Task:
    return _unwrap(await task_service.update_task(actor=actor, task_id=task_id, fields=body), background_tasks)


@router.put("/tasks/{task_id}/completion")
async def set_completion(
    task_id: str,
    body: CompletionRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
) -> Task:
    result = await task_service.toggle_completion(actor=actor, task_id=task_id, completed=body.completed)
    return _unwrap(result, background_tasks)


@router.put("/tasks/{task_id}/assignee")
async def assign_task(
    task_id: str,
    body: AssigneeRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
) -> Task:
    return _unwrap(await task_service.assign_task(actor=actor, task_id=task_id, user_id=body.user_id), background_tasks)


@router.put("/tasks/{task_id}/room")
async def assign_task_to_room(
    task_id: str,
    body: RoomAssignmentRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
) -> Task:
    result = await task_service.assign_task_to_room(actor=actor, task_id=task_id, room_id=body.room_id)
    return _unwrap(result, background_tasks)


@router.put("/tasks/{task_id}/notes")
async def set_notes(
    task_id: str,
    body: NotesRequest,
    background_tasks: BackgroundTasks,
    actor: Actor = Depends(get_actor),
) -> Task:
    return _unwrap(await task_service.set_notes(actor=actor, task_id=task_id, notes=body.notes), background_tasks)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, actor: Actor = Depends(get_actor)) -> Response:
    result: DeleteResult = await task_service.delete_task(actor=actor, task_id=task_id)
    if not result.ok:
        raise _error(result.error or ErrorCategory.UNKNOWN)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Rooms


@router.get("/rooms")
async def list_rooms(_actor: Actor = Depends(get_actor)) -> list[Room]:
    return await room_service.list_rooms()


@router.post("/rooms", status_code=status.HTTP_201_CREATED)
async def create_room(body: RoomCreate, actor: Actor = Depends(get_actor)) -> Room:
    try:
        room = await room_service.create_room(actor=actor, fields=body)
    except PermissionDeniedError as e:
        raise _error(e.category) from e
    if room is None:
        raise _error(ErrorCategory.CREATION_FAILED)
    return room


@router.patch("/rooms/{room_id}")
async def update_room(room_id: str, body: RoomUpdate, actor: Actor = Depends(get_actor)) -> Room:
    try:
        room = await room_service.update_room(actor=actor, room_id=room_id, fields=body)
    except PermissionDeniedError as e:
        raise _error(e.category) from e
    if room is None:
        raise _error(ErrorCategory.UPDATE_FAILED)
    return room


@router.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(room_id: str, actor: Actor = Depends(get_actor)) -> Response:
    try:
        deleted = await room_service.delete_room(actor=actor, room_id=room_id)
    except PermissionDeniedError as e:
        raise _error(e.category) from e
    if not deleted:
        raise _error(ErrorCategory.DELETE_FAILED)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Staff profiles


@router.get("/profiles")
async def list_profiles(actor: Actor = Depends(get_actor)) -> list[Profile]:
    try:
        return await profile_service.list_profiles(actor=actor)
    except PermissionDeniedError as e:
        raise _error(e.category) from e
    except db_client.DatabaseError as e:
        raise _error(ErrorCategory.FETCH_FAILED) from e


@router.put("/profiles/{user_id}/role")
async def set_role(user_id: str, body: RoleChangeRequest, actor: Actor = Depends(get_actor)) -> Profile:
    try:
        return await profile_service.set_role(actor=actor, user_id=user_id, role=body.role)
    except PermissionDeniedError as e:
        raise _error(e.category) from e
    except db_client.RecordNotFoundError as e:
        raise _error(ErrorCategory.NOT_FOUND) from e
    except db_client.DatabaseError as e:
        raise _error(ErrorCategory.UPDATE_FAILED) from e


# Preferences


@router.get("/preferences/notifications")
async def get_notification_preference(_actor: Actor = Depends(get_actor)) -> NotificationPreference:
    return NotificationPreference(enabled=await preference_service.are_notifications_enabled())


@router.put("/preferences/notifications")
async def set_notification_preference(
    body: NotificationPreference,
    actor: Actor = Depends(get_actor),
) -> NotificationPreference:
    try:
        await preference_service.set_notifications_enabled(actor=actor, enabled=body.enabled)
    except PermissionDeniedError as e:
        raise _error(e.category) from e
    except db_client.DatabaseError as e:
        logger.error("Failed to save notification preference: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=classify_error_with_response(e).model_dump(mode="json"),
        ) from e
    return body
