"""Profile service for staff profiles, roles and push tokens."""

import logging

from src.core import db_client
from src.core.config import Constants
from src.core.logging import log_with_actor, span
from src.core.permissions import Operation, authorize
from src.domain.actor import Actor, Role
from src.domain.profile import Profile, ProfileUpdate


logger = logging.getLogger(__name__)

PROFILES_COLLECTION = "profiles"


async def get_profile(*, user_id: str) -> Profile | None:
    """Get a profile by user ID.

    Args:
        user_id: User's unique ID

    Returns:
        Profile, or None if no profile exists for the user

    Raises:
        db_client.DatabaseError: If database operation fails
    """
    with span("profile_service.get_profile"):
        try:
            record = await db_client.get_record(collection=PROFILES_COLLECTION, record_id=user_id)
        except db_client.RecordNotFoundError:
            return None
        return Profile(**record)


async def get_actor(*, user_id: str) -> Actor | None:
    """Build the acting identity for a user from their current profile."""
    profile = await get_profile(user_id=user_id)
    return profile.to_actor() if profile else None


def is_admin(actor: Actor | None) -> bool:
    return actor is not None and actor.is_admin


async def list_profiles(*, actor: Actor) -> list[Profile]:
    """List all staff profiles, newest first (admin only).

    Raises:
        PermissionDeniedError: If the actor may not manage profiles
        db_client.DatabaseError: If database operation fails
    """
    with span("profile_service.list_profiles"):
        authorize(actor, Operation.MANAGE_PROFILES)
        records = await db_client.list_records(
            collection=PROFILES_COLLECTION,
            sort="-created",
            per_page=Constants.MAX_PER_PAGE_LIMIT,
        )
        return [Profile(**record) for record in records]


async def update_own_profile(*, actor: Actor, fields: ProfileUpdate) -> Profile:
    """Update the actor's own name, bio or date of birth.

    Raises:
        db_client.RecordNotFoundError: If the actor has no profile
        db_client.DatabaseError: If database operation fails
    """
    with span("profile_service.update_own_profile"):
        data = fields.model_dump(exclude_unset=True, mode="json")
        if not data:
            record = await db_client.get_record(collection=PROFILES_COLLECTION, record_id=actor.id)
        else:
            record = await db_client.update_record(collection=PROFILES_COLLECTION, record_id=actor.id, data=data)

        log_with_actor(logger, "info", "Profile updated", actor, fields=sorted(data))
        return Profile(**record)


async def set_role(*, actor: Actor, user_id: str, role: Role) -> Profile:
    """Change a user's role (admin only).

    This is the only way a role changes. The target's next request picks the
    new role up when its actor is rebuilt from the profile.

    Raises:
        PermissionDeniedError: If the actor may not manage profiles
        db_client.RecordNotFoundError: If the target user does not exist
        db_client.DatabaseError: If database operation fails
    """
    with span("profile_service.set_role"):
        authorize(actor, Operation.MANAGE_PROFILES)
        record = await db_client.update_record(
            collection=PROFILES_COLLECTION,
            record_id=user_id,
            data={"role": role},
        )
        log_with_actor(logger, "info", "Role changed", actor, target_user_id=user_id, new_role=role)
        return Profile(**record)


async def register_push_token(*, actor: Actor, push_token: str | None) -> None:
    """Store (or clear with None) the device push token for the actor.

    Raises:
        db_client.RecordNotFoundError: If the actor has no profile
        db_client.DatabaseError: If database operation fails
    """
    with span("profile_service.register_push_token"):
        await db_client.update_record(
            collection=PROFILES_COLLECTION,
            record_id=actor.id,
            data={"push_token": push_token},
        )
        logger.info("Push token %s for user=%s", "registered" if push_token else "cleared", actor.id)
