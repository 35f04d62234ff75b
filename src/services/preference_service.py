"""Persisted notification preference."""

import logging

from src.core import db_client
from src.core.config import settings
from src.core.logging import span
from src.core.permissions import Operation, authorize
from src.domain.actor import Actor


logger = logging.getLogger(__name__)

NOTIFICATIONS_ENABLED_KEY = "notifications_enabled"


async def are_notifications_enabled() -> bool:
    """Read the notifications flag.

    Returns the configured default when the flag has never been set, and False
    when the store cannot be read.
    """
    try:
        record = await db_client.get_first_record(
            collection="preferences",
            filter_query=f'key = "{NOTIFICATIONS_ENABLED_KEY}"',
        )
    except db_client.DatabaseError:
        logger.exception("Error checking notification settings")
        return False

    if record is None:
        return settings.notifications_enabled_default
    return str(record["value"]).lower() == "true"


async def set_notifications_enabled(*, actor: Actor, enabled: bool) -> None:
    """Persist the notifications flag for everyone. Admin only.

    Raises:
        PermissionDeniedError: If the actor is not an admin
        db_client.DatabaseError: If the store write fails
    """
    with span("preference_service.set_notifications_enabled"):
        authorize(actor, Operation.MANAGE_PREFERENCES)
        value = "true" if enabled else "false"
        existing = await db_client.get_first_record(
            collection="preferences",
            filter_query=f'key = "{NOTIFICATIONS_ENABLED_KEY}"',
        )
        if existing:
            await db_client.update_record(collection="preferences", record_id=existing["id"], data={"value": value})
        else:
            await db_client.create_record(
                collection="preferences",
                data={"key": NOTIFICATIONS_ENABLED_KEY, "value": value},
            )
        logger.info("Notifications %s by user=%s", "enabled" if enabled else "disabled", actor.id)
