"""Notification sink and intent dispatcher for push notifications to staff."""

import logging
from typing import Any

from pydantic import ValidationError

from src.core import db_client
from src.core.config import Constants
from src.core.logging import span
from src.domain.actor import Role
from src.domain.notification import NotificationAudience, NotificationIntent
from src.interface import push_sender
from src.models.service_models import NotificationResult


logger = logging.getLogger(__name__)


async def _send_to_profiles(
    *,
    profiles: list[dict[str, Any]],
    title: str,
    body: str,
    data: dict[str, Any],
) -> list[NotificationResult]:
    """Send one notification to every profile that has a push token."""
    results = []
    for profile in profiles:
        push_token = profile.get("push_token")
        if not push_token:
            continue

        send_result = await push_sender.send_push_notification(
            push_token=push_token,
            title=title,
            body=body,
            data=data,
        )

        try:
            results.append(
                NotificationResult(
                    user_id=profile["id"],
                    push_token=push_token,
                    success=send_result.success,
                    error=send_result.error,
                )
            )
        except ValidationError as e:
            logger.error("Failed to create NotificationResult for user %s: %s", profile.get("id"), e)
            continue

        if send_result.success:
            logger.info("Push notification sent to user=%s", profile["id"])
        else:
            logger.error("Failed to send push notification to user=%s error=%s", profile["id"], send_result.error)

    return results


async def notify_roles(
    *,
    roles: list[Role],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> list[NotificationResult]:
    """Send a notification to every user holding one of the given roles.

    Never raises; lookup and delivery failures are logged.

    Args:
        roles: Roles to broadcast to
        title: Notification title
        body: Notification body
        data: Extra payload delivered with the notification

    Returns:
        List of NotificationResult objects with send status
    """
    with span("notification_service.notify_roles"):
        try:
            profiles: list[dict[str, Any]] = []
            for role in roles:
                profiles.extend(
                    await db_client.list_records(
                        collection="profiles",
                        filter_query=f'role = "{role}"',
                        per_page=Constants.MAX_PER_PAGE_LIMIT,
                    )
                )
        except db_client.DatabaseError:
            logger.exception("Error fetching role push tokens for roles=%s", [str(r) for r in roles])
            return []

        results = await _send_to_profiles(profiles=profiles, title=title, body=body, data=data or {})
        logger.info(
            "Sent %d role notifications (%d successful, %d failed)",
            len(results),
            sum(1 for r in results if r.success),
            sum(1 for r in results if not r.success),
        )
        return results


async def notify_users(
    *,
    user_ids: list[str],
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> list[NotificationResult]:
    """Send a notification to specific users.

    Unknown user IDs are skipped. Never raises.

    Args:
        user_ids: Recipient user IDs
        title: Notification title
        body: Notification body
        data: Extra payload delivered with the notification

    Returns:
        List of NotificationResult objects with send status
    """
    with span("notification_service.notify_users"):
        profiles = []
        for user_id in user_ids:
            try:
                profiles.append(await db_client.get_record(collection="profiles", record_id=user_id))
            except db_client.RecordNotFoundError:
                logger.warning("Notification recipient not found: %s", user_id)
            except db_client.DatabaseError:
                logger.exception("Error fetching push token for user %s", user_id)

        return await _send_to_profiles(profiles=profiles, title=title, body=body, data=data or {})


async def dispatch_intents(intents: list[NotificationIntent]) -> list[NotificationResult]:
    """Deliver notification intents produced by the service layer.

    A failure on one intent never stops the others, and nothing is raised to
    the caller.
    """
    results: list[NotificationResult] = []
    for intent in intents:
        try:
            if intent.audience == NotificationAudience.ROLES:
                results.extend(
                    await notify_roles(roles=intent.roles, title=intent.title, body=intent.body, data=intent.data)
                )
            else:
                results.extend(
                    await notify_users(
                        user_ids=intent.user_ids, title=intent.title, body=intent.body, data=intent.data
                    )
                )
        except Exception:
            logger.exception("Error dispatching notification '%s'", intent.title)
            # Don't raise - notification failure shouldn't fail the task operation
    return results
