"""Expo push notification sender with retry logic."""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from src.core.config import constants, settings


logger = logging.getLogger(__name__)


# HTTP status code constants for error handling
HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class SendPushResult(BaseModel):
    """Result of sending a push notification."""

    success: bool = Field(..., description="Whether Expo accepted the notification")
    ticket_id: str | None = Field(None, description="Expo push ticket ID if successful")
    error: str | None = Field(None, description="Error message if failed")


def _build_headers() -> dict[str, str]:
    headers = {
        "Accept": "application/json",
        "Accept-Encoding": "gzip, deflate",
        "Content-Type": "application/json",
    }
    if settings.expo_access_token:
        headers["Authorization"] = f"Bearer {settings.expo_access_token}"
    return headers


def _parse_ticket(payload: dict[str, Any]) -> SendPushResult:
    """Turn an Expo push ticket into a SendPushResult.

    Expo answers { "data": { "status": "ok", "id": ... } } or
    { "data": { "status": "error", "message": ... } }; errors for the whole
    request come back under "errors".
    """
    if payload.get("errors"):
        return SendPushResult(success=False, error=str(payload["errors"]))

    ticket = payload.get("data") or {}
    if isinstance(ticket, list):
        ticket = ticket[0] if ticket else {}

    if ticket.get("status") == "ok":
        return SendPushResult(success=True, ticket_id=ticket.get("id"))
    return SendPushResult(success=False, error=ticket.get("message", "Unknown push error"))


async def send_push_notification(
    *,
    push_token: str,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
    max_retries: int = constants.PUSH_MAX_RETRIES,
    retry_delay: float = constants.PUSH_RETRY_DELAY_SECONDS,
) -> SendPushResult:
    """Send one push notification through the Expo push API.

    Client errors are returned immediately; server and transport errors are retried
    with exponential backoff.
    """
    message = {
        "to": push_token,
        "sound": "default",
        "title": title,
        "body": body,
        "data": data or {},
    }
    headers = _build_headers()

    for attempt in range(max_retries):
        try:
            async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
                response = await client.post(settings.expo_push_url, json=message, headers=headers)

                if response.is_success:
                    return _parse_ticket(response.json())

                if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
                    return SendPushResult(success=False, error=f"Client error: {response.text}")

                raise httpx.HTTPStatusError(
                    f"Server error: {response.status_code}", request=response.request, response=response
                )
        except httpx.HTTPStatusError as e:
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                return SendPushResult(success=False, error=str(e))
        except Exception as e:
            if attempt < max_retries - 1:
                await asyncio.sleep(retry_delay * (2**attempt))
            else:
                logger.warning("Push delivery failed after retries", extra={"error": str(e)})
                return SendPushResult(success=False, error=f"Failed after retries: {e!s}")

    return SendPushResult(success=False, error="Max retries exceeded")
