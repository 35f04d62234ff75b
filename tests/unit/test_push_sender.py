"""Tests for the Expo push sender using httpx."""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.interface.push_sender import send_push_notification


@pytest.fixture(autouse=True)
def mock_asyncio_sleep() -> Generator[AsyncMock, None, None]:
    """Mock asyncio.sleep to avoid actual delays in retry tests."""
    with patch("src.interface.push_sender.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


def _response(status_code: int, payload: dict | None = None, text: str = "") -> MagicMock:
    mock_response = MagicMock(spec=httpx.Response)
    mock_response.status_code = status_code
    mock_response.is_success = 200 <= status_code < 300
    mock_response.json.return_value = payload or {}
    mock_response.text = text
    mock_response.request = MagicMock()
    return mock_response


class TestSendPushNotification:
    """Test sending push notifications via Expo."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        """Test a ticket with status ok is reported as sent."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(200, {"data": {"status": "ok", "id": "ticket-1"}})

            result = await send_push_notification(
                push_token="ExponentPushToken[abc]",
                title="New task created",
                body='"Clean pool" was added.',
                data={"task_id": "T1"},
            )

            assert result.success is True
            assert result.ticket_id == "ticket-1"
            payload = mock_post.call_args.kwargs["json"]
            assert payload == {
                "to": "ExponentPushToken[abc]",
                "sound": "default",
                "title": "New task created",
                "body": '"Clean pool" was added.',
                "data": {"task_id": "T1"},
            }

    @pytest.mark.asyncio
    async def test_error_ticket(self) -> None:
        """Test an error ticket is reported with Expo's message."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(
                200, {"data": {"status": "error", "message": "DeviceNotRegistered"}}
            )

            result = await send_push_notification(push_token="ExponentPushToken[abc]", title="t", body="b")

            assert result.success is False
            assert result.error == "DeviceNotRegistered"

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        """Test handling of 4xx client errors (no retry)."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(400, text="Bad Request")

            result = await send_push_notification(push_token="bad", title="t", body="b")

            assert result.success is False
            assert "Bad Request" in result.error
            assert mock_post.call_count == 1

    @pytest.mark.asyncio
    async def test_server_error_retried(self, mock_asyncio_sleep: AsyncMock) -> None:
        """Test retry logic on 5xx server errors."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.return_value = _response(503)

            result = await send_push_notification(push_token="t", title="t", body="b", max_retries=3)

            assert result.success is False
            assert result.error == "Server error: 503"
            assert mock_post.call_count == 3
            assert mock_asyncio_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_transport_error_retried_then_succeeds(self) -> None:
        """Test a connection failure followed by success."""
        with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
            mock_post.side_effect = [
                httpx.ConnectError("refused"),
                _response(200, {"data": {"status": "ok", "id": "ticket-2"}}),
            ]

            result = await send_push_notification(push_token="t", title="t", body="b")

            assert result.success is True
            assert result.ticket_id == "ticket-2"
