"""Pytest configuration and fixtures for unit tests."""

from unittest.mock import AsyncMock

import pytest

from src.core.config import settings
from src.domain.actor import Actor, Role
from src.interface.push_sender import SendPushResult
from tests.unit.mocks import InMemoryDBClient


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def push_mock(monkeypatch):
    """Replaces the Expo transport with an AsyncMock that reports success."""
    mock = AsyncMock(return_value=SendPushResult(success=True, ticket_id="mock_ticket_id", error=None))
    monkeypatch.setattr("src.interface.push_sender.send_push_notification", mock)
    return mock


@pytest.fixture
def patched_db(monkeypatch, in_memory_db, push_mock):
    """Patches src.core.db_client functions to use InMemoryDBClient.

    Also patches the push transport to avoid real HTTP calls and retry delays
    in unit tests.
    """
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.update_records", in_memory_db.update_records)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)

    # Flag unset means the configured default; keep it off unless a test opts in
    monkeypatch.setattr(settings, "notifications_enabled_default", False)

    return in_memory_db


@pytest.fixture
def admin(patched_db) -> Actor:
    """An admin with a stored profile and push token."""
    patched_db.seed(
        "profiles",
        {"id": "admin-1", "role": Role.ADMIN, "full_name": "Ada Admin", "push_token": "ExponentPushToken[admin]"},
    )
    return Actor(id="admin-1", role=Role.ADMIN, full_name="Ada Admin")


@pytest.fixture
def housekeeper(patched_db) -> Actor:
    """A housekeeper with a stored profile and push token."""
    patched_db.seed(
        "profiles",
        {"id": "hk-1", "role": Role.HOUSEKEEPER, "full_name": "Hal Keeper", "push_token": "ExponentPushToken[hk1]"},
    )
    return Actor(id="hk-1", role=Role.HOUSEKEEPER, full_name="Hal Keeper")


@pytest.fixture
def other_housekeeper(patched_db) -> Actor:
    """A second housekeeper without a push token."""
    patched_db.seed("profiles", {"id": "hk-2", "role": Role.HOUSEKEEPER, "full_name": "Olga Other"})
    return Actor(id="hk-2", role=Role.HOUSEKEEPER, full_name="Olga Other")


@pytest.fixture
def notifications_enabled(patched_db):
    """Persists the notifications flag as enabled."""
    patched_db.seed("preferences", {"id": "pref-1", "key": "notifications_enabled", "value": "true"})
    return patched_db
