"""Pytest configuration and shared fixtures."""

import pytest

from src.core import db_client
from src.core.config import settings


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch):
    """Real SQLite database in a temporary directory with the schema applied."""
    db_path = tmp_path / "test.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()
