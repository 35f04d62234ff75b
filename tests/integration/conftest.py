"""Pytest configuration and fixtures for integration tests."""

import pytest

from src.core.config import settings


@pytest.fixture(autouse=True)
def notifications_off(monkeypatch):
    """Integration tests exercise storage only; keep push delivery out of the way."""
    monkeypatch.setattr(settings, "notifications_enabled_default", False)
