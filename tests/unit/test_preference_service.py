"""Unit tests for preference_service module."""

import pytest

from src.core.config import settings
from src.core.errors import PermissionDeniedError
from src.services import preference_service


@pytest.mark.unit
class TestNotificationPreference:
    """The persisted notifications flag."""

    async def test_unset_uses_configured_default(self, patched_db, monkeypatch):
        assert await preference_service.are_notifications_enabled() is False

        monkeypatch.setattr(settings, "notifications_enabled_default", True)
        assert await preference_service.are_notifications_enabled() is True

    async def test_set_and_read_back(self, patched_db, admin):
        await preference_service.set_notifications_enabled(actor=admin, enabled=True)
        assert await preference_service.are_notifications_enabled() is True

        await preference_service.set_notifications_enabled(actor=admin, enabled=False)
        assert await preference_service.are_notifications_enabled() is False

        # Upserted, not duplicated
        assert len(await patched_db.list_records("preferences")) == 1

    async def test_read_failure_means_disabled(self, patched_db, monkeypatch):
        monkeypatch.setattr(settings, "notifications_enabled_default", True)
        patched_db.fail_on.add("list_records")

        assert await preference_service.are_notifications_enabled() is False

    async def test_housekeeper_cannot_change_flag(self, notifications_enabled, housekeeper):
        with pytest.raises(PermissionDeniedError):
            await preference_service.set_notifications_enabled(actor=housekeeper, enabled=False)

        assert await preference_service.are_notifications_enabled() is True
        assert notifications_enabled.writes() == []
