"""Tests for request/response schemas, channel parsing and config validation."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from appointease.config import NotificationSettings, Settings
from appointease.models.enums import NotificationChannel, NotificationStatus
from appointease.schemas.appointments import AppointmentIn
from appointease.schemas.notifications import BellItem, bell_content
from appointease.schemas.shares import ShareCreate

START = datetime(2025, 1, 10, 14, 0, tzinfo=UTC)


def _appointment_payload(**overrides) -> dict:
    payload = {
        "title": "Dentist",
        "start_time": START.isoformat(),
        "end_time": (START + timedelta(hours=1)).isoformat(),
    }
    payload.update(overrides)
    return payload


class TestParseChannelList:
    def test_preserves_order_and_dedupes(self):
        assert NotificationChannel.parse_list(["browser", "email", "browser"]) == [
            NotificationChannel.BROWSER,
            NotificationChannel.EMAIL,
        ]

    def test_none_is_empty(self):
        assert NotificationChannel.parse_list(None) == []

    def test_lenient_skips_unknown(self):
        assert NotificationChannel.parse_list(["fax", "email"]) == [NotificationChannel.EMAIL]

    def test_strict_rejects_unknown(self):
        with pytest.raises(ValueError, match="fax"):
            NotificationChannel.parse_list(["fax"], strict=True)

    @pytest.mark.parametrize("raw", ["email", {"email": True}, 3])
    def test_rejects_non_lists(self, raw):
        with pytest.raises(ValueError):
            NotificationChannel.parse_list(raw)


class TestNotificationStatus:
    def test_terminal_states(self):
        assert NotificationStatus.SENT.is_terminal
        assert NotificationStatus.FAILED.is_terminal
        assert not NotificationStatus.PENDING.is_terminal
        assert not NotificationStatus.PROCESSING.is_terminal


class TestAppointmentIn:
    def test_minimal(self):
        appt = AppointmentIn.model_validate(_appointment_payload())
        assert appt.notifications_enabled is True
        assert appt.reminder_minutes is None
        assert appt.channel_names() is None

    def test_channels_normalized(self):
        appt = AppointmentIn.model_validate(_appointment_payload(notification_channels=["email", "email", "browser"]))
        assert appt.channel_names() == ["email", "browser"]

    def test_unknown_channel_rejected(self):
        with pytest.raises(ValidationError):
            AppointmentIn.model_validate(_appointment_payload(notification_channels=["pager"]))

    def test_string_channel_rejected(self):
        with pytest.raises(ValidationError):
            AppointmentIn.model_validate(_appointment_payload(notification_channels="email"))

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError, match="end_time must not be before start_time"):
            AppointmentIn.model_validate(
                _appointment_payload(end_time=(START - timedelta(minutes=1)).isoformat())
            )

    def test_zero_length_allowed(self):
        appt = AppointmentIn.model_validate(_appointment_payload(end_time=START.isoformat()))
        assert appt.end_time == appt.start_time

    def test_negative_reminder_rejected(self):
        with pytest.raises(ValidationError):
            AppointmentIn.model_validate(_appointment_payload(reminder_minutes=-5))

    def test_zero_reminder_allowed(self):
        assert AppointmentIn.model_validate(_appointment_payload(reminder_minutes=0)).reminder_minutes == 0

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            AppointmentIn.model_validate(_appointment_payload(title=""))


class TestShareCreate:
    def test_default_from_settings(self):
        assert ShareCreate().expires_in_days == 30

    def test_explicit_null_never_expires(self):
        assert ShareCreate.model_validate({"expires_in_days": None}).expires_in_days is None

    def test_zero_rejected(self):
        with pytest.raises(ValidationError):
            ShareCreate(expires_in_days=0)


class TestBell:
    def test_reminder_content(self):
        assert bell_content("reminder", "Dentist") == "You have an upcoming appointment: Dentist"

    def test_starting_soon_content(self):
        assert bell_content("starting_soon", "Dentist") == "Your appointment is starting soon: Dentist"

    def test_other_content(self):
        assert bell_content("other", "Dentist") == "Notification about your appointment: Dentist"

    def test_item_from_notification(self):
        n = MagicMock()
        n.id = uuid.uuid4()
        n.appointment_id = uuid.uuid4()
        n.type = "reminder"
        n.data = {"title": "Dentist"}
        n.read_at = None
        n.created_at = START

        item = BellItem.from_notification(n)

        assert item.title == "Dentist"
        assert item.content == "You have an upcoming appointment: Dentist"
        assert item.is_read is False

    def test_item_without_snapshot(self):
        n = MagicMock()
        n.id = uuid.uuid4()
        n.appointment_id = uuid.uuid4()
        n.type = "reminder"
        n.data = None
        n.read_at = START
        n.created_at = START

        item = BellItem.from_notification(n)

        assert item.title == "Appointment Notification"
        assert item.content.endswith(": Unknown")
        assert item.is_read is True


class TestConfig:
    def test_log_level_uppercased(self):
        assert Settings(log_level="info").log_level == "INFO"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="verbose")

    def test_zero_workers_rejected(self):
        with pytest.raises(ValidationError):
            NotificationSettings(max_concurrent_dispatches=0)

    def test_defaults(self):
        config = NotificationSettings()
        assert config.scan_interval_seconds == 60
        assert config.mail_failures_as_sent is False
        assert config.retry_max_attempts == 1
