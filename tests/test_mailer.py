"""Tests for the reminder email transport."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi_mail.errors import ConnectionErrors

from appointease.config import MailSettings
from appointease.notifications.errors import MailTransportError
from appointease.notifications.mailer import (
    REMINDER_TEMPLATE,
    TEMPLATE_DIR,
    ReminderMailer,
    reminder_context,
    reminder_subject,
)

START = datetime(2025, 1, 10, 14, 0, tzinfo=UTC)


def _make_user() -> MagicMock:
    user = MagicMock()
    user.id = uuid.uuid4()
    user.name = "Ada"
    user.email = "ada@example.com"
    return user


def _make_appointment(category: str | None = "Health") -> MagicMock:
    appt = MagicMock()
    appt.id = uuid.uuid4()
    appt.title = "Dentist"
    appt.description = "Checkup"
    appt.location = "Main St"
    appt.start_time = START
    appt.end_time = START + timedelta(minutes=30)
    if category is None:
        appt.category = None
    else:
        appt.category.name = category
    return appt


def _make_notification() -> MagicMock:
    n = MagicMock()
    n.id = uuid.uuid4()
    n.type = "reminder"
    return n


class TestTemplate:
    def test_template_ships_with_package(self):
        assert (TEMPLATE_DIR / REMINDER_TEMPLATE).is_file()


class TestReminderContent:
    def test_subject(self):
        assert reminder_subject(_make_appointment()) == "Reminder: Dentist"

    def test_context(self):
        ctx = reminder_context(_make_user(), _make_appointment(), _make_notification())
        assert ctx["user_name"] == "Ada"
        assert ctx["date"] == "Friday, January 10, 2025"
        assert ctx["time_range"] == "02:00 PM - 02:30 PM"
        assert ctx["category"] == "Health"
        assert ctx["dashboard_url"].endswith("/appointments")

    def test_uncategorized(self):
        ctx = reminder_context(_make_user(), _make_appointment(category=None), _make_notification())
        assert ctx["category"] == "Uncategorized"


class TestSendReminder:
    @pytest.mark.asyncio
    async def test_sends_html_to_owner(self):
        mailer = ReminderMailer(MailSettings(mail_suppress_send=True))
        client = MagicMock()
        client.send_message = AsyncMock()
        mailer._client = client

        await mailer.send_reminder(_make_user(), _make_appointment(), _make_notification())

        message = client.send_message.call_args[0][0]
        assert message.subject == "Reminder: Dentist"
        assert len(message.recipients) == 1
        assert "ada@example.com" in str(message.recipients[0])
        assert client.send_message.call_args.kwargs == {"template_name": REMINDER_TEMPLATE}

    @pytest.mark.asyncio
    async def test_connection_error_becomes_transport_error(self):
        mailer = ReminderMailer(MailSettings())
        client = MagicMock()
        client.send_message = AsyncMock(side_effect=ConnectionErrors("Connection refused"))
        mailer._client = client

        with pytest.raises(MailTransportError, match="Connection refused"):
            await mailer.send_reminder(_make_user(), _make_appointment(), _make_notification())

    def test_client_built_lazily(self):
        mailer = ReminderMailer(MailSettings(mail_suppress_send=True))
        assert mailer._client is None
        assert mailer.client is mailer.client
