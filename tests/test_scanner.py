"""Tests for the due-notification scanner."""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from appointease.clock import fixed_clock
from appointease.models.appointment import Appointment
from appointease.models.notification_preference import NotificationPreference
from appointease.notifications.dispatcher import NotificationDispatcher
from appointease.notifications.generator import plan_reminders
from appointease.notifications.retry import NoRetry
from appointease.notifications.scanner import DueNotificationScanner

NOW = datetime(2025, 1, 10, 13, 30, tzinfo=UTC)


def _make_db(due_ids: list[uuid.UUID], notifications: dict[uuid.UUID, MagicMock]) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.scalars.return_value.all.return_value = due_ids
    db.execute.return_value = result

    async def get(model, notification_id):
        return notifications.get(notification_id)

    db.get.side_effect = get
    return db


def _factory(db: AsyncMock):
    @asynccontextmanager
    async def session():
        yield db

    return session


def _make_notification(notification_id: uuid.UUID) -> MagicMock:
    n = MagicMock()
    n.id = notification_id
    n.status = "pending"
    return n


@pytest.fixture(autouse=True)
def mock_emit():
    with patch("appointease.notifications.scanner.emit", new_callable=AsyncMock) as m:
        yield m


class TestDueQuery:
    @pytest.mark.asyncio
    async def test_filters_pending_and_orders_oldest_first(self):
        db = _make_db([], {})
        scanner = DueNotificationScanner(MagicMock(), _factory(db), clock=fixed_clock(NOW), max_concurrency=2)

        await scanner.due_notification_ids(db)

        sql = str(db.execute.call_args[0][0])
        assert "notifications.status = :status_1" in sql
        assert "notifications.scheduled_at <= :scheduled_at_1" in sql
        assert "ORDER BY notifications.scheduled_at ASC, notifications.created_at ASC" in sql


class TestProcessDueNotifications:
    @pytest.mark.asyncio
    async def test_nothing_due(self, mock_emit):
        dispatcher = MagicMock()
        dispatcher.send_notification = AsyncMock()
        scanner = DueNotificationScanner(dispatcher, _factory(_make_db([], {})), clock=fixed_clock(NOW))

        assert await scanner.process_due_notifications() == 0
        dispatcher.send_notification.assert_not_awaited()
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_counts_sent(self, mock_emit):
        ids = [uuid.uuid4() for _ in range(3)]
        notifications = {i: _make_notification(i) for i in ids}
        dispatcher = MagicMock()
        dispatcher.send_notification = AsyncMock(side_effect=[True, False, True])
        scanner = DueNotificationScanner(
            dispatcher, _factory(_make_db(ids, notifications)), clock=fixed_clock(NOW), max_concurrency=1
        )

        assert await scanner.process_due_notifications() == 2
        assert dispatcher.send_notification.await_count == 3
        assert mock_emit.call_args[0][0].data == {"due": 3, "sent": 2, "not_sent": 1}

    @pytest.mark.asyncio
    async def test_one_error_does_not_stop_the_batch(self):
        ids = [uuid.uuid4() for _ in range(3)]
        notifications = {i: _make_notification(i) for i in ids}

        async def send(db, notification):
            if notification.id == ids[1]:
                raise RuntimeError("boom")
            return True

        dispatcher = MagicMock()
        dispatcher.send_notification = AsyncMock(side_effect=send)
        scanner = DueNotificationScanner(dispatcher, _factory(_make_db(ids, notifications)), clock=fixed_clock(NOW))

        assert await scanner.process_due_notifications() == 2

    @pytest.mark.asyncio
    async def test_vanished_notification_skipped(self):
        ids = [uuid.uuid4(), uuid.uuid4()]
        notifications = {ids[0]: _make_notification(ids[0])}
        dispatcher = MagicMock()
        dispatcher.send_notification = AsyncMock(return_value=True)
        scanner = DueNotificationScanner(dispatcher, _factory(_make_db(ids, notifications)), clock=fixed_clock(NOW))

        assert await scanner.process_due_notifications() == 1
        dispatcher.send_notification.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        ids = [uuid.uuid4() for _ in range(6)]
        notifications = {i: _make_notification(i) for i in ids}
        in_flight = 0
        peak = 0

        async def send(db, notification):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return True

        dispatcher = MagicMock()
        dispatcher.send_notification = AsyncMock(side_effect=send)
        scanner = DueNotificationScanner(
            dispatcher, _factory(_make_db(ids, notifications)), clock=fixed_clock(NOW), max_concurrency=2
        )

        assert await scanner.process_due_notifications() == 6
        assert peak == 2


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_generated_reminder_is_sent_on_next_scan(self):
        """Generated 12:00 for a 14:00 start, scanned 13:30:01 → sent at scan time."""
        start = datetime(2025, 1, 10, 14, 0, tzinfo=UTC)
        appointment = Appointment(
            id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            title="Dentist",
            start_time=start,
            end_time=start + timedelta(hours=1),
            notifications_enabled=True,
            reminder_minutes=30,
        )
        preference = NotificationPreference(
            user_id=appointment.user_id,
            email_enabled=True,
            browser_enabled=False,
            sms_enabled=False,
            default_reminder_minutes=15,
        )
        [notification] = plan_reminders(appointment, preference, datetime(2025, 1, 10, 12, 0, tzinfo=UTC))
        assert notification.scheduled_at == datetime(2025, 1, 10, 13, 30, tzinfo=UTC)

        scan_time = datetime(2025, 1, 10, 13, 30, 1, tzinfo=UTC)
        owner = MagicMock()
        owner.email = "owner@example.com"
        loaded = MagicMock()
        loaded.user = owner

        due = MagicMock()
        due.scalars.return_value.all.return_value = [notification.id]
        claimed = MagicMock()
        claimed.rowcount = 1
        appointment_row = MagicMock()
        appointment_row.scalar_one_or_none.return_value = loaded
        db = _make_db([], {notification.id: notification})
        db.execute.side_effect = [due, claimed, appointment_row, MagicMock()]

        mailer = AsyncMock()
        dispatcher = NotificationDispatcher(
            mailer,
            clock=fixed_clock(scan_time),
            timeout=5.0,
            retry_policy=NoRetry(),
            mail_failures_as_sent=False,
        )
        scanner = DueNotificationScanner(dispatcher, _factory(db), clock=fixed_clock(scan_time))

        with patch("appointease.notifications.dispatcher.emit", new_callable=AsyncMock):
            assert await scanner.process_due_notifications() == 1

        assert notification.status == "sent"
        assert notification.sent_at == scan_time
        mailer.send_reminder.assert_awaited_once()
