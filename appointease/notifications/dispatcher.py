"""Notification dispatcher — delivers one notification and records the outcome.

State machine:
    pending ──claim──▶ processing ──▶ sent
                                  └──▶ failed

The claim is a compare-and-swap UPDATE (``WHERE status = 'pending'``), so
two overlapping scans can never both deliver the same row. Every failure
(transport error, timeout, vanished appointment, unsupported channel)
ends in ``failed`` with the error message; nothing is raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from appointease.clock import Clock, utc_now
from appointease.config import settings
from appointease.events import emit
from appointease.models.appointment import Appointment
from appointease.models.enums import NotificationChannel, NotificationStatus
from appointease.models.notification import Notification
from appointease.notifications.errors import (
    DispatchTimeoutError,
    MailTransportError,
    NotificationDataError,
    UnsupportedChannelError,
)
from appointease.notifications.mailer import ReminderMailer, reminder_mailer
from appointease.notifications.retry import RetryPolicy, retry_policy_from_settings
from appointease.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000

ChannelSender = Callable[[AsyncSession, Notification], Awaitable[None]]


class NotificationDispatcher:
    """Sends single notifications through their channel."""

    def __init__(
        self,
        mailer: ReminderMailer | None = None,
        *,
        clock: Clock = utc_now,
        timeout: float | None = None,
        retry_policy: RetryPolicy | None = None,
        mail_failures_as_sent: bool | None = None,
    ) -> None:
        config = settings.notifications
        self._mailer = mailer or reminder_mailer
        self._clock = clock
        self._timeout = timeout if timeout is not None else config.dispatch_timeout_seconds
        self._retry_policy = retry_policy or retry_policy_from_settings(config)
        self._mail_failures_as_sent = (
            mail_failures_as_sent if mail_failures_as_sent is not None else config.mail_failures_as_sent
        )
        self._senders: dict[str, ChannelSender] = {
            NotificationChannel.EMAIL.value: self._send_email,
            NotificationChannel.BROWSER.value: self._send_browser,
        }

    async def send_notification(self, db: AsyncSession, notification: Notification) -> bool:
        """Deliver ``notification`` if it is still pending.

        Returns:
            True only if the notification ended in ``sent`` during this call.
        """
        if not notification.is_pending:
            logger.debug("Skipping notification %s in status %s", notification.id, notification.status)
            return False

        notification_id = notification.id
        if not await self._claim(db, notification):
            logger.info("Notification %s already claimed by another worker", notification_id)
            return False

        try:
            await self._deliver(db, notification)
        except Exception as exc:
            # The claim is committed; a cancelled or failed query may have left
            # the session mid-transaction. Detached, the rollback cannot expire
            # the fields _mark_failed still reads.
            db.expunge(notification)
            await db.rollback()
            logger.error(
                "Failed to send notification %s via %s: %s",
                notification_id,
                notification.channel,
                exc,
            )
            await self._mark_failed(db, notification, exc)
            return False

        await self._mark_sent(db, notification)
        return True

    # ── State transitions ────────────────────────────────────────────

    async def _claim(self, db: AsyncSession, notification: Notification) -> bool:
        """Atomically move pending → processing; False if someone else won."""
        result = await db.execute(
            update(Notification)
            .where(
                Notification.id == notification.id,
                Notification.status == NotificationStatus.PENDING.value,
            )
            .values(status=NotificationStatus.PROCESSING.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:  # type: ignore[attr-defined]
            await db.rollback()
            return False

        await db.commit()
        notification.status = NotificationStatus.PROCESSING.value
        return True

    async def _mark_sent(self, db: AsyncSession, notification: Notification) -> None:
        sent_at = self._clock()
        await self._finish(db, notification.id, status=NotificationStatus.SENT, sent_at=sent_at, error=None)
        notification.status = NotificationStatus.SENT.value
        notification.sent_at = sent_at
        notification.error = None

        await emit(SystemEvent(
            event_type=EventType.NOTIFICATION_SENT,
            user_id=notification.user_id,
            appointment_id=notification.appointment_id,
            actor="system",
            data={"notification_id": str(notification.id), "channel": notification.channel},
            source_module="notifications.dispatcher",
        ))
        logger.info("Notification %s sent via %s", notification.id, notification.channel)

    async def _mark_failed(self, db: AsyncSession, notification: Notification, exc: BaseException) -> None:
        message = (str(exc) or type(exc).__name__)[:MAX_ERROR_LENGTH]
        await self._finish(db, notification.id, status=NotificationStatus.FAILED, sent_at=None, error=message)
        notification.status = NotificationStatus.FAILED.value
        notification.error = message

        await emit(SystemEvent(
            event_type=EventType.NOTIFICATION_FAILED,
            user_id=notification.user_id,
            appointment_id=notification.appointment_id,
            actor="system",
            data={
                "notification_id": str(notification.id),
                "channel": notification.channel,
                "error": message,
                "attempt": notification.attempt,
            },
            source_module="notifications.dispatcher",
        ))

        await self._schedule_retry(db, notification, exc)

    async def _finish(
        self,
        db: AsyncSession,
        notification_id: uuid.UUID,
        *,
        status: NotificationStatus,
        sent_at: datetime | None,
        error: str | None,
    ) -> None:
        """processing → terminal status, keyed by id."""
        await db.execute(
            update(Notification)
            .where(
                Notification.id == notification_id,
                Notification.status == NotificationStatus.PROCESSING.value,
            )
            .values(status=status.value, sent_at=sent_at, error=error)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    async def _schedule_retry(self, db: AsyncSession, notification: Notification, exc: BaseException) -> None:
        now = self._clock()
        retry_at = self._retry_policy.next_attempt_at(notification, exc, now)
        if retry_at is None:
            return

        retry = Notification(
            id=uuid.uuid4(),
            user_id=notification.user_id,
            appointment_id=notification.appointment_id,
            type=notification.type,
            channel=notification.channel,
            status=NotificationStatus.PENDING.value,
            scheduled_at=retry_at,
            attempt=(notification.attempt or 1) + 1,
            data=dict(notification.data or {}),
        )
        db.add(retry)
        await db.commit()

        await emit(SystemEvent(
            event_type=EventType.NOTIFICATION_RETRY_SCHEDULED,
            user_id=notification.user_id,
            appointment_id=notification.appointment_id,
            actor="system",
            data={
                "failed_notification_id": str(notification.id),
                "retry_notification_id": str(retry.id),
                "attempt": retry.attempt,
                "scheduled_at": retry_at.isoformat(),
            },
            source_module="notifications.dispatcher",
        ))
        logger.info(
            "Retry scheduled for notification %s: attempt %d at %s",
            notification.id,
            retry.attempt,
            retry_at.isoformat(),
        )

    # ── Channels ─────────────────────────────────────────────────────

    async def _deliver(self, db: AsyncSession, notification: Notification) -> None:
        sender = self._senders.get(notification.channel)
        if sender is None:
            raise UnsupportedChannelError(notification.channel)
        try:
            await asyncio.wait_for(sender(db, notification), timeout=self._timeout)
        except TimeoutError as exc:
            raise DispatchTimeoutError(self._timeout) from exc

    async def _send_email(self, db: AsyncSession, notification: Notification) -> None:
        result = await db.execute(
            select(Appointment)
            .where(Appointment.id == notification.appointment_id)
            .options(selectinload(Appointment.user), selectinload(Appointment.category))
        )
        appointment = result.scalar_one_or_none()
        if appointment is None:
            msg = f"Appointment {notification.appointment_id} no longer exists"
            raise NotificationDataError(msg)
        user = appointment.user
        if user is None or not user.email:
            msg = f"Owner of appointment {appointment.id} has no email address"
            raise NotificationDataError(msg)

        try:
            await self._mailer.send_reminder(user, appointment, notification)
        except MailTransportError as exc:
            if not self._mail_failures_as_sent:
                raise
            logger.warning(
                "Mail transport failed for notification %s; recording as sent (mail_failures_as_sent): %s",
                notification.id,
                exc,
            )

    async def _send_browser(self, db: AsyncSession, notification: Notification) -> None:
        # No push transport yet; the dashboard bell reads sent rows directly.
        logger.info(
            "Browser notification: notification=%s user=%s appointment=%s",
            notification.id,
            notification.user_id,
            notification.appointment_id,
        )

    def describe(self) -> dict[str, Any]:
        """Effective configuration, for the health endpoint."""
        return {
            "channels": sorted(self._senders),
            "timeout_seconds": self._timeout,
            "retry_policy": type(self._retry_policy).__name__,
            "mail_failures_as_sent": self._mail_failures_as_sent,
        }


# Module-level singleton
notification_dispatcher = NotificationDispatcher()
