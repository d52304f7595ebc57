"""Notification generator — turns an appointment into pending reminder rows.

Regeneration is a full replace: every call first deletes the appointment's
pending rows, then plans a fresh set. Rows that already left ``pending``
(processing, sent, failed) are never touched.

Timing policy: the reminder fires ``lead`` minutes before the start, where
``lead`` is the appointment's own ``reminder_minutes`` or the owner's
default. If that instant is already in the past when generating, no rows
are created at all — there is no "starting soon" catch-up notification.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from appointease.clock import Clock, as_utc, utc_now
from appointease.events import emit
from appointease.models.appointment import Appointment
from appointease.models.enums import NotificationStatus, NotificationType
from appointease.models.notification import Notification
from appointease.models.notification_preference import NotificationPreference
from appointease.notifications.preferences import PreferenceStore, preference_store
from appointease.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


def lead_minutes_for(appointment: Appointment, preference: NotificationPreference) -> int:
    """The appointment's own lead time, falling back to the user's default."""
    if appointment.reminder_minutes is not None:
        return appointment.reminder_minutes
    return preference.default_reminder_minutes


def reminder_snapshot(appointment: Appointment) -> dict[str, Any]:
    """Denormalized payload stored on each notification row."""
    return {
        "title": appointment.title,
        "start_time": as_utc(appointment.start_time).isoformat(),
        "location": appointment.location or "",
        "is_starting_soon": False,
    }


def plan_reminders(
    appointment: Appointment,
    preference: NotificationPreference,
    now: datetime,
) -> list[Notification]:
    """Build (unsaved) pending reminder rows, one per channel.

    Returns an empty list when the reminder instant is already past.
    """
    lead = lead_minutes_for(appointment, preference)
    fire_at = as_utc(appointment.start_time) - timedelta(minutes=lead)
    if fire_at < as_utc(now):
        logger.debug(
            "Reminder window elapsed for appointment %s (fire_at=%s now=%s)",
            appointment.id,
            fire_at.isoformat(),
            now.isoformat(),
        )
        return []

    channels = appointment.channel_overrides or preference.reminder_channels()
    snapshot = reminder_snapshot(appointment)

    return [
        Notification(
            id=uuid.uuid4(),
            user_id=appointment.user_id,
            appointment_id=appointment.id,
            type=NotificationType.REMINDER.value,
            channel=channel.value,
            status=NotificationStatus.PENDING.value,
            scheduled_at=fire_at,
            attempt=1,
            data=dict(snapshot),
        )
        for channel in channels
    ]


class NotificationGenerator:
    """Replaces an appointment's pending reminders."""

    def __init__(self, preferences: PreferenceStore | None = None, clock: Clock = utc_now) -> None:
        self._preferences = preferences or preference_store
        self._clock = clock

    async def generate_notifications(
        self,
        db: AsyncSession,
        appointment: Appointment,
    ) -> list[Notification]:
        """Regenerate pending reminders for ``appointment``.

        Called by the appointment layer after create and after any update
        touching time, reminder or channel fields.

        Returns:
            The newly created pending notifications (possibly empty).
        """
        removed = await self.delete_pending(db, appointment.id)

        if not appointment.notifications_enabled:
            logger.info(
                "Notifications disabled for appointment %s — removed %d pending",
                appointment.id,
                removed,
            )
            return []

        preference = await self._preferences.get_or_create(db, appointment.user_id)
        notifications = plan_reminders(appointment, preference, self._clock())

        if notifications:
            db.add_all(notifications)
            await db.flush()

            await emit(SystemEvent(
                event_type=EventType.NOTIFICATIONS_GENERATED,
                user_id=appointment.user_id,
                appointment_id=appointment.id,
                data={
                    "channels": [n.channel for n in notifications],
                    "scheduled_at": notifications[0].scheduled_at.isoformat(),
                    "replaced": removed,
                },
                source_module="notifications.generator",
            ))

        logger.info(
            "Generated %d notification(s) for appointment %s (replaced %d pending)",
            len(notifications),
            appointment.id,
            removed,
        )
        return notifications

    @staticmethod
    async def delete_pending(db: AsyncSession, appointment_id: uuid.UUID) -> int:
        """Delete every still-pending notification of an appointment."""
        result = await db.execute(
            delete(Notification)
            .where(
                Notification.appointment_id == appointment_id,
                Notification.status == NotificationStatus.PENDING.value,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0  # type: ignore[attr-defined]


# Module-level singleton
notification_generator = NotificationGenerator()
