"""Notification preference store — get-or-create and partial update.

A missing preference row is never an error: the first read inserts the
defaults (email on, browser on, sms off, 30 minute lead time).
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from appointease.config import settings
from appointease.events import emit
from appointease.models.notification_preference import NotificationPreference
from appointease.schemas.events import EventType, SystemEvent
from appointease.schemas.notifications import PreferenceUpdate

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Reads and writes per-user notification preferences."""

    def __init__(self, default_reminder_minutes: int | None = None) -> None:
        self._default_minutes = (
            default_reminder_minutes
            if default_reminder_minutes is not None
            else settings.notifications.default_reminder_minutes
        )

    async def get(self, db: AsyncSession, user_id: uuid.UUID) -> NotificationPreference | None:
        result = await db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, db: AsyncSession, user_id: uuid.UUID) -> NotificationPreference:
        """Return the user's preferences, inserting defaults if absent.

        The insert uses ON CONFLICT DO NOTHING on the unique user_id so two
        concurrent first reads cannot create duplicate rows.
        """
        preference = await self.get(db, user_id)
        if preference is not None:
            return preference

        await db.execute(
            pg_insert(NotificationPreference)
            .values(
                id=uuid.uuid4(),
                user_id=user_id,
                email_enabled=True,
                browser_enabled=True,
                sms_enabled=False,
                default_reminder_minutes=self._default_minutes,
            )
            .on_conflict_do_nothing(index_elements=[NotificationPreference.user_id])
        )
        preference = await self.get(db, user_id)
        if preference is None:
            msg = f"Notification preferences for user {user_id} vanished after insert"
            raise RuntimeError(msg)

        logger.info("Created default notification preferences for user %s", user_id)
        return preference

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        changes: PreferenceUpdate,
    ) -> NotificationPreference:
        """Apply only the fields present in ``changes``.

        An explicit null clears ``settings``; on the other columns it is ignored.
        """
        preference = await self.get_or_create(db, user_id)
        fields = {
            name: value
            for name, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or name == "settings"
        }
        for name, value in fields.items():
            setattr(preference, name, value)
        await db.flush()

        if fields:
            await emit(SystemEvent(
                event_type=EventType.PREFERENCES_UPDATED,
                user_id=user_id,
                actor=str(user_id),
                data={"fields": sorted(fields)},
                source_module="notifications.preferences",
            ))
            logger.info("Notification preferences updated: user=%s fields=%s", user_id, sorted(fields))
        return preference


# Module-level singleton
preference_store = PreferenceStore()
