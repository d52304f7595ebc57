"""Due-notification scanner — the once-a-minute delivery job.

Selects pending notifications whose ``scheduled_at`` has passed (oldest
first) and hands each to the dispatcher in its own DB session. Dispatch
runs through a bounded worker pool; an error on one notification is
logged and never stops the rest of the batch.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from appointease.clock import Clock, utc_now
from appointease.config import settings
from appointease.db.engine import async_session_factory
from appointease.events import emit
from appointease.models.enums import NotificationStatus
from appointease.models.notification import Notification
from appointease.notifications.dispatcher import NotificationDispatcher, notification_dispatcher
from appointease.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


class DueNotificationScanner:
    """Finds due notifications and dispatches them."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        clock: Clock = utc_now,
        max_concurrency: int | None = None,
    ) -> None:
        self._dispatcher = dispatcher or notification_dispatcher
        self._session_factory = session_factory or async_session_factory
        self._clock = clock
        self._max_concurrency = max_concurrency or settings.notifications.max_concurrent_dispatches

    async def due_notification_ids(self, db: AsyncSession) -> list[uuid.UUID]:
        """IDs of pending notifications due now, oldest scheduled first."""
        result = await db.execute(
            select(Notification.id)
            .where(
                Notification.status == NotificationStatus.PENDING.value,
                Notification.scheduled_at <= self._clock(),
            )
            .order_by(Notification.scheduled_at.asc(), Notification.created_at.asc())
        )
        return list(result.scalars().all())

    async def process_due_notifications(self) -> int:
        """Dispatch every due notification.

        Returns:
            How many notifications became ``sent`` during this call.
        """
        async with self._session_factory() as db:
            due_ids = await self.due_notification_ids(db)

        if not due_ids:
            logger.debug("No due notifications")
            return 0

        logger.info("Processing %d due notification(s)", len(due_ids))
        semaphore = asyncio.Semaphore(self._max_concurrency)
        outcomes = await asyncio.gather(
            *[self._process_one(notification_id, semaphore) for notification_id in due_ids]
        )
        sent = sum(1 for ok in outcomes if ok)

        await emit(SystemEvent(
            event_type=EventType.NOTIFICATION_SCAN_COMPLETED,
            actor="system",
            data={"due": len(due_ids), "sent": sent, "not_sent": len(due_ids) - sent},
            source_module="notifications.scanner",
        ))
        logger.info("Notification scan complete: due=%d sent=%d", len(due_ids), sent)
        return sent

    async def _process_one(self, notification_id: uuid.UUID, semaphore: asyncio.Semaphore) -> bool:
        async with semaphore:
            try:
                async with self._session_factory() as db:
                    notification = await db.get(Notification, notification_id)
                    if notification is None:
                        logger.info("Notification %s disappeared before dispatch", notification_id)
                        return False
                    logger.debug(
                        "Processing notification %s (scheduled_at=%s)",
                        notification_id,
                        notification.scheduled_at,
                    )
                    return await self._dispatcher.send_notification(db, notification)
            except Exception:
                logger.exception("Unexpected error dispatching notification %s", notification_id)
                return False


# Module-level singleton
due_notification_scanner = DueNotificationScanner()
