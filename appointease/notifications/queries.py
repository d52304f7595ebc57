"""Read-side queries backing the notification bell and history pages."""

from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from appointease.clock import Clock, utc_now
from appointease.models.enums import NotificationStatus
from appointease.models.notification import Notification


async def get_sent_notifications(db: AsyncSession, user_id: uuid.UUID, limit: int = 50) -> list[Notification]:
    """Delivered notifications for the bell, newest first."""
    result = await db.execute(
        select(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.status == NotificationStatus.SENT.value,
        )
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_notification_history(
    db: AsyncSession,
    user_id: uuid.UUID,
    page: int = 1,
    per_page: int = 10,
) -> tuple[list[Notification], int]:
    """All of a user's notifications in any status, paginated."""
    total = await db.scalar(
        select(func.count(Notification.id)).where(Notification.user_id == user_id)
    )
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total or 0


async def mark_as_read(
    db: AsyncSession,
    user_id: uuid.UUID,
    notification_id: uuid.UUID,
    clock: Clock = utc_now,
) -> bool:
    """Set read_at on one of the user's notifications. False if not found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read_at=func.coalesce(Notification.read_at, clock()))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0  # type: ignore[attr-defined]


async def mark_all_as_read(db: AsyncSession, user_id: uuid.UUID, clock: Clock = utc_now) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        .values(read_at=clock())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount  # type: ignore[attr-defined]
