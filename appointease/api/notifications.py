"""Notification API — preferences, bell feed, history, read markers."""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from appointease.api.auth import get_current_user_id
from appointease.db.engine import get_session
from appointease.notifications.preferences import preference_store
from appointease.notifications.queries import (
    get_notification_history,
    get_sent_notifications,
    mark_all_as_read,
    mark_as_read,
)
from appointease.schemas.notifications import (
    BellItem,
    BellResponse,
    NotificationHistoryPage,
    NotificationOut,
    PreferenceOut,
    PreferenceUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["notifications"])


# ── Preferences ──────────────────────────────────────────────────────


@router.get("/notification-preferences", response_model=PreferenceOut)
async def get_preferences(
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> PreferenceOut:
    preference = await preference_store.get_or_create(db, user_id)
    return PreferenceOut.model_validate(preference)


@router.put("/notification-preferences", response_model=PreferenceOut)
async def update_preferences(
    changes: PreferenceUpdate,
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> PreferenceOut:
    preference = await preference_store.update(db, user_id, changes)
    return PreferenceOut.model_validate(preference)


# ── Notifications ────────────────────────────────────────────────────


@router.get("/notifications", response_model=BellResponse)
async def list_notifications(
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> BellResponse:
    """Delivered notifications for the dashboard bell."""
    notifications = await get_sent_notifications(db, user_id)
    items = [BellItem.from_notification(n) for n in notifications]
    return BellResponse(
        notifications=items,
        unread_count=sum(1 for item in items if not item.is_read),
    )


@router.get("/notifications/history", response_model=NotificationHistoryPage)
async def notification_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> NotificationHistoryPage:
    """Every notification in any status, including failed ones."""
    notifications, total = await get_notification_history(db, user_id, page=page, per_page=per_page)
    return NotificationHistoryPage(
        items=[NotificationOut.model_validate(n) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/notifications/{notification_id}/read", status_code=status.HTTP_200_OK)
async def read_notification(
    notification_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> dict[str, str]:
    if not await mark_as_read(db, user_id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"message": "Notification marked as read"}


@router.post("/notifications/read-all", status_code=status.HTTP_200_OK)
async def read_all_notifications(
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> dict[str, str | int]:
    updated = await mark_all_as_read(db, user_id)
    logger.debug("Marked %d notifications read for user %s", updated, user_id)
    return {"message": "All notifications marked as read", "updated": updated}
