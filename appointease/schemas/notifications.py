"""Request/response schemas for notification preferences and history."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from appointease.models.enums import NotificationType

MAX_REMINDER_MINUTES = 10080  # one week


class PreferenceUpdate(BaseModel):
    """Partial update — only fields present in the request are applied."""

    model_config = ConfigDict(extra="forbid")

    email_enabled: bool | None = None
    browser_enabled: bool | None = None
    sms_enabled: bool | None = None
    default_reminder_minutes: int | None = Field(default=None, ge=1, le=MAX_REMINDER_MINUTES)
    settings: dict[str, Any] | None = None


class PreferenceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: uuid.UUID
    email_enabled: bool
    browser_enabled: bool
    sms_enabled: bool
    default_reminder_minutes: int
    settings: dict[str, Any] | None = None


class NotificationOut(BaseModel):
    """Full notification row, used by the history endpoint."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    appointment_id: uuid.UUID
    type: str
    channel: str
    status: str
    scheduled_at: datetime
    sent_at: datetime | None = None
    read_at: datetime | None = None
    error: str | None = None
    attempt: int
    data: dict[str, Any] | None = None
    created_at: datetime


class NotificationHistoryPage(BaseModel):
    items: list[NotificationOut]
    total: int
    page: int
    per_page: int


class BellItem(BaseModel):
    """Compact entry for the dashboard notification bell."""

    id: uuid.UUID
    title: str
    content: str
    is_read: bool
    created_at: datetime
    appointment_id: uuid.UUID

    @classmethod
    def from_notification(cls, notification: Any) -> BellItem:
        data = notification.data or {}
        title = data.get("title") or "Appointment Notification"
        return cls(
            id=notification.id,
            title=title,
            content=bell_content(notification.type, data.get("title") or "Unknown"),
            is_read=notification.read_at is not None,
            created_at=notification.created_at,
            appointment_id=notification.appointment_id,
        )


class BellResponse(BaseModel):
    notifications: list[BellItem]
    unread_count: int


def bell_content(notification_type: str, title: str) -> str:
    """One-line text shown in the notification bell."""
    if notification_type == NotificationType.STARTING_SOON.value:
        return f"Your appointment is starting soon: {title}"
    if notification_type == NotificationType.REMINDER.value:
        return f"You have an upcoming appointment: {title}"
    return f"Notification about your appointment: {title}"
