"""SystemEvent schema — the event type that flows through the event bus.

Notification delivery, share access and background jobs emit SystemEvents;
the audit subscriber persists them.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Notifications
    NOTIFICATIONS_GENERATED = "notification.generated"
    NOTIFICATION_SENT = "notification.sent"
    NOTIFICATION_FAILED = "notification.failed"
    NOTIFICATION_RETRY_SCHEDULED = "notification.retry_scheduled"
    NOTIFICATION_SCAN_COMPLETED = "notification.scan_completed"

    # Sharing
    SHARE_CREATED = "share.created"
    SHARE_REVOKED = "share.revoked"
    SHARE_VIEWED = "share.viewed"

    # Preferences
    PREFERENCES_UPDATED = "preferences.updated"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"
    SYSTEM_MAINTENANCE = "system.maintenance"


class SystemEvent(BaseModel):
    """Immutable event consumed by the audit logger."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional — scan events have no user)
    user_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    actor: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
