"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization; columns store the ``.value``.
"""

from __future__ import annotations

from enum import Enum


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationType(str, Enum):
    """Why a notification is sent."""

    REMINDER = "reminder"
    STARTING_SOON = "starting_soon"


class NotificationChannel(str, Enum):
    """Delivery medium. SMS is stored in preferences but has no transport."""

    EMAIL = "email"
    BROWSER = "browser"
    SMS = "sms"

    @classmethod
    def parse_list(cls, raw: object, *, strict: bool = False) -> list[NotificationChannel]:
        """Parse a stored/submitted channel list into enum members.

        Order is preserved and duplicates dropped. Unknown names raise
        ``ValueError`` when ``strict``, otherwise they are skipped.
        """
        if raw is None:
            return []
        if isinstance(raw, str) or not isinstance(raw, list | tuple):
            msg = f"Channel list must be a list of names, got {type(raw).__name__}"
            raise ValueError(msg)

        channels: list[NotificationChannel] = []
        for item in raw:
            try:
                channel = cls(item)
            except ValueError:
                if strict:
                    msg = f"Unknown notification channel: {item!r}"
                    raise ValueError(msg) from None
                continue
            if channel not in channels:
                channels.append(channel)
        return channels


class NotificationStatus(str, Enum):
    """Delivery state machine: pending → processing → sent | failed."""

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (NotificationStatus.SENT, NotificationStatus.FAILED)
