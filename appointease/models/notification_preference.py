"""NotificationPreference model — one row per user, created lazily."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appointease.models.base import Base, TimestampMixin
from appointease.models.enums import NotificationChannel

if TYPE_CHECKING:
    from appointease.models.user import User

DEFAULT_REMINDER_MINUTES = 30


class NotificationPreference(TimestampMixin, Base):
    """Which channels a user wants reminders on and how early."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    email_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    browser_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sms_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    default_reminder_minutes: Mapped[int] = mapped_column(
        Integer, default=DEFAULT_REMINDER_MINUTES, nullable=False
    )

    # Free-form UI settings ({"sound": true, ...})
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    user: Mapped[User] = relationship("User", back_populates="notification_preference")

    def reminder_channels(self) -> list[NotificationChannel]:
        """Channels reminders fan out to, in fixed order.

        SMS is deliberately absent: the flag is stored but has no transport.
        """
        channels: list[NotificationChannel] = []
        if self.email_enabled:
            channels.append(NotificationChannel.EMAIL)
        if self.browser_enabled:
            channels.append(NotificationChannel.BROWSER)
        return channels

    def __repr__(self) -> str:
        return (
            f"<NotificationPreference user={self.user_id} email={self.email_enabled} "
            f"browser={self.browser_enabled} lead={self.default_reminder_minutes}>"
        )
