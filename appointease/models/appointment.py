"""Appointment model — a scheduled event owned by one user.

Carries the per-appointment reminder overrides read by the notification
generator (``reminder_minutes`` and ``notification_channels``).
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appointease.models.base import Base, TimestampMixin
from appointease.models.enums import AppointmentStatus, NotificationChannel

if TYPE_CHECKING:
    from appointease.models.category import Category
    from appointease.models.notification import Notification
    from appointease.models.share import AppointmentShare
    from appointease.models.user import User

logger = logging.getLogger(__name__)


class Appointment(TimestampMixin, Base):
    """A user's appointment."""

    __tablename__ = "appointments"

    # Foreign keys
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL")
    )

    # Details
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    location: Mapped[str | None] = mapped_column(String(255))

    # Scheduling
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AppointmentStatus.SCHEDULED.value, nullable=False
    )

    # Reminder overrides
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    reminder_minutes: Mapped[int | None] = mapped_column(Integer, comment="Overrides the user's default lead time")
    notification_channels: Mapped[list[str] | None] = mapped_column(
        JSONB, comment="Overrides the user's enabled channels"
    )

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="appointments")
    category: Mapped[Category | None] = relationship("Category", back_populates="appointments")
    notifications: Mapped[list[Notification]] = relationship(
        "Notification", back_populates="appointment", cascade="all, delete-orphan", passive_deletes=True
    )
    shares: Mapped[list[AppointmentShare]] = relationship(
        "AppointmentShare", back_populates="appointment", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def channel_overrides(self) -> list[NotificationChannel]:
        """Validated channel override list; unknown stored names are dropped."""
        raw: Any = self.notification_channels
        try:
            channels = NotificationChannel.parse_list(raw)
        except ValueError:
            logger.warning("Ignoring malformed channel override on appointment %s: %r", self.id, raw)
            return []
        known = [c.value for c in NotificationChannel]
        unknown = [item for item in raw or [] if item not in known]
        if unknown:
            logger.warning("Dropped unknown channels on appointment %s: %r", self.id, unknown)
        return channels

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} status={self.status} start={self.start_time}>"
