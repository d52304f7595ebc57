"""Notification model — one reminder delivery through one channel.

Rows are status-mutated only (pending → processing → sent | failed) and
never deleted on delivery; pending rows are replaced wholesale whenever
the appointment's reminders are regenerated.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appointease.models.base import Base, TimestampMixin
from appointease.models.enums import NotificationStatus, NotificationType

if TYPE_CHECKING:
    from appointease.models.appointment import Appointment
    from appointease.models.user import User


class Notification(TimestampMixin, Base):
    """A scheduled reminder for one appointment on one channel."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_status_scheduled_at", "status", "scheduled_at"),)

    # Foreign keys
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    appointment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Classification
    type: Mapped[str] = mapped_column(String(20), default=NotificationType.REMINDER.value, nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)

    # Delivery state
    status: Mapped[str] = mapped_column(String(20), default=NotificationStatus.PENDING.value, nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    error: Mapped[str | None] = mapped_column(Text)
    attempt: Mapped[int] = mapped_column(Integer, default=1, nullable=False, comment="1-based delivery attempt")

    # Bell state
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Snapshot taken at generation time: title, start_time, location, is_starting_soon
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="notifications")
    appointment: Mapped[Appointment] = relationship("Appointment", back_populates="notifications")

    @property
    def is_pending(self) -> bool:
        return self.status == NotificationStatus.PENDING.value

    def __repr__(self) -> str:
        return (
            f"<Notification id={self.id} channel={self.channel} status={self.status} "
            f"at={self.scheduled_at}>"
        )
