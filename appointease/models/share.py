"""AppointmentShare model — public read-only capability for one appointment."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appointease.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from appointease.models.appointment import Appointment


class AppointmentShare(TimestampMixin, Base):
    """An opaque share token. Revoked by expiring it, never by deleting it."""

    __tablename__ = "appointment_shares"

    appointment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), comment="NULL = never expires")
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    appointment: Mapped[Appointment] = relationship("Appointment", back_populates="shares")

    def __repr__(self) -> str:
        return f"<AppointmentShare id={self.id} appointment={self.appointment_id} expires={self.expires_at}>"
