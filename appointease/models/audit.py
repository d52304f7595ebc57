"""AuditLog model — append-only record of every emitted SystemEvent."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from appointease.models.base import Base, TimestampMixin


class AuditLog(TimestampMixin, Base):
    """One persisted event (notification delivery, share access, job run)."""

    __tablename__ = "audit_log"

    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Context (nullable — scan and maintenance events have no user)
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)
    actor: Mapped[str | None] = mapped_column(String(100), comment="User ID, 'public' or 'system'")

    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<AuditLog event={self.event_type} appointment={self.appointment_id}>"
