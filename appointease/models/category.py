"""Category model — a user-defined label for appointments."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appointease.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from appointease.models.appointment import Appointment
    from appointease.models.user import User


class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20), comment="Hex color for the calendar view")

    user: Mapped[User] = relationship("User", back_populates="categories")
    appointments: Mapped[list[Appointment]] = relationship("Appointment", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name}>"
