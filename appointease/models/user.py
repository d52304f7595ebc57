"""User model — an account created by the Google OAuth login flow."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from appointease.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from appointease.models.appointment import Appointment
    from appointease.models.category import Category
    from appointease.models.notification import Notification
    from appointease.models.notification_preference import NotificationPreference


class User(TimestampMixin, Base):
    """An AppointEase account holder."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1000))

    # Relationships
    appointments: Mapped[list[Appointment]] = relationship(
        "Appointment", back_populates="user", cascade="all, delete-orphan"
    )
    categories: Mapped[list[Category]] = relationship(
        "Category", back_populates="user", cascade="all, delete-orphan"
    )
    notifications: Mapped[list[Notification]] = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )
    notification_preference: Mapped[NotificationPreference | None] = relationship(
        "NotificationPreference", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
