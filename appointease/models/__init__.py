"""SQLAlchemy ORM models for AppointEase.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from appointease.models.appointment import Appointment
from appointease.models.audit import AuditLog
from appointease.models.base import Base
from appointease.models.category import Category
from appointease.models.enums import (
    AppointmentStatus,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
)
from appointease.models.notification import Notification
from appointease.models.notification_preference import NotificationPreference
from appointease.models.share import AppointmentShare
from appointease.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "Category",
    "Appointment",
    "Notification",
    "NotificationPreference",
    "AppointmentShare",
    "AuditLog",
    # Enums
    "AppointmentStatus",
    "NotificationChannel",
    "NotificationStatus",
    "NotificationType",
]
