"""Appointment schemas — the write boundary and the public projection.

``AppointmentIn`` is what the appointment CRUD layer validates before it
persists an appointment and regenerates its reminders.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from appointease.clock import as_utc
from appointease.models.enums import AppointmentStatus, NotificationChannel
from appointease.schemas.notifications import MAX_REMINDER_MINUTES


class AppointmentIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    location: str | None = Field(default=None, max_length=255)
    category_id: uuid.UUID | None = None
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notifications_enabled: bool = True
    reminder_minutes: int | None = Field(default=None, ge=0, le=MAX_REMINDER_MINUTES)
    notification_channels: list[NotificationChannel] | None = None

    @field_validator("notification_channels", mode="before")
    @classmethod
    def parse_channels(cls, v: object) -> list[NotificationChannel] | None:
        """Reject unknown channel names; drop duplicates, keep order."""
        if v is None:
            return None
        return NotificationChannel.parse_list(v, strict=True)

    @model_validator(mode="after")
    def check_time_range(self) -> AppointmentIn:
        if as_utc(self.end_time) < as_utc(self.start_time):
            msg = "end_time must not be before start_time"
            raise ValueError(msg)
        return self

    def channel_names(self) -> list[str] | None:
        """JSON-ready value for ``Appointment.notification_channels``."""
        if not self.notification_channels:
            return None
        return [c.value for c in self.notification_channels]


class PublicCategory(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str


class PublicAppointment(BaseModel):
    """What an anonymous share-link visitor may see."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str | None = None
    location: str | None = None
    category: PublicCategory | None = None
    start_time: datetime
    end_time: datetime
    created_at: datetime
    updated_at: datetime
