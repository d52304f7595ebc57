"""Request/response schemas for the share API."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from appointease.config import settings


class ShareCreate(BaseModel):
    """Omitted ``expires_in_days`` uses the configured default; null never expires."""

    expires_in_days: int | None = Field(
        default_factory=lambda: settings.shares.default_expiry_days,
        ge=1,
        le=3650,
    )


class ShareOut(BaseModel):
    id: uuid.UUID
    token: str
    expires_at: datetime | None
    url: str


class GoogleCalendarLink(BaseModel):
    google_calendar_url: str
