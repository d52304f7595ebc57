"""Share API — owner-only create/revoke plus the public token endpoints."""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from appointease.api.auth import get_current_user_id
from appointease.api.rate_limiter import limit_public_requests
from appointease.config import settings
from appointease.db.engine import get_session
from appointease.models.appointment import Appointment
from appointease.models.share import AppointmentShare
from appointease.schemas.appointments import PublicAppointment
from appointease.schemas.shares import GoogleCalendarLink, ShareCreate, ShareOut
from appointease.sharing.calendar_export import (
    generate_google_calendar_url,
    generate_icalendar,
    ical_filename,
)
from appointease.sharing.service import share_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["shares"])

INVALID_SHARE_DETAIL = "Share link is invalid or expired"


def public_share_url(token: str) -> str:
    return f"{settings.shares.public_base_url.rstrip('/')}/api/public/appointments/{token}"


async def _valid_share_or_404(db: AsyncSession, token: str) -> AppointmentShare:
    share = await share_service.find_valid_share_by_token(db, token)
    if share is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=INVALID_SHARE_DETAIL)
    return share


# ── Owner endpoints ──────────────────────────────────────────────────


@router.post(
    "/appointments/{appointment_id}/shares",
    response_model=ShareOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_share(
    appointment_id: uuid.UUID,
    body: ShareCreate | None = None,
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> ShareOut:
    """Create a public link for one of the caller's appointments."""
    appointment = await db.get(Appointment, appointment_id)
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    if appointment.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")

    body = body or ShareCreate()
    share = await share_service.create_share(db, appointment, body.expires_in_days)
    return ShareOut(
        id=share.id,
        token=share.token,
        expires_at=share.expires_at,
        url=public_share_url(share.token),
    )


@router.delete("/shares/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_share(
    share_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    user_id: uuid.UUID = Depends(get_current_user_id),
) -> Response:
    """Expire a share immediately; only the appointment owner may do this."""
    share = await share_service.get_share(db, share_id)
    if share is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Share not found")
    if share.appointment.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")

    await share_service.revoke_share(db, share)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Public endpoints (token only, no auth) ───────────────────────────


@router.get(
    "/public/appointments/{token}",
    response_model=PublicAppointment,
    dependencies=[Depends(limit_public_requests)],
)
async def view_public_appointment(
    token: str,
    db: AsyncSession = Depends(get_session),
) -> PublicAppointment:
    share = await _valid_share_or_404(db, token)
    await share_service.track_view(db, share)
    return PublicAppointment.model_validate(share.appointment)


@router.get(
    "/public/appointments/{token}/ical",
    dependencies=[Depends(limit_public_requests)],
)
async def download_icalendar(
    token: str,
    db: AsyncSession = Depends(get_session),
) -> Response:
    share = await _valid_share_or_404(db, token)
    appointment = share.appointment
    return Response(
        content=generate_icalendar(appointment),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{ical_filename(appointment)}"'},
    )


@router.get(
    "/public/appointments/{token}/google-calendar",
    response_model=GoogleCalendarLink,
    dependencies=[Depends(limit_public_requests)],
)
async def google_calendar_link(
    token: str,
    db: AsyncSession = Depends(get_session),
) -> GoogleCalendarLink:
    share = await _valid_share_or_404(db, token)
    return GoogleCalendarLink(google_calendar_url=generate_google_calendar_url(share.appointment))
