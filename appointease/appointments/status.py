"""Appointment status automation — hourly completion sweep."""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from appointease.clock import Clock, utc_now
from appointease.models.appointment import Appointment
from appointease.models.enums import AppointmentStatus

logger = logging.getLogger(__name__)

COMPLETION_GRACE = timedelta(hours=1)
OPEN_STATUSES = (AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value)


async def complete_finished_appointments(db: AsyncSession, clock: Clock = utc_now) -> int:
    """Mark open appointments that ended over an hour ago as completed.

    Returns the number of appointments updated.
    """
    cutoff = clock() - COMPLETION_GRACE
    result = await db.execute(
        update(Appointment)
        .where(
            Appointment.status.in_(OPEN_STATUSES),
            Appointment.end_time < cutoff,
        )
        .values(status=AppointmentStatus.COMPLETED.value)
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount  # type: ignore[attr-defined]
    if count:
        logger.info("Marked %d appointment(s) completed (cutoff=%s)", count, cutoff.isoformat())
    return count
