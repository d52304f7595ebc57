"""Periodic background jobs, driven by APScheduler.

- notification scan: every ``NOTIFICATION_SCAN_INTERVAL_SECONDS`` (default 60)
- appointment completion sweep: hourly

Both jobs run with ``coalesce=True`` and ``max_instances=1`` so a slow tick
is never overlapped by the next one.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from appointease.appointments.status import complete_finished_appointments
from appointease.config import settings
from appointease.db.engine import async_session_factory
from appointease.events import emit
from appointease.notifications.scanner import due_notification_scanner
from appointease.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

NOTIFICATION_SCAN_JOB_ID = "notification-scan"
STATUS_SWEEP_JOB_ID = "appointment-status-sweep"


async def run_notification_scan() -> int:
    """One scheduler tick: dispatch every due notification.

    Never raises, a failed tick is logged and the next one retries.
    """
    try:
        return await due_notification_scanner.process_due_notifications()
    except Exception:
        logger.exception("Notification scan failed")
        return 0


async def run_status_sweep() -> int:
    """Mark finished appointments completed."""
    try:
        async with async_session_factory() as db:
            completed = await complete_finished_appointments(db)
            await db.commit()
    except Exception:
        logger.exception("Appointment status sweep failed")
        return 0

    await emit(SystemEvent(
        event_type=EventType.SYSTEM_MAINTENANCE,
        data={"action": "appointment_status_sweep", "completed": completed},
        source_module="jobs",
    ))
    return completed


def create_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": settings.notifications.scan_interval_seconds,
        },
    )
    scheduler.add_job(
        run_notification_scan,
        "interval",
        seconds=settings.notifications.scan_interval_seconds,
        id=NOTIFICATION_SCAN_JOB_ID,
        replace_existing=True,
    )
    scheduler.add_job(
        run_status_sweep,
        "interval",
        hours=1,
        id=STATUS_SWEEP_JOB_ID,
        replace_existing=True,
    )
    return scheduler


_scheduler: AsyncIOScheduler | None = None


def start_scheduler() -> AsyncIOScheduler:
    """Create and start the global scheduler (idempotent)."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler
    _scheduler = create_scheduler()
    _scheduler.start()
    logger.info(
        "Scheduler started (scan every %ds)", settings.notifications.scan_interval_seconds
    )
    return _scheduler


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None
