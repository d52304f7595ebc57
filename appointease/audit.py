"""Audit log subscriber — persists every SystemEvent to the audit_log table.

Registered as a global subscriber. Never raises: failures are logged and
swallowed so auditing cannot break notification delivery.
"""

from __future__ import annotations

import logging

from appointease.db.engine import async_session_factory
from appointease.models.audit import AuditLog
from appointease.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


async def audit_on_event(event: SystemEvent) -> None:
    """Write a SystemEvent to the audit_log table."""
    try:
        async with async_session_factory() as db:
            db.add(AuditLog(
                event_type=event.event_type.value,
                user_id=event.user_id,
                appointment_id=event.appointment_id,
                actor=event.actor,
                data=event.data,
            ))
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to persist audit event: %s (appointment=%s)",
            event.event_type.value,
            event.appointment_id,
        )
