"""Share-link manager — public, read-only tokens for one appointment.

A share is valid while ``expires_at`` is NULL or in the future. Revoking
sets ``expires_at`` to now and keeps the row (and its view count). Lookups
never reveal whether an invalid token expired or never existed.
"""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta

from sqlalchemy import exists, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from appointease.clock import Clock, utc_now
from appointease.config import settings
from appointease.events import emit
from appointease.models.appointment import Appointment
from appointease.models.share import AppointmentShare
from appointease.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits
DEFAULT_EXPIRY_DAYS = 30
MAX_INSERT_ATTEMPTS = 5


def generate_token(length: int) -> str:
    """Cryptographically random alphanumeric token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class AppointmentShareService:
    """Issues, validates, tracks and revokes share tokens."""

    def __init__(self, clock: Clock = utc_now, token_length: int | None = None) -> None:
        self._clock = clock
        self._token_length = token_length or settings.shares.token_length

    async def create_share(
        self,
        db: AsyncSession,
        appointment: Appointment,
        expires_in_days: int | None = DEFAULT_EXPIRY_DAYS,
    ) -> AppointmentShare:
        """Create a share for ``appointment``.

        Args:
            expires_in_days: Days until expiry; ``None`` means never expires.
        """
        expires_at = (
            self._clock() + timedelta(days=expires_in_days) if expires_in_days is not None else None
        )

        share = await self._insert_share(db, appointment, expires_at)

        await emit(SystemEvent(
            event_type=EventType.SHARE_CREATED,
            user_id=appointment.user_id,
            appointment_id=appointment.id,
            actor=str(appointment.user_id),
            data={
                "share_id": str(share.id),
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
            source_module="sharing.service",
        ))
        logger.info(
            "Share created: appointment=%s share=%s expires=%s",
            appointment.id,
            share.id,
            expires_at,
        )
        return share

    async def find_valid_share_by_token(self, db: AsyncSession, token: str) -> AppointmentShare | None:
        """Exact-match lookup restricted to unexpired shares."""
        if not token:
            return None
        result = await db.execute(
            select(AppointmentShare)
            .where(
                AppointmentShare.token == token,
                or_(
                    AppointmentShare.expires_at.is_(None),
                    AppointmentShare.expires_at > self._clock(),
                ),
            )
            .options(
                selectinload(AppointmentShare.appointment).selectinload(Appointment.category),
            )
        )
        return result.scalar_one_or_none()

    async def track_view(self, db: AsyncSession, share: AppointmentShare) -> None:
        """Increment the view counter with a single atomic UPDATE."""
        await db.execute(
            update(AppointmentShare)
            .where(AppointmentShare.id == share.id)
            .values(views=AppointmentShare.views + 1)
            .execution_options(synchronize_session=False)
        )

        await emit(SystemEvent(
            event_type=EventType.SHARE_VIEWED,
            appointment_id=share.appointment_id,
            actor="public",
            data={"share_id": str(share.id)},
            source_module="sharing.service",
        ))
        logger.debug("Share view tracked: share=%s", share.id)

    async def revoke_share(self, db: AsyncSession, share: AppointmentShare) -> AppointmentShare:
        """Soft-revoke by expiring the share now."""
        share.expires_at = self._clock()
        await db.flush()

        await emit(SystemEvent(
            event_type=EventType.SHARE_REVOKED,
            appointment_id=share.appointment_id,
            data={"share_id": str(share.id), "views": share.views},
            source_module="sharing.service",
        ))
        logger.info("Share revoked: share=%s appointment=%s", share.id, share.appointment_id)
        return share

    async def get_share(self, db: AsyncSession, share_id: object) -> AppointmentShare | None:
        """Fetch a share by id (any validity) with its appointment loaded."""
        result = await db.execute(
            select(AppointmentShare)
            .where(AppointmentShare.id == share_id)
            .options(selectinload(AppointmentShare.appointment))
        )
        return result.scalar_one_or_none()

    async def _insert_share(
        self,
        db: AsyncSession,
        appointment: Appointment,
        expires_at: datetime | None,
    ) -> AppointmentShare:
        # A concurrent insert can still take the token between the check and
        # the flush; the unique index rejects it and only the savepoint is lost.
        attempt = 1
        while True:
            share = AppointmentShare(
                appointment_id=appointment.id,
                token=await self._unique_token(db),
                expires_at=expires_at,
                views=0,
            )
            try:
                async with db.begin_nested():
                    db.add(share)
                    await db.flush()
                return share
            except IntegrityError:
                if attempt >= MAX_INSERT_ATTEMPTS:
                    raise
                logger.warning("Share token taken on insert, regenerating (attempt %d)", attempt)
                attempt += 1

    async def _unique_token(self, db: AsyncSession) -> str:
        """Generate tokens until one is unused."""
        while True:
            token = generate_token(self._token_length)
            taken = await db.scalar(select(exists().where(AppointmentShare.token == token)))
            if not taken:
                return token
            logger.warning("Share token collision, regenerating")


# Module-level singleton
share_service = AppointmentShareService()
