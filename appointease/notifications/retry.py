"""Retry policies for failed notifications.

A failed row is terminal. Retrying means scheduling a *new* pending row
with ``attempt + 1``; the policy only decides whether and when.
The default policy never retries.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from appointease.config import NotificationSettings, settings
from appointease.models.notification import Notification
from appointease.notifications.errors import (
    DispatchTimeoutError,
    MailTransportError,
)


class RetryPolicy(Protocol):
    def next_attempt_at(
        self,
        notification: Notification,
        error: BaseException,
        now: datetime,
    ) -> datetime | None:
        """Return when to try again, or None to leave the failure final."""
        ...


class NoRetry:
    """Failed notifications stay failed."""

    def next_attempt_at(
        self,
        notification: Notification,
        error: BaseException,
        now: datetime,
    ) -> datetime | None:
        return None


class FixedDelayRetry:
    """Retry transient transport failures after a fixed delay.

    Data errors and unsupported channels are never retried.
    """

    transient: tuple[type[BaseException], ...] = (MailTransportError, DispatchTimeoutError)

    def __init__(self, max_attempts: int, delay: timedelta) -> None:
        self.max_attempts = max_attempts
        self.delay = delay

    def next_attempt_at(
        self,
        notification: Notification,
        error: BaseException,
        now: datetime,
    ) -> datetime | None:
        if not isinstance(error, self.transient):
            return None
        if (notification.attempt or 1) >= self.max_attempts:
            return None
        return now + self.delay


def retry_policy_from_settings(config: NotificationSettings | None = None) -> RetryPolicy:
    config = config or settings.notifications
    if config.retry_max_attempts <= 1:
        return NoRetry()
    return FixedDelayRetry(
        max_attempts=config.retry_max_attempts,
        delay=timedelta(minutes=config.retry_delay_minutes),
    )
