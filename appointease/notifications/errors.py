"""Exceptions raised while delivering a notification.

The dispatcher converts every one of these into a ``failed`` row; none of
them escape the due-notification scan.
"""

from __future__ import annotations


class NotificationError(Exception):
    """Base class for delivery failures."""


class UnsupportedChannelError(NotificationError):
    """The notification's channel has no transport."""

    def __init__(self, channel: str) -> None:
        super().__init__(f"Unsupported notification channel: {channel}")
        self.channel = channel


class NotificationDataError(NotificationError):
    """The appointment or user behind a notification no longer exists."""


class MailTransportError(NotificationError):
    """The SMTP transport rejected or could not deliver the message."""


class DispatchTimeoutError(NotificationError):
    """A delivery attempt exceeded the configured timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"Delivery timed out after {timeout:g}s")
        self.timeout = timeout
