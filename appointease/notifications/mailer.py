"""Reminder email transport built on fastapi-mail.

Renders ``templates/appointment_reminder.html`` and sends it over SMTP.
Transport failures surface as ``MailTransportError``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.errors import ConnectionErrors

from appointease.clock import as_utc
from appointease.config import MailSettings, settings
from appointease.models.appointment import Appointment
from appointease.models.notification import Notification
from appointease.models.user import User
from appointease.notifications.errors import MailTransportError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
REMINDER_TEMPLATE = "appointment_reminder.html"


def reminder_subject(appointment: Appointment) -> str:
    return f"Reminder: {appointment.title}"


def reminder_context(user: User, appointment: Appointment, notification: Notification) -> dict[str, Any]:
    """Template variables for the reminder email."""
    start = as_utc(appointment.start_time)
    end = as_utc(appointment.end_time) if appointment.end_time else start + timedelta(hours=1)
    return {
        "user_name": user.name,
        "title": appointment.title,
        "date": start.strftime("%A, %B %d, %Y"),
        "time_range": f"{start.strftime('%I:%M %p')} - {end.strftime('%I:%M %p')}",
        "category": appointment.category.name if appointment.category else "Uncategorized",
        "description": appointment.description,
        "location": appointment.location,
        "dashboard_url": f"{settings.app_url.rstrip('/')}/appointments",
        "app_name": settings.app_name,
        "year": start.year,
        "notification_type": notification.type,
    }


class ReminderMailer:
    """Sends reminder emails through the configured SMTP server."""

    def __init__(self, mail_settings: MailSettings | None = None) -> None:
        self._settings = mail_settings or settings.mail
        self._client: FastMail | None = None

    def _connection_config(self) -> ConnectionConfig:
        s = self._settings
        return ConnectionConfig(
            MAIL_USERNAME=s.mail_username,
            MAIL_PASSWORD=s.mail_password,
            MAIL_FROM=s.mail_from,
            MAIL_FROM_NAME=s.mail_from_name,
            MAIL_PORT=s.mail_port,
            MAIL_SERVER=s.mail_server,
            MAIL_STARTTLS=s.mail_starttls,
            MAIL_SSL_TLS=s.mail_ssl_tls,
            USE_CREDENTIALS=bool(s.mail_username),
            SUPPRESS_SEND=int(s.mail_suppress_send),
            TEMPLATE_FOLDER=TEMPLATE_DIR,
        )

    @property
    def client(self) -> FastMail:
        # Built lazily so importing this module never validates SMTP settings
        if self._client is None:
            self._client = FastMail(self._connection_config())
        return self._client

    async def send_reminder(self, user: User, appointment: Appointment, notification: Notification) -> None:
        """Render and send one reminder email to ``user.email``."""
        message = MessageSchema(
            subject=reminder_subject(appointment),
            recipients=[user.email],
            template_body=reminder_context(user, appointment, notification),
            subtype=MessageType.html,
        )
        try:
            await self.client.send_message(message, template_name=REMINDER_TEMPLATE)
        except ConnectionErrors as exc:
            raise MailTransportError(str(exc)) from exc

        logger.info(
            "Reminder email sent: notification=%s user=%s appointment=%s",
            notification.id,
            user.id,
            appointment.id,
        )


# Module-level singleton
reminder_mailer = ReminderMailer()
