"""Reminder notifications — preferences, generation, scanning, delivery."""

from appointease.notifications.dispatcher import notification_dispatcher
from appointease.notifications.generator import notification_generator
from appointease.notifications.preferences import preference_store
from appointease.notifications.scanner import due_notification_scanner

__all__ = [
    "due_notification_scanner",
    "notification_dispatcher",
    "notification_generator",
    "preference_store",
]
