"""Calendar export for shared appointments: iCalendar file and Google link."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta
from urllib.parse import urlencode

from icalendar import Calendar, Event

from appointease.clock import as_utc, utc_now
from appointease.models.appointment import Appointment

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"
PRODID = "-//AppointEase//Appointments//EN"

_TAG_RE = re.compile(r"<[^>]+>")


def strip_tags(text: str | None) -> str:
    return _TAG_RE.sub("", text or "")


def _utc_stamp(value: datetime) -> str:
    return as_utc(value).strftime("%Y%m%dT%H%M%SZ")


def _time_bounds(appointment: Appointment) -> tuple[datetime, datetime]:
    start = as_utc(appointment.start_time)
    end = as_utc(appointment.end_time) if appointment.end_time else start + timedelta(hours=1)
    return start, end


def generate_icalendar(appointment: Appointment, now: datetime | None = None) -> bytes:
    """Single-event VCALENDAR document, serialized by icalendar (CRLF, folded lines)."""
    start, end = _time_bounds(appointment)

    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")

    event = Event()
    event.add("uid", f"{appointment.id or uuid.uuid4()}@appointease")
    event.add("summary", appointment.title)
    event.add("description", strip_tags(appointment.description))
    if appointment.location:
        event.add("location", appointment.location)
    event.add("dtstamp", as_utc(appointment.created_at or now or utc_now()))
    event.add("dtstart", start)
    event.add("dtend", end)
    event.add("status", "CONFIRMED")
    event.add("sequence", 0)
    event.add("transp", "OPAQUE")
    cal.add_component(event)

    return cal.to_ical()


def generate_google_calendar_url(appointment: Appointment) -> str:
    """'Add to Google Calendar' template link."""
    start, end = _time_bounds(appointment)
    params = {
        "action": "TEMPLATE",
        "text": appointment.title,
        "details": strip_tags(appointment.description),
        "dates": f"{_utc_stamp(start)}/{_utc_stamp(end)}",
    }
    if appointment.location:
        params["location"] = appointment.location
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"


def ical_filename(appointment: Appointment) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", appointment.title.lower()).strip("-") or "appointment"
    return f"{slug}-appointment.ics"
