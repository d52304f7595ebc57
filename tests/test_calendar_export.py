"""Tests for iCalendar and Google Calendar export."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

from icalendar import Calendar

from appointease.models.appointment import Appointment
from appointease.sharing.calendar_export import (
    generate_google_calendar_url,
    generate_icalendar,
    ical_filename,
    strip_tags,
)

START = datetime(2025, 1, 10, 14, 0, tzinfo=UTC)


def _make_appointment(**overrides) -> Appointment:
    fields = {
        "id": uuid.UUID("12345678-1234-5678-1234-567812345678"),
        "user_id": uuid.uuid4(),
        "title": "Team Sync",
        "description": "<p>Weekly <b>sync</b></p>",
        "location": "Room 4, Floor 2",
        "start_time": START,
        "end_time": START + timedelta(minutes=45),
        "created_at": datetime(2025, 1, 1, 9, 0, tzinfo=UTC),
    }
    fields.update(overrides)
    return Appointment(**fields)


def _lines(ics: bytes) -> list[str]:
    """Unfolded content lines."""
    return ics.decode("utf-8").replace("\r\n ", "").split("\r\n")


def _event(ics: bytes):
    return Calendar.from_ical(ics).walk("VEVENT")[0]


class TestHelpers:
    def test_strip_tags(self):
        assert strip_tags("<p>Hello <em>there</em></p>") == "Hello there"

    def test_strip_tags_none(self):
        assert strip_tags(None) == ""

    def test_filename(self):
        assert ical_filename(_make_appointment(title="Dr. Who's Checkup!")) == "dr-who-s-checkup-appointment.ics"

    def test_filename_without_letters(self):
        assert ical_filename(_make_appointment(title="!!!")) == "appointment-appointment.ics"


class TestICalendar:
    def test_structure(self):
        ics = generate_icalendar(_make_appointment())
        lines = _lines(ics)

        assert lines[0] == "BEGIN:VCALENDAR"
        assert "VERSION:2.0" in lines
        assert "UID:12345678-1234-5678-1234-567812345678@appointease" in lines
        assert "SUMMARY:Team Sync" in lines
        assert "DESCRIPTION:Weekly sync" in lines
        assert "LOCATION:Room 4\\, Floor 2" in lines
        assert "DTSTAMP:20250101T090000Z" in lines
        assert "DTSTART:20250110T140000Z" in lines
        assert "DTEND:20250110T144500Z" in lines
        assert ics.endswith(b"END:VEVENT\r\nEND:VCALENDAR\r\n")

    def test_parses_back(self):
        event = _event(generate_icalendar(_make_appointment()))

        assert str(event["summary"]) == "Team Sync"
        assert str(event["location"]) == "Room 4, Floor 2"
        assert event.decoded("dtstart") == START
        assert event.decoded("dtend") == START + timedelta(minutes=45)

    def test_long_text_is_folded(self):
        appt = _make_appointment(
            title=" ".join(["Quarterly planning review"] * 4),
            description="Bring the budget spreadsheet, the roadmap and the hiring plan. " * 4,
        )
        ics = generate_icalendar(appt)

        assert all(len(line) <= 75 for line in ics.split(b"\r\n"))
        assert b"\r\n " in ics
        assert str(_event(ics)["summary"]) == appt.title

    def test_special_characters_escaped(self):
        ics = generate_icalendar(_make_appointment(title="Lunch; then review, maybe"))
        assert "SUMMARY:Lunch\\; then review\\, maybe" in _lines(ics)

    def test_location_omitted_when_empty(self):
        ics = generate_icalendar(_make_appointment(location=None))
        assert b"LOCATION:" not in ics

    def test_missing_end_defaults_to_one_hour(self):
        ics = generate_icalendar(_make_appointment(end_time=None))
        assert "DTEND:20250110T150000Z" in _lines(ics)

    def test_converts_offsets_to_utc(self):
        cet = timezone(timedelta(hours=1))
        appt = _make_appointment(
            start_time=datetime(2025, 1, 10, 15, 0, tzinfo=cet),
            end_time=datetime(2025, 1, 10, 16, 0, tzinfo=cet),
        )
        assert "DTSTART:20250110T140000Z" in _lines(generate_icalendar(appt))


class TestGoogleCalendar:
    def test_url_params(self):
        url = generate_google_calendar_url(_make_appointment())
        parsed = urlparse(url)
        params = parse_qs(parsed.query)

        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://calendar.google.com/calendar/render"
        assert params["action"] == ["TEMPLATE"]
        assert params["text"] == ["Team Sync"]
        assert params["details"] == ["Weekly sync"]
        assert params["dates"] == ["20250110T140000Z/20250110T144500Z"]
        assert params["location"] == ["Room 4, Floor 2"]

    def test_no_location_param_when_empty(self):
        url = generate_google_calendar_url(_make_appointment(location=""))
        assert "location" not in parse_qs(urlparse(url).query)
