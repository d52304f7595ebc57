"""Tests for the event bus and the audit subscriber."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from appointease import events
from appointease.audit import audit_on_event
from appointease.schemas.events import EventType, SystemEvent


@pytest.fixture(autouse=True)
def clean_bus():
    events._subscribers.clear()
    events._type_subscribers.clear()
    yield
    events._subscribers.clear()
    events._type_subscribers.clear()


class TestEventBus:
    @pytest.mark.asyncio
    async def test_global_and_typed_subscribers(self):
        seen_all: list[EventType] = []
        seen_shares: list[EventType] = []

        async def on_all(event: SystemEvent) -> None:
            seen_all.append(event.event_type)

        async def on_share(event: SystemEvent) -> None:
            seen_shares.append(event.event_type)

        events.subscribe(on_all)
        events.subscribe(on_share, event_types=[EventType.SHARE_VIEWED])

        await events.start_event_system()
        await events.emit(SystemEvent(event_type=EventType.SHARE_VIEWED))
        await events.emit(SystemEvent(event_type=EventType.NOTIFICATION_SENT))
        await events.stop_event_system()

        assert seen_all == [EventType.SHARE_VIEWED, EventType.NOTIFICATION_SENT]
        assert seen_shares == [EventType.SHARE_VIEWED]

    @pytest.mark.asyncio
    async def test_failing_handler_isolated(self):
        seen: list[EventType] = []

        async def broken(event: SystemEvent) -> None:
            raise RuntimeError("boom")

        async def healthy(event: SystemEvent) -> None:
            seen.append(event.event_type)

        events.subscribe(broken)
        events.subscribe(healthy)

        await events.start_event_system()
        await events.emit(SystemEvent(event_type=EventType.SHARE_CREATED))
        await events.stop_event_system()

        assert seen == [EventType.SHARE_CREATED]

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        handler = AsyncMock()
        handler.__name__ = "handler"
        events.subscribe(handler)
        events.unsubscribe(handler)

        await events.start_event_system()
        await events.emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP))
        await events.stop_event_system()

        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_events_emitted_before_start_are_delivered(self):
        seen: list[EventType] = []

        async def on_all(event: SystemEvent) -> None:
            seen.append(event.event_type)

        events.subscribe(on_all)

        await events.emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP))
        await events.start_event_system()
        await events.emit(SystemEvent(event_type=EventType.SHARE_CREATED))
        await events.stop_event_system()

        assert seen == [EventType.SYSTEM_STARTUP, EventType.SHARE_CREATED]

    def test_events_are_frozen(self):
        event = SystemEvent(event_type=EventType.SHARE_VIEWED)
        with pytest.raises(ValidationError):
            event.actor = "someone"  # type: ignore[misc]


class TestAuditSubscriber:
    @pytest.mark.asyncio
    async def test_persists_event(self):
        db = MagicMock()
        db.commit = AsyncMock()

        @asynccontextmanager
        async def factory():
            yield db

        appointment_id = uuid.uuid4()
        event = SystemEvent(
            event_type=EventType.SHARE_VIEWED,
            appointment_id=appointment_id,
            actor="public",
            data={"share_id": "abc"},
        )
        with patch("appointease.audit.async_session_factory", factory):
            await audit_on_event(event)

        row = db.add.call_args[0][0]
        assert row.event_type == "share.viewed"
        assert row.appointment_id == appointment_id
        assert row.actor == "public"
        assert row.data == {"share_id": "abc"}
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_db_failure_does_not_raise(self):
        @asynccontextmanager
        async def factory():
            raise RuntimeError("db down")
            yield  # pragma: no cover

        with patch("appointease.audit.async_session_factory", factory):
            await audit_on_event(SystemEvent(event_type=EventType.SYSTEM_STARTUP))
