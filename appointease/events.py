"""In-process bus for ``SystemEvent``s.

The dispatcher, generator, preference store and share service publish
lifecycle events here. ``main`` subscribes the audit writer at startup,
so every reminder sent or failed and every share created, viewed or
revoked ends up in ``audit_log`` without the publisher waiting on it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from appointease.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

_subscribers: list[EventHandler] = []
_type_subscribers: dict[EventType, list[EventHandler]] = {}
_queue: asyncio.Queue[SystemEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


def subscribe(handler: EventHandler, event_types: list[EventType] | None = None) -> None:
    """Register ``handler`` for ``event_types``, or for every event when omitted."""
    if event_types is None:
        _subscribers.append(handler)
        logger.info("Subscribed %s to all events", handler.__name__)
        return
    for event_type in event_types:
        _type_subscribers.setdefault(event_type, []).append(handler)
    logger.info("Subscribed %s to %s", handler.__name__, ", ".join(t.value for t in event_types))


def unsubscribe(handler: EventHandler) -> None:
    with contextlib.suppress(ValueError):
        _subscribers.remove(handler)
    for handlers in _type_subscribers.values():
        with contextlib.suppress(ValueError):
            handlers.remove(handler)


async def emit(event: SystemEvent) -> None:
    """Queue ``event``; delivery happens on the bus worker."""
    global _queue
    if _queue is None:
        _queue = asyncio.Queue()
    _ensure_worker()
    await _queue.put(event)
    logger.debug("Queued %s (appointment=%s)", event.event_type.value, event.appointment_id)


def _matching_handlers(event_type: EventType) -> list[EventHandler]:
    return [*_subscribers, *_type_subscribers.get(event_type, [])]


def _ensure_worker() -> None:
    global _worker_task
    if _queue is not None and (_worker_task is None or _worker_task.done()):
        _worker_task = asyncio.create_task(_drain_queue(_queue), name="appointease-events")


async def _drain_queue(queue: asyncio.Queue[SystemEvent]) -> None:
    while True:
        event = await queue.get()
        try:
            await _deliver(event)
        except Exception:
            logger.exception("Event delivery crashed for %s", event.event_type.value)
        finally:
            queue.task_done()


async def _deliver(event: SystemEvent) -> None:
    handlers = _matching_handlers(event.event_type)
    if not handlers:
        return

    # A failing audit write must not hide the event from other subscribers.
    results = await asyncio.gather(*(handler(event) for handler in handlers), return_exceptions=True)
    for handler, result in zip(handlers, results, strict=True):
        if isinstance(result, Exception):
            logger.error("Subscriber %s failed on %s: %s", handler.__name__, event.event_type.value, result)


async def start_event_system() -> None:
    global _queue
    if _queue is None:
        _queue = asyncio.Queue()
    _ensure_worker()
    logger.info(
        "Event bus running: %d global, %d typed subscribers",
        len(_subscribers),
        sum(len(handlers) for handlers in _type_subscribers.values()),
    )


async def stop_event_system() -> None:
    """Flush queued events to subscribers, then stop the worker."""
    global _worker_task, _queue

    if _queue is not None:
        await _queue.join()

    if _worker_task is not None and not _worker_task.done():
        _worker_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _worker_task

    _worker_task = None
    _queue = None
    logger.info("Event bus stopped")
