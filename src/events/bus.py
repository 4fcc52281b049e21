"""In-process event bus for post-commit side effects.

Services emit a SystemEvent once their change is committed. Subscribers
(the audit log, the rating recorder) run on a background worker that drains
a queue, so a slow or failing subscriber never delays or undoes the request
that produced the event.

Usage:
    from src.events.bus import emit, subscribe

    subscribe(audit_on_event)                                   # every event
    subscribe(rating_on_event, event_types=RATING_EVENT_TYPES)  # selected types

    await emit(SystemEvent(event_type=EventType.DEAL_WON, deal_id=deal.id))
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict
from collections.abc import Callable, Coroutine, Iterable
from typing import Any

from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]


def _name(handler: EventHandler) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventBus:
    """Queue-backed pub/sub with global and per-type subscribers."""

    def __init__(self) -> None:
        self._global: list[EventHandler] = []
        self._by_type: defaultdict[EventType, list[EventHandler]] = defaultdict(list)
        self._queue: asyncio.Queue[SystemEvent] | None = None
        self._worker: asyncio.Task[None] | None = None

    # ── Subscriptions ────────────────────────────────────────────────

    def subscribe(self, handler: EventHandler, event_types: Iterable[EventType] | None = None) -> None:
        """Register `handler` for every event, or only for `event_types`."""
        if event_types is None:
            self._global.append(handler)
            logger.info("Subscribed %s to all events", _name(handler))
            return
        types = list(event_types)
        for event_type in types:
            self._by_type[event_type].append(handler)
        logger.info("Subscribed %s to %s", _name(handler), [t.value for t in types])

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._global:
            self._global.remove(handler)
        for handlers in self._by_type.values():
            if handler in handlers:
                handlers.remove(handler)

    def clear(self) -> None:
        self._global.clear()
        self._by_type.clear()

    def handlers_for(self, event_type: EventType) -> list[EventHandler]:
        return [*self._global, *self._by_type.get(event_type, [])]

    # ── Delivery ─────────────────────────────────────────────────────

    async def emit(self, event: SystemEvent) -> None:
        """Queue an event; the worker is started on first use."""
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._ensure_worker(self._queue)
        await self._queue.put(event)
        logger.debug("Queued %s (deal=%s)", event.event_type.value, event.deal_id)

    async def dispatch(self, event: SystemEvent) -> None:
        """Run every matching handler now. Handler failures are logged, never raised."""
        handlers = self.handlers_for(event.event_type)
        if not handlers:
            return
        results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(
                    "Subscriber %s failed on %s",
                    _name(handler),
                    event.event_type.value,
                    exc_info=result,
                )

    def _ensure_worker(self, queue: asyncio.Queue[SystemEvent]) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._drain(queue))

    async def _drain(self, queue: asyncio.Queue[SystemEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                await self.dispatch(event)
            finally:
                queue.task_done()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        self._ensure_worker(self._queue)
        logger.info(
            "Event bus started (%d global, %d typed subscribers)",
            len(self._global),
            sum(len(v) for v in self._by_type.values()),
        )

    async def stop(self) -> None:
        """Deliver what is already queued, then stop the worker."""
        if self._worker is not None and not self._worker.done():
            if self._queue is not None:
                await self._queue.join()
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
        self._worker = None
        self._queue = None
        logger.info("Event bus stopped")


# Process-wide bus used by the services and the FastAPI lifespan
event_bus = EventBus()

subscribe = event_bus.subscribe
unsubscribe = event_bus.unsubscribe
reset_subscribers = event_bus.clear
start_event_system = event_bus.start
stop_event_system = event_bus.stop


async def emit(event: SystemEvent) -> None:
    """Queue an event on the process-wide bus."""
    await event_bus.emit(event)


async def dispatch(event: SystemEvent) -> None:
    """Deliver an event to its subscribers right away, bypassing the queue."""
    await event_bus.dispatch(event)
