"""
Scan event channels.

Every scan job owns its own channel, so one scan's subscribers never see
another scan's traffic. The engine forwards every job's events to an
engine-wide channel as well, for transports that multiplex many scans.

Delivery is synchronous and in publish order. There is no buffering or
replay: a handler attached after an event fired will not receive it.

Design Pattern: Observer
"""

import asyncio
import inspect
from enum import Enum
from typing import Any, Callable, Dict, List, Set, Union

import structlog


logger = structlog.get_logger(__name__)


class ScanEvent(Enum):
    """Lifecycle notifications published during a scan"""
    STARTED = "scan:started"
    ADAPTER_START = "scan:adapter:start"
    PROGRESS = "scan:progress"
    RESULT = "scan:result"
    ADAPTER_ERROR = "scan:adapter:error"
    COMPLETE = "scan:complete"
    ERROR = "scan:error"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanEvent.COMPLETE, ScanEvent.ERROR)


Handler = Callable[[ScanEvent, Dict[str, Any]], Any]


def _coerce(event: Union[ScanEvent, str]) -> ScanEvent:
    return event if isinstance(event, ScanEvent) else ScanEvent(event)


class EventChannel:
    """
    Publish/subscribe channel keyed by event name.

    Handlers are called as ``handler(event, payload)``. Coroutine handlers
    are scheduled on the running loop. A failing handler is logged and
    never interrupts delivery to the others.
    """

    def __init__(self):
        self._handlers: Dict[ScanEvent, List[Handler]] = {}
        self._pending: Set[asyncio.Future] = set()  # Running coroutine handlers

    def on(self, event: Union[ScanEvent, str], handler: Handler):
        """Subscribe a handler to one event."""
        self._handlers.setdefault(_coerce(event), []).append(handler)

    def off(self, event: Union[ScanEvent, str], handler: Handler) -> bool:
        """
        Unsubscribe a handler.

        Returns:
            True if the handler was subscribed
        """
        handlers = self._handlers.get(_coerce(event), [])
        try:
            handlers.remove(handler)
            return True
        except ValueError:
            return False

    def on_all(self, handler: Handler):
        for event in ScanEvent:
            self.on(event, handler)

    def off_all(self, handler: Handler):
        for event in ScanEvent:
            self.off(event, handler)

    def handler_count(self, event: Union[ScanEvent, str]) -> int:
        return len(self._handlers.get(_coerce(event), []))

    def emit(self, event: ScanEvent, payload: Dict[str, Any]):
        """Deliver an event to the handlers subscribed at this moment."""
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(event, payload)
                if inspect.isawaitable(result):
                    self._schedule(event, handler, result)
            except Exception as e:
                _log_handler_error(event, handler, e)

    def _schedule(self, event: ScanEvent, handler: Handler, awaitable):
        future = asyncio.ensure_future(awaitable)
        self._pending.add(future)

        def collect(done: asyncio.Future):
            self._pending.discard(done)
            if not done.cancelled() and done.exception() is not None:
                _log_handler_error(event, handler, done.exception())

        future.add_done_callback(collect)


def _log_handler_error(event: ScanEvent, handler: Handler, error: BaseException):
    logger.error(
        "event_handler_error",
        event_name=event.value,
        handler=getattr(handler, "__name__", repr(handler)),
        error=str(error),
    )
