"""Delivery of clone events to a caller-supplied handler."""

from __future__ import annotations

import logging
from typing import Any, Callable

from gitsnap.schemas import Event, EventCode, EventLevel
from gitsnap.utils.logging_config import get_logger

# Initialize logger for this module
logger = get_logger(__name__)

EventHandler = Callable[[Event], None]

_LOG_LEVELS: dict[EventLevel, int] = {
    EventLevel.INFO: logging.INFO,
    EventLevel.WARN: logging.WARNING,
    EventLevel.ERROR: logging.ERROR,
    EventLevel.SUCCESS: logging.INFO,
}


class Reporter:
    """Collect events, forward them to ``handler`` and mirror them to the log.

    Parameters
    ----------
    handler : EventHandler | None
        Callback invoked synchronously with every delivered event.
    verbose : bool
        Whether events emitted through ``verbose`` are delivered (default: ``False``).

    """

    def __init__(self, handler: EventHandler | None = None, *, verbose: bool = False) -> None:
        self.handler = handler
        self.is_verbose = verbose
        self.events: list[Event] = []

    def child(self, *, verbose: bool) -> Reporter:
        """Return a reporter for a nested clone that shares this reporter's handler."""
        return Reporter(self.handler, verbose=verbose)

    def emit(self, level: EventLevel, code: EventCode, message: str, **context: Any) -> Event:
        """Build, record and deliver an event."""
        event = Event(level=level, code=code, message=message, context=context)
        self.events.append(event)
        logger.log(_LOG_LEVELS[level], message, extra={"event_code": str(code)})
        if self.handler is not None:
            self.handler(event)
        return event

    def info(self, code: EventCode, message: str, **context: Any) -> Event:
        return self.emit(EventLevel.INFO, code, message, **context)

    def warn(self, code: EventCode, message: str, **context: Any) -> Event:
        return self.emit(EventLevel.WARN, code, message, **context)

    def error(self, code: EventCode, message: str, **context: Any) -> Event:
        return self.emit(EventLevel.ERROR, code, message, **context)

    def success(self, code: EventCode, message: str, **context: Any) -> Event:
        return self.emit(EventLevel.SUCCESS, code, message, **context)

    def verbose(self, code: EventCode, message: str, **context: Any) -> Event | None:
        """Emit an info event only when the reporter is verbose."""
        if not self.is_verbose:
            return None
        return self.info(code, message, **context)
