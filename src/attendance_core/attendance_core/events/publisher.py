from __future__ import annotations

import threading
from typing import Callable, Protocol

import structlog

from .model import StateChangeEvent

logger = structlog.get_logger(__name__)

EventHandler = Callable[[StateChangeEvent], None]


class EventPublisher(Protocol):
    def publish(self, event: StateChangeEvent) -> None:
        raise NotImplementedError


class EventBus(EventPublisher):
    """In-process fan-out to whatever transport subscribes (socket hub, queue, ...).

    A failing handler is logged and skipped: the transition it reports has
    already been stored and must not be undone by delivery problems.
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: EventHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def publish(self, event: StateChangeEvent) -> None:
        logger.info(
            "attendance_event",
            event_type=event.type.value,
            employee_id=event.employee_id,
            work_date=event.work_date.isoformat() if event.work_date else None,
            new_status=event.new_status,
        )
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("event_handler_failed", event_type=event.type.value, employee_id=event.employee_id)
