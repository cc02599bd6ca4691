"""In-process event bus with a closed set of event types."""

from __future__ import annotations

import enum
import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger(__name__)


class EventType(str, enum.Enum):
    PROJECT_ADDED = "project.added"
    PROJECT_REMOVED = "project.removed"
    ANALYSIS_STARTED = "analysis.started"
    ANALYSIS_PROGRESS = "analysis.progress"
    ANALYSIS_COMPLETED = "analysis.completed"
    ANALYSIS_FAILED = "analysis.failed"
    ISSUE_UPDATED = "issue.updated"
    PR_CREATED = "pr.created"
    PR_UPDATED = "pr.updated"
    PR_SUBMITTED = "pr.submitted"
    PR_DELETED = "pr.deleted"


class Event(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: EventType
    source: str
    payload: dict[str, Any] = Field(default_factory=dict)


Handler = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe keyed by :class:`EventType`.

    Handlers registered with :meth:`on_any` receive every event after the
    type-specific handlers. A handler that raises is logged and skipped;
    delivery to the remaining handlers continues.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[Handler]] = defaultdict(list)
        self._any_handlers: list[Handler] = []

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        """Register *handler* for one event type. Returns an unsubscribe callable."""
        self._handlers[event_type].append(handler)
        return lambda: self._remove(self._handlers[event_type], handler)

    def on_any(self, handler: Handler) -> Callable[[], None]:
        """Register *handler* for every event type."""
        self._any_handlers.append(handler)
        return lambda: self._remove(self._any_handlers, handler)

    def publish(self, event_type: EventType, source: str, payload: dict[str, Any]) -> Event:
        event = Event(type=event_type, source=source, payload=payload)
        for handler in [*self._handlers.get(event_type, ()), *self._any_handlers]:
            try:
                handler(event)
            except Exception:
                log.exception("events.handler_failed", event_type=event_type.value)
        return event

    @staticmethod
    def _remove(handlers: list[Handler], handler: Handler) -> None:
        if handler in handlers:
            handlers.remove(handler)


def log_event(event: Event) -> None:
    """Default ``on_any`` subscriber: mirror events into the structured log."""
    log.info(
        "event.published",
        event_type=event.type.value,
        event_source=event.source,
        payload=event.payload,
    )
