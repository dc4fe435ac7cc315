"""Operational events, sinks and the bounded event log."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from missionforge.util.logging import clip, get_logger, redact

logger = get_logger(__name__)

EVENT_LOG_SIZE = 10
CONTEXT_WINDOW = 5
_ERROR_INDICATOR = "error"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class OperationalEvent:
    kind: str
    message: str
    timestamp: str = field(default_factory=utc_timestamp)
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "OperationalEvent":
        kind = payload.get("kind") or payload.get("type") or "event"
        return cls(
            kind=str(kind),
            message=str(payload.get("message", "")),
            timestamp=str(payload.get("timestamp") or utc_timestamp()),
            data=dict(payload.get("data") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        if not payload["data"]:
            payload.pop("data")
        return payload


class EventSink(ABC):
    """Anything that accepts operational or lifecycle events."""

    @abstractmethod
    def emit(self, event: OperationalEvent) -> None:
        raise NotImplementedError


class LoggingEventSink(EventSink):
    def __init__(self, prefix: str = "event") -> None:
        self.prefix = prefix

    def emit(self, event: OperationalEvent) -> None:
        logger.info("[%s] %s: %s", self.prefix, event.kind, redact(clip(event.message)))


class FanoutSink(EventSink):
    def __init__(self, sinks: Iterable[EventSink] | None = None) -> None:
        self.sinks: list[EventSink] = list(sinks or [])

    def add(self, sink: EventSink) -> None:
        self.sinks.append(sink)

    def emit(self, event: OperationalEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)


class EventLog(EventSink):
    """Keeps the most recent operational events reported by collaborators.

    Only the last ``EVENT_LOG_SIZE`` events are retained; older ones are
    dropped silently.
    """

    def __init__(self, max_events: int = EVENT_LOG_SIZE) -> None:
        self._events: deque[OperationalEvent] = deque(maxlen=max(1, max_events))

    def emit(self, event: OperationalEvent) -> None:
        self.add_event(event)

    def add_event(self, event: OperationalEvent | Mapping[str, Any]) -> OperationalEvent:
        if not isinstance(event, OperationalEvent):
            event = OperationalEvent.from_mapping(event)
        elif not event.timestamp:
            event.timestamp = utc_timestamp()
        self._events.append(event)
        return event

    def events(self) -> list[OperationalEvent]:
        return list(self._events)

    def get_last_event(self) -> str | None:
        if not self._events:
            return None
        last = self._events[-1]
        return f"Event: {last.kind}\nMessage: {last.message}\nTimestamp: {last.timestamp}"

    def get_events_context(self) -> str:
        if not self._events:
            return "No events detected."
        recent = list(self._events)[-CONTEXT_WINDOW:]
        return json.dumps([event.to_dict() for event in recent], indent=2, default=str)

    def has_recent_errors(self) -> bool:
        return any(
            _ERROR_INDICATOR in event.kind.lower() or _ERROR_INDICATOR in event.message.lower()
            for event in self._events
        )

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
