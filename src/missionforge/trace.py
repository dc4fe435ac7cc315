"""Trace recorder for mission runs."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from missionforge.events import EventSink, OperationalEvent
from missionforge.util.logging import redact


@dataclass
class MissionTrace(EventSink):
    """Lifecycle observer that keeps every controller event of a run."""

    trace_id: str
    started_at: float = field(default_factory=time.time)
    events: list[dict[str, Any]] = field(default_factory=list)

    def emit(self, event: OperationalEvent) -> None:
        self.events.append(
            {
                "type": event.kind,
                "timestamp": event.timestamp,
                "message": redact(event.message),
                "payload": event.data,
            }
        )

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [event for event in self.events if event["type"] == event_type]

    def export(self, stats: dict[str, Any] | None = None) -> dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "stats": stats or {},
            "events": self.events,
        }

    def write(self, path: str | Path, stats: dict[str, Any] | None = None) -> str:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.export(stats), indent=2, default=str), encoding="utf-8")
        return str(target)
