"""Bounded conversational memory with eviction and event emission."""

from __future__ import annotations

import itertools
import json
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Mapping
from uuid import uuid4

from pydantic import BaseModel, Field

from missionforge.state import ChatTurn
from missionforge.tools.base import Tool, ToolResult
from missionforge.tools.unit import ToolUnit

MemoryEventType = Literal["push", "pop", "list", "recall", "clear", "evicted"]
MemoryHandler = Callable[["MemoryEvent"], None]

DEFAULT_MAX_ITEMS = 100


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class MemoryItem:
    id: str
    payload: Any
    created_at: str
    tag: str | None = None


@dataclass(frozen=True)
class MemoryEvent:
    type: MemoryEventType
    total: int
    timestamp: str = field(default_factory=_now)
    item: MemoryItem | None = None
    items: tuple[MemoryItem, ...] = ()
    query: str | None = None
    cleared: int = 0
    reason: str | None = None


def _serialise(payload: Any) -> str:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    try:
        return json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return str(payload)


def as_chat_turn(payload: Any) -> ChatTurn | None:
    """Return the payload as a ChatTurn when it has textual role and content."""
    if isinstance(payload, ChatTurn):
        return payload
    if isinstance(payload, Mapping):
        role = payload.get("role")
        content = payload.get("content")
        if isinstance(role, str) and isinstance(content, str) and role in (
            "system",
            "user",
            "assistant",
        ):
            return ChatTurn(role=role, content=content)
    return None


class BoundedMemory:
    """Ordered, size-capped buffer of turns.

    Pushing beyond ``max_items`` drops the oldest item first and reports it with
    an ``evicted`` event before the ``push`` event. Listeners subscribe per event
    type with :meth:`on`; emission can be disabled entirely.
    """

    def __init__(self, max_items: int = DEFAULT_MAX_ITEMS, enable_events: bool = True) -> None:
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.max_items = max_items
        self.enable_events = enable_events
        self._items: deque[MemoryItem] = deque()
        self._handlers: dict[str, list[MemoryHandler]] = {}
        self._sequence = itertools.count(1)

    def on(self, event_type: MemoryEventType, handler: MemoryHandler) -> Callable[[], None]:
        self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            self.off(event_type, handler)

        return unsubscribe

    def off(self, event_type: MemoryEventType, handler: MemoryHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def _emit(self, event: MemoryEvent) -> None:
        if not self.enable_events:
            return
        for handler in list(self._handlers.get(event.type, [])):
            handler(event)

    def push(self, payload: Any, tag: str | None = None) -> str:
        item = MemoryItem(
            id=f"mem-{next(self._sequence):06d}-{uuid4().hex[:8]}",
            payload=payload,
            created_at=_now(),
            tag=tag,
        )
        self._items.append(item)
        if len(self._items) > self.max_items:
            removed = self._items.popleft()
            self._emit(
                MemoryEvent(
                    type="evicted",
                    total=len(self._items),
                    item=removed,
                    reason="max_items_exceeded",
                )
            )
        self._emit(MemoryEvent(type="push", total=len(self._items), item=item))
        return item.id

    def pop(self) -> MemoryItem | None:
        item = self._items.pop() if self._items else None
        self._emit(MemoryEvent(type="pop", total=len(self._items), item=item))
        return item

    def list(self) -> list[MemoryItem]:
        items = list(self._items)
        self._emit(MemoryEvent(type="list", total=len(items)))
        return items

    def recall(self, query: str) -> list[MemoryItem]:
        needle = query.lower()
        results = [
            item
            for item in self._items
            if (item.tag is not None and needle in item.tag.lower())
            or needle in _serialise(item.payload).lower()
        ]
        self._emit(
            MemoryEvent(
                type="recall",
                total=len(self._items),
                items=tuple(results),
                query=query,
            )
        )
        return results

    def clear(self) -> int:
        count = len(self._items)
        self._items.clear()
        self._emit(MemoryEvent(type="clear", total=0, cleared=count))
        return count

    def get_messages(self) -> list[ChatTurn]:
        turns: list[ChatTurn] = []
        for item in self._items:
            turn = as_chat_turn(item.payload)
            if turn is not None:
                turns.append(turn)
        return turns

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def whoami(self) -> str:
        return f"Memory [{len(self._items)}/{self.max_items} items]"

    def teach(self, unit_id: str = "memory") -> ToolUnit:
        return ToolUnit(unit_id, [MemoryRecallTool(self), MemoryListTool(self)])


class RecallInput(BaseModel):
    query: str = Field(description="Case-insensitive text to search for")


class ListInput(BaseModel):
    pass


def _describe(item: MemoryItem) -> dict[str, Any]:
    payload = item.payload.model_dump() if isinstance(item.payload, BaseModel) else item.payload
    return {"id": item.id, "tag": item.tag, "createdAt": item.created_at, "payload": payload}


class MemoryRecallTool(Tool):
    name = "recall"
    description = "Search memory items"
    input_schema = RecallInput

    def __init__(self, memory: BoundedMemory) -> None:
        self.memory = memory

    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        input_data = RecallInput.model_validate(data)
        return ToolResult(output=[_describe(item) for item in self.memory.recall(input_data.query)])


class MemoryListTool(Tool):
    name = "list"
    description = "Get all memory items"
    input_schema = ListInput

    def __init__(self, memory: BoundedMemory) -> None:
        self.memory = memory

    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        return ToolResult(output=[_describe(item) for item in self.memory.list()])
