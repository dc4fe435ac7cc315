"""Typed mission state shared by the controller and its callers."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from missionforge.failures import FailureEvent

Role = Literal["system", "user", "assistant"]


class ChatTurn(BaseModel):
    """One conversational turn; immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def as_message(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


class MissionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


class MissionExecution(BaseModel):
    """Result of one controller run, mutated only by the controller loop."""

    goal: str
    messages: list[ChatTurn] = Field(default_factory=list)
    completed: bool = False
    iterations: int = 0
    result: str | None = None
    status: MissionStatus = MissionStatus.RUNNING
    failures: list[FailureEvent] = Field(default_factory=list)
