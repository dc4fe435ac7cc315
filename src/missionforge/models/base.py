"""Chat model interface shared by planners and workers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class ToolCall(BaseModel):
    """A single function call requested by the model."""

    id: str | None = None
    name: str
    arguments: dict[str, Any]


class ModelResponse(BaseModel):
    """One model turn: either text, a tool call, or both."""

    final_text: str | None = None
    tool_call: ToolCall | None = None

    @property
    def content(self) -> str:
        return self.final_text or ""


class BaseChatModel(ABC):
    """Backend that answers a list of chat messages, optionally offering tools."""

    @abstractmethod
    def chat(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None) -> ModelResponse:
        """Return the next turn for ``messages``; ``tools`` are OpenAI function schemas."""
        raise NotImplementedError
