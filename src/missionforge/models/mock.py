"""Mock chat model for offline testing."""

from __future__ import annotations

from typing import Any, Callable

from missionforge.models.base import BaseChatModel, ModelResponse

Responder = Callable[[list[dict[str, Any]], list[dict[str, Any]] | None], ModelResponse | str]


class MockChatModel(BaseChatModel):
    """Deterministic mock model used when no API key is available.

    Scripted entries are consumed in order; plain strings are wrapped as final
    text. When the script runs out, ``responder`` is consulted if given,
    otherwise the model echoes the last message.
    """

    def __init__(
        self,
        scripted: list[ModelResponse | str] | None = None,
        responder: Responder | None = None,
    ) -> None:
        self._scripted = list(scripted or [])
        self.responder = responder
        self.calls: list[list[dict[str, Any]]] = []
        self.tool_offers: list[list[str]] = []

    def chat(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None) -> ModelResponse:
        self.calls.append([dict(message) for message in messages])
        self.tool_offers.append([tool["function"]["name"] for tool in tools or []])
        if self._scripted:
            return self._wrap(self._scripted.pop(0))
        if self.responder is not None:
            return self._wrap(self.responder(messages, tools))
        last = messages[-1].get("content") if messages else ""
        return ModelResponse(final_text=f"Mock response to: {last}")

    @staticmethod
    def _wrap(item: ModelResponse | str) -> ModelResponse:
        if isinstance(item, str):
            return ModelResponse(final_text=item)
        return item
