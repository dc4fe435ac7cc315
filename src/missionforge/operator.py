"""Chat operator: plain chat and bounded tool-augmented chat over a model."""

from __future__ import annotations

import json
from typing import Any, Sequence

import httpx

from missionforge.failures import CapabilityError
from missionforge.models.base import BaseChatModel, ModelResponse
from missionforge.state import ChatTurn
from missionforge.tools.registry import CapabilityRegistry, function_name
from missionforge.util.logging import clip, get_logger, redact

logger = get_logger(__name__)

MessageLike = ChatTurn | dict[str, Any]


def _to_messages(messages: Sequence[MessageLike]) -> list[dict[str, Any]]:
    return [
        message.as_message() if isinstance(message, ChatTurn) else dict(message)
        for message in messages
    ]


class ChatOperator:
    """Wraps a chat model and the capabilities it may call.

    ``chat`` never offers tools. ``chat_with_tools`` offers every capability in
    the registry and executes calls until the model answers with text or the
    round budget runs out.
    """

    def __init__(
        self,
        model: BaseChatModel,
        registry: CapabilityRegistry | None = None,
        max_tool_rounds: int = 6,
        name: str = "operator",
    ) -> None:
        self.model = model
        self.registry = registry if registry is not None else CapabilityRegistry()
        self.max_tool_rounds = max(1, max_tool_rounds)
        self.name = name
        self.tools_used: list[str] = []

    def chat(self, messages: Sequence[MessageLike]) -> ModelResponse:
        payload = _to_messages(messages)
        logger.info("[%s] chat (%d messages)", self.name, len(payload))
        return self.model.chat(payload, tools=None)

    def chat_with_tools(self, messages: Sequence[MessageLike]) -> ModelResponse:
        conversation = _to_messages(messages)
        tools = self.registry.openai_schemas() or None
        for round_index in range(self.max_tool_rounds):
            response = self.model.chat(conversation, tools=tools)
            call = response.tool_call
            if call is None:
                return response
            call_id = call.id or f"call-{round_index}"
            content = self._run_tool(call.name, call.arguments)
            conversation.append(
                {
                    "role": "assistant",
                    "content": response.final_text or "",
                    "tool_calls": [
                        {
                            "id": call_id,
                            "type": "function",
                            "function": {
                                "name": function_name(call.name),
                                "arguments": json.dumps(call.arguments, ensure_ascii=False),
                            },
                        }
                    ],
                }
            )
            conversation.append({"role": "tool", "tool_call_id": call_id, "content": content})
        logger.warning("[%s] tool round budget exhausted after %d rounds", self.name, self.max_tool_rounds)
        conversation.append(
            {
                "role": "user",
                "content": "Tool budget exhausted. Report what you have done so far without calling tools.",
            }
        )
        return self.model.chat(conversation, tools=None)

    def _run_tool(self, name: str, arguments: dict[str, Any]) -> str:
        try:
            qualified = self.registry.resolve(name)
            output = self.registry.execute(qualified, arguments)
        except (CapabilityError, OSError, ValueError, httpx.HTTPError) as exc:
            logger.warning("[%s] tool %s failed: %s", self.name, name, exc)
            return json.dumps({"error": str(exc)}, ensure_ascii=False)
        if qualified not in self.tools_used:
            self.tools_used.append(qualified)
        content = json.dumps({"output": output}, ensure_ascii=False, default=str)
        logger.info("[%s] tool %s -> %s", self.name, qualified, redact(clip(content)))
        return content
