from __future__ import annotations

import json

from missionforge.models.base import ModelResponse, ToolCall
from missionforge.models.mock import MockChatModel
from missionforge.operator import ChatOperator
from missionforge.tools.builtins.filesystem import filesystem_unit
from missionforge.tools.registry import CapabilityRegistry


def _registry(tmp_path) -> CapabilityRegistry:
    registry = CapabilityRegistry()
    registry.learn([filesystem_unit(tmp_path)])
    return registry


def test_chat_never_offers_tools(tmp_path):
    model = MockChatModel(["plain"])
    operator = ChatOperator(model, registry=_registry(tmp_path))
    assert operator.chat([{"role": "user", "content": "hi"}]).content == "plain"
    assert model.tool_offers == [[]]


def test_tool_call_is_executed_and_fed_back(tmp_path):
    model = MockChatModel(
        [
            ModelResponse(
                tool_call=ToolCall(
                    id="call_1",
                    name="fs_writeFile",
                    arguments={"path": "report.md", "content": "# Report"},
                )
            ),
            "Saved the report.",
        ]
    )
    operator = ChatOperator(model, registry=_registry(tmp_path))
    response = operator.chat_with_tools([{"role": "user", "content": "write it"}])

    assert response.content == "Saved the report."
    assert (tmp_path / "report.md").read_text(encoding="utf-8") == "# Report"
    assert operator.tools_used == ["fs.writeFile"]
    assert "fs_writeFile" in model.tool_offers[0]

    second_call = model.calls[1]
    assert second_call[1]["tool_calls"][0]["function"]["name"] == "fs_writeFile"
    tool_message = second_call[2]
    assert tool_message["role"] == "tool"
    assert tool_message["tool_call_id"] == "call_1"
    assert json.loads(tool_message["content"])["output"]["status"] == "ok"


def test_unknown_tool_is_reported_to_the_model(tmp_path):
    model = MockChatModel(
        [ModelResponse(tool_call=ToolCall(name="nope", arguments={})), "done"]
    )
    operator = ChatOperator(model, registry=_registry(tmp_path))
    assert operator.chat_with_tools([{"role": "user", "content": "go"}]).content == "done"
    tool_message = model.calls[1][-1]
    assert "Unknown capability" in json.loads(tool_message["content"])["error"]
    assert operator.tools_used == []


def test_tool_failure_is_reported_not_raised(tmp_path):
    model = MockChatModel(
        [
            ModelResponse(
                tool_call=ToolCall(name="fs.readFile", arguments={"path": "missing.txt"})
            ),
            "could not read",
        ]
    )
    operator = ChatOperator(model, registry=_registry(tmp_path))
    assert operator.chat_with_tools([{"role": "user", "content": "go"}]).content == "could not read"
    assert "error" in json.loads(model.calls[1][-1]["content"])


def test_round_budget_forces_a_text_answer(tmp_path):
    looping = ModelResponse(tool_call=ToolCall(name="fs_readDir", arguments={}))
    model = MockChatModel([looping, looping, "summary"])
    operator = ChatOperator(model, registry=_registry(tmp_path), max_tool_rounds=2)
    response = operator.chat_with_tools([{"role": "user", "content": "go"}])
    assert response.content == "summary"
    assert len(model.calls) == 3
    assert model.tool_offers[-1] == []
    assert "Tool budget exhausted" in model.calls[-1][-1]["content"]


def test_empty_registry_offers_no_tools():
    model = MockChatModel(["hello"])
    operator = ChatOperator(model)
    operator.chat_with_tools([{"role": "user", "content": "hi"}])
    assert model.tool_offers == [[]]
