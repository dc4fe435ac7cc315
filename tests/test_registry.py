from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel

from missionforge.failures import CapabilityError
from missionforge.tools.base import Tool, ToolResult
from missionforge.tools.registry import CapabilityRegistry, function_name
from missionforge.tools.unit import ToolUnit


class EchoInput(BaseModel):
    text: str


class EchoTool(Tool):
    name = "echo"
    description = "Echo text back"
    input_schema = EchoInput

    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        payload = EchoInput.model_validate(data)
        return ToolResult(output={"echo": payload.text})


def test_learn_qualifies_names_by_unit():
    registry = CapabilityRegistry()
    learned = registry.learn([ToolUnit("util", [EchoTool()])])
    assert learned == ["util.echo"]
    assert registry.list_capability_names() == ["util.echo"]


def test_openai_schema_uses_safe_function_names():
    registry = CapabilityRegistry()
    registry.learn([ToolUnit("util", [EchoTool()])])
    schema = registry.openai_schemas()[0]
    assert schema["function"]["name"] == "util_echo"
    assert schema["function"]["parameters"]["required"] == ["text"]
    assert registry.resolve("util_echo") == "util.echo"


def test_describe_schema_reports_qualified_name():
    registry = CapabilityRegistry()
    registry.learn([ToolUnit("util", [EchoTool()])])
    described = registry.describe_schema("util.echo")
    assert described["name"] == "util.echo"
    assert described["description"] == "Echo text back"


def test_execute_validates_arguments():
    registry = CapabilityRegistry()
    registry.learn([ToolUnit("util", [EchoTool()])])
    assert registry.execute("util_echo", {"text": "hi"}) == {"echo": "hi"}
    assert registry.validate("util.echo", {}) != []
    with pytest.raises(CapabilityError):
        registry.execute("util.echo", {})


def test_unknown_capability():
    registry = CapabilityRegistry()
    assert registry.validate("nope", {}) == ["Unknown capability: nope"]
    with pytest.raises(CapabilityError):
        registry.resolve("nope")


def test_registry_can_be_taught_onwards():
    inner = CapabilityRegistry(unit_id="team")
    inner.learn([ToolUnit("util", [EchoTool()])])
    outer = CapabilityRegistry()
    outer.learn([inner.teach()])
    assert outer.list_capability_names() == ["team.util.echo"]
    assert outer.execute("team_util_echo", {"text": "x"}) == {"echo": "x"}


def test_function_name_replaces_dots():
    assert function_name("fs.writeFile") == "fs_writeFile"
