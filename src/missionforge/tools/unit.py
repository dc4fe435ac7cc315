"""Capability manifest backed by pydantic-schema tools."""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import ValidationError

from missionforge.failures import CapabilityError
from missionforge.tools.base import Capabilities, Tool


class ToolUnit(Capabilities):
    """Groups tools under one unit id so they can be taught to a controller."""

    def __init__(self, unit_id: str, tools: Iterable[Tool] | None = None) -> None:
        self.unit_id = unit_id
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_capability_names(self) -> list[str]:
        return list(self._tools)

    def describe_schema(self, name: str) -> dict[str, Any]:
        tool = self._require(name)
        return {
            "name": tool.name,
            "description": tool.description,
            "parameters": tool.parameters_schema(),
        }

    def validate(self, name: str, arguments: dict[str, Any]) -> list[str]:
        tool = self._tools.get(name)
        if tool is None:
            return [f"Unknown capability: {self.unit_id}.{name}"]
        try:
            tool.input_schema.model_validate(arguments)
        except ValidationError as exc:
            return [
                f"{'.'.join(str(part) for part in error['loc']) or 'arguments'}: {error['msg']}"
                for error in exc.errors()
            ]
        return []

    def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        errors = self.validate(name, arguments)
        if errors:
            raise CapabilityError("; ".join(errors))
        tool = self._require(name)
        data = tool.input_schema.model_validate(arguments)
        return tool.run(data).output

    def _require(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise CapabilityError(f"Unknown capability: {self.unit_id}.{name}")
        return tool

    def __repr__(self) -> str:
        return f"ToolUnit({self.unit_id!r}, capabilities={self.list_capability_names()})"
