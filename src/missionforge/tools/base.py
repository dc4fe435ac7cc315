"""Base tool and capability definitions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class ToolResult(BaseModel):
    output: Any


class Tool(ABC):
    """Abstract tool."""

    name: str
    description: str
    input_schema: type[BaseModel]
    output_schema: type[BaseModel] | None = None

    @abstractmethod
    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        """Execute the tool."""
        raise NotImplementedError

    def parameters_schema(self) -> dict[str, Any]:
        return self.input_schema.model_json_schema()


class Capabilities(ABC):
    """Manifest of named, schema-described operations a unit can teach.

    The controller only ever lists names and serialises schemas; execution
    goes through ``execute`` which must validate first.
    """

    unit_id: str

    @abstractmethod
    def list_capability_names(self) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def describe_schema(self, name: str) -> dict[str, Any]:
        """Return ``{"name", "description", "parameters"}`` for a capability."""
        raise NotImplementedError

    @abstractmethod
    def validate(self, name: str, arguments: dict[str, Any]) -> list[str]:
        """Return validation errors, empty when the call is acceptable."""
        raise NotImplementedError

    @abstractmethod
    def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        raise NotImplementedError

    def teach(self) -> "Capabilities":
        return self

    def schema_manifest(self) -> dict[str, dict[str, Any]]:
        return {name: self.describe_schema(name) for name in self.list_capability_names()}
