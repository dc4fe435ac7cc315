"""Registry of capabilities learned from teaching units."""

from __future__ import annotations

import re
from typing import Any, Iterable

from missionforge.failures import CapabilityError
from missionforge.tools.base import Capabilities
from missionforge.util.logging import get_logger

logger = get_logger(__name__)

_FUNCTION_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")


def function_name(qualified_name: str) -> str:
    """OpenAI function names only allow letters, digits, ``_`` and ``-``."""
    return _FUNCTION_NAME_UNSAFE.sub("_", qualified_name)


class CapabilityRegistry(Capabilities):
    """Merges taught manifests under ``unit.capability`` qualified names."""

    def __init__(self, unit_id: str = "registry") -> None:
        self.unit_id = unit_id
        self._entries: dict[str, tuple[Capabilities, str]] = {}
        self._functions: dict[str, str] = {}

    def learn(self, contracts: Iterable[Capabilities]) -> list[str]:
        learned: list[str] = []
        for contract in contracts:
            names = contract.list_capability_names()
            for name in names:
                qualified = f"{contract.unit_id}.{name}"
                self._entries[qualified] = (contract, name)
                self._functions[function_name(qualified)] = qualified
                learned.append(qualified)
            logger.info(
                "Learned %d capabilities from %s: %s",
                len(names),
                contract.unit_id,
                ", ".join(names) or "none",
            )
        return learned

    def resolve(self, name: str) -> str:
        if name in self._entries:
            return name
        qualified = self._functions.get(name)
        if qualified is None:
            raise CapabilityError(f"Unknown capability: {name}")
        return qualified

    def list_capability_names(self) -> list[str]:
        return list(self._entries)

    def describe_schema(self, name: str) -> dict[str, Any]:
        qualified = self.resolve(name)
        contract, local_name = self._entries[qualified]
        schema = dict(contract.describe_schema(local_name))
        schema["name"] = qualified
        return schema

    def validate(self, name: str, arguments: dict[str, Any]) -> list[str]:
        try:
            qualified = self.resolve(name)
        except CapabilityError as exc:
            return [str(exc)]
        contract, local_name = self._entries[qualified]
        return contract.validate(local_name, arguments)

    def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        qualified = self.resolve(name)
        contract, local_name = self._entries[qualified]
        errors = contract.validate(local_name, arguments)
        if errors:
            raise CapabilityError(f"Invalid arguments for {qualified}: {'; '.join(errors)}")
        return contract.execute(local_name, arguments)

    def openai_schemas(self) -> list[dict[str, Any]]:
        schemas: list[dict[str, Any]] = []
        for qualified in self._entries:
            described = self.describe_schema(qualified)
            schemas.append(
                {
                    "type": "function",
                    "function": {
                        "name": function_name(qualified),
                        "description": described.get("description", ""),
                        "parameters": described.get("parameters", {"type": "object"}),
                    },
                }
            )
        return schemas

    def __len__(self) -> int:
        return len(self._entries)
