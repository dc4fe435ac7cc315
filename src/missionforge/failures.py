"""Failure taxonomy and helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ConfigurationError(RuntimeError):
    """Raised when identity or instruction configuration is missing or malformed."""


class UnknownTemplateError(ConfigurationError, KeyError):
    """Raised when a named template is absent from the instruction bundle."""

    def __init__(self, template_name: str) -> None:
        self.template_name = template_name
        super().__init__(f"Template '{template_name}' not found in template instructions")

    def __str__(self) -> str:
        return self.args[0]


class CapabilityError(RuntimeError):
    """Raised when a capability is unknown or receives invalid arguments."""


class FailureTag(str, Enum):
    """Standardized failure categories recorded on a mission execution."""

    COLLABORATOR_ERROR = "COLLABORATOR_ERROR"
    MISSION_FAILED = "MISSION_FAILED"
    ITERATIONS_EXHAUSTED = "ITERATIONS_EXHAUSTED"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class FailureEvent:
    """Structured failure event kept on the execution result."""

    tag: FailureTag
    reason: str
    iteration: int = 0
    details: dict[str, Any] | None = None
    timestamp: str = field(default_factory=_now)
