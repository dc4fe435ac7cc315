"""Controller identity configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from missionforge.failures import ConfigurationError
from missionforge.util.logging import get_logger

logger = get_logger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ErrorRecovery(_CamelModel):
    max_retries: int = 3
    fallback_strategy: str = "Reassess the last step and try a different approach."
    escalation_threshold: str = ""


class Identity(_CamelModel):
    name: str
    description: str
    system_prompt: str
    prompt_template: str
    worker_prompt: str | None = None
    completion_signals: list[str] = Field(default_factory=list)
    error_recovery: ErrorRecovery = Field(default_factory=ErrorRecovery)

    @property
    def worker_system_prompt(self) -> str:
        return self.worker_prompt or self.system_prompt


def parse_identity(payload: Any) -> Identity:
    if not isinstance(payload, dict):
        raise ConfigurationError("Identity configuration must be a JSON object.")
    try:
        return Identity.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid identity configuration:\n{exc}") from exc


def load_identity(path: str | Path) -> Identity:
    path_obj = Path(path)
    try:
        payload = json.loads(path_obj.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Identity file not found: {path_obj}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Identity file is not valid JSON: {path_obj}") from exc
    identity = parse_identity(payload)
    logger.info("Loaded identity %s from %s.", identity.name, path_obj)
    return identity
