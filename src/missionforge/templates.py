"""Instruction bundle models, template rendering and validation."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from missionforge.failures import ConfigurationError, UnknownTemplateError
from missionforge.util.logging import get_logger

logger = get_logger(__name__)

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")

TASK_BREAKDOWN = "taskBreakdown"
WORKER_PROMPT_GENERATION = "workerPromptGeneration"
RESULT_ANALYSIS = "resultAnalysis"
FINAL_REPORT = "finalReport"

REQUIRED_TEMPLATES: dict[str, tuple[str, ...]] = {
    TASK_BREAKDOWN: ("task", "tools"),
    WORKER_PROMPT_GENERATION: ("promptTemplate",),
    RESULT_ANALYSIS: ("workerResponse", "systemEvents"),
    FINAL_REPORT: ("conversationHistory",),
}
_REQUIRED_PROMPT_FIELDS = ("user", "system")


class PromptPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: str
    system: str = ""


class PromptTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt: PromptPair
    variables: tuple[str, ...] = ()
    description: str | None = None


class InstructionBundle(BaseModel):
    """Versioned set of prompt templates used to render every controller request."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    version: str
    author: str | None = None
    templates: dict[str, PromptTemplate] = Field(default_factory=dict)


@dataclass(frozen=True)
class TemplateIssue:
    template_name: str
    field: str
    error: str

    def __str__(self) -> str:
        return f"[{self.template_name}] {self.field}: {self.error}"


def render(prompt: PromptPair | Mapping[str, str], variables: Mapping[str, Any]) -> str:
    """Substitute ``{{name}}`` placeholders in the user prompt.

    Placeholders without a matching variable are left as they are so a prompt
    can be filled across several passes. Substitution is a single textual pass;
    substituted values are never re-scanned.
    """
    text = prompt.user if isinstance(prompt, PromptPair) else prompt.get("user", "")

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return _PLACEHOLDER.sub(replace, text).strip()


def extract_variables(text: str) -> list[str]:
    """Return placeholder names in first-seen order."""
    seen: list[str] = []
    for match in _PLACEHOLDER.finditer(text):
        name = match.group(1)
        if name not in seen:
            seen.append(name)
    return seen


class TemplateRenderer:
    """Looks up templates in a bundle and renders their user prompt."""

    def __init__(self, bundle: InstructionBundle) -> None:
        self.bundle = bundle

    def get(self, name: str) -> PromptTemplate:
        template = self.bundle.templates.get(name)
        if template is None:
            raise UnknownTemplateError(name)
        return template

    def render(self, name: str, variables: Mapping[str, Any]) -> str:
        return render(self.get(name).prompt, variables)

    def system_prompt(self, name: str) -> str:
        return self.get(name).prompt.system

    def require(self, names: tuple[str, ...] | list[str]) -> None:
        for name in names:
            self.get(name)


def validate_instructions(payload: Any) -> list[TemplateIssue]:
    """Return structural problems found in a raw instruction bundle payload."""
    issues: list[TemplateIssue] = []
    if not isinstance(payload, dict):
        return [TemplateIssue("root", "root", "Instruction bundle must be a JSON object")]
    for key in ("name", "description", "version"):
        value = payload.get(key)
        if not value or not isinstance(value, str):
            issues.append(TemplateIssue("root", key, f"Missing or invalid {key} field"))
    templates = payload.get("templates")
    if not isinstance(templates, dict):
        issues.append(TemplateIssue("root", "templates", "Missing or invalid templates object"))
        return issues
    for template_name, required_variables in REQUIRED_TEMPLATES.items():
        template = templates.get(template_name)
        if template is None:
            issues.append(
                TemplateIssue(template_name, "template", f"Missing template: {template_name}")
            )
            continue
        issues.extend(_validate_template(template_name, template, required_variables))
    return issues


def _validate_template(
    template_name: str, template: Any, required_variables: tuple[str, ...]
) -> list[TemplateIssue]:
    if not isinstance(template, dict):
        return [TemplateIssue(template_name, "template", "Template must be an object")]
    prompt = template.get("prompt")
    if not isinstance(prompt, dict):
        return [TemplateIssue(template_name, "prompt", "Missing or invalid prompt object")]
    issues: list[TemplateIssue] = []
    for field in _REQUIRED_PROMPT_FIELDS:
        if not isinstance(prompt.get(field), str):
            issues.append(
                TemplateIssue(
                    template_name, f"prompt.{field}", f"Missing or invalid prompt.{field} field"
                )
            )
    variables = template.get("variables")
    if not isinstance(variables, list):
        issues.append(
            TemplateIssue(template_name, "variables", "Missing or invalid variables array")
        )
        return issues
    for name in required_variables:
        if name not in variables:
            issues.append(
                TemplateIssue(template_name, "variables", f"Missing required variable: {name}")
            )
    used: list[str] = []
    for field in _REQUIRED_PROMPT_FIELDS:
        text = prompt.get(field)
        if isinstance(text, str):
            used.extend(extract_variables(text))
    for name in dict.fromkeys(used):
        if name not in variables:
            issues.append(
                TemplateIssue(
                    template_name,
                    "variables",
                    f"Variable '{name}' used in prompt but not declared in variables array",
                )
            )
    return issues


def parse_instructions(payload: Any) -> InstructionBundle:
    """Validate a decoded payload and build an ``InstructionBundle``."""
    issues = validate_instructions(payload)
    if issues:
        details = "\n".join(str(issue) for issue in issues)
        raise ConfigurationError(f"Template validation failed:\n{details}")
    try:
        return InstructionBundle.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Template validation failed:\n{exc}") from exc


def load_instructions(path: str | Path) -> InstructionBundle:
    path_obj = Path(path)
    try:
        payload = json.loads(path_obj.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Instruction file not found: {path_obj}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Instruction file is not valid JSON: {path_obj}") from exc
    bundle = parse_instructions(payload)
    logger.info("Loaded instructions %s v%s from %s.", bundle.name, bundle.version, path_obj)
    return bundle
