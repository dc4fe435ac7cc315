"""Shared construction helpers for models, operators, tools and controllers."""

from __future__ import annotations

import json

from missionforge.config import Settings
from missionforge.controller import MissionController
from missionforge.events import EventSink
from missionforge.identity import Identity, load_identity
from missionforge.memory import BoundedMemory
from missionforge.models.base import BaseChatModel
from missionforge.models.mock import MockChatModel
from missionforge.models.openai_compat import OpenAICompatChatModel
from missionforge.operator import ChatOperator
from missionforge.templates import InstructionBundle, load_instructions
from missionforge.tools.base import Capabilities
from missionforge.tools.builtins.filesystem import filesystem_unit
from missionforge.tools.builtins.weather import weather_unit
from missionforge.tools.registry import CapabilityRegistry


def build_model(
    settings: Settings, model_name: str | None = None, use_mock: bool = False
) -> BaseChatModel:
    if use_mock or not settings.openai_api_key:
        return MockChatModel()
    extra_headers = None
    if settings.openai_extra_headers:
        extra_headers = json.loads(settings.openai_extra_headers)
    return OpenAICompatChatModel(
        base_url=settings.openai_base_url,
        api_key=settings.openai_api_key,
        model=model_name or settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
        extra_headers=extra_headers,
        disable_tool_choice=settings.openai_disable_tool_choice,
        force_chatcompletions_path=settings.openai_force_chatcompletions_path,
    )


def build_units(settings: Settings, sink: EventSink | None = None) -> list[Capabilities]:
    units: list[Capabilities] = [filesystem_unit(settings.workspace_dir, sink=sink)]
    if settings.openweather_api_key:
        units.append(weather_unit(settings.openweather_api_key))
    return units


def build_controller(
    settings: Settings,
    identity: Identity | None = None,
    instructions: InstructionBundle | None = None,
    *,
    planner_model: BaseChatModel | None = None,
    worker_model: BaseChatModel | None = None,
    observers: list[EventSink] | None = None,
) -> MissionController:
    identity = identity or load_identity(settings.identity_path)
    instructions = instructions or load_instructions(settings.instructions_path)
    registry = CapabilityRegistry()
    planner_model = planner_model or build_model(settings)
    memory = BoundedMemory(max_items=settings.memory_max_items)
    kwargs = {
        "max_iterations": settings.max_iterations,
        "memory": memory,
        "observers": observers,
    }
    if settings.controller_mode == "fast":
        operator = ChatOperator(
            planner_model, registry, max_tool_rounds=settings.max_tool_rounds, name="agent"
        )
        controller = MissionController.fast(operator, identity, instructions, **kwargs)
    else:
        if worker_model is None:
            worker_model = (
                build_model(settings, settings.worker_model)
                if settings.worker_model
                else planner_model
            )
        planner = ChatOperator(planner_model, name="planner")
        worker = ChatOperator(
            worker_model, registry, max_tool_rounds=settings.max_tool_rounds, name="worker"
        )
        controller = MissionController.dual(planner, worker, identity, instructions, **kwargs)
    controller.learn(build_units(settings, sink=controller.event_log))
    return controller
