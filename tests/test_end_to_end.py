from __future__ import annotations

import json
from pathlib import Path

import pytest

from missionforge.config import Settings
from missionforge.factory import build_controller
from missionforge.models.base import ModelResponse, ToolCall
from missionforge.models.mock import MockChatModel
from missionforge.state import MissionStatus
from missionforge.trace import MissionTrace

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture()
def settings(tmp_path, monkeypatch) -> Settings:
    for name in ("OPENAI_API_KEY", "OPENWEATHER_API_KEY", "WORKER_MODEL", "CONTROLLER_MODE"):
        monkeypatch.delenv(name, raising=False)
    return Settings(
        workspace_dir=str(tmp_path / "workspace"),
        identity_path=str(CONFIG_DIR / "switch.json"),
        instructions_path=str(CONFIG_DIR / "agent-instructions.json"),
        max_iterations=5,
    )


def test_worker_writes_report_and_planner_sees_the_event(settings):
    seen: dict[str, str] = {}
    holder = {}

    def planner(messages, tools):
        last = messages[-1]["content"]
        if last.startswith("YOUR MISSION"):
            return "1. Write the Paris weather to report.md using fs.writeFile"
        if "NEXT SINGLE ACTION" in last:
            return "Use fs.writeFile to save 'Paris: 18C, light rain' into report.md"
        if "WORKER AI RESPONSE" in last:
            seen["prompt"] = last
            seen["context"] = holder["controller"].get_events_context()
            return "completed"
        return "Report saved to report.md with the Paris weather."

    worker = MockChatModel(
        [
            ModelResponse(
                tool_call=ToolCall(
                    id="call_1",
                    name="fs_writeFile",
                    arguments={"path": "report.md", "content": "Paris: 18C, light rain"},
                )
            ),
            "I wrote report.md with the current Paris weather.",
        ]
    )
    trace = MissionTrace(trace_id="e2e")
    controller = build_controller(
        settings,
        planner_model=MockChatModel(responder=planner),
        worker_model=worker,
        observers=[trace],
    )
    holder["controller"] = controller

    execution = controller.run("Get the weather in Paris and save it to report.md")

    report = Path(settings.workspace_dir) / "report.md"
    assert report.read_text(encoding="utf-8") == "Paris: 18C, light rain"
    assert execution.completed is True
    assert execution.status is MissionStatus.COMPLETED
    assert execution.iterations == 1
    assert execution.result
    assert "Event: file.write" in seen["prompt"]
    assert json.loads(seen["context"])[-1]["kind"] == "file.write"
    assert controller.strategy.worker.tools_used == ["fs.writeFile"]
    assert "fs_writeFile" in worker.tool_offers[0]
    assert trace.events[-1]["type"] == "mission-complete"


def test_fast_mode_shares_one_operator(settings):
    fast = settings.model_copy(update={"controller_mode": "fast"})
    controller = build_controller(fast, planner_model=MockChatModel(responder=lambda m, t: "completed"))
    assert controller.strategy.planner is controller.strategy.worker
    assert controller.strategy.context_policy.name == "collaborative"
    assert controller.capabilities() == ["fs.readFile", "fs.writeFile", "fs.readDir"]


def test_weather_unit_is_learned_when_key_is_set(settings):
    with_weather = settings.model_copy(update={"openweather_api_key": "key"})
    controller = build_controller(with_weather, planner_model=MockChatModel())
    assert "weather.getCurrentWeather" in controller.capabilities()
    assert controller.strategy.context_policy.name == "clean"
