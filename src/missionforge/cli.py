"""Command-line interface."""

from __future__ import annotations

import argparse
from typing import Any
from uuid import uuid4

from missionforge.config import Settings
from missionforge.events import LoggingEventSink
from missionforge.factory import build_controller
from missionforge.state import MissionStatus
from missionforge.trace import MissionTrace


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="MissionForge CLI")
    parser.add_argument("mission", type=str, help="Mission to run")
    parser.add_argument("--base-url", dest="base_url")
    parser.add_argument("--api-key", dest="api_key")
    parser.add_argument("--model", dest="model")
    parser.add_argument("--worker-model", dest="worker_model")
    parser.add_argument("--mode", choices=["fast", "dual"], dest="mode")
    parser.add_argument("--identity", dest="identity_path")
    parser.add_argument("--instructions", dest="instructions_path")
    parser.add_argument("--workspace", dest="workspace")
    parser.add_argument("--max-iterations", type=int, dest="max_iterations")
    parser.add_argument("--max-tool-rounds", type=int, dest="max_tool_rounds")
    parser.add_argument("--memory-max-items", type=int, dest="memory_max_items")
    parser.add_argument("--trace-out", dest="trace_out")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    data: dict[str, Any] = settings.model_dump()
    if args.base_url:
        data["openai_base_url"] = args.base_url
    if args.api_key:
        data["openai_api_key"] = args.api_key
    if args.model:
        data["openai_model"] = args.model
    if args.worker_model:
        data["worker_model"] = args.worker_model
    if args.mode:
        data["controller_mode"] = args.mode
    if args.identity_path:
        data["identity_path"] = args.identity_path
    if args.instructions_path:
        data["instructions_path"] = args.instructions_path
    if args.workspace:
        data["workspace_dir"] = args.workspace
    if args.max_iterations:
        data["max_iterations"] = args.max_iterations
    if args.max_tool_rounds:
        data["max_tool_rounds"] = args.max_tool_rounds
    if args.memory_max_items:
        data["memory_max_items"] = args.memory_max_items
    return Settings(**data)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = apply_overrides(Settings(), args)
    trace = MissionTrace(trace_id=f"mission-{uuid4().hex[:8]}")
    controller = build_controller(settings, observers=[LoggingEventSink("mission"), trace])
    print(controller.whoami())
    execution = controller.run(args.mission)
    print("Status:", execution.status.value)
    print("Iterations:", execution.iterations)
    print("Report:\n", execution.result or "(no final report)")
    if args.trace_out:
        path = trace.write(
            args.trace_out,
            stats={"status": execution.status.value, "iterations": execution.iterations},
        )
        print("Trace:", path)
    return 0 if execution.status is MissionStatus.COMPLETED else 1


if __name__ == "__main__":
    raise SystemExit(main())
