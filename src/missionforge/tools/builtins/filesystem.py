"""Filesystem tools restricted to a workspace, reporting operational events."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, Field

from missionforge.events import EventSink, OperationalEvent
from missionforge.tools.base import Tool, ToolResult
from missionforge.tools.unit import ToolUnit

T = TypeVar("T")


class ReadFileInput(BaseModel):
    path: str = Field(description="Path relative to the workspace")


class WriteFileInput(BaseModel):
    path: str = Field(description="Path relative to the workspace")
    content: str = Field(default="", description="Text content to write")


class ListDirInput(BaseModel):
    path: str = Field(default=".", description="Directory relative to the workspace")


class Workspace:
    """Resolves paths under a root directory and reports file events."""

    def __init__(self, workspace_dir: str | Path, sink: EventSink | None = None) -> None:
        self.root = Path(workspace_dir).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.sink = sink

    def safe_path(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise ValueError("Path traversal detected")
        return target

    def report(self, kind: str, message: str, **data: Any) -> None:
        if self.sink is not None:
            self.sink.emit(OperationalEvent(kind=kind, message=message, data=data))

    def guarded(self, operation: str, path: str, action: Callable[[], T]) -> T:
        try:
            return action()
        except (OSError, ValueError) as exc:
            self.report(
                "file.error",
                f"{operation} failed for {path}: error: {exc}",
                operation=operation,
                path=path,
            )
            raise


class ReadFileTool(Tool):
    name = "readFile"
    description = "Read a UTF-8 text file from the workspace."
    input_schema = ReadFileInput

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        input_data = ReadFileInput.model_validate(data)

        def action() -> str:
            target = self.workspace.safe_path(input_data.path)
            return target.read_text(encoding="utf-8")

        content = self.workspace.guarded("read", input_data.path, action)
        self.workspace.report(
            "file.read", f"Read {len(content)} characters from {input_data.path}", path=input_data.path
        )
        return ToolResult(output={"content": content})


class WriteFileTool(Tool):
    name = "writeFile"
    description = "Write UTF-8 text to a file in the workspace, creating parent directories."
    input_schema = WriteFileInput

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        input_data = WriteFileInput.model_validate(data)

        def action() -> int:
            target = self.workspace.safe_path(input_data.path)
            target.parent.mkdir(parents=True, exist_ok=True)
            return target.write_text(input_data.content, encoding="utf-8")

        written = self.workspace.guarded("write", input_data.path, action)
        self.workspace.report(
            "file.write",
            f"Wrote {written} characters to {input_data.path}",
            path=input_data.path,
            bytes=written,
        )
        return ToolResult(output={"status": "ok", "path": input_data.path, "written": written})


class ListDirTool(Tool):
    name = "readDir"
    description = "List entries of a workspace directory."
    input_schema = ListDirInput

    def __init__(self, workspace: Workspace) -> None:
        self.workspace = workspace

    def run(self, data: BaseModel | dict[str, Any]) -> ToolResult:
        input_data = ListDirInput.model_validate(data)

        def action() -> list[str]:
            target = self.workspace.safe_path(input_data.path)
            if not target.exists():
                return []
            return sorted(path.name for path in target.iterdir())

        entries = self.workspace.guarded("list", input_data.path, action)
        self.workspace.report(
            "file.list", f"Listed {len(entries)} entries in {input_data.path}", path=input_data.path
        )
        return ToolResult(output={"entries": entries})


def filesystem_unit(
    workspace_dir: str | Path, sink: EventSink | None = None, unit_id: str = "fs"
) -> ToolUnit:
    workspace = Workspace(workspace_dir, sink=sink)
    return ToolUnit(
        unit_id,
        [ReadFileTool(workspace), WriteFileTool(workspace), ListDirTool(workspace)],
    )
