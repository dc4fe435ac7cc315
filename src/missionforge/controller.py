"""Mission controller: plan -> instruct worker -> analyze, bounded by iterations."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from missionforge.events import EventLog, EventSink, FanoutSink, LoggingEventSink, OperationalEvent
from missionforge.failures import FailureEvent, FailureTag
from missionforge.identity import Identity
from missionforge.memory import DEFAULT_MAX_ITEMS, BoundedMemory
from missionforge.operator import ChatOperator
from missionforge.state import ChatTurn, MissionExecution, MissionStatus
from missionforge.templates import (
    FINAL_REPORT,
    REQUIRED_TEMPLATES,
    RESULT_ANALYSIS,
    TASK_BREAKDOWN,
    WORKER_PROMPT_GENERATION,
    InstructionBundle,
    TemplateRenderer,
)
from missionforge.tools.base import Capabilities
from missionforge.tools.unit import ToolUnit
from missionforge.util.logging import clip, get_logger, redact

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 10
NO_EVENTS = "No new events"
NO_TOOLS = "No tools available"
COLLABORATOR_PROMPT = (
    "You are an AI worker collaborating on a mission. You have access to tools "
    "and can see the history of our work together."
)


class Classification(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    NEXT_TASK = "next_task"


def classify_analysis(text: str) -> Classification:
    """Keyword verdict on a planner's analysis reply.

    ``completed`` anywhere in the text wins over ``failed``; anything else
    keeps the mission going.
    """
    lowered = text.lower().strip()
    if "completed" in lowered:
        return Classification.COMPLETED
    if "failed" in lowered:
        return Classification.FAILED
    return Classification.NEXT_TASK


def format_transcript(turns: list[ChatTurn]) -> str:
    return "\n".join(
        f"{index}. {turn.role.upper()}: {turn.content}" for index, turn in enumerate(turns, start=1)
    )


class ContextPolicy(ABC):
    """Decides what the worker sees for each instruction."""

    name: str

    @abstractmethod
    def reset(self, identity: Identity) -> None:
        raise NotImplementedError

    @abstractmethod
    def worker_messages(self, identity: Identity, instruction: str) -> list[ChatTurn]:
        raise NotImplementedError

    def record_exchange(self, instruction: str, reply: str) -> None:
        return None


class CleanWorkerContext(ContextPolicy):
    """Worker gets only its system prompt and the current instruction."""

    name = "clean"

    def reset(self, identity: Identity) -> None:
        return None

    def worker_messages(self, identity: Identity, instruction: str) -> list[ChatTurn]:
        return [
            ChatTurn(role="system", content=identity.worker_system_prompt),
            ChatTurn(role="user", content=instruction),
        ]


class CollaborativeWorkerContext(ContextPolicy):
    """Worker keeps a running transcript of every instruction and reply."""

    name = "collaborative"

    def __init__(self) -> None:
        self.transcript: list[ChatTurn] = []

    def reset(self, identity: Identity) -> None:
        self.transcript = [
            ChatTurn(role="system", content=identity.worker_prompt or COLLABORATOR_PROMPT)
        ]

    def worker_messages(self, identity: Identity, instruction: str) -> list[ChatTurn]:
        if not self.transcript:
            self.reset(identity)
        return [*self.transcript, ChatTurn(role="user", content=instruction)]

    def record_exchange(self, instruction: str, reply: str) -> None:
        self.transcript.append(ChatTurn(role="user", content=instruction))
        self.transcript.append(ChatTurn(role="assistant", content=reply))


@dataclass
class MissionStrategy:
    planner: ChatOperator
    worker: ChatOperator
    context_policy: ContextPolicy


class MissionController:
    """Drives a worker through a mission until the planner judges it done.

    Every iteration asks the planner for one instruction, runs it through the
    worker with tools, records both, then asks the planner to classify the
    outcome. The analysis request is sent alongside the history and never
    stored. Collaborator exceptions are recorded in history and the
    loop moves on to its next iteration.
    """

    def __init__(
        self,
        strategy: MissionStrategy,
        identity: Identity,
        instructions: InstructionBundle,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        memory: BoundedMemory | None = None,
        event_log: EventLog | None = None,
        observers: Iterable[EventSink] | None = None,
        unit_id: str = "orchestrator",
    ) -> None:
        self.strategy = strategy
        self.identity = identity
        self.instructions = instructions
        self.renderer = TemplateRenderer(instructions)
        self.renderer.require(list(REQUIRED_TEMPLATES))
        self.max_iterations = max(1, max_iterations)
        self.memory = memory if memory is not None else BoundedMemory(DEFAULT_MAX_ITEMS)
        self.event_log = event_log if event_log is not None else EventLog()
        if observers is None:
            observers = [LoggingEventSink(identity.name)]
        self.observers = FanoutSink(observers)
        self.unit_id = unit_id
        self.registry = strategy.worker.registry
        self._manifest = ToolUnit(unit_id)

    @classmethod
    def fast(
        cls,
        operator: ChatOperator,
        identity: Identity,
        instructions: InstructionBundle,
        **kwargs: Any,
    ) -> "MissionController":
        """Single agent: one operator plans and works, worker context accumulates."""
        strategy = MissionStrategy(
            planner=operator, worker=operator, context_policy=CollaborativeWorkerContext()
        )
        return cls(strategy, identity, instructions, **kwargs)

    @classmethod
    def dual(
        cls,
        planner: ChatOperator,
        worker: ChatOperator,
        identity: Identity,
        instructions: InstructionBundle,
        **kwargs: Any,
    ) -> "MissionController":
        """Orchestrator plus worker: the worker sees only the current instruction."""
        strategy = MissionStrategy(
            planner=planner, worker=worker, context_policy=CleanWorkerContext()
        )
        return cls(strategy, identity, instructions, **kwargs)

    # capability manifests

    def learn(self, contracts: Iterable[Capabilities]) -> list[str]:
        return self.registry.learn(contracts)

    def teach(self) -> Capabilities:
        return self._manifest

    def capabilities(self) -> list[str]:
        return self.registry.list_capability_names()

    # operational events

    def add_event(self, event: OperationalEvent | dict[str, Any]) -> OperationalEvent:
        return self.event_log.add_event(event)

    def get_last_event(self) -> str | None:
        return self.event_log.get_last_event()

    def get_events_context(self) -> str:
        return self.event_log.get_events_context()

    def has_recent_errors(self) -> bool:
        return self.event_log.has_recent_errors()

    def add_observer(self, sink: EventSink) -> None:
        self.observers.add(sink)

    def _notify(self, kind: str, message: str, **data: Any) -> None:
        self.observers.emit(OperationalEvent(kind=kind, message=message, data=data))

    # execution

    def run(self, task: str) -> MissionExecution:
        execution = MissionExecution(goal=task)
        self.memory.clear()
        self.strategy.context_policy.reset(self.identity)
        self._notify("mission-start", f"Mission received: {task}", task=task)
        self.memory.push(ChatTurn(role="system", content=self.identity.system_prompt), tag="system")

        try:
            self._task_breakdown(task)
        except Exception as exc:
            self._record_failure(execution, exc)

        while execution.iterations < self.max_iterations:
            execution.iterations += 1
            self._notify(
                "iteration-start",
                f"Iteration {execution.iterations}/{self.max_iterations}",
                iteration=execution.iterations,
            )
            try:
                verdict = self._iterate(task, execution)
            except Exception as exc:
                self._record_failure(execution, exc)
                continue
            if verdict is Classification.COMPLETED:
                execution.status = MissionStatus.COMPLETED
                execution.completed = True
                break
            if verdict is Classification.FAILED:
                execution.status = MissionStatus.FAILED
                execution.completed = True
                execution.failures.append(
                    FailureEvent(
                        tag=FailureTag.MISSION_FAILED,
                        reason="Planner reported the mission as failed",
                        iteration=execution.iterations,
                    )
                )
                break

        if execution.completed:
            try:
                execution.result = self._final_report(task, execution)
            except Exception as exc:
                self._record_failure(execution, exc)
            self._notify(
                "mission-complete",
                f"Mission {execution.status.value} in {execution.iterations} iterations",
                status=execution.status.value,
                iterations=execution.iterations,
            )
        else:
            execution.status = MissionStatus.EXHAUSTED
            execution.failures.append(
                FailureEvent(
                    tag=FailureTag.ITERATIONS_EXHAUSTED,
                    reason=f"Mission timeout after {self.max_iterations} iterations",
                    iteration=execution.iterations,
                )
            )
            self._notify(
                "mission-exhausted",
                f"Mission timeout after {self.max_iterations} iterations",
                iterations=execution.iterations,
            )
        return execution

    def _tools_summary(self) -> str:
        return ", ".join(self.capabilities()) or NO_TOOLS

    def _task_breakdown(self, task: str) -> str:
        prompt = self.renderer.render(
            TASK_BREAKDOWN,
            {
                "task": task,
                "tools": self._tools_summary(),
                "schemas": json.dumps(self.registry.schema_manifest(), ensure_ascii=False),
            },
        )
        system = self.renderer.system_prompt(TASK_BREAKDOWN) or self.identity.system_prompt
        response = self.strategy.planner.chat(
            [ChatTurn(role="system", content=system), ChatTurn(role="user", content=prompt)]
        )
        breakdown = response.content
        self.memory.push(ChatTurn(role="user", content=prompt), tag="breakdown")
        self.memory.push(ChatTurn(role="assistant", content=breakdown), tag="breakdown")
        self._notify("task-breakdown", breakdown)
        return breakdown

    def _iterate(self, task: str, execution: MissionExecution) -> Classification:
        request = self.renderer.render(
            WORKER_PROMPT_GENERATION,
            {
                "promptTemplate": self.identity.prompt_template,
                "task": task,
                "tools": self._tools_summary(),
                "iteration": execution.iterations,
                "maxIterations": self.max_iterations,
            },
        )
        planning = self.strategy.planner.chat(
            [*self.memory.get_messages(), ChatTurn(role="user", content=request)]
        )
        instruction = planning.content.strip()
        self._notify("worker-instruction", instruction, iteration=execution.iterations)

        policy = self.strategy.context_policy
        response = self.strategy.worker.chat_with_tools(policy.worker_messages(self.identity, instruction))
        reply = response.content
        policy.record_exchange(instruction, reply)
        self._notify("worker-reply", reply, iteration=execution.iterations)

        turns = [
            ChatTurn(role="user", content=instruction),
            ChatTurn(role="assistant", content=reply),
        ]
        for turn in turns:
            self.memory.push(turn, tag="worker")
        execution.messages.extend(turns)
        return self._analyze(reply, execution.iterations)

    def _analyze(self, reply: str, iteration: int) -> Classification:
        prompt = self.renderer.render(
            RESULT_ANALYSIS,
            {
                "workerResponse": reply,
                "systemEvents": self.event_log.get_last_event() or NO_EVENTS,
                "iteration": iteration,
                "maxIterations": self.max_iterations,
            },
        )
        analysis = self.strategy.planner.chat(
            [*self.memory.get_messages(), ChatTurn(role="user", content=prompt)]
        )
        verdict = classify_analysis(analysis.content)
        self._notify(
            "analysis-result",
            f"Analysis: {verdict.value}",
            iteration=iteration,
            verdict=verdict.value,
            reply=analysis.content,
        )
        return verdict

    def _final_report(self, task: str, execution: MissionExecution) -> str:
        turns = self.memory.get_messages()
        if turns and turns[0].role == "system":
            turns = turns[1:]
        prompt = self.renderer.render(
            FINAL_REPORT,
            {
                "conversationHistory": format_transcript(turns),
                "task": task,
                "status": execution.status.value,
                "iterations": execution.iterations,
            },
        )
        messages = [ChatTurn(role="user", content=prompt)]
        system = self.renderer.system_prompt(FINAL_REPORT)
        if system:
            messages.insert(0, ChatTurn(role="system", content=system))
        report = self.strategy.planner.chat(messages).content
        logger.info("[%s] Final report: %s", self.identity.name, redact(clip(report)))
        return report

    def _record_failure(self, execution: MissionExecution, exc: Exception) -> None:
        logger.exception("[%s] Execution error: %s", self.identity.name, exc)
        diagnostic = ChatTurn(
            role="user",
            content=f"Error occurred: {exc}. {self.identity.error_recovery.fallback_strategy}",
        )
        self.memory.push(diagnostic, tag="error")
        execution.messages.append(diagnostic)
        execution.failures.append(
            FailureEvent(
                tag=FailureTag.COLLABORATOR_ERROR,
                reason=str(exc),
                iteration=execution.iterations,
                details={"type": type(exc).__name__},
            )
        )
        self._notify(
            "collaborator-error", str(exc), iteration=execution.iterations, type=type(exc).__name__
        )

    # descriptions

    def whoami(self) -> str:
        return (
            f"{self.identity.name} - {self.identity.description} "
            f"({len(self.capabilities())} tools available)"
        )

    def help(self) -> str:
        return "\n".join(
            [
                f"{self.identity.name} - Mission Orchestrator",
                "",
                f"IDENTITY: {self.identity.description}",
                f"CONTEXT POLICY: {self.strategy.context_policy.name}",
                f"MAX ITERATIONS: {self.max_iterations}",
                "",
                "METHODS:",
                "  run(task) - execute a mission through the worker",
                "  learn(contracts) - learn capabilities from teaching units",
                "  add_event(event) - report an operational event",
                "  whoami() - show identity",
                "",
                f"LEARNED TOOLS: {', '.join(self.capabilities()) or 'None'}",
                f"COMPLETION SIGNALS: {', '.join(self.identity.completion_signals) or 'None'}",
            ]
        )
