from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionType(str, Enum):
    CREATE_SPEC = "create_spec"
    APPROVE_SPEC = "approve_spec"
    CREATE_DESIGN = "create_design"
    APPROVE_DESIGN = "approve_design"
    CREATE_TASKS = "create_tasks"
    APPROVE_TASKS = "approve_tasks"
    CREATE_QA_PLAN = "create_qa_plan"
    APPROVE_QA_PLAN = "approve_qa_plan"
    IMPLEMENT_TASK = "implement_task"
    FIX_REVIEW_ISSUES = "fix_review_issues"
    CREATE_REVIEW = "create_review"
    APPROVE_REVIEW = "approve_review"
    CREATE_AUDIT = "create_audit"
    APPROVE_AUDIT = "approve_audit"
    RUN_QA = "run_qa"
    APPROVE_MERGE = "approve_merge"
    MERGE = "merge"
    ARCHIVE = "archive"
    UNBLOCK_DEPENDENCY = "unblock_dependency"
    WAIT_FOR_APPROVAL = "wait_for_approval"
    DONE = "done"

    @classmethod
    def parse(cls, value: str) -> ActionType | None:
        try:
            return cls(value)
        except ValueError:
            return None


class GateType(str, Enum):
    SHELL = "shell"
    HUMAN = "human"
    STEP_BACK = "step_back"


class StopReason(str, Enum):
    DONE = "done"
    HUMAN_GATE = "human_gate"
    ERROR = "error"


ARTIFACT_FILES = {
    "spec": "spec.md",
    "design": "design.md",
    "tasks": "tasks.md",
    "qa_plan": "qa-plan.md",
    "review": "review.md",
    "audit": "audit.md",
    "qa_results": "qa-results.md",
}


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


@dataclass(slots=True, frozen=True)
class GateDefinition:
    name: str
    type: str
    command: str | None = None
    auto: bool = False
    max_retries: int | None = None

    @property
    def is_auto_shell(self) -> bool:
        return self.auto and self.type == GateType.SHELL.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GateDefinition:
        max_retries = data.get("max_retries")
        return cls(
            name=str(data.get("name", "")),
            type=str(data.get("type", GateType.SHELL.value)),
            command=_optional_str(data.get("command")),
            auto=bool(data.get("auto", False)),
            max_retries=int(max_retries) if max_retries is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "type": self.type, "auto": self.auto}
        if self.command is not None:
            payload["command"] = self.command
        if self.max_retries is not None:
            payload["max_retries"] = self.max_retries
        return payload


@dataclass(slots=True, frozen=True)
class Directive:
    """The single next action the state machine wants for one feature.

    ``action`` keeps the raw string so that an action type introduced by a
    newer state machine still parses; ``action_type`` is ``None`` for those.
    """

    feature: str
    title: str
    current_phase: str
    action: str
    message: str
    next_command: str | None = None
    output_path: str | None = None
    transition_to: str | None = None
    task_id: str | None = None
    is_heavy: bool = False
    timeout_minutes: int = 0
    gates: tuple[GateDefinition, ...] = ()

    @property
    def action_type(self) -> ActionType | None:
        return ActionType.parse(self.action)

    @property
    def auto_shell_gates(self) -> list[GateDefinition]:
        return [gate for gate in self.gates if gate.is_auto_shell]

    @property
    def progress_key(self) -> tuple[str, str, str | None]:
        return (self.action, self.current_phase, self.task_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Directive:
        raw_gates = data.get("gates") or []
        gates = tuple(
            GateDefinition.from_dict(item) for item in raw_gates if isinstance(item, dict)
        )
        return cls(
            feature=str(data.get("feature", "")),
            title=str(data.get("title", "")),
            current_phase=str(data.get("current_phase", "")),
            action=str(data.get("action", "")),
            message=str(data.get("message", "")),
            next_command=_optional_str(data.get("next_command")),
            output_path=_optional_str(data.get("output_path")),
            transition_to=_optional_str(data.get("transition_to")),
            task_id=_optional_str(data.get("task_id")),
            is_heavy=bool(data.get("is_heavy", False)),
            timeout_minutes=int(data.get("timeout_minutes") or 0),
            gates=gates,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature": self.feature,
            "title": self.title,
            "current_phase": self.current_phase,
            "action": self.action,
            "message": self.message,
            "next_command": self.next_command,
            "output_path": self.output_path,
            "transition_to": self.transition_to,
            "task_id": self.task_id,
            "is_heavy": self.is_heavy,
            "timeout_minutes": self.timeout_minutes,
            "gates": [gate.to_dict() for gate in self.gates],
        }


@dataclass(slots=True)
class GateResult:
    name: str
    type: str
    passed: bool
    output: str = ""
    error: str | None = None
    skipped: bool = False
    timed_out: bool = False


@dataclass(slots=True)
class RunResult:
    feature: str
    final_phase: str
    actions_completed: int
    stopped_at: StopReason
    error: BaseException | None = None
    next_command: str | None = None


@dataclass(slots=True, frozen=True)
class FeatureSummary:
    slug: str
    phase: str


@dataclass(slots=True, frozen=True)
class AddTaskResult:
    slug: str
    task_id: str
    title: str


@dataclass(slots=True)
class AgentConfig:
    role: str
    description: str
    prompt: str
    tools: list[str] = field(default_factory=list)
    model: str = "claude-sonnet-4-6"
