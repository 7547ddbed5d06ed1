"""Static mapping from directive action types to agent configurations.

Every action type falls into exactly one of three classes: terminal, human
gate, or agent-actionable. ``check_registry`` enforces that at import time so
a new action type cannot silently fall through.
"""

from __future__ import annotations

from sdlc_agent.agents.auditor import AUDITOR
from sdlc_agent.agents.base import SDLC_SERVER_NAME, SDLC_TOOL_NAMES, qualified_tool_name
from sdlc_agent.agents.designer import DESIGNER
from sdlc_agent.agents.implementer import IMPLEMENTER
from sdlc_agent.agents.qa_runner import QA_RUNNER
from sdlc_agent.agents.reviewer import REVIEWER
from sdlc_agent.agents.spec_writer import SPEC_WRITER
from sdlc_agent.agents.task_planner import TASK_PLANNER
from sdlc_agent.errors import RegistryError
from sdlc_agent.models import ActionType, AgentConfig

TERMINAL_ACTIONS = frozenset({ActionType.DONE})

HUMAN_GATE_ACTIONS = frozenset(
    {
        ActionType.APPROVE_SPEC,
        ActionType.APPROVE_DESIGN,
        ActionType.APPROVE_TASKS,
        ActionType.APPROVE_QA_PLAN,
        ActionType.APPROVE_REVIEW,
        ActionType.APPROVE_AUDIT,
        ActionType.APPROVE_MERGE,
        ActionType.MERGE,
        ActionType.ARCHIVE,
        ActionType.UNBLOCK_DEPENDENCY,
        ActionType.WAIT_FOR_APPROVAL,
    }
)

AGENT_MAP: dict[ActionType, AgentConfig] = {
    ActionType.CREATE_SPEC: SPEC_WRITER,
    ActionType.CREATE_DESIGN: DESIGNER,
    ActionType.CREATE_TASKS: TASK_PLANNER,
    ActionType.CREATE_QA_PLAN: TASK_PLANNER,
    ActionType.IMPLEMENT_TASK: IMPLEMENTER,
    ActionType.FIX_REVIEW_ISSUES: IMPLEMENTER,
    ActionType.CREATE_REVIEW: REVIEWER,
    ActionType.CREATE_AUDIT: AUDITOR,
    ActionType.RUN_QA: QA_RUNNER,
}


def check_registry() -> None:
    problems: list[str] = []
    for action in ActionType:
        classes = [
            action in TERMINAL_ACTIONS,
            action in HUMAN_GATE_ACTIONS,
            action in AGENT_MAP,
        ]
        if sum(classes) != 1:
            problems.append(f"{action.value} (terminal/human/agent = {classes})")
    if problems:
        raise RegistryError(
            "Action types must be exactly one of terminal, human gate, or agent: "
            + ", ".join(problems)
        )


def agent_for_action(action: ActionType) -> AgentConfig | None:
    return AGENT_MAP.get(action)


def is_terminal_action(action: ActionType) -> bool:
    return action in TERMINAL_ACTIONS


def is_human_gate_action(action: ActionType) -> bool:
    return action in HUMAN_GATE_ACTIONS


check_registry()

__all__ = [
    "AGENT_MAP",
    "AUDITOR",
    "DESIGNER",
    "HUMAN_GATE_ACTIONS",
    "IMPLEMENTER",
    "QA_RUNNER",
    "REVIEWER",
    "SDLC_SERVER_NAME",
    "SDLC_TOOL_NAMES",
    "SPEC_WRITER",
    "TASK_PLANNER",
    "TERMINAL_ACTIONS",
    "agent_for_action",
    "check_registry",
    "is_human_gate_action",
    "is_terminal_action",
    "qualified_tool_name",
]
