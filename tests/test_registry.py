import pytest

from sdlc_agent import agents
from sdlc_agent.agents import (
    AGENT_MAP,
    HUMAN_GATE_ACTIONS,
    SDLC_TOOL_NAMES,
    TERMINAL_ACTIONS,
    agent_for_action,
    check_registry,
    is_human_gate_action,
    is_terminal_action,
    qualified_tool_name,
)
from sdlc_agent.agents.base import sdlc_tools
from sdlc_agent.errors import RegistryError
from sdlc_agent.models import ActionType, Directive


def test_every_action_has_exactly_one_class() -> None:
    for action in ActionType:
        classes = [
            is_terminal_action(action),
            is_human_gate_action(action),
            agent_for_action(action) is not None,
        ]
        assert classes.count(True) == 1, action


def test_check_registry_rejects_gaps(monkeypatch: pytest.MonkeyPatch) -> None:
    trimmed = dict(AGENT_MAP)
    del trimmed[ActionType.RUN_QA]
    monkeypatch.setattr(agents, "AGENT_MAP", trimmed)

    with pytest.raises(RegistryError, match="run_qa"):
        check_registry()


def test_check_registry_rejects_overlap(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        agents, "HUMAN_GATE_ACTIONS", HUMAN_GATE_ACTIONS | {ActionType.CREATE_SPEC}
    )

    with pytest.raises(RegistryError, match="create_spec"):
        check_registry()


def test_terminal_and_human_gate_sets() -> None:
    assert TERMINAL_ACTIONS == {ActionType.DONE}
    assert ActionType.APPROVE_MERGE in HUMAN_GATE_ACTIONS
    assert ActionType.WAIT_FOR_APPROVAL in HUMAN_GATE_ACTIONS
    assert ActionType.IMPLEMENT_TASK not in HUMAN_GATE_ACTIONS


def test_agent_assignments() -> None:
    assert agent_for_action(ActionType.CREATE_SPEC).role == "spec-writer"
    assert agent_for_action(ActionType.FIX_REVIEW_ISSUES).role == "implementer"
    assert agent_for_action(ActionType.CREATE_QA_PLAN).role == "task-planner"
    assert agent_for_action(ActionType.CREATE_REVIEW).model == "claude-opus-4-6"
    assert agent_for_action(ActionType.DONE) is None


def test_agent_tools_are_known() -> None:
    qualified = {qualified_tool_name(name) for name in SDLC_TOOL_NAMES}
    for config in AGENT_MAP.values():
        mcp_tools = [name for name in config.tools if name.startswith("mcp__")]
        assert mcp_tools, config.role
        assert set(mcp_tools) <= qualified


def test_task_planner_can_add_tasks() -> None:
    planner = agent_for_action(ActionType.CREATE_TASKS)

    assert "mcp__sdlc__sdlc_add_task" in planner.tools


def test_sdlc_tools_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="sdlc_nope"):
        sdlc_tools("sdlc_nope")


def test_unknown_action_string_still_parses() -> None:
    directive = Directive.from_dict(
        {
            "feature": "f",
            "title": "F",
            "current_phase": "draft",
            "action": "summon_wizard",
            "message": "?",
        }
    )

    assert directive.action == "summon_wizard"
    assert directive.action_type is None
