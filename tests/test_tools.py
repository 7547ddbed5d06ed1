import asyncio
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from sdlc_agent.agents import SDLC_TOOL_NAMES
from sdlc_agent.errors import StateMachineError
from sdlc_agent.models import AddTaskResult, Directive, GateDefinition, GateResult
from sdlc_agent.tools import SdlcToolset, tool_specs


class FakeClient:
    def __init__(self, cwd: Path) -> None:
        self.cwd = cwd
        self.calls: list[tuple[Any, ...]] = []
        self.fail_approve = False

    async def get_directive(self, slug: str) -> Directive:
        self.calls.append(("get_directive", slug))
        return Directive(
            feature=slug, title="T", current_phase="draft", action="create_spec", message="m"
        )

    async def draft_artifact(self, slug: str, artifact_type: str) -> None:
        self.calls.append(("draft", slug, artifact_type))

    async def approve_artifact(self, slug: str, artifact_type: str) -> None:
        if self.fail_approve:
            raise StateMachineError("phase mismatch")
        self.calls.append(("approve", slug, artifact_type))

    async def reject_artifact(self, slug: str, artifact_type: str, reason: str) -> None:
        self.calls.append(("reject", slug, artifact_type, reason))

    async def add_task(self, slug: str, title: str) -> AddTaskResult:
        self.calls.append(("add_task", slug, title))
        return AddTaskResult(slug=slug, task_id="T1", title=title)

    async def complete_task(self, slug: str, task_id: str) -> None:
        self.calls.append(("complete", slug, task_id))

    async def add_comment(self, slug: str, body: str, flag: str | None = None) -> None:
        self.calls.append(("comment", slug, body, flag))

    def write_artifact_file(self, path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


class ScriptedGateRunner:
    def __init__(self, outcomes: list[bool]) -> None:
        self.outcomes = outcomes
        self.runs = 0

    async def run(self, gates: Sequence[GateDefinition], cwd: Path) -> list[GateResult]:
        passed = self.outcomes[min(self.runs, len(self.outcomes) - 1)]
        self.runs += 1
        return [
            GateResult(
                name=gate.name,
                type=gate.type,
                passed=passed,
                output="ok" if passed else "",
                error=None if passed else "Command failed with exit code 1: cargo test",
            )
            for gate in gates
        ]


def _text(response: dict[str, Any]) -> str:
    return response["content"][0]["text"]


TEST_GATE = GateDefinition(name="test", type="shell", command="cargo test", auto=True, max_retries=1)


def test_tool_specs_cover_all_tools(tmp_path: Path) -> None:
    toolset = SdlcToolset(FakeClient(tmp_path), cwd=tmp_path)

    specs = tool_specs(toolset)

    assert tuple(name for name, _, _, _ in specs) == SDLC_TOOL_NAMES
    for _, description, schema, handler in specs:
        assert description
        assert schema["type"] == "object"
        assert callable(handler)


def test_write_artifact_writes_and_drafts(tmp_path: Path) -> None:
    client = FakeClient(tmp_path)
    toolset = SdlcToolset(client, cwd=tmp_path)

    response = asyncio.run(
        toolset.write_artifact({"slug": "auth", "artifact_type": "qa_plan", "content": "# QA"})
    )

    written = tmp_path / ".sdlc" / "features" / "auth" / "qa-plan.md"
    assert written.read_text(encoding="utf-8") == "# QA"
    assert client.calls == [("draft", "auth", "qa_plan")]
    assert "marked as draft" in _text(response)


def test_write_artifact_blocks_path_traversal(tmp_path: Path) -> None:
    client = FakeClient(tmp_path / "project")
    toolset = SdlcToolset(client, cwd=tmp_path / "project")

    response = asyncio.run(
        toolset.write_artifact({"slug": "../../../escape", "artifact_type": "spec", "content": "x"})
    )

    assert "Path traversal" in _text(response)
    assert client.calls == []
    assert not (tmp_path / "escape").exists()


def test_write_artifact_rejects_unknown_type(tmp_path: Path) -> None:
    toolset = SdlcToolset(FakeClient(tmp_path), cwd=tmp_path)

    response = asyncio.run(
        toolset.write_artifact({"slug": "auth", "artifact_type": "poem", "content": "x"})
    )

    assert "Unknown artifact type" in _text(response)


def test_approve_runs_gates_before_approving(tmp_path: Path) -> None:
    client = FakeClient(tmp_path)
    runner = ScriptedGateRunner([True])
    toolset = SdlcToolset(client, gates=[TEST_GATE], cwd=tmp_path, gate_runner=runner)

    response = asyncio.run(
        toolset.approve_artifact({"slug": "auth", "artifact_type": "tasks", "notes": "checked"})
    )

    text = _text(response)
    assert runner.runs == 1
    assert client.calls == [("approve", "auth", "tasks")]
    assert "Approved: auth/tasks" in text
    assert "Notes: checked" in text
    assert "✓ [test]: ok" in text


def test_approve_without_auto_gates_skips_runner(tmp_path: Path) -> None:
    client = FakeClient(tmp_path)
    runner = ScriptedGateRunner([False])
    human = GateDefinition(name="signoff", type="human", auto=False)
    toolset = SdlcToolset(client, gates=[human], cwd=tmp_path, gate_runner=runner)

    asyncio.run(toolset.approve_artifact({"slug": "auth", "artifact_type": "spec"}))

    assert runner.runs == 0
    assert client.calls == [("approve", "auth", "spec")]


def test_failed_gates_block_approval_until_budget_exhausted(tmp_path: Path) -> None:
    client = FakeClient(tmp_path)
    runner = ScriptedGateRunner([False])
    toolset = SdlcToolset(client, gates=[TEST_GATE], cwd=tmp_path, gate_runner=runner)
    args = {"slug": "auth", "artifact_type": "review"}

    first = _text(asyncio.run(toolset.approve_artifact(args)))
    second = _text(asyncio.run(toolset.approve_artifact(args)))
    third = _text(asyncio.run(toolset.approve_artifact(args)))

    assert "Gate checks FAILED" in first
    assert "Gate checks FAILED" in second
    assert "retry budget exhausted" in third
    assert "blocker" in third
    assert runner.runs == 2
    assert toolset.gate_failures == {"test": 2}
    assert client.calls == []


def test_approve_reports_state_machine_error(tmp_path: Path) -> None:
    client = FakeClient(tmp_path)
    client.fail_approve = True
    toolset = SdlcToolset(client, cwd=tmp_path)

    response = asyncio.run(toolset.approve_artifact({"slug": "auth", "artifact_type": "spec"}))

    assert _text(response) == "Error approving artifact: phase mismatch"


def test_task_and_comment_tools(tmp_path: Path) -> None:
    client = FakeClient(tmp_path)
    toolset = SdlcToolset(client, cwd=tmp_path)

    async def _run() -> list[str]:
        return [
            _text(await toolset.add_task({"slug": "auth", "title": "Add login route"})),
            _text(await toolset.complete_task({"slug": "auth", "task_id": "T1", "notes": "done"})),
            _text(await toolset.add_comment({"slug": "auth", "body": "stuck", "flag_type": "blocker"})),
            _text(await toolset.add_comment({"slug": "auth", "body": "hm", "flag_type": "panic"})),
            _text(await toolset.reject_artifact({"slug": "auth", "artifact_type": "design", "reason": "thin"})),
            _text(await toolset.get_directive({"slug": "auth"})),
        ]

    texts = asyncio.run(_run())

    assert texts[0] == "Task added: T1 - Add login route"
    assert texts[1] == "Completed task: T1\nNotes: done"
    assert texts[2] == "Comment added to auth [blocker]: stuck"
    assert "flag_type must be one of" in texts[3]
    assert texts[4] == "Rejected: auth/design\nReason: thin"
    assert '"action": "create_spec"' in texts[5]
    assert ("comment", "auth", "stuck", "blocker") in client.calls
    assert not any(call[0] == "comment" and call[3] == "panic" for call in client.calls)
