import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from sdlc_agent.client import SdlcClient
from sdlc_agent.errors import StateMachineError


class FakeProcess:
    def __init__(self, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self._stdout = stdout.encode()
        self._stderr = stderr.encode()
        self.returncode = returncode

    async def communicate(self) -> tuple[bytes, bytes]:
        return self._stdout, self._stderr


def _install(monkeypatch: pytest.MonkeyPatch, process: FakeProcess) -> list[tuple[Any, ...]]:
    calls: list[tuple[Any, ...]] = []

    async def fake_create_subprocess_exec(*args: Any, **kwargs: Any) -> FakeProcess:
        calls.append(args)
        assert "cwd" in kwargs
        return process

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_create_subprocess_exec)
    return calls


def test_get_directive_parses_json(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    payload = {
        "feature": "auth",
        "title": "Auth",
        "current_phase": "specified",
        "action": "approve_spec",
        "message": "Review the spec",
        "next_command": "sdlc artifact approve auth spec",
        "gates": [],
    }
    calls = _install(monkeypatch, FakeProcess(stdout=json.dumps(payload)))
    client = SdlcClient(cwd=tmp_path, bin="sdlc-test")

    directive = asyncio.run(client.get_directive("auth"))

    assert calls == [("sdlc-test", "next", "--for", "auth", "--json")]
    assert directive.current_phase == "specified"
    assert directive.next_command == "sdlc artifact approve auth spec"


def test_non_zero_exit_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, FakeProcess(stderr="feature not found", returncode=2))
    client = SdlcClient(cwd=tmp_path)

    with pytest.raises(StateMachineError) as excinfo:
        asyncio.run(client.approve_artifact("ghost", "spec"))

    assert excinfo.value.exit_code == 2
    assert excinfo.value.command == ["artifact", "approve", "ghost", "spec"]
    assert "feature not found" in str(excinfo.value)


def test_invalid_json_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, FakeProcess(stdout="not json"))
    client = SdlcClient(cwd=tmp_path)

    with pytest.raises(StateMachineError, match="invalid JSON"):
        asyncio.run(client.get_directive("auth"))


def test_missing_binary_raises(tmp_path: Path) -> None:
    client = SdlcClient(cwd=tmp_path, bin="definitely-not-a-real-sdlc-binary")

    with pytest.raises(StateMachineError, match="Failed to run"):
        asyncio.run(client.list_features())


def test_command_shapes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = _install(monkeypatch, FakeProcess(stdout=""))
    client = SdlcClient(cwd=tmp_path)

    async def _run() -> None:
        await client.draft_artifact("auth", "design")
        await client.reject_artifact("auth", "design", "missing data model")
        await client.complete_task("auth", "T1")
        await client.add_comment("auth", "needs a decision", "question")
        await client.add_comment("auth", "fyi only")
        await client.transition_phase("auth", "design")

    asyncio.run(_run())

    assert calls == [
        ("sdlc", "artifact", "draft", "auth", "design"),
        ("sdlc", "artifact", "reject", "auth", "design", "--reason", "missing data model"),
        ("sdlc", "task", "complete", "auth", "T1"),
        ("sdlc", "comment", "create", "auth", "needs a decision", "--flag", "question"),
        ("sdlc", "comment", "create", "auth", "fyi only"),
        ("sdlc", "feature", "transition", "auth", "design"),
    ]


def test_add_task_and_list_features(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, FakeProcess(stdout=json.dumps({"slug": "auth", "task_id": "T4", "title": "Wire"})))
    client = SdlcClient(cwd=tmp_path)

    task = asyncio.run(client.add_task("auth", "Wire"))

    assert task.task_id == "T4"

    features = [
        {"slug": "auth", "phase": "draft"},
        {"feature": "billing", "phase": "released"},
        {"phase": "draft"},
    ]
    _install(monkeypatch, FakeProcess(stdout=json.dumps(features)))

    listed = asyncio.run(client.list_features())

    assert [(item.slug, item.phase) for item in listed] == [("auth", "draft"), ("billing", "released")]


def test_write_artifact_file_creates_parents(tmp_path: Path) -> None:
    client = SdlcClient(cwd=tmp_path)

    path = client.write_artifact_file(".sdlc/features/auth/spec.md", "# Spec\n")

    assert path == tmp_path.resolve() / ".sdlc" / "features" / "auth" / "spec.md"
    assert path.read_text(encoding="utf-8") == "# Spec\n"
