from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from sdlc_agent.errors import StateMachineError
from sdlc_agent.models import AddTaskResult, Directive, FeatureSummary

logger = logging.getLogger(__name__)


class SdlcClient:
    """Typed facade over the ``sdlc`` state machine binary.

    Every call spawns the binary once in ``cwd``. Any failure to run it, a
    non-zero exit, or undecodable JSON raises ``StateMachineError``.
    """

    def __init__(self, cwd: Path | None = None, bin: str = "sdlc") -> None:
        self.cwd = (cwd or Path.cwd()).resolve()
        self.bin = bin

    async def get_directive(self, slug: str) -> Directive:
        payload = await self._exec_json(["next", "--for", slug, "--json"])
        if not isinstance(payload, dict):
            raise StateMachineError(
                f"Directive for {slug} is not a JSON object", command=["next", "--for", slug]
            )
        return Directive.from_dict(payload)

    async def draft_artifact(self, slug: str, artifact_type: str) -> None:
        await self._exec(["artifact", "draft", slug, artifact_type])

    async def approve_artifact(self, slug: str, artifact_type: str) -> None:
        await self._exec(["artifact", "approve", slug, artifact_type])

    async def reject_artifact(self, slug: str, artifact_type: str, reason: str) -> None:
        await self._exec(["artifact", "reject", slug, artifact_type, "--reason", reason])

    async def add_task(self, slug: str, title: str) -> AddTaskResult:
        payload = await self._exec_json(["task", "add", "--json", slug, title])
        if not isinstance(payload, dict):
            raise StateMachineError("task add returned a non-object payload")
        return AddTaskResult(
            slug=str(payload.get("slug", slug)),
            task_id=str(payload.get("task_id", payload.get("id", ""))),
            title=str(payload.get("title", title)),
        )

    async def complete_task(self, slug: str, task_id: str) -> None:
        await self._exec(["task", "complete", slug, task_id])

    async def add_comment(self, slug: str, body: str, flag: str | None = None) -> None:
        args = ["comment", "create", slug, body]
        if flag:
            args.extend(["--flag", flag])
        await self._exec(args)

    async def transition_phase(self, slug: str, phase: str) -> None:
        await self._exec(["feature", "transition", slug, phase])

    async def list_features(self) -> list[FeatureSummary]:
        payload = await self._exec_json(["feature", "list", "--json"])
        if not isinstance(payload, list):
            raise StateMachineError("feature list returned a non-list payload")
        features: list[FeatureSummary] = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            slug = item.get("slug") or item.get("feature")
            if not slug:
                continue
            features.append(FeatureSummary(slug=str(slug), phase=str(item.get("phase", ""))))
        return features

    def write_artifact_file(self, output_path: str | Path, content: str) -> Path:
        path = Path(output_path)
        if not path.is_absolute():
            path = self.cwd / path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    async def _exec_json(self, args: list[str]) -> Any:
        stdout = await self._exec(args)
        try:
            return json.loads(stdout.strip())
        except json.JSONDecodeError as exc:
            raise StateMachineError(
                f"{self.bin} {' '.join(args[:2])} returned invalid JSON: {exc}",
                command=args,
            ) from exc

    async def _exec(self, args: list[str]) -> str:
        logger.debug("exec %s %s", self.bin, args)
        try:
            process = await asyncio.create_subprocess_exec(
                self.bin,
                *args,
                cwd=str(self.cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise StateMachineError(
                f"Failed to run {self.bin}: {exc}", command=args
            ) from exc

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise

        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise StateMachineError(
                f"{self.bin} {' '.join(args)} failed with exit code "
                f"{process.returncode}: {stderr_text or stdout_text.strip()}",
                command=args,
                exit_code=process.returncode,
                stderr=stderr_text,
            )
        return stdout_text
