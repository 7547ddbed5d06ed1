"""SDLC operations exposed to the agent as tools.

Tool handlers never raise: every failure is reported back to the agent as
text so it can react. Approval runs the directive's auto shell gates first
and owns their retry budget.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from sdlc_agent.client import SdlcClient
from sdlc_agent.errors import SdlcAgentError
from sdlc_agent.gates import GateRunner, all_gates_passed, format_gate_results
from sdlc_agent.models import ARTIFACT_FILES, GateDefinition

logger = logging.getLogger(__name__)

ToolResponse = dict[str, Any]
COMMENT_FLAGS = ("blocker", "question", "decision", "fyi")
TOOL_ERRORS = (SdlcAgentError, OSError, ValueError)


def text_response(*lines: str) -> ToolResponse:
    text = "\n".join(line for line in lines if line is not None)
    return {"content": [{"type": "text", "text": text}]}


def _object_schema(properties: dict[str, dict[str, Any]], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_SLUG = {"type": "string", "description": "Feature slug"}
_ARTIFACT_TYPE = {
    "type": "string",
    "enum": list(ARTIFACT_FILES),
    "description": "Artifact type",
}


class SdlcToolset:
    def __init__(
        self,
        client: SdlcClient,
        *,
        gates: Sequence[GateDefinition] = (),
        cwd: Path | None = None,
        gate_runner: GateRunner | None = None,
    ) -> None:
        self.client = client
        self.gates = list(gates)
        self.cwd = (cwd or client.cwd).resolve()
        self.gate_runner = gate_runner or GateRunner()
        self.gate_failures: dict[str, int] = {}

    async def get_directive(self, args: dict[str, Any]) -> ToolResponse:
        try:
            directive = await self.client.get_directive(args["slug"])
        except TOOL_ERRORS as exc:
            return text_response(f"Error getting directive: {exc}")
        return text_response(json.dumps(directive.to_dict(), indent=2))

    async def write_artifact(self, args: dict[str, Any]) -> ToolResponse:
        slug = args["slug"]
        artifact_type = args["artifact_type"]
        try:
            filename = ARTIFACT_FILES.get(artifact_type)
            if filename is None:
                raise ValueError(f"Unknown artifact type: {artifact_type}")
            output_path = f".sdlc/features/{slug}/{filename}"
            absolute = (self.cwd / output_path).resolve()
            if not absolute.is_relative_to(self.cwd):
                raise ValueError(f"Path traversal detected: {output_path}")
            self.client.write_artifact_file(absolute, args["content"])
            await self.client.draft_artifact(slug, artifact_type)
        except TOOL_ERRORS as exc:
            return text_response(f"Error writing artifact: {exc}")
        return text_response(f"Written and marked as draft: {output_path}")

    def _exhausted_gates(self) -> list[GateDefinition]:
        return [
            gate
            for gate in self.gates
            if gate.is_auto_shell
            and gate.max_retries is not None
            and self.gate_failures.get(gate.name, 0) > gate.max_retries
        ]

    async def approve_artifact(self, args: dict[str, Any]) -> ToolResponse:
        slug = args["slug"]
        artifact_type = args["artifact_type"]
        notes = args.get("notes")
        relevant = [gate for gate in self.gates if gate.is_auto_shell]

        summary = ""
        if relevant:
            exhausted = self._exhausted_gates()
            if exhausted:
                names = ", ".join(
                    f"{gate.name} ({self.gate_failures[gate.name]} failures, "
                    f"max_retries={gate.max_retries})"
                    for gate in exhausted
                )
                return text_response(
                    f"Gate retry budget exhausted for {slug}/{artifact_type}: {names}.",
                    "Stop retrying. Call sdlc_add_comment with flag_type \"blocker\" "
                    "describing the failure.",
                )

            results = await self.gate_runner.run(relevant, self.cwd)
            summary = format_gate_results(results)
            for result in results:
                if not result.passed:
                    self.gate_failures[result.name] = self.gate_failures.get(result.name, 0) + 1
            if not all_gates_passed(results):
                logger.info("Gates failed for %s/%s", slug, artifact_type)
                return text_response(
                    f"Gate checks FAILED for {slug}/{artifact_type}.",
                    "Fix the failures before approving.",
                    "",
                    "Gate results:",
                    summary,
                )

        try:
            await self.client.approve_artifact(slug, artifact_type)
        except TOOL_ERRORS as exc:
            return text_response(f"Error approving artifact: {exc}")

        lines = [f"Approved: {slug}/{artifact_type}"]
        if notes:
            lines.append(f"Notes: {notes}")
        if summary:
            lines.extend(["", "Gate results (all passed):", summary, ""])
        lines.append("Use sdlc_get_directive to get the next action.")
        return text_response(*lines)

    async def reject_artifact(self, args: dict[str, Any]) -> ToolResponse:
        slug = args["slug"]
        artifact_type = args["artifact_type"]
        reason = args["reason"]
        try:
            await self.client.reject_artifact(slug, artifact_type, reason)
        except TOOL_ERRORS as exc:
            return text_response(f"Error rejecting artifact: {exc}")
        return text_response(f"Rejected: {slug}/{artifact_type}", f"Reason: {reason}")

    async def add_task(self, args: dict[str, Any]) -> ToolResponse:
        try:
            result = await self.client.add_task(args["slug"], args["title"])
        except TOOL_ERRORS as exc:
            return text_response(f"Error adding task: {exc}")
        return text_response(f"Task added: {result.task_id} - {result.title}")

    async def complete_task(self, args: dict[str, Any]) -> ToolResponse:
        task_id = args["task_id"]
        try:
            await self.client.complete_task(args["slug"], task_id)
        except TOOL_ERRORS as exc:
            return text_response(f"Error completing task: {exc}")
        lines = [f"Completed task: {task_id}"]
        if args.get("notes"):
            lines.append(f"Notes: {args['notes']}")
        return text_response(*lines)

    async def add_comment(self, args: dict[str, Any]) -> ToolResponse:
        slug = args["slug"]
        body = args["body"]
        flag = args.get("flag_type") or None
        if flag is not None and flag not in COMMENT_FLAGS:
            return text_response(
                f"Error adding comment: flag_type must be one of {', '.join(COMMENT_FLAGS)}"
            )
        try:
            await self.client.add_comment(slug, body, flag)
        except TOOL_ERRORS as exc:
            return text_response(f"Error adding comment: {exc}")
        suffix = f" [{flag}]" if flag else ""
        return text_response(f"Comment added to {slug}{suffix}: {body}")


ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResponse]]


def tool_specs(toolset: SdlcToolset) -> list[tuple[str, str, dict[str, Any], ToolHandler]]:
    return [
        (
            "sdlc_get_directive",
            "Get the current SDLC directive (next action) for a feature. "
            "Call this to understand what to do next.",
            _object_schema({"slug": _SLUG}, ["slug"]),
            toolset.get_directive,
        ),
        (
            "sdlc_write_artifact",
            "Write content to an SDLC artifact file (spec, design, tasks, qa_plan, review, "
            "audit, qa_results). Always write the complete artifact content.",
            _object_schema(
                {
                    "slug": _SLUG,
                    "artifact_type": _ARTIFACT_TYPE,
                    "content": {"type": "string", "description": "Full markdown content"},
                },
                ["slug", "artifact_type", "content"],
            ),
            toolset.write_artifact,
        ),
        (
            "sdlc_approve_artifact",
            "Approve an SDLC artifact to advance the feature phase. Runs any configured auto "
            "shell gates first; if they fail, fix the issues and try again.",
            _object_schema(
                {
                    "slug": _SLUG,
                    "artifact_type": _ARTIFACT_TYPE,
                    "notes": {"type": "string", "description": "What was verified"},
                },
                ["slug", "artifact_type"],
            ),
            toolset.approve_artifact,
        ),
        (
            "sdlc_reject_artifact",
            "Reject an SDLC artifact with a reason explaining what needs to be fixed.",
            _object_schema(
                {
                    "slug": _SLUG,
                    "artifact_type": _ARTIFACT_TYPE,
                    "reason": {"type": "string", "description": "What needs to be fixed"},
                },
                ["slug", "artifact_type", "reason"],
            ),
            toolset.reject_artifact,
        ),
        (
            "sdlc_add_task",
            "Add an implementation task to the feature. Use when creating the tasks artifact "
            "to register individual work items.",
            _object_schema(
                {
                    "slug": _SLUG,
                    "title": {"type": "string", "description": "Short imperative task title"},
                },
                ["slug", "title"],
            ),
            toolset.add_task,
        ),
        (
            "sdlc_complete_task",
            "Mark an implementation task as complete. Use after implementing a task and "
            "verifying it works.",
            _object_schema(
                {
                    "slug": _SLUG,
                    "task_id": {"type": "string", "description": "Task ID to complete"},
                    "notes": {"type": "string", "description": "Optional completion notes"},
                },
                ["slug", "task_id"],
            ),
            toolset.complete_task,
        ),
        (
            "sdlc_add_comment",
            "Add a comment, question, or blocker to the feature. Use to flag issues, "
            "questions, or blockers for human review.",
            _object_schema(
                {
                    "slug": _SLUG,
                    "body": {"type": "string", "description": "Comment body"},
                    "flag_type": {"type": "string", "enum": list(COMMENT_FLAGS)},
                },
                ["slug", "body"],
            ),
            toolset.add_comment,
        ),
    ]
