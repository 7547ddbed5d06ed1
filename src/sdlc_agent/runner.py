from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Iterable
from pathlib import Path
from typing import Any

from sdlc_agent.agents import agent_for_action, is_human_gate_action, is_terminal_action
from sdlc_agent.client import SdlcClient
from sdlc_agent.drivers.base import (
    RESULT_MAX_TURNS,
    RESULT_SUCCESS,
    AgentDriver,
    AgentMessage,
    AgentRequest,
    PromptMessage,
)
from sdlc_agent.errors import RunawayLoopError
from sdlc_agent.gates import GateRunner
from sdlc_agent.models import Directive, RunResult, StopReason
from sdlc_agent.session import clear_session, load_session, save_session
from sdlc_agent.tools import SdlcToolset

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 30
DEFAULT_MAX_ACTIONS = 50
DEFAULT_MAX_REPEATS = 3
UNKNOWN_PHASE = "unknown"

DirectiveObserver = Callable[[Directive], None]
MessageObserver = Callable[[AgentMessage], None]

STOP_ICONS = {
    StopReason.DONE: "✓",
    StopReason.HUMAN_GATE: "⏸",
    StopReason.ERROR: "✗",
}


def render_prompt(directive: Directive) -> str:
    lines = [
        f"# SDLC Directive: {directive.action}",
        "",
        f"**Feature:** {directive.feature} - {directive.title}",
        f"**Phase:** {directive.current_phase}",
        f"**Action:** {directive.action}",
        "",
        "## What to do",
        directive.message,
        "",
    ]
    if directive.output_path:
        lines.append(f"**Output path:** `{directive.output_path}`")
    if directive.task_id:
        lines.append(f"**Task ID:** `{directive.task_id}`")

    auto_gates = directive.auto_shell_gates
    if auto_gates:
        lines.extend(["", "**Auto gates** (run automatically before approval):"])
        for gate in auto_gates:
            lines.append(f"- `{gate.command or ''}` ({gate.name})")

    lines.extend(
        [
            "",
            "## Instructions",
            "1. Call `sdlc_get_directive` to confirm the current state",
            "2. Do the work described above",
            "3. Call `sdlc_approve_artifact` (or `sdlc_complete_task`) when done",
            "   - For artifact actions: approval will automatically run any configured gates",
            "   - If gates fail: fix the issue and try approving again",
        ]
    )
    return "\n".join(lines)


async def build_prompt(directive: Directive) -> AsyncIterator[PromptMessage]:
    yield {
        "type": "user",
        "message": {"role": "user", "content": render_prompt(directive)},
    }


def resume_hint(directive: Directive) -> str:
    return directive.next_command or f"sdlc artifact approve {directive.feature} <type>"


def resume_command(feature: str) -> str:
    return f"sdlc-agent run {feature}"


class Runner:
    """Drives one feature at a time through the state machine's directives.

    Each iteration re-fetches the directive, stops on terminal or human-gate
    actions, and otherwise dispatches the registered agent. The agent's
    session token is persisted per feature so a later run resumes the same
    conversation.
    """

    def __init__(
        self,
        client: SdlcClient,
        driver: AgentDriver,
        *,
        cwd: Path | None = None,
        model: str | None = None,
        max_turns: int = DEFAULT_MAX_TURNS,
        max_actions: int = DEFAULT_MAX_ACTIONS,
        max_repeats: int = DEFAULT_MAX_REPEATS,
        gate_runner: GateRunner | None = None,
        on_directive: DirectiveObserver | None = None,
        on_message: MessageObserver | None = None,
    ) -> None:
        self.client = client
        self.driver = driver
        self.cwd = (cwd or client.cwd).resolve()
        self.model = model or None
        self.max_turns = max_turns
        self.max_actions = max_actions
        self.max_repeats = max_repeats
        self.gate_runner = gate_runner or GateRunner()
        self.on_directive = on_directive
        self.on_message = on_message

    def _notify(self, observer: Callable[[Any], None] | None, payload: Any) -> None:
        if observer is None:
            return
        try:
            observer(payload)
        except Exception:
            logger.exception("Observer raised; ignoring")

    def _runaway(self, directive: Directive, actions_completed: int, repeats: int) -> str | None:
        if actions_completed >= self.max_actions:
            return (
                f"Stopped after {actions_completed} actions without reaching a stopping "
                f"point (max_actions={self.max_actions})"
            )
        if repeats > self.max_repeats:
            return (
                f"Directive {directive.action} (phase {directive.current_phase}) did not "
                f"advance after {repeats} repeated invocations (max_repeats={self.max_repeats})"
            )
        return None

    async def run_feature(self, slug: str) -> RunResult:
        actions_completed = 0
        session_id = load_session(self.cwd, slug)
        if session_id:
            logger.info("Resuming session: %s…", session_id[:8])
        logger.info("Starting feature: %s", slug)

        last_key: tuple[str, str, str | None] | None = None
        repeats = 0

        while True:
            try:
                directive = await self.client.get_directive(slug)
            except Exception as exc:
                logger.error("Failed to get directive for %s: %s", slug, exc)
                return RunResult(
                    feature=slug,
                    final_phase=UNKNOWN_PHASE,
                    actions_completed=actions_completed,
                    stopped_at=StopReason.ERROR,
                    error=exc,
                )

            self._notify(self.on_directive, directive)
            logger.info("%s (phase: %s)", directive.action, directive.current_phase)

            action = directive.action_type
            if action is not None and is_terminal_action(action):
                logger.info("Feature complete: %s", slug)
                return self._stop(directive, slug, actions_completed, StopReason.DONE)

            if action is not None and is_human_gate_action(action):
                logger.info(
                    "Human gate: %s\n  -> %s\n  -> Command: %s",
                    directive.action,
                    directive.message,
                    resume_hint(directive),
                )
                return self._stop(directive, slug, actions_completed, StopReason.HUMAN_GATE)

            agent = agent_for_action(action) if action is not None else None
            if agent is None:
                logger.warning(
                    'No agent defined for action "%s". Pausing for human.', directive.action
                )
                return self._stop(directive, slug, actions_completed, StopReason.HUMAN_GATE)

            key = directive.progress_key
            repeats = repeats + 1 if key == last_key else 0
            last_key = key
            reason = self._runaway(directive, actions_completed, repeats)
            if reason:
                logger.error(reason)
                return self._stop(
                    directive,
                    slug,
                    actions_completed,
                    StopReason.ERROR,
                    error=RunawayLoopError(reason),
                )

            model = self.model or agent.model
            logger.info("Running %s agent (%s) for: %s", agent.role, model, directive.action)
            request = AgentRequest(
                prompt=build_prompt(directive),
                model=model,
                system_prompt=agent.prompt,
                allowed_tools=list(agent.tools),
                max_turns=self.max_turns,
                cwd=self.cwd,
                resume=session_id,
                toolset=SdlcToolset(
                    self.client,
                    gates=directive.gates,
                    cwd=self.cwd,
                    gate_runner=self.gate_runner,
                ),
            )

            try:
                async for message in self.driver.stream(request):
                    self._notify(self.on_message, message)
                    if message.session_id and message.session_id != session_id:
                        session_id = message.session_id
                        save_session(self.cwd, slug, session_id)
                    if message.is_result:
                        self._log_result(directive, message)
            except Exception as exc:
                logger.error("Agent error during %s: %s", directive.action, exc)
                try:
                    clear_session(self.cwd, slug)
                except OSError as clear_exc:
                    logger.warning("Could not clear session for %s: %s", slug, clear_exc)
                return self._stop(
                    directive, slug, actions_completed, StopReason.ERROR, error=exc
                )

            actions_completed += 1

    @staticmethod
    def _log_result(directive: Directive, message: AgentMessage) -> None:
        if message.subtype == RESULT_SUCCESS:
            logger.info("Action complete: %s", directive.action)
        elif message.subtype == RESULT_MAX_TURNS:
            logger.warning("Max turns reached for: %s", directive.action)
        else:
            logger.warning("Agent ended %s with %s", directive.action, message.subtype)

    @staticmethod
    def _stop(
        directive: Directive,
        slug: str,
        actions_completed: int,
        stopped_at: StopReason,
        *,
        error: BaseException | None = None,
    ) -> RunResult:
        return RunResult(
            feature=slug,
            final_phase=directive.current_phase,
            actions_completed=actions_completed,
            stopped_at=stopped_at,
            error=error,
            next_command=resume_hint(directive) if stopped_at is StopReason.HUMAN_GATE else None,
        )

    async def pending_features(self, terminal_phases: Iterable[str]) -> list[str]:
        excluded = set(terminal_phases)
        features = await self.client.list_features()
        slugs = [feature.slug for feature in features if feature.phase not in excluded]
        return list(dict.fromkeys(slugs))

    async def run_all(self, slugs: Iterable[str], *, workers: int = 1) -> list[RunResult]:
        """Run every feature loop and return results in the given order.

        With ``workers > 1`` up to that many features run concurrently; a slug
        is never run twice, so each feature has at most one live invocation.
        """
        ordered = list(dict.fromkeys(slugs))
        if workers <= 1:
            results: list[RunResult] = []
            for slug in ordered:
                logger.info("=== Feature: %s ===", slug)
                results.append(await self.run_feature(slug))
            return results

        semaphore = asyncio.Semaphore(workers)

        async def _bounded(slug: str) -> RunResult:
            async with semaphore:
                logger.info("=== Feature: %s ===", slug)
                return await self.run_feature(slug)

        return list(await asyncio.gather(*(_bounded(slug) for slug in ordered)))


def group_results(results: Iterable[RunResult]) -> dict[StopReason, list[RunResult]]:
    groups: dict[StopReason, list[RunResult]] = {reason: [] for reason in StopReason}
    for result in results:
        groups[result.stopped_at].append(result)
    return groups


def format_summary(results: Iterable[RunResult]) -> str:
    lines = ["=== Summary ==="]
    for reason, group in group_results(results).items():
        lines.append(f"{reason.value} ({len(group)})")
        for result in group:
            line = (
                f"  {STOP_ICONS[reason]} {result.feature}: "
                f"{result.actions_completed} actions, phase {result.final_phase}"
            )
            if result.error is not None:
                line += f" - {result.error}"
            if reason is StopReason.HUMAN_GATE:
                line += f" - resume: {resume_command(result.feature)}"
            lines.append(line)
    return "\n".join(lines)
