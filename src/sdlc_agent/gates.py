from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from sdlc_agent.errors import CommandParseError
from sdlc_agent.models import GateDefinition, GateResult, GateType
from sdlc_agent.tokenizer import tokenize

logger = logging.getLogger(__name__)

DEFAULT_GATE_TIMEOUT_SECONDS = 120.0
DEFAULT_OUTPUT_LIMIT = 2000
TIMEOUT_ERROR_PREFIX = "Gate timed out"


class GateRunner:
    """Executes the auto shell gates attached to a directive.

    Every definition yields exactly one result, in order. Failures of any kind
    are folded into the result; nothing raises past ``run``.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_GATE_TIMEOUT_SECONDS,
        output_limit: int = DEFAULT_OUTPUT_LIMIT,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.output_limit = output_limit

    async def run(self, gates: Sequence[GateDefinition], cwd: Path) -> list[GateResult]:
        results: list[GateResult] = []
        for gate in gates:
            if not gate.is_auto_shell:
                results.append(
                    GateResult(
                        name=gate.name,
                        type=gate.type,
                        passed=True,
                        output=f"skipped ({gate.type}, auto={str(gate.auto).lower()})",
                        skipped=True,
                    )
                )
                continue
            results.append(await self._run_shell_gate(gate, cwd))
        return results

    def _truncate(self, output: str) -> str:
        return output[: self.output_limit]

    async def _run_shell_gate(self, gate: GateDefinition, cwd: Path) -> GateResult:
        command = gate.command or ""
        try:
            argv = tokenize(command)
        except CommandParseError as exc:
            return GateResult(
                name=gate.name, type=GateType.SHELL.value, passed=False, error=str(exc)
            )
        if not argv:
            return GateResult(
                name=gate.name,
                type=GateType.SHELL.value,
                passed=False,
                error=f'Gate "{gate.name}" has an empty command',
            )

        logger.debug("Running gate %s: %s", gate.name, argv)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            return GateResult(
                name=gate.name,
                type=GateType.SHELL.value,
                passed=False,
                error=f"Failed to start {argv[0]}: {exc}",
            )

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout_seconds
            )
        except TimeoutError:
            await _kill(process)
            return GateResult(
                name=gate.name,
                type=GateType.SHELL.value,
                passed=False,
                error=f"{TIMEOUT_ERROR_PREFIX} after {self.timeout_seconds:g}s",
                timed_out=True,
            )
        except asyncio.CancelledError:
            await _kill(process)
            raise

        output = self._truncate((stdout or b"").decode("utf-8", errors="replace"))
        if process.returncode == 0:
            return GateResult(name=gate.name, type=GateType.SHELL.value, passed=True, output=output)
        return GateResult(
            name=gate.name,
            type=GateType.SHELL.value,
            passed=False,
            output=output,
            error=f"Command failed with exit code {process.returncode}: {command}",
        )


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()


def all_gates_passed(results: Iterable[GateResult]) -> bool:
    return all(result.passed for result in results)


def format_gate_results(results: Iterable[GateResult]) -> str:
    lines: list[str] = []
    for result in results:
        if result.passed:
            output_lines = result.output.strip().splitlines()
            detail = output_lines[-1] if output_lines else "PASSED"
            lines.append(f"✓ [{result.name}]: {detail}")
        else:
            detail = result.error or result.output[:200]
            lines.append(f"✗ [{result.name}]: FAILED - {detail}")
    return "\n".join(lines)
