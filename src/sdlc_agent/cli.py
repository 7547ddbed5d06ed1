from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

import click

from sdlc_agent import __version__
from sdlc_agent.agents import agent_for_action, is_human_gate_action, is_terminal_action
from sdlc_agent.client import SdlcClient
from sdlc_agent.config import (
    DEFAULT_CONFIG_FILENAME,
    SdlcAgentConfig,
    load_config,
    save_config,
)
from sdlc_agent.drivers import AgentDriver, ClaudeCliDriver, ClaudeSDKDriver
from sdlc_agent.errors import SdlcAgentError
from sdlc_agent.gates import GateRunner
from sdlc_agent.models import RunResult, StopReason
from sdlc_agent.runner import Runner, format_summary, resume_command

LOG_FORMAT = "[sdlc-agent] %(message)s"


@dataclass(slots=True)
class Runtime:
    cwd: Path
    config_path: Path
    config: SdlcAgentConfig
    client: SdlcClient


class _EchoHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def _configure_logging(verbose: bool) -> None:
    handler = _EchoHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("sdlc_agent")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def _resolve_config_path(cwd: Path, config_value: str) -> Path:
    config_path = Path(config_value)
    if not config_path.is_absolute():
        config_path = cwd / config_path
    return config_path.resolve()


def _load_runtime(
    cwd_value: str,
    config_value: str,
    *,
    bin_override: str | None = None,
    driver_override: str | None = None,
    model_override: str | None = None,
    max_turns_override: int | None = None,
) -> Runtime:
    cwd = Path(cwd_value).resolve()
    config_path = _resolve_config_path(cwd, config_value)
    try:
        config = load_config(config_path)
    except (OSError, ValueError, TypeError) as exc:
        raise click.ClickException(f"Invalid config {config_path}: {exc}") from exc

    if bin_override:
        config.state_machine.bin = bin_override
    if driver_override:
        config.runner.driver = driver_override  # type: ignore[assignment]
    if model_override:
        config.runner.model = model_override
    if max_turns_override is not None:
        config.runner.max_turns = max_turns_override

    return Runtime(
        cwd=cwd,
        config_path=config_path,
        config=config,
        client=SdlcClient(cwd=cwd, bin=config.state_machine.bin),
    )


def _build_driver(config: SdlcAgentConfig) -> AgentDriver:
    if config.runner.driver == "cli":
        return ClaudeCliDriver(
            config.claude.binary,
            permission_mode=config.claude.permission_mode,
            sdlc_bin=config.state_machine.bin,
        )
    return ClaudeSDKDriver(permission_mode=config.claude.permission_mode)


def _build_runner(runtime: Runtime) -> Runner:
    config = runtime.config
    return Runner(
        runtime.client,
        _build_driver(config),
        cwd=runtime.cwd,
        model=config.runner.model or None,
        max_turns=config.runner.max_turns,
        max_actions=config.runner.max_actions,
        max_repeats=config.runner.max_repeats,
        gate_runner=GateRunner(
            timeout_seconds=config.gates.timeout_seconds,
            output_limit=config.gates.output_limit,
        ),
    )


def _echo_result(result: RunResult) -> None:
    click.echo(f"Feature: {result.feature}")
    click.echo(f"Phase: {result.final_phase}")
    click.echo(f"Actions: {result.actions_completed}")
    click.echo(f"Stopped: {result.stopped_at.value}")
    if result.stopped_at is StopReason.HUMAN_GATE:
        if result.next_command:
            click.echo(f"Next: {result.next_command}")
        click.echo(f"Resume with: {resume_command(result.feature)}")


def _run_options(func):
    options = [
        click.option("--model", default=None, help="Override the agent model."),
        click.option("--max-turns", type=int, default=None, help="Turn limit per agent call."),
        click.option("--cwd", "cwd_value", default=".", show_default=True),
        click.option("--bin", "bin_value", default=None, help="Path to the sdlc binary."),
        click.option("--config", "config_value", default=DEFAULT_CONFIG_FILENAME, show_default=True),
        click.option("--driver", type=click.Choice(["sdk", "cli"]), default=None),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.version_option(__version__, prog_name="sdlc-agent")
def cli(verbose: bool) -> None:
    """Autonomous SDLC runner: consumes directives and dispatches agents."""
    _configure_logging(verbose)


@cli.command("init")
@click.option("--cwd", "cwd_value", default=".", show_default=True)
@click.option("--config", "config_value", default=DEFAULT_CONFIG_FILENAME, show_default=True)
def init_command(cwd_value: str, config_value: str) -> None:
    cwd = Path(cwd_value).resolve()
    config_path = _resolve_config_path(cwd, config_value)
    if config_path.exists():
        click.echo(f"Config already exists: {config_path}")
        return
    save_config(config_path, SdlcAgentConfig.default())
    click.echo(f"Wrote {config_path}")


@cli.command("run")
@click.argument("slug")
@_run_options
def run_command(
    slug: str,
    model: str | None,
    max_turns: int | None,
    cwd_value: str,
    bin_value: str | None,
    config_value: str,
    driver: str | None,
) -> None:
    runtime = _load_runtime(
        cwd_value,
        config_value,
        bin_override=bin_value,
        driver_override=driver,
        model_override=model,
        max_turns_override=max_turns,
    )
    runner = _build_runner(runtime)
    result = asyncio.run(runner.run_feature(slug))

    _echo_result(result)
    if result.error is not None:
        raise click.ClickException(str(result.error))


@cli.command("run-all")
@_run_options
@click.option("--workers", type=int, default=None, help="Features to run concurrently.")
def run_all_command(
    model: str | None,
    max_turns: int | None,
    cwd_value: str,
    bin_value: str | None,
    config_value: str,
    driver: str | None,
    workers: int | None,
) -> None:
    runtime = _load_runtime(
        cwd_value,
        config_value,
        bin_override=bin_value,
        driver_override=driver,
        model_override=model,
        max_turns_override=max_turns,
    )
    runner = _build_runner(runtime)
    try:
        slugs = asyncio.run(runner.pending_features(runtime.config.state_machine.terminal_phases))
    except SdlcAgentError as exc:
        raise click.ClickException(f"Failed to list features: {exc}") from exc

    if not slugs:
        click.echo("No features to run.")
        return

    results = asyncio.run(runner.run_all(slugs, workers=workers or runtime.config.runner.workers))
    click.echo(format_summary(results))

    failed = [result for result in results if result.stopped_at is StopReason.ERROR]
    if failed:
        raise click.ClickException(f"{len(failed)} of {len(results)} features ended in error.")


@cli.command("plan")
@click.argument("slug")
@click.option("--cwd", "cwd_value", default=".", show_default=True)
@click.option("--bin", "bin_value", default=None)
@click.option("--config", "config_value", default=DEFAULT_CONFIG_FILENAME, show_default=True)
def plan_command(slug: str, cwd_value: str, bin_value: str | None, config_value: str) -> None:
    runtime = _load_runtime(cwd_value, config_value, bin_override=bin_value)
    try:
        directive = asyncio.run(runtime.client.get_directive(slug))
    except SdlcAgentError as exc:
        raise click.ClickException(f"Failed to get directive for {slug}: {exc}") from exc

    action = directive.action_type
    agent = agent_for_action(action) if action is not None else None
    if action is not None and is_terminal_action(action):
        verdict = "none (feature is done)"
    elif action is not None and is_human_gate_action(action):
        verdict = "HUMAN GATE"
    elif agent is not None:
        verdict = f"{agent.role} ({runtime.config.runner.model or agent.model})"
    else:
        verdict = "none (unregistered action, pauses for human)"

    click.echo(f"Feature: {directive.feature} ({directive.current_phase})")
    click.echo(f"Action: {directive.action}")
    click.echo(f"Message: {directive.message}")
    click.echo(f"Heavy: {'yes' if directive.is_heavy else 'no'}")
    click.echo(f"Agent: {verdict}")
    if directive.output_path:
        click.echo(f"Output: {directive.output_path}")
    if agent is not None:
        click.echo(f"Tools: {', '.join(agent.tools)}")
    if directive.gates:
        gates = ", ".join(f"{gate.name}({gate.type})" for gate in directive.gates)
        click.echo(f"Gates: {gates}")
    else:
        click.echo("Gates: none")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
