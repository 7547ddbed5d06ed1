from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

DriverName = Literal["sdk", "cli"]

DEFAULT_CONFIG_FILENAME = "sdlc-agent.toml"


@dataclass(slots=True)
class RunnerConfig:
    driver: DriverName = "sdk"
    model: str = ""
    max_turns: int = 30
    max_actions: int = 50
    max_repeats: int = 3
    workers: int = 1


@dataclass(slots=True)
class StateMachineConfig:
    bin: str = "sdlc"
    terminal_phases: list[str] = field(default_factory=lambda: ["released", "merge"])


@dataclass(slots=True)
class GatesConfig:
    timeout_seconds: float = 120.0
    output_limit: int = 2000


@dataclass(slots=True)
class ClaudeConfig:
    binary: str = "claude"
    permission_mode: str = "acceptEdits"


@dataclass(slots=True)
class SdlcAgentConfig:
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    state_machine: StateMachineConfig = field(default_factory=StateMachineConfig)
    gates: GatesConfig = field(default_factory=GatesConfig)
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)

    @classmethod
    def default(cls) -> SdlcAgentConfig:
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> SdlcAgentConfig:
        return cls(
            runner=RunnerConfig(**data.get("runner", {})),
            state_machine=StateMachineConfig(**data.get("state_machine", {})),
            gates=GatesConfig(**data.get("gates", {})),
            claude=ClaudeConfig(**data.get("claude", {})),
        )

    def to_dict(self) -> dict:
        return {
            "runner": {
                "driver": self.runner.driver,
                "model": self.runner.model,
                "max_turns": self.runner.max_turns,
                "max_actions": self.runner.max_actions,
                "max_repeats": self.runner.max_repeats,
                "workers": self.runner.workers,
            },
            "state_machine": {
                "bin": self.state_machine.bin,
                "terminal_phases": list(self.state_machine.terminal_phases),
            },
            "gates": {
                "timeout_seconds": self.gates.timeout_seconds,
                "output_limit": self.gates.output_limit,
            },
            "claude": {
                "binary": self.claude.binary,
                "permission_mode": self.claude.permission_mode,
            },
        }


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        rendered = f"{value:.3f}".rstrip("0")
        return rendered + "0" if rendered.endswith(".") else rendered
    if isinstance(value, list):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    return json.dumps(str(value), ensure_ascii=False)


def dumps_toml(config: SdlcAgentConfig) -> str:
    data = config.to_dict()
    lines: list[str] = []
    for section in ("runner", "state_machine", "gates", "claude"):
        lines.append(f"[{section}]")
        for key, value in data[section].items():
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def load_config(path: Path) -> SdlcAgentConfig:
    if not path.exists():
        return SdlcAgentConfig.default()
    return SdlcAgentConfig.from_dict(tomllib.loads(path.read_text(encoding="utf-8")))


def save_config(path: Path, config: SdlcAgentConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_toml(config), encoding="utf-8")
