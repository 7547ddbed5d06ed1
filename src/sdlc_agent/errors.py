from __future__ import annotations


class SdlcAgentError(RuntimeError):
    """Base class for sdlc-agent failures."""


class CommandParseError(SdlcAgentError, ValueError):
    """Raised when a gate command string cannot be tokenized."""

    def __init__(self, message: str, *, quote: str | None = None, command: str = "") -> None:
        super().__init__(message)
        self.quote = quote
        self.command = command


class StateMachineError(SdlcAgentError):
    """Raised when the sdlc binary cannot be run or returns unusable output."""

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.exit_code = exit_code
        self.stderr = stderr


class AgentExecutionError(SdlcAgentError):
    """Raised when the LLM execution environment fails mid-invocation."""

    def __init__(
        self,
        message: str,
        *,
        driver: str | None = None,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.driver = driver
        self.exit_code = exit_code


class AgentProcessError(AgentExecutionError):
    """Raised when the agent process cannot be started or wired up."""


class RunawayLoopError(SdlcAgentError):
    """Raised when a feature loop exceeds its action or repeat budget."""


class RegistryError(SdlcAgentError):
    """Raised when the agent registry does not cover every action type."""
