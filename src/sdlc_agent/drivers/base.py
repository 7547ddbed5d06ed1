from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sdlc_agent.tools import SdlcToolset

PromptMessage = dict[str, Any]

RESULT_SUCCESS = "success"
RESULT_MAX_TURNS = "error_max_turns"


@dataclass(slots=True)
class AgentMessage:
    """Vendor-neutral view of one message emitted by the execution environment."""

    type: str
    subtype: str | None = None
    session_id: str | None = None
    text: str = ""
    raw: Any = None

    @property
    def is_init(self) -> bool:
        return self.type == "system" and self.subtype == "init"

    @property
    def is_result(self) -> bool:
        return self.type == "result"


@dataclass(slots=True)
class AgentRequest:
    prompt: AsyncIterator[PromptMessage]
    model: str
    system_prompt: str
    allowed_tools: list[str]
    max_turns: int
    cwd: Path
    resume: str | None = None
    toolset: SdlcToolset | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class AgentDriver(ABC):
    name: str = "driver"

    @abstractmethod
    def stream(self, request: AgentRequest) -> AsyncIterator[AgentMessage]:
        """Run one agent invocation and yield its messages until it ends."""
