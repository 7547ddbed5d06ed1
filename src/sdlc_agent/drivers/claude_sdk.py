from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ResultMessage,
    SystemMessage,
    TextBlock,
    create_sdk_mcp_server,
    query,
    tool,
)

from sdlc_agent import __version__
from sdlc_agent.agents import SDLC_SERVER_NAME
from sdlc_agent.drivers.base import AgentDriver, AgentMessage, AgentRequest
from sdlc_agent.tools import SdlcToolset, tool_specs

logger = logging.getLogger(__name__)


def create_sdlc_mcp_server(toolset: SdlcToolset) -> Any:
    tools = [
        tool(name, description, schema)(handler)
        for name, description, schema, handler in tool_specs(toolset)
    ]
    return create_sdk_mcp_server(name=SDLC_SERVER_NAME, version=__version__, tools=tools)


def convert_message(message: Any) -> AgentMessage:
    if isinstance(message, SystemMessage):
        data = message.data if isinstance(message.data, dict) else {}
        session_id = data.get("session_id")
        return AgentMessage(
            type="system",
            subtype=message.subtype,
            session_id=session_id if isinstance(session_id, str) else None,
            raw=message,
        )
    if isinstance(message, ResultMessage):
        return AgentMessage(
            type="result",
            subtype=message.subtype,
            session_id=message.session_id,
            text=message.result or "",
            raw=message,
        )
    if isinstance(message, AssistantMessage):
        text = "".join(block.text for block in message.content if isinstance(block, TextBlock))
        return AgentMessage(type="assistant", text=text, raw=message)
    return AgentMessage(
        type=type(message).__name__.removesuffix("Message").lower() or "unknown",
        raw=message,
    )


class ClaudeSDKDriver(AgentDriver):
    """Runs agents in-process through claude-agent-sdk ``query()``.

    The SDLC tool server is mounted as an in-process MCP server, which the SDK
    only supports in streaming-input mode; the prompt is therefore always
    passed as an async iterator.
    """

    name = "claude_sdk"

    def __init__(self, *, permission_mode: str = "acceptEdits") -> None:
        self.permission_mode = permission_mode

    def build_options(self, request: AgentRequest) -> ClaudeAgentOptions:
        mcp_servers: dict[str, Any] = {}
        if request.toolset is not None:
            mcp_servers[SDLC_SERVER_NAME] = create_sdlc_mcp_server(request.toolset)
        return ClaudeAgentOptions(
            cwd=str(request.cwd),
            model=request.model,
            max_turns=request.max_turns,
            mcp_servers=mcp_servers,
            allowed_tools=list(request.allowed_tools),
            permission_mode=self.permission_mode,
            system_prompt=request.system_prompt,
            resume=request.resume,
        )

    async def stream(self, request: AgentRequest) -> AsyncIterator[AgentMessage]:
        options = self.build_options(request)
        logger.debug("claude-agent-sdk query model=%s resume=%s", request.model, request.resume)
        async for message in query(prompt=request.prompt, options=options):
            yield convert_message(message)
