from sdlc_agent.drivers.base import (
    RESULT_MAX_TURNS,
    RESULT_SUCCESS,
    AgentDriver,
    AgentMessage,
    AgentRequest,
)
from sdlc_agent.drivers.claude_cli import ClaudeCliDriver
from sdlc_agent.drivers.claude_sdk import ClaudeSDKDriver

__all__ = [
    "RESULT_MAX_TURNS",
    "RESULT_SUCCESS",
    "AgentDriver",
    "AgentMessage",
    "AgentRequest",
    "ClaudeCliDriver",
    "ClaudeSDKDriver",
]
