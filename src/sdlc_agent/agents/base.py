from __future__ import annotations

SDLC_SERVER_NAME = "sdlc"

SDLC_TOOL_NAMES = (
    "sdlc_get_directive",
    "sdlc_write_artifact",
    "sdlc_approve_artifact",
    "sdlc_reject_artifact",
    "sdlc_add_task",
    "sdlc_complete_task",
    "sdlc_add_comment",
)

READ_TOOLS = ["Read", "Glob", "Grep"]


def qualified_tool_name(name: str) -> str:
    return f"mcp__{SDLC_SERVER_NAME}__{name}"


def sdlc_tools(*names: str) -> list[str]:
    unknown = [name for name in names if name not in SDLC_TOOL_NAMES]
    if unknown:
        raise ValueError(f"Unknown sdlc tools: {', '.join(unknown)}")
    return [qualified_tool_name(name) for name in names]


ARTIFACT_TOOLS = sdlc_tools(
    "sdlc_get_directive",
    "sdlc_write_artifact",
    "sdlc_approve_artifact",
    "sdlc_add_comment",
)
