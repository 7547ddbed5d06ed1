from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from sdlc_agent.agents.base import SDLC_SERVER_NAME
from sdlc_agent.drivers.base import AgentDriver, AgentMessage, AgentRequest
from sdlc_agent.errors import AgentExecutionError, AgentProcessError

logger = logging.getLogger(__name__)


class ClaudeCliDriver(AgentDriver):
    """Runs agents through the ``claude`` binary in stream-json mode.

    The in-process SDLC tool server cannot be mounted into a separate
    process, so the same tools are served by ``sdlc mcp`` over stdio under
    the same server name.
    """

    name = "claude_cli"

    def __init__(
        self,
        binary: str = "claude",
        *,
        permission_mode: str = "acceptEdits",
        sdlc_bin: str = "sdlc",
    ) -> None:
        self.binary = binary
        self.permission_mode = permission_mode
        self.sdlc_bin = sdlc_bin

    def mcp_config(self) -> str:
        server = {"command": self.sdlc_bin, "args": ["mcp"]}
        return json.dumps({"mcpServers": {SDLC_SERVER_NAME: server}})

    def build_command(self, request: AgentRequest) -> list[str]:
        command = [
            self.binary,
            "-p",
            "--input-format",
            "stream-json",
            "--output-format",
            "stream-json",
            "--verbose",
            "--model",
            request.model,
            "--max-turns",
            str(request.max_turns),
            "--permission-mode",
            self.permission_mode,
            "--system-prompt",
            request.system_prompt,
            "--mcp-config",
            self.mcp_config(),
        ]
        if request.allowed_tools:
            command.extend(["--allowedTools", ",".join(request.allowed_tools)])
        if request.resume:
            command.extend(["--resume", request.resume])
        return command

    @staticmethod
    def _appears_partial_json(raw: str) -> bool:
        return raw.count("{") > raw.count("}") or raw.count("[") > raw.count("]")

    @staticmethod
    def _extract_text(event: dict[str, Any]) -> str:
        result = event.get("result")
        if isinstance(result, str):
            return result
        message = event.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if isinstance(item, dict):
                    text = item.get("text")
                    if isinstance(text, str):
                        parts.append(text)
            return "".join(parts)
        return ""

    @classmethod
    def parse_event(cls, event: dict[str, Any]) -> AgentMessage:
        subtype = event.get("subtype")
        session_id = event.get("session_id")
        return AgentMessage(
            type=str(event.get("type", "unknown")),
            subtype=subtype if isinstance(subtype, str) else None,
            session_id=session_id if isinstance(session_id, str) else None,
            text=cls._extract_text(event),
            raw=event,
        )

    async def _feed_prompt(self, process: asyncio.subprocess.Process, request: AgentRequest) -> None:
        if process.stdin is None:
            raise AgentProcessError(
                "Claude CLI did not expose stdin.", driver=self.name
            )
        async for prompt_message in request.prompt:
            process.stdin.write((json.dumps(prompt_message, ensure_ascii=False) + "\n").encode())
            await process.stdin.drain()
        process.stdin.close()

    async def stream(self, request: AgentRequest) -> AsyncIterator[AgentMessage]:
        if request.toolset is not None:
            logger.debug("sdlc tools are served by `%s mcp` in this driver", self.sdlc_bin)

        command = self.build_command(request)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(request.cwd),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise AgentProcessError(
                f"Claude binary not found: {self.binary}", driver=self.name
            ) from exc

        if process.stdout is None:
            raise AgentProcessError("Claude CLI did not expose stdout.", driver=self.name)

        stderr_task = (
            asyncio.create_task(process.stderr.read()) if process.stderr is not None else None
        )
        try:
            await self._feed_prompt(process, request)

            parse_buffer = ""
            async for raw_line in process.stdout:
                line = raw_line.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                candidate = f"{parse_buffer}{line}" if parse_buffer else line
                try:
                    event = json.loads(candidate)
                    parse_buffer = ""
                except json.JSONDecodeError:
                    if self._appears_partial_json(candidate):
                        parse_buffer = candidate
                        continue
                    parse_buffer = ""
                    logger.debug("Skipping non-JSON line from claude: %s", line[:200])
                    continue
                if isinstance(event, dict):
                    yield self.parse_event(event)

            return_code = await process.wait()
            stderr_output = ""
            if stderr_task is not None:
                stderr_output = (await stderr_task).decode("utf-8", errors="replace").strip()
            if return_code != 0:
                raise AgentExecutionError(
                    f"Claude CLI failed with exit code {return_code}: {stderr_output}",
                    driver=self.name,
                    exit_code=return_code,
                )
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
            if stderr_task is not None and not stderr_task.done():
                stderr_task.cancel()
