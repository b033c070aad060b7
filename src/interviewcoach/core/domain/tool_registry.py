"""
Tool Registry & Executor

Holds the named tools available to one agent and runs a single tool call.
Nothing a tool does escapes this boundary: exceptions and timeouts become
``ToolResult(success=False)`` so a flaky dependency degrades the agent's
output instead of crashing its loop.
"""

import asyncio
import time
from typing import Any

import structlog

from interviewcoach.core.domain.models import ToolResult
from interviewcoach.core.interfaces.tools import ToolProtocol
from interviewcoach.infrastructure.tools.tool_converter import (
    normalize_tool_output,
    tools_to_prompt_description,
)

DEFAULT_ESTIMATED_TIME_MS = 2000


class ToolRegistry:
    """Name-indexed tool set with an isolating executor."""

    def __init__(self, tools: list[ToolProtocol] | None = None):
        self._tools: dict[str, ToolProtocol] = {}
        self.logger = structlog.get_logger().bind(component="tool_registry")
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolProtocol) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> ToolProtocol | None:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def describe(self) -> str:
        return tools_to_prompt_description(self._tools)

    def estimated_time_ms(self, name: str) -> int:
        tool = self._tools.get(name)
        if tool is None:
            return 0
        return getattr(tool, "estimated_time_ms", None) or DEFAULT_ESTIMATED_TIME_MS

    async def execute(
        self,
        name: str,
        params: dict[str, Any],
        timeout_ms: int | None = None,
    ) -> ToolResult:
        """
        Execute one tool call.

        Args:
            name: Tool name
            params: Keyword parameters for the tool
            timeout_ms: Upper bound for the call (no bound when None)

        Returns:
            ToolResult; never raises for tool-side failures
        """
        start = time.monotonic()

        def _elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        tool = self._tools.get(name)
        if tool is None:
            self.logger.warning("tool_not_found", tool=name, available=self.names)
            return ToolResult(success=False, error=f"Tool '{name}' not found", execution_time_ms=0)

        self.logger.info("tool_execute_start", tool=name, params=list(params))
        try:
            call = tool.execute(**params)
            if timeout_ms is not None:
                raw = await asyncio.wait_for(call, timeout=timeout_ms / 1000)
            else:
                raw = await call
        except asyncio.TimeoutError:
            self.logger.warning("tool_timeout", tool=name, timeout_ms=timeout_ms)
            return ToolResult(
                success=False,
                error=f"Tool timed out after {timeout_ms}ms",
                execution_time_ms=_elapsed(),
            )
        except Exception as e:
            self.logger.warning("tool_execute_failed", tool=name, error=str(e), error_type=type(e).__name__)
            return ToolResult(
                success=False,
                error=str(e) or type(e).__name__,
                execution_time_ms=_elapsed(),
            )

        success, data, error = normalize_tool_output(raw)
        self.logger.info("tool_execute_complete", tool=name, success=success, duration_ms=_elapsed())
        return ToolResult(success=success, data=data, error=error, execution_time_ms=_elapsed())
