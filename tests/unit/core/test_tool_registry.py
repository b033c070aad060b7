"""
Unit Tests for ToolRegistry

Verifies the executor's isolation boundary: tool exceptions, timeouts and
unknown names become failed ToolResults instead of propagating.
"""

import asyncio
from typing import Any

import pytest

from interviewcoach.core.domain.tool_registry import ToolRegistry
from interviewcoach.infrastructure.tools.base_tool import BaseTool


class EchoTool(BaseTool):
    estimated_time_ms = 100

    @property
    def name(self) -> str:
        return "echo"

    @property
    def description(self) -> str:
        return "Echo the text back"

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"text": {"type": "string", "description": "Text to echo"}},
            "required": ["text"],
        }

    async def execute(self, text: str = "", **kwargs: Any) -> dict[str, Any]:
        return {"success": True, "data": {"text": text}}


class BrokenTool(BaseTool):
    @property
    def name(self) -> str:
        return "broken"

    @property
    def description(self) -> str:
        return "Always raises"

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        raise ConnectionError("search API unreachable")


class SlowTool(BaseTool):
    @property
    def name(self) -> str:
        return "slow"

    @property
    def description(self) -> str:
        return "Takes too long"

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        await asyncio.sleep(5)
        return {"success": True, "data": {}}


class PlainTool(BaseTool):
    estimated_time_ms = 0

    @property
    def name(self) -> str:
        return "plain"

    @property
    def description(self) -> str:
        return "Returns a bare value"

    async def execute(self, **kwargs: Any) -> list[str]:
        return ["a", "b"]


@pytest.fixture
def registry():
    return ToolRegistry([EchoTool(), BrokenTool(), SlowTool(), PlainTool()])


class TestRegistration:
    def test_names_and_lookup(self, registry):
        assert registry.names == ["echo", "broken", "slow", "plain"]
        assert "echo" in registry
        assert registry.get("missing") is None
        assert len(registry) == 4

    def test_duplicate_name_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.register(EchoTool())

    def test_estimated_time(self, registry):
        assert registry.estimated_time_ms("echo") == 100
        assert registry.estimated_time_ms("broken") == 2000
        assert registry.estimated_time_ms("plain") == 2000
        assert registry.estimated_time_ms("missing") == 0

    def test_describe_lists_parameters(self, registry):
        description = registry.describe()

        assert description.startswith("Available tools:")
        assert "- echo: Echo the text back" in description
        assert "    - text: Text to echo" in description

    def test_describe_without_tools(self):
        assert "No tools are available" in ToolRegistry().describe()


class TestExecution:
    @pytest.mark.asyncio
    async def test_successful_call(self, registry):
        result = await registry.execute("echo", {"text": "hi"})

        assert result.success is True
        assert result.data == {"text": "hi"}
        assert result.error is None

    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self, registry):
        """Test a raising tool never escapes the executor."""
        result = await registry.execute("broken", {})

        assert result.success is False
        assert result.error == "search API unreachable"

    @pytest.mark.asyncio
    async def test_timeout_becomes_failed_result(self, registry):
        result = await registry.execute("slow", {}, timeout_ms=50)

        assert result.success is False
        assert result.error == "Tool timed out after 50ms"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        result = await registry.execute("missing", {})

        assert result.success is False
        assert result.error == "Tool 'missing' not found"

    @pytest.mark.asyncio
    async def test_bare_return_value_is_data(self, registry):
        result = await registry.execute("plain", {})

        assert result.success is True
        assert result.data == ["a", "b"]
