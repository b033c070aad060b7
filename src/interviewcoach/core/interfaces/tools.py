"""
Tool Protocol

A tool is a named, externally implemented capability invoked by the agent
loop. ``estimated_time_ms`` is used for budget admission control before the
tool is executed.
"""

from typing import Any, Protocol


class ToolProtocol(Protocol):
    """Protocol for agent tools."""

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the accepted parameters."""
        ...

    @property
    def estimated_time_ms(self) -> int: ...

    async def execute(self, **params: Any) -> dict[str, Any]:
        """
        Run the tool.

        Returns:
            Dict with ``success`` and either ``data`` or ``error``. Raising is
            allowed; the registry converts exceptions into failed results.
        """
        ...
