"""Base class for agent tools."""

from abc import ABC, abstractmethod
from typing import Any


class BaseTool(ABC):
    """
    Base class for tools used by the reasoning loop.

    Subclasses declare ``name``, ``description`` and ``parameters_schema``
    and implement ``execute`` returning ``{"success": bool, "data"|"error"}``.
    """

    display_name: str | None = None
    estimated_time_ms: int = 2000

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    @property
    def function_tool_schema(self) -> dict[str, Any]:
        """OpenAI-style function schema for this tool."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema,
            },
        }

    @abstractmethod
    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        pass

    def validate_params(self, **kwargs: Any) -> tuple[bool, str | None]:
        """Check that every required parameter is present."""
        required = self.parameters_schema.get("required", [])
        missing = [p for p in required if p not in kwargs or kwargs[p] in (None, "")]
        if missing:
            return False, f"Missing required parameters: {', '.join(missing)}"
        return True, None
