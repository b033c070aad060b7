"""
Tool Converter - text grammar formatting for the reasoning loop.

Converts tool definitions into the tool catalogue placed in the agent's
system prompt, and tool results into observation text fed back to the
oracle.
"""

import json
from typing import Any

from interviewcoach.core.domain.models import ToolResult
from interviewcoach.core.interfaces.tools import ToolProtocol

DEFAULT_MAX_OBSERVATION_CHARS = 4000


def tools_to_prompt_description(tools: dict[str, ToolProtocol]) -> str:
    """
    Render the tool catalogue for the system prompt.

    Args:
        tools: Dictionary mapping tool names to tools

    Returns:
        Text block such as::

            Available tools:
            - search_jobs: Search job listings
              Parameters:
                - title: Job title keywords
    """
    if not tools:
        return "No tools are available. Reason directly and give a Final Answer."

    lines = ["Available tools:"]
    for tool in tools.values():
        lines.append(f"- {tool.name}: {tool.description}")
        properties = (tool.parameters_schema or {}).get("properties", {})
        if properties:
            lines.append("  Parameters:")
            for param, spec in properties.items():
                lines.append(f"    - {param}: {spec.get('description', spec.get('type', ''))}")
    return "\n".join(lines)


def tool_result_to_observation(
    result: ToolResult,
    max_chars: int = DEFAULT_MAX_OBSERVATION_CHARS,
) -> str:
    """
    Convert a tool result into observation text.

    Successful results become the JSON of their data, failures become
    ``Error: <message>``. Long observations are truncated.
    """
    if not result.success:
        return f"Error: {result.error or 'Unknown error'}"
    text = json.dumps(result.data, ensure_ascii=False, default=str)
    return truncate_text(text, max_chars)


def truncate_text(value: str, max_chars: int) -> str:
    if len(value) <= max_chars:
        return value
    overflow = len(value) - max_chars
    return value[:max_chars] + f"\n\n[... TRUNCATED - {overflow} more chars ...]"


def normalize_tool_output(raw: Any) -> tuple[bool, Any, str | None]:
    """
    Map a raw ``execute`` return value to ``(success, data, error)``.

    Dicts with a ``success`` key follow the ``{"success", "data", "error"}``
    convention; anything else counts as successful data.
    """
    if isinstance(raw, dict) and "success" in raw:
        success = bool(raw["success"])
        if "data" in raw:
            data = raw["data"]
        else:
            data = {k: v for k, v in raw.items() if k not in ("success", "error")} or None
        error = raw.get("error")
        if not success and not error:
            error = "Tool reported failure"
        return success, data, error
    return True, raw, None
