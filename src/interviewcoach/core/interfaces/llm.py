"""
LLM Provider Protocol

The reasoning oracle as seen by the domain: messages in, text (or a JSON
string) out. Implementations never raise for provider errors; they return
``{"success": False, "error": ...}`` instead.
"""

from typing import Any, Protocol


class LLMProviderProtocol(Protocol):
    """Protocol for chat completion providers."""

    async def complete(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Perform one chat completion.

        Args:
            messages: Ordered ``{"role", "content"}`` dicts
            model: Model alias (provider default when None)
            **kwargs: Provider parameters such as ``temperature`` or
                      ``response_format={"type": "json_object"}``

        Returns:
            Dict with ``success``, ``content`` (on success) and ``error``
            (on failure)
        """
        ...
