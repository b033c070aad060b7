"""Event sink Protocol used by the agent core to publish progress events."""

from typing import Protocol

from interviewcoach.core.domain.events import AgentEvent


class EventSinkProtocol(Protocol):
    async def publish(self, event: AgentEvent) -> None:
        """Deliver ``event`` to every subscriber, in publication order."""
        ...
