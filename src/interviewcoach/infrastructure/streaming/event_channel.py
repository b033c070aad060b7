"""
Event Channel - bounded multi-subscriber async broadcast.

The agent core publishes AgentEvents without knowing who listens. Each
subscriber owns a bounded queue; ``publish`` waits for room in every queue,
so events are never dropped and every subscriber sees them in publication
order.
"""

import asyncio
from collections.abc import AsyncIterator

import structlog

from interviewcoach.core.domain.events import AgentEvent

_CLOSED = object()


class Subscription:
    """Async iterator over the events published after subscribing."""

    def __init__(self, channel: "EventChannel", maxsize: int):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._done = False

    async def _deliver(self, item: object) -> None:
        await self._queue.put(item)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> AgentEvent:
        if self._done:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._done = True
            raise StopAsyncIteration
        return item

    def unsubscribe(self) -> None:
        self._done = True
        self._channel._remove(self)


class EventChannel:
    """
    Broadcast channel for one or more agent runs.

    Args:
        maxsize: Capacity of each subscriber queue
    """

    def __init__(self, maxsize: int = 1000):
        self._maxsize = maxsize
        self._subscribers: list[Subscription] = []
        self._closed = False
        self.logger = structlog.get_logger().bind(component="event_channel")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        if self._closed:
            raise RuntimeError("Cannot subscribe to a closed channel")
        subscription = Subscription(self, self._maxsize)
        self._subscribers.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    async def publish(self, event: AgentEvent) -> None:
        if self._closed:
            raise RuntimeError("Cannot publish to a closed channel")
        for subscription in list(self._subscribers):
            await subscription._deliver(event)

    async def close(self) -> None:
        """Signal end-of-stream to every subscriber. Idempotent."""
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscribers):
            await subscription._deliver(_CLOSED)
        self.logger.debug("channel_closed", subscribers=len(self._subscribers))


async def log_events(subscription: AsyncIterator[AgentEvent]) -> int:
    """Mirror a subscription into structlog. Returns the number of events seen."""
    logger = structlog.get_logger().bind(component="agent_events")
    count = 0
    async for event in subscription:
        count += 1
        logger.info(
            "agent_event",
            type=event.type.value,
            agent=event.agent_name,
            keys=sorted(event.data),
        )
    return count
