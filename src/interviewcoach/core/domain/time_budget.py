"""
Time Budget Manager

Tracks elapsed and remaining time of one agent run against a deadline,
recommends how many reasoning steps fit, and races awaitables against the
remaining time.
"""

import asyncio
import math
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from interviewcoach.config.settings import TimeBudgetConfig, get_time_budget

T = TypeVar("T")

_MISSING = object()

MAX_STEPS_BY_PRIORITY = {"speed": 2, "quality": 5, "balanced": 3}


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class TimeBudgetManager:
    """
    Deadline tracker for one agent run.

    Args:
        config: Budget (max time, priority, warning threshold)
        clock: Millisecond clock, injectable for tests
    """

    def __init__(
        self,
        config: TimeBudgetConfig,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.config = config
        self._clock = clock
        self._start = clock()
        self._checkpoints: list[tuple[str, int]] = []
        self.logger = structlog.get_logger().bind(component="time_budget")

    @classmethod
    def for_module(cls, module: str, clock: Callable[[], float] = _monotonic_ms) -> "TimeBudgetManager":
        return cls(get_time_budget(module), clock=clock)

    @property
    def max_time_ms(self) -> int:
        return self.config.max_time_ms

    @property
    def priority(self) -> str:
        return self.config.priority

    @property
    def elapsed_ms(self) -> int:
        return int(self._clock() - self._start)

    @property
    def remaining_ms(self) -> int:
        return max(0, self.config.max_time_ms - self.elapsed_ms)

    @property
    def is_expired(self) -> bool:
        return self.elapsed_ms >= self.config.max_time_ms

    @property
    def is_near_timeout(self) -> bool:
        return self.elapsed_ms >= self.config.warning_ms

    def has_time_for(self, estimated_ms: int) -> bool:
        return self.remaining_ms >= estimated_ms

    def should_continue_thinking(self, current_quality: float, target_quality: float = 0.8) -> bool:
        """
        Decide whether another reasoning round is worth its time.

        speed stops early at modest quality, quality keeps going while time
        allows, balanced trades usage ratio against the remaining quality gap.
        """
        remaining = self.remaining_ms
        if self.priority == "speed":
            return remaining > 1000 and current_quality < 0.6
        if self.priority == "quality":
            return remaining > 2000 and current_quality < target_quality

        usage_ratio = self.elapsed_ms / self.config.max_time_ms
        quality_gap = target_quality - current_quality
        if usage_ratio > 0.6 and quality_gap < 0.2:
            return False
        if usage_ratio > 0.8:
            return False
        return current_quality < target_quality

    def recommended_max_steps(self, avg_step_ms: int = 2000) -> int:
        possible = math.floor(self.remaining_ms / avg_step_ms)
        cap = MAX_STEPS_BY_PRIORITY.get(self.priority, MAX_STEPS_BY_PRIORITY["balanced"])
        return min(possible, cap)

    def checkpoint(self, name: str) -> None:
        self._checkpoints.append((name, self.elapsed_ms))
        self.logger.debug("budget_checkpoint", name=name, elapsed_ms=self.elapsed_ms)

    def report(self) -> dict[str, Any]:
        return {
            "max_time_ms": self.config.max_time_ms,
            "elapsed_ms": self.elapsed_ms,
            "remaining_ms": self.remaining_ms,
            "priority": self.priority,
            "expired": self.is_expired,
            "checkpoints": [{"name": n, "elapsed_ms": ms} for n, ms in self._checkpoints],
        }

    async def with_timeout(self, awaitable: Awaitable[T], fallback: Any = _MISSING) -> T:
        """
        Race ``awaitable`` against the remaining budget.

        Returns:
            The awaitable's result, or ``fallback`` on timeout when given

        Raises:
            asyncio.TimeoutError: On timeout when no fallback is given
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.remaining_ms / 1000)
        except asyncio.TimeoutError:
            self.logger.warning("budget_timeout", elapsed_ms=self.elapsed_ms)
            if fallback is _MISSING:
                raise
            return fallback

    def reset(self) -> None:
        self._start = self._clock()
        self._checkpoints = []
