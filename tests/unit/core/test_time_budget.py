"""Unit Tests for TimeBudgetManager."""

import asyncio

import pytest

from interviewcoach.config.settings import TimeBudgetConfig, get_time_budget
from interviewcoach.core.domain.time_budget import TimeBudgetManager


def make_budget(clock, max_ms=10000, priority="balanced", warning_ms=None):
    return TimeBudgetManager(TimeBudgetConfig(max_ms, priority, warning_ms), clock=clock)


class TestBudgetTracking:
    def test_elapsed_and_remaining(self, clock):
        budget = make_budget(clock)
        clock.advance(2500)

        assert budget.elapsed_ms == 2500
        assert budget.remaining_ms == 7500
        assert budget.is_expired is False

    def test_remaining_never_negative(self, clock):
        budget = make_budget(clock, max_ms=1000)
        clock.advance(5000)

        assert budget.remaining_ms == 0
        assert budget.is_expired is True

    def test_near_timeout_defaults_to_seventy_percent(self, clock):
        budget = make_budget(clock, max_ms=10000)
        clock.advance(6999)
        assert budget.is_near_timeout is False
        clock.advance(1)
        assert budget.is_near_timeout is True

    def test_explicit_warning_threshold(self, clock):
        budget = make_budget(clock, max_ms=3000, warning_ms=2000)
        clock.advance(2000)

        assert budget.is_near_timeout is True

    def test_has_time_for(self, clock):
        budget = make_budget(clock, max_ms=5000)
        clock.advance(3000)

        assert budget.has_time_for(2000) is True
        assert budget.has_time_for(2001) is False

    def test_reset_restarts_the_clock(self, clock):
        budget = make_budget(clock)
        budget.checkpoint("first")
        clock.advance(4000)
        budget.reset()

        assert budget.elapsed_ms == 0
        assert budget.report()["checkpoints"] == []

    def test_report(self, clock):
        budget = make_budget(clock, priority="quality")
        clock.advance(100)
        budget.checkpoint("prompt_built")

        report = budget.report()
        assert report["elapsed_ms"] == 100
        assert report["priority"] == "quality"
        assert report["checkpoints"] == [{"name": "prompt_built", "elapsed_ms": 100}]


class TestStepPlanning:
    """recommended_max_steps caps by priority."""

    @pytest.mark.parametrize(
        "priority,max_ms,expected",
        [
            ("speed", 60000, 2),
            ("quality", 60000, 5),
            ("balanced", 60000, 3),
            ("quality", 5000, 2),
        ],
    )
    def test_recommended_max_steps(self, clock, priority, max_ms, expected):
        budget = make_budget(clock, max_ms=max_ms, priority=priority)

        assert budget.recommended_max_steps(2000) == expected

    def test_no_steps_when_expired(self, clock):
        budget = make_budget(clock, max_ms=1000)
        clock.advance(1000)

        assert budget.recommended_max_steps() == 0

    def test_configured_module_budgets(self):
        hint = get_time_budget("hint_system")
        assert (hint.max_time_ms, hint.priority, hint.warning_ms) == (3000, "speed", 2000)
        assert get_time_budget("feedback_generation").max_time_ms == 60000
        assert get_time_budget("unknown_module").max_time_ms == 10000


class TestShouldContinueThinking:
    def test_speed_stops_at_modest_quality(self, clock):
        budget = make_budget(clock, priority="speed")

        assert budget.should_continue_thinking(0.5) is True
        assert budget.should_continue_thinking(0.6) is False

    def test_quality_continues_until_target(self, clock):
        budget = make_budget(clock, priority="quality")

        assert budget.should_continue_thinking(0.79) is True
        assert budget.should_continue_thinking(0.8) is False

    def test_quality_stops_when_little_time_left(self, clock):
        budget = make_budget(clock, max_ms=10000, priority="quality")
        clock.advance(8500)

        assert budget.should_continue_thinking(0.1) is False

    def test_balanced_stops_when_close_to_target_late(self, clock):
        budget = make_budget(clock, max_ms=10000)
        clock.advance(6500)

        assert budget.should_continue_thinking(0.7) is False
        assert budget.should_continue_thinking(0.4) is True

    def test_balanced_stops_past_eighty_percent(self, clock):
        budget = make_budget(clock, max_ms=10000)
        clock.advance(8500)

        assert budget.should_continue_thinking(0.1) is False


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_result_within_budget(self):
        budget = TimeBudgetManager(TimeBudgetConfig(1000))

        async def quick():
            return "done"

        assert await budget.with_timeout(quick()) == "done"

    @pytest.mark.asyncio
    async def test_returns_fallback_on_timeout(self):
        budget = TimeBudgetManager(TimeBudgetConfig(50))

        result = await budget.with_timeout(asyncio.sleep(1, result="late"), fallback="fallback")

        assert result == "fallback"

    @pytest.mark.asyncio
    async def test_raises_without_fallback(self):
        budget = TimeBudgetManager(TimeBudgetConfig(50))

        with pytest.raises(asyncio.TimeoutError):
            await budget.with_timeout(asyncio.sleep(1))
