"""
Unit Tests for the generic ReAct agent

Uses a mocked oracle (AsyncMock) and small real tools to verify event
ordering, budget limits, tool isolation, trace reconstruction and result
consistency.
"""

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from interviewcoach.config.settings import TimeBudgetConfig
from interviewcoach.core.domain.agent import FAILED_OUTPUT_ERROR, AgentSpec, ReActAgent
from interviewcoach.core.domain.contracts import HintPayload, parse_contract
from interviewcoach.core.domain.events import AgentEventType
from interviewcoach.core.domain.grader import MultiGrader, RuleGrader
from interviewcoach.core.prompts.react_prompts import FINISH_NOW
from interviewcoach.infrastructure.streaming.event_channel import EventChannel
from interviewcoach.infrastructure.tools.base_tool import BaseTool

QUALITY_BUDGET = TimeBudgetConfig(60000, "quality")


class DraftHintTool(BaseTool):
    estimated_time_ms = 100

    def __init__(self):
        self.calls = 0

    @property
    def name(self) -> str:
        return "draft_hint"

    @property
    def description(self) -> str:
        return "Draft a hint"

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        self.calls += 1
        return {"success": True, "data": {"hint": "Start with the situation and your role"}}


class FailingTool(BaseTool):
    @property
    def name(self) -> str:
        return "flaky_search"

    @property
    def description(self) -> str:
        return "Unreliable external search"

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        raise RuntimeError("scraper blocked")


class ExpensiveTool(BaseTool):
    estimated_time_ms = 30000

    def __init__(self):
        self.calls = 0

    @property
    def name(self) -> str:
        return "deep_research"

    @property
    def description(self) -> str:
        return "Very slow research"

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        self.calls += 1
        return {"success": True, "data": {}}


def reply(content: str) -> dict[str, Any]:
    return {"success": True, "content": content}


def action(tool: str, params: dict | None = None) -> dict[str, Any]:
    return reply(f"Thought: use {tool}\nAction: {tool}\nAction Input: {json.dumps(params or {})}")


FINAL_HINT = reply('Thought: I have enough information.\nFinal Answer: {"hint": "Describe one concrete project"}')


def make_spec(tools=None, **overrides) -> AgentSpec:
    defaults = dict(
        name="hint_system",
        display_name="Hint Coach",
        build_prompt=lambda text: f"Help the candidate with: {text}",
        parse_output=lambda text, trace: parse_contract(HintPayload, text),
        tools=tools or [],
        description="Preparing a hint",
    )
    defaults.update(overrides)
    return AgentSpec(**defaults)


@pytest.fixture
def mock_llm_provider():
    """Mock LLMProviderProtocol."""
    return AsyncMock()


async def run_with_events(agent: ReActAgent, agent_input: Any):
    channel = EventChannel()
    subscription = channel.subscribe()
    result = await agent.execute(agent_input, channel=channel)
    await channel.close()
    events = [event async for event in subscription]
    return result, events


def event_types(events) -> list[str]:
    return [e.type.value for e in events]


class TestFinalAnswer:
    @pytest.mark.asyncio
    async def test_immediate_final_answer(self, mock_llm_provider):
        """Test one-step run produces the parsed output and ordered events."""
        mock_llm_provider.complete.return_value = FINAL_HINT
        agent = ReActAgent(make_spec(), mock_llm_provider, budget=QUALITY_BUDGET)

        result, events = await run_with_events(agent, "system design")

        assert result.success is True
        assert result.output == HintPayload(hint="Describe one concrete project")
        assert result.error is None
        assert len(result.trace.steps) == 1
        assert result.trace.early_stop is False
        assert event_types(events) == [
            "agent_start", "step_start", "thought", "step_complete", "agent_complete",
        ]

    @pytest.mark.asyncio
    async def test_prompt_contains_task_tools_and_budget(self, mock_llm_provider):
        mock_llm_provider.complete.return_value = FINAL_HINT
        agent = ReActAgent(make_spec([DraftHintTool()]), mock_llm_provider, budget=QUALITY_BUDGET)

        await agent.execute("system design")

        messages = mock_llm_provider.complete.call_args.kwargs["messages"]
        system = messages[0]["content"]
        assert "Help the candidate with: system design" in system
        assert "- draft_hint: Draft a hint" in system
        assert "Time Budget: You have" in system
        assert messages[1] == {"role": "user", "content": "Begin your analysis."}

    @pytest.mark.asyncio
    async def test_agent_complete_event_payload(self, mock_llm_provider):
        mock_llm_provider.complete.return_value = FINAL_HINT
        agent = ReActAgent(make_spec(), mock_llm_provider, budget=QUALITY_BUDGET)

        _, events = await run_with_events(agent, "x")

        complete = events[-1]
        assert complete.is_terminal
        assert complete.agent_name == "hint_system"
        assert complete.agent_display_name == "Hint Coach"
        assert complete.data["success"] is True
        assert complete.data["result"] == {"hint": "Describe one concrete project", "example_direction": None}
        assert complete.data["total_steps"] == 1
        assert events[0].data == {"total_steps": 5, "description": "Preparing a hint"}


class TestToolCalls:
    @pytest.mark.asyncio
    async def test_action_then_final_answer(self, mock_llm_provider):
        """Test tool execution followed by a final answer."""
        tool = DraftHintTool()
        mock_llm_provider.complete.side_effect = [action("draft_hint"), FINAL_HINT]
        agent = ReActAgent(make_spec([tool]), mock_llm_provider, budget=QUALITY_BUDGET)

        result, events = await run_with_events(agent, "x")

        assert result.success is True
        assert tool.calls == 1
        first = result.trace.steps[0]
        assert first.action.tool_name == "draft_hint"
        assert json.loads(first.observation) == {"hint": "Start with the situation and your role"}
        assert event_types(events) == [
            "agent_start",
            "step_start", "thought", "action_start", "action_complete", "step_complete",
            "step_start", "thought", "step_complete",
            "agent_complete",
        ]
        action_start = events[3]
        assert action_start.data["tool"] == "draft_hint"
        assert action_start.data["params"] == {}

    @pytest.mark.asyncio
    async def test_observation_is_sent_back_to_oracle(self, mock_llm_provider):
        mock_llm_provider.complete.side_effect = [action("draft_hint"), FINAL_HINT]
        agent = ReActAgent(make_spec([DraftHintTool()]), mock_llm_provider, budget=QUALITY_BUDGET)

        await agent.execute("x")

        second_call = mock_llm_provider.complete.call_args_list[1].kwargs["messages"]
        assert second_call[-2]["role"] == "assistant"
        assert second_call[-1]["content"].startswith("Observation: {")
        assert "Continue your analysis." in second_call[-1]["content"]

    @pytest.mark.asyncio
    async def test_failing_tool_does_not_stop_the_loop(self, mock_llm_provider):
        """Test a raising tool becomes an error observation."""
        mock_llm_provider.complete.side_effect = [action("flaky_search", {"q": "jobs"}), FINAL_HINT]
        agent = ReActAgent(make_spec([FailingTool()]), mock_llm_provider, budget=QUALITY_BUDGET)

        result, events = await run_with_events(agent, "x")

        assert result.success is True
        assert result.trace.steps[0].observation == "Error: scraper blocked"
        action_complete = next(e for e in events if e.type == AgentEventType.ACTION_COMPLETE)
        assert action_complete.data["success"] is False
        assert action_complete.data["error"] == "scraper blocked"

    @pytest.mark.asyncio
    async def test_unknown_tool_is_an_observation(self, mock_llm_provider):
        mock_llm_provider.complete.side_effect = [action("nope"), FINAL_HINT]
        agent = ReActAgent(make_spec([DraftHintTool()]), mock_llm_provider, budget=QUALITY_BUDGET)

        result = await agent.execute("x")

        assert result.trace.steps[0].observation == "Error: Tool 'nope' not found"
        assert result.success is True

    @pytest.mark.asyncio
    async def test_tool_calls_are_sequential(self, mock_llm_provider):
        """Test that no two tool calls of one run overlap."""
        active = 0
        overlaps = 0

        class TrackingTool(DraftHintTool):
            async def execute(self, **kwargs: Any) -> dict[str, Any]:
                nonlocal active, overlaps
                active += 1
                if active > 1:
                    overlaps += 1
                await asyncio.sleep(0.01)
                active -= 1
                return await super().execute(**kwargs)

        tool = TrackingTool()
        mock_llm_provider.complete.side_effect = [action("draft_hint")] * 3 + [FINAL_HINT]
        agent = ReActAgent(make_spec([tool]), mock_llm_provider, budget=QUALITY_BUDGET)

        result = await agent.execute("x")

        assert tool.calls == 3
        assert overlaps == 0
        assert [s.step_number for s in result.trace.steps] == [1, 2, 3, 4]


class TestBudget:
    @pytest.mark.asyncio
    async def test_never_exceeds_max_steps(self, mock_llm_provider):
        """Test balanced budgets stop after three steps."""
        mock_llm_provider.complete.return_value = reply("Thought: still thinking")
        agent = ReActAgent(make_spec(), mock_llm_provider, budget=TimeBudgetConfig(60000, "balanced"))

        result = await agent.execute("x")

        assert mock_llm_provider.complete.call_count == 3
        assert len(result.trace.steps) == 3
        assert result.trace.early_stop_reason == "max_steps_reached"

    @pytest.mark.asyncio
    async def test_spec_max_steps_caps_budget(self, mock_llm_provider):
        mock_llm_provider.complete.return_value = reply("Thought: still thinking")
        agent = ReActAgent(make_spec(max_steps=1), mock_llm_provider, budget=QUALITY_BUDGET)

        await agent.execute("x")

        assert mock_llm_provider.complete.call_count == 1

    @pytest.mark.asyncio
    async def test_llm_timeout_stops_early(self, mock_llm_provider):
        async def never_answers(**kwargs):
            await asyncio.sleep(5)

        mock_llm_provider.complete.side_effect = never_answers
        agent = ReActAgent(
            make_spec(avg_step_ms=10),
            mock_llm_provider,
            budget=TimeBudgetConfig(100, "speed"),
        )

        result, events = await run_with_events(agent, "x")

        assert result.success is False
        assert result.trace.early_stop_reason == "llm_timeout"
        assert result.trace.total_time_ms < 1000
        assert "error" in event_types(events)
        assert event_types(events)[-1] == "agent_complete"

    @pytest.mark.asyncio
    async def test_insufficient_time_for_tool(self, mock_llm_provider, clock):
        """Test a tool whose estimate exceeds the remaining budget is not run."""
        tool = ExpensiveTool()
        mock_llm_provider.complete.return_value = action("deep_research")
        agent = ReActAgent(
            make_spec([tool]),
            mock_llm_provider,
            budget=TimeBudgetConfig(10000, "balanced"),
            clock=clock,
        )

        result, events = await run_with_events(agent, "x")

        assert tool.calls == 0
        assert result.trace.early_stop_reason == "insufficient_time_for_tool"
        assert "action_start" not in event_types(events)
        assert event_types(events)[-2:] == ["step_complete", "agent_complete"]

    @pytest.mark.asyncio
    async def test_finish_now_near_timeout(self, mock_llm_provider, clock):
        """Test the oracle is told to finish once the warning threshold passes."""
        seen: list[list[dict]] = []
        replies = iter([reply("Thought: a"), reply("Thought: b"), FINAL_HINT])

        async def slow_oracle(messages, **kwargs):
            seen.append([dict(m) for m in messages])
            clock.advance(4000)
            return next(replies)

        mock_llm_provider.complete.side_effect = slow_oracle
        agent = ReActAgent(
            make_spec(),
            mock_llm_provider,
            budget=TimeBudgetConfig(20000, "balanced", 7000),
            clock=clock,
        )

        result = await agent.execute("x")

        assert result.success is True
        assert FINISH_NOW not in seen[1][-1]["content"]
        assert FINISH_NOW in seen[2][-1]["content"]

    @pytest.mark.asyncio
    async def test_total_time_within_budget(self, mock_llm_provider, clock):
        async def oracle(messages, **kwargs):
            clock.advance(2500)
            return reply("Thought: thinking")

        mock_llm_provider.complete.side_effect = oracle
        agent = ReActAgent(make_spec(), mock_llm_provider, budget=TimeBudgetConfig(6000, "quality"), clock=clock)

        result = await agent.execute("x")

        assert result.trace.total_time_ms <= 6000 + 2500
        assert result.trace.early_stop_reason == "budget_expired"


class TestRecovery:
    @pytest.mark.asyncio
    async def test_reconstructs_output_from_observations(self, mock_llm_provider):
        """Test free-text replies fall back to structured tool observations."""
        mock_llm_provider.complete.side_effect = [
            action("draft_hint"),
            reply("I am not sure how to phrase this"),
        ]
        agent = ReActAgent(make_spec([DraftHintTool()], max_steps=2), mock_llm_provider, budget=QUALITY_BUDGET)

        result = await agent.execute("x")

        assert result.success is True
        assert result.output.hint == "Start with the situation and your role"
        assert result.trace.early_stop_reason == "max_steps_reached"

    @pytest.mark.asyncio
    async def test_custom_reconstruction_strategy(self, mock_llm_provider):
        fragments_seen = []

        def reconstruct(fragments, trace):
            fragments_seen.extend(fragments)
            return HintPayload(hint="assembled from tools")

        mock_llm_provider.complete.side_effect = [action("draft_hint"), reply("Final Answer: not json")]
        agent = ReActAgent(
            make_spec([DraftHintTool()], reconstruct_output=reconstruct),
            mock_llm_provider,
            budget=QUALITY_BUDGET,
        )

        result = await agent.execute("x")

        assert result.output.hint == "assembled from tools"
        assert fragments_seen == [{"hint": "Start with the situation and your role"}]

    @pytest.mark.asyncio
    async def test_reconstruction_uses_untruncated_tool_data(self, mock_llm_provider):
        """Test a large tool result still feeds recovery after the observation is truncated."""

        class JobListTool(DraftHintTool):
            @property
            def name(self) -> str:
                return "search_jobs"

            async def execute(self, **kwargs: Any) -> dict[str, Any]:
                jobs = [
                    {"company": f"Company {i}", "description": "Backend role on payments " * 5}
                    for i in range(40)
                ]
                return {"success": True, "data": {"jobs": jobs}}

        def reconstruct(fragments, trace):
            return HintPayload(hint=f"Look at {fragments[0]['jobs'][0]['company']}")

        mock_llm_provider.complete.side_effect = [
            action("search_jobs"),
            reply("Several companies look promising"),
            reply("Still thinking about the list"),
        ]
        agent = ReActAgent(
            make_spec([JobListTool()], reconstruct_output=reconstruct, max_steps=3),
            mock_llm_provider,
            budget=QUALITY_BUDGET,
        )

        result = await agent.execute("x")

        observation = result.trace.steps[0].observation
        assert len(observation) > 4000
        assert "TRUNCATED" in observation
        assert result.success is True
        assert result.output.hint == "Look at Company 0"

    @pytest.mark.asyncio
    async def test_failed_tool_is_not_a_fragment(self, mock_llm_provider):
        mock_llm_provider.complete.side_effect = [action("flaky_search"), reply("no markers here")]
        agent = ReActAgent(make_spec([FailingTool()], max_steps=2), mock_llm_provider, budget=QUALITY_BUDGET)

        result = await agent.execute("x")

        assert result.trace.steps[0].tool_data is None
        assert result.success is False

    @pytest.mark.asyncio
    async def test_nothing_usable_fails(self, mock_llm_provider):
        mock_llm_provider.complete.return_value = reply("Final Answer: no idea")
        agent = ReActAgent(make_spec(), mock_llm_provider, budget=QUALITY_BUDGET)

        result, events = await run_with_events(agent, "x")

        assert result.success is False
        assert result.output is None
        assert result.error == FAILED_OUTPUT_ERROR
        assert events[-1].data["success"] is False
        assert events[-1].data["error"] == FAILED_OUTPUT_ERROR

    @pytest.mark.asyncio
    async def test_oracle_failure_is_an_early_stop(self, mock_llm_provider):
        mock_llm_provider.complete.return_value = {"success": False, "error": "rate limited"}
        agent = ReActAgent(make_spec(), mock_llm_provider, budget=QUALITY_BUDGET)

        result, events = await run_with_events(agent, "x")

        assert result.success is False
        assert result.trace.early_stop_reason == "invalid_llm_response"
        error = next(e for e in events if e.type == AgentEventType.ERROR)
        assert error.data["error"] == "rate limited"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "replies",
        [
            [FINAL_HINT],
            [reply("Final Answer: nonsense")],
            [{"success": False, "error": "down"}],
            [action("draft_hint"), reply("no markers at all")],
        ],
    )
    async def test_success_matches_output(self, mock_llm_provider, replies):
        """Test success is always equivalent to having an output."""
        mock_llm_provider.complete.side_effect = replies + [reply("Thought: idle")] * 5
        agent = ReActAgent(make_spec([DraftHintTool()], max_steps=2), mock_llm_provider, budget=QUALITY_BUDGET)

        result = await agent.execute("x")

        assert result.success == (result.output is not None)


class TestGrading:
    @pytest.mark.asyncio
    async def test_low_grade_is_advisory(self, mock_llm_provider):
        mock_llm_provider.complete.return_value = FINAL_HINT
        grader = MultiGrader([RuleGrader("always_low", lambda output, context: 0.1)])
        agent = ReActAgent(
            make_spec(min_score=0.6),
            mock_llm_provider,
            budget=QUALITY_BUDGET,
            grader=grader,
        )

        result = await agent.execute("x")

        assert result.success is True
        assert result.grade.overall_score == pytest.approx(0.1)
        assert result.grade.details[0].grader_name == "always_low"


class TestStreaming:
    @pytest.mark.asyncio
    async def test_execute_stream_yields_all_events(self, mock_llm_provider):
        mock_llm_provider.complete.side_effect = [action("draft_hint"), FINAL_HINT]
        agent = ReActAgent(make_spec([DraftHintTool()]), mock_llm_provider, budget=QUALITY_BUDGET)

        events = [event async for event in agent.execute_stream("x")]

        assert event_types(events)[0] == "agent_start"
        assert event_types(events)[-1] == "agent_complete"
        assert len(events) == 10

    @pytest.mark.asyncio
    async def test_several_subscribers_see_the_same_sequence(self, mock_llm_provider):
        mock_llm_provider.complete.return_value = FINAL_HINT
        agent = ReActAgent(make_spec(), mock_llm_provider, budget=QUALITY_BUDGET)
        channel = EventChannel()
        ui, audit = channel.subscribe(), channel.subscribe()

        await agent.execute("x", channel=channel)
        await channel.close()

        ui_events = [e async for e in ui]
        audit_events = [e async for e in audit]
        assert ui_events == audit_events
        assert len(ui_events) == 5

    @pytest.mark.asyncio
    async def test_step_ids_are_shared_within_a_step(self, mock_llm_provider):
        mock_llm_provider.complete.side_effect = [action("draft_hint"), FINAL_HINT]
        agent = ReActAgent(make_spec([DraftHintTool()]), mock_llm_provider, budget=QUALITY_BUDGET)

        _, events = await run_with_events(agent, "x")

        first_step_ids = {e.data["step_id"] for e in events[1:6]}
        assert len(first_step_ids) == 1
        assert next(iter(first_step_ids)).startswith("hint_system_step_1_")
