"""
Agent Execution Core - generic time-bounded ReAct loop.

One agent implementation serves every reasoning task. What differs between
tasks is a capability bundle (AgentSpec):
- build_prompt: input -> task prompt
- parse_output: final text + trace -> typed output (or None)
- tools: the tools the oracle may call
- reconstruct_output: optional recovery of an output from tool outputs

Loop per step: call the oracle (raced against the budget) -> parse the reply
-> either finish, run at most one tool, or nudge the oracle to continue.
Every transition is published as an AgentEvent after it happened.
"""

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator, Callable
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Generic, TypeVar

import structlog
from pydantic import BaseModel

from interviewcoach.config.settings import TimeBudgetConfig, get_time_budget
from interviewcoach.core.domain.events import (
    AgentEvent,
    AgentEventType,
    create_agent_event,
    make_step_id,
)
from interviewcoach.core.domain.grader import MultiGrader
from interviewcoach.core.domain.models import AgentResult, ReActTrace, ThoughtStep
from interviewcoach.core.domain.step_parser import parse_step
from interviewcoach.core.domain.time_budget import TimeBudgetManager, _monotonic_ms
from interviewcoach.core.domain.tool_registry import ToolRegistry
from interviewcoach.core.interfaces.events import EventSinkProtocol
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.interfaces.tools import ToolProtocol
from interviewcoach.core.prompts.react_prompts import (
    BEGIN_MESSAGE,
    CONTINUE_NUDGE,
    FINISH_NOW,
    OBSERVATION_MESSAGE,
    build_system_prompt,
)
from interviewcoach.infrastructure.streaming.event_channel import EventChannel
from interviewcoach.infrastructure.tools.tool_converter import tool_result_to_observation

TIn = TypeVar("TIn")
TOut = TypeVar("TOut")

FAILED_OUTPUT_ERROR = "Failed to generate valid output"


@dataclass
class AgentSpec(Generic[TIn, TOut]):
    """
    Capability bundle that turns the generic loop into a specific agent.

    Attributes:
        name: Module name; also selects the default time budget
        display_name: Human readable name used in events
        build_prompt: Builds the task prompt from the input
        parse_output: Parses final text into the output, None if unusable
        tools: Tools the oracle may call
        reconstruct_output: Builds an output from structured tool outputs
                            when the final text is unusable
        description: Shown in the agent_start event
        avg_step_ms: Expected duration of one step, used for step planning
        max_steps: Optional hard cap below the budget recommendation
        min_score: Grades below this are logged as low quality
    """

    name: str
    display_name: str
    build_prompt: Callable[[TIn], str]
    parse_output: Callable[[str, ReActTrace], TOut | None]
    tools: list[ToolProtocol] = field(default_factory=list)
    reconstruct_output: Callable[[list[Any], ReActTrace], TOut | None] | None = None
    description: str = ""
    avg_step_ms: int = 2000
    max_steps: int | None = None
    min_score: float | None = None


def to_jsonable(value: Any) -> Any:
    """Convert outputs (dataclasses, pydantic models, lists) for event payloads."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, list):
        return [to_jsonable(v) for v in value]
    return value


class ReActAgent(Generic[TIn, TOut]):
    """
    Generic ReAct executor driven by an AgentSpec.

    Args:
        spec: Capability bundle
        llm_provider: Reasoning oracle
        budget: Time budget (defaults to the budget configured for spec.name)
        grader: Optional quality grader
        model_alias: Model alias passed to the oracle
        temperature: Sampling temperature for reasoning steps
        clock: Millisecond clock for the budget, injectable for tests
    """

    def __init__(
        self,
        spec: AgentSpec[TIn, TOut],
        llm_provider: LLMProviderProtocol,
        budget: TimeBudgetConfig | None = None,
        grader: MultiGrader | None = None,
        model_alias: str = "main",
        temperature: float = 0.3,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.spec = spec
        self.llm_provider = llm_provider
        self.budget_config = budget or get_time_budget(spec.name)
        self.grader = grader
        self.model_alias = model_alias
        self.temperature = temperature
        self._clock = clock
        self.tools = ToolRegistry(spec.tools)
        self.logger = structlog.get_logger().bind(component="react_agent", agent=spec.name)

    async def _emit(
        self,
        channel: EventSinkProtocol | None,
        event_type: AgentEventType,
        **data: Any,
    ) -> None:
        if channel is None:
            return
        event = create_agent_event(event_type, self.spec.name, self.spec.display_name, **data)
        await channel.publish(event)

    async def execute(
        self,
        agent_input: TIn,
        channel: EventSinkProtocol | None = None,
    ) -> AgentResult[TOut]:
        """
        Run the reasoning loop to completion.

        Never raises for oracle or tool failures: the result carries an
        early-stop reason and, when nothing was recovered, an error.

        Args:
            agent_input: Input passed to build_prompt
            channel: Optional sink receiving the run's AgentEvents

        Returns:
            AgentResult with output (or None), trace and optional grade
        """
        budget = TimeBudgetManager(self.budget_config, clock=self._clock)
        trace = ReActTrace()

        max_steps = budget.recommended_max_steps(self.spec.avg_step_ms)
        if self.spec.max_steps is not None:
            max_steps = min(max_steps, self.spec.max_steps)

        self.logger.info(
            "agent_execute_start",
            max_steps=max_steps,
            budget_ms=budget.max_time_ms,
            tools=self.tools.names,
        )
        await self._emit(
            channel,
            AgentEventType.AGENT_START,
            total_steps=max_steps,
            description=self.spec.description,
        )

        system_prompt = build_system_prompt(
            self.spec.build_prompt(agent_input),
            self.tools.describe(),
            budget.remaining_ms,
        )
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": BEGIN_MESSAGE},
        ]

        step = 0
        finish_now_sent = False
        while step < max_steps and not budget.is_expired:
            step += 1
            step_id = make_step_id(self.spec.name, step)
            step_started_ms = budget.elapsed_ms
            await self._emit(channel, AgentEventType.STEP_START, step_id=step_id, step_number=step)

            # 1. Oracle call, bounded by the remaining budget
            try:
                reply = await budget.with_timeout(
                    self.llm_provider.complete(
                        messages=messages,
                        model=self.model_alias,
                        temperature=self.temperature,
                    )
                )
            except asyncio.TimeoutError:
                self._stop_early(trace, "llm_timeout", step)
                await self._emit(
                    channel, AgentEventType.ERROR, step_id=step_id, error="LLM timeout", recoverable=False
                )
                break

            content = reply.get("content") if reply.get("success") else None
            if not isinstance(content, str) or not content.strip():
                self._stop_early(trace, "invalid_llm_response", step, error=reply.get("error"))
                await self._emit(
                    channel,
                    AgentEventType.ERROR,
                    step_id=step_id,
                    error=reply.get("error") or "Invalid LLM response",
                    recoverable=False,
                )
                break

            # 2. Parse the reply
            parsed = parse_step(content)
            await self._emit(
                channel, AgentEventType.THOUGHT, step_id=step_id, thought=parsed.thought, is_partial=False
            )

            if parsed.is_final:
                trace.final_answer = parsed.final_answer or parsed.thought
                trace.append(ThoughtStep(step, parsed.thought, elapsed_ms=budget.elapsed_ms))
                self.logger.info("agent_final_answer", step=step)
                await self._emit(
                    channel,
                    AgentEventType.STEP_COMPLETE,
                    step_id=step_id,
                    duration_ms=budget.elapsed_ms - step_started_ms,
                )
                break

            # 3. At most one tool call, admitted only if the budget can absorb it
            if parsed.action is not None:
                action = parsed.action
                estimated_ms = self.tools.estimated_time_ms(action.tool_name)
                if not budget.has_time_for(estimated_ms):
                    self._stop_early(trace, "insufficient_time_for_tool", step, tool=action.tool_name)
                    trace.append(ThoughtStep(step, parsed.thought, action=action, elapsed_ms=budget.elapsed_ms))
                    await self._emit(
                        channel,
                        AgentEventType.STEP_COMPLETE,
                        step_id=step_id,
                        duration_ms=budget.elapsed_ms - step_started_ms,
                    )
                    break

                tool = self.tools.get(action.tool_name)
                await self._emit(
                    channel,
                    AgentEventType.ACTION_START,
                    step_id=step_id,
                    tool=action.tool_name,
                    tool_display_name=getattr(tool, "display_name", action.tool_name),
                    params=action.params,
                )
                result = await self.tools.execute(
                    action.tool_name, action.params, timeout_ms=budget.remaining_ms
                )
                observation = tool_result_to_observation(result)
                await self._emit(
                    channel,
                    AgentEventType.ACTION_COMPLETE,
                    step_id=step_id,
                    tool=action.tool_name,
                    success=result.success,
                    result=result.data,
                    error=result.error,
                    duration_ms=result.execution_time_ms,
                )
                trace.append(
                    ThoughtStep(
                        step,
                        parsed.thought,
                        action=action,
                        observation=observation,
                        tool_data=result.data if result.success else None,
                        elapsed_ms=budget.elapsed_ms,
                    )
                )
                messages.append({"role": "assistant", "content": content})
                messages.append(
                    {
                        "role": "user",
                        "content": OBSERVATION_MESSAGE.format(
                            observation=observation, remaining_ms=budget.remaining_ms
                        ),
                    }
                )
            else:
                trace.append(ThoughtStep(step, parsed.thought, elapsed_ms=budget.elapsed_ms))
                messages.append({"role": "assistant", "content": content})
                messages.append(
                    {"role": "user", "content": CONTINUE_NUDGE.format(remaining_ms=budget.remaining_ms)}
                )

            # 4. Bias toward a degraded answer over a hard timeout
            if budget.is_near_timeout and not finish_now_sent:
                messages[-1]["content"] += f"\n\n{FINISH_NOW}"
                finish_now_sent = True

            await self._emit(
                channel,
                AgentEventType.STEP_COMPLETE,
                step_id=step_id,
                duration_ms=budget.elapsed_ms - step_started_ms,
            )

        if trace.final_answer is None and not trace.early_stop:
            reason = "budget_expired" if budget.is_expired else "max_steps_reached"
            self._stop_early(trace, reason, step)
        trace.total_time_ms = budget.elapsed_ms

        output = self._resolve_output(trace)

        grade = None
        if output is not None and self.grader is not None:
            grade = await self.grader.evaluate(to_jsonable(output), to_jsonable(agent_input))
            if self.spec.min_score is not None and grade.overall_score < self.spec.min_score:
                self.logger.warning(
                    "agent_output_below_min_score",
                    score=round(grade.overall_score, 3),
                    min_score=self.spec.min_score,
                )

        result = AgentResult(
            output=output,
            trace=trace,
            grade=grade,
            error=None if output is not None else FAILED_OUTPUT_ERROR,
        )
        self.logger.info(
            "agent_execute_complete",
            success=result.success,
            steps=len(trace.steps),
            total_time_ms=trace.total_time_ms,
            early_stop_reason=trace.early_stop_reason,
        )
        await self._emit(
            channel,
            AgentEventType.AGENT_COMPLETE,
            success=result.success,
            result=to_jsonable(output),
            error=result.error,
            total_duration_ms=trace.total_time_ms,
            total_steps=len(trace.steps),
        )
        return result

    async def execute_stream(self, agent_input: TIn) -> AsyncIterator[AgentEvent]:
        """
        Run the loop and yield its AgentEvents as they happen.

        The stream ends after ``agent_complete``. If the consumer stops
        early, the run is cancelled.
        """
        channel = EventChannel()
        subscription = channel.subscribe()

        async def _run() -> AgentResult[TOut]:
            try:
                return await self.execute(agent_input, channel=channel)
            finally:
                await channel.close()

        task = asyncio.create_task(_run())
        try:
            async for event in subscription:
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    def _stop_early(self, trace: ReActTrace, reason: str, step: int, **context: Any) -> None:
        trace.early_stop = True
        trace.early_stop_reason = reason
        self.logger.warning("agent_early_stop", reason=reason, step=step, **context)

    def _safe_parse(self, text: str, trace: ReActTrace) -> TOut | None:
        try:
            return self.spec.parse_output(text, trace)
        except Exception as e:
            self.logger.warning("agent_parse_output_failed", error=str(e)[:200])
            return None

    def _resolve_output(self, trace: ReActTrace) -> TOut | None:
        candidate = trace.final_answer
        if candidate is None and trace.steps:
            candidate = trace.steps[-1].thought
        if candidate:
            output = self._safe_parse(candidate, trace)
            if output is not None:
                return output
        return self._reconstruct_from_trace(trace)

    def _reconstruct_from_trace(self, trace: ReActTrace) -> TOut | None:
        """Assemble a best-effort output from the untruncated tool outputs."""
        fragments = [v for v in trace.tool_outputs() if isinstance(v, (dict, list)) and v]

        if not fragments:
            return None

        output = None
        if self.spec.reconstruct_output is not None:
            try:
                output = self.spec.reconstruct_output(fragments, trace)
            except Exception as e:
                self.logger.warning("agent_reconstruct_failed", error=str(e)[:200])
        else:
            for fragment in reversed(fragments):
                output = self._safe_parse(json.dumps(fragment, ensure_ascii=False, default=str), trace)
                if output is not None:
                    break

        self.logger.info("agent_trace_reconstruction", fragments=len(fragments), recovered=output is not None)
        return output
