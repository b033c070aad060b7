"""
Agent Stream Events

Progress events emitted by the Agent Execution Core while it runs. Each event
is an immutable fact about a loop transition that already happened:
- agent_start / agent_complete bracket one run
- step_start / step_complete bracket one reasoning step
- thought, action_start, action_complete describe the step's content
- error reports an early stop or a failed step

Events are serialized to SSE frames by the API layer.
"""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class AgentEventType(str, Enum):
    """Tag of an AgentEvent."""

    AGENT_START = "agent_start"
    STEP_START = "step_start"
    THOUGHT = "thought"
    ACTION_START = "action_start"
    ACTION_COMPLETE = "action_complete"
    STEP_COMPLETE = "step_complete"
    AGENT_COMPLETE = "agent_complete"
    ERROR = "error"


@dataclass(frozen=True)
class AgentEvent:
    """
    One progress event of an agent run.

    Attributes:
        type: Event tag
        agent_name: Module name of the emitting agent (e.g. "feedback_generation")
        agent_display_name: Human readable agent name
        data: Tag-specific payload
        timestamp: Epoch milliseconds at emission
    """

    type: AgentEventType
    agent_name: str
    agent_display_name: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @property
    def is_terminal(self) -> bool:
        return self.type == AgentEventType.AGENT_COMPLETE

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["type"] = self.type.value
        return payload


def create_agent_event(
    event_type: AgentEventType,
    agent_name: str,
    agent_display_name: str,
    **data: Any,
) -> AgentEvent:
    """Build an AgentEvent with a payload given as keyword arguments."""
    return AgentEvent(
        type=event_type,
        agent_name=agent_name,
        agent_display_name=agent_display_name,
        data=data,
    )


def make_step_id(agent_name: str, step_number: int) -> str:
    return f"{agent_name}_step_{step_number}_{int(time.time() * 1000)}"
