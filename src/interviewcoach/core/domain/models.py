"""
Core Domain Models

This module defines the data models shared by the agent execution core and
the topic practice state machine:
- Agent run records: ThoughtStep, ReActTrace, ToolResult, AgentResult
- Conversation records: TopicContext, TopicPracticeSession, CollectedInfoPoint
- Session artifacts: TopicFeedback, CompanyMatch
"""

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class TopicStatus(str, Enum):
    """Lifecycle state of one conversation topic."""

    COLLECTING = "collecting"
    COLLECTED = "collected"
    ABANDONED = "abandoned"
    ENGAGED = "engaged"

    @property
    def is_terminal(self) -> bool:
        return self in (TopicStatus.COLLECTED, TopicStatus.ABANDONED)


class UserIntent(str, Enum):
    """What the user wants from their latest message."""

    CONTINUE = "continue"
    SWITCH_TOPIC = "switch_topic"
    END_INTERVIEW = "end_interview"
    NEED_HINT = "need_hint"
    VIEW_FEEDBACK = "view_feedback"
    WANT_EASIER = "want_easier"
    WANT_HARDER = "want_harder"
    WANT_SPECIFIC = "want_specific"


class IntentSource(str, Enum):
    RULE = "rule"
    ORACLE = "oracle"


class InfoPointType(str, Enum):
    SKILL_CLAIM = "skill_claim"
    PROJECT_EXPERIENCE = "project_experience"
    QUANTIFIED_RESULT = "quantified_result"
    CHALLENGE_SOLUTION = "challenge_solution"
    LEARNING = "learning"
    OTHER = "other"


class Engagement(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ForceEndReason(str, Enum):
    TIME_LIMIT = "time_limit"
    TOPIC_COMPLETE = "topic_complete"


class Difficulty(str, Enum):
    EASIER = "easier"
    HARDER = "harder"
    SPECIFIC = "specific"


# ---------------------------------------------------------------------------
# Agent execution records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolAction:
    """Tool invocation requested by the oracle in one reasoning step."""

    tool_name: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ThoughtStep:
    """
    One think/act/observe iteration of the reasoning loop.

    Frozen: a step is never modified after it is appended to a trace.

    Attributes:
        step_number: 1-based index within the trace
        thought: Reasoning text extracted from the oracle reply
        action: Requested tool call, if any
        observation: Tool observation text, if a tool was executed
        tool_data: Structured data of a successful tool call, untruncated
        elapsed_ms: Budget time elapsed when the step was recorded
    """

    step_number: int
    thought: str
    action: ToolAction | None = None
    observation: str | None = None
    tool_data: Any = None
    elapsed_ms: int = 0


@dataclass
class ReActTrace:
    """
    Ordered record of one Agent Execution Core run.

    Owned by exactly one run; steps are append-only.
    """

    steps: list[ThoughtStep] = field(default_factory=list)
    total_time_ms: int = 0
    early_stop: bool = False
    early_stop_reason: str | None = None
    final_answer: str | None = None

    def append(self, step: ThoughtStep) -> None:
        self.steps.append(step)

    def tool_outputs(self) -> list[Any]:
        """Structured data of every successful tool call, in step order."""
        return [s.tool_data for s in self.steps if s.tool_data is not None]


@dataclass
class ToolResult:
    """Uniform tool outcome. Failures are data, never exceptions."""

    success: bool
    data: Any = None
    error: str | None = None
    execution_time_ms: int = 0


@dataclass
class GradeDetail:
    grader_name: str
    score: float
    feedback: str | None = None


@dataclass
class GradeResult:
    overall_score: float
    details: list[GradeDetail] = field(default_factory=list)


@dataclass
class AgentResult(Generic[T]):
    """
    Terminal result of one agent run.

    ``success`` is derived from ``output`` so the two can never disagree.
    """

    output: T | None
    trace: ReActTrace
    grade: GradeResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.output is not None


# ---------------------------------------------------------------------------
# Topic practice records
# ---------------------------------------------------------------------------


@dataclass
class ChatMessage:
    role: str  # user | assistant
    content: str
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class CollectedInfoPoint:
    """
    A fact extracted from the user's answers.

    Attributes:
        type: Category of the information
        summary: One-line summary
        depth: Detail level from 1 (vague) to 5 (very specific)
        needs_follow_up: Whether the point deserves a follow-up question
        follow_up_direction: Suggested angle for the follow-up
    """

    type: InfoPointType
    summary: str
    depth: int = 1
    needs_follow_up: bool = False
    follow_up_direction: str | None = None

    def __post_init__(self) -> None:
        self.depth = max(1, min(5, int(self.depth)))


@dataclass
class TopicContext:
    """One topic of conversation inside a practice session."""

    name: str
    id: str = field(default_factory=new_id)
    status: TopicStatus = TopicStatus.COLLECTING
    started_at: datetime = field(default_factory=utcnow)
    ended_at: datetime | None = None
    messages: list[ChatMessage] = field(default_factory=list)
    collected_info: list[CollectedInfoPoint] = field(default_factory=list)
    target_skills: list[str] = field(default_factory=list)
    difficulty: Difficulty | None = None

    @property
    def user_turns(self) -> int:
        return sum(1 for m in self.messages if m.role == "user")

    @property
    def is_sealed(self) -> bool:
        return self.ended_at is not None


@dataclass
class TopicFeedback:
    """Feedback artifact produced when a topic is closed or previewed."""

    topic_id: str
    topic_name: str
    score: int
    question_source: dict[str, Any] = field(default_factory=dict)
    target_ability: dict[str, Any] = field(default_factory=dict)
    strengths: list[str] = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    details: str = ""
    immediate_suggestions: list[str] = field(default_factory=list)
    long_term_suggestions: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.score = max(1, min(10, int(self.score)))


@dataclass
class CompanyMatch:
    company: str
    match_score: int
    job_title: str | None = None
    linkedin_url: str | None = None
    reasons: list[str] = field(default_factory=list)
    key_skills: list[str] = field(default_factory=list)
    preparation_tips: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.match_score = max(0, min(100, int(self.match_score)))


@dataclass
class TopicPracticeSession:
    """
    Conversation-level state.

    A TopicContext is either ``current_topic`` or one entry of
    ``completed_topics``, never both. ``topic_history`` holds every topic
    name seen in this session, each exactly once. ``company_matches`` holds
    the recommendations already shown to the user, reused by the final report.
    """

    user_id: str
    target_position: str
    id: str = field(default_factory=new_id)
    current_topic: TopicContext | None = None
    completed_topics: list[TopicContext] = field(default_factory=list)
    topic_history: list[str] = field(default_factory=list)
    feedbacks: list[TopicFeedback] = field(default_factory=list)
    company_matches: list[CompanyMatch] = field(default_factory=list)
    resume_text: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def has_seen_topic(self, name: str) -> bool:
        key = name.strip().lower()
        return any(seen.strip().lower() == key for seen in self.topic_history)

    def all_collected_info(self) -> list[CollectedInfoPoint]:
        points: list[CollectedInfoPoint] = []
        for topic in self.completed_topics:
            points.extend(topic.collected_info)
        if self.current_topic:
            points.extend(self.current_topic.collected_info)
        return points

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# State machine / classifier outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntentResult:
    intent: UserIntent
    confidence: float
    source: IntentSource


@dataclass
class TopicStepResult:
    """
    Outcome of one state-machine step for a user message.

    ``status`` is the status presented to the caller (may be ``engaged``);
    ``intent`` is set when a control intent short-circuited the step.
    """

    status: TopicStatus
    response: str = ""
    intent: UserIntent = UserIntent.CONTINUE
    intent_source: IntentSource | None = None
    new_info_points: list[CollectedInfoPoint] = field(default_factory=list)
    force_end: bool = False
    force_end_reason: ForceEndReason | None = None
    engagement: Engagement | None = None
    reasoning: str = ""
