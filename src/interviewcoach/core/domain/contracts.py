"""
Typed result contracts for structured oracle replies.

Every JSON reply from the reasoning oracle is validated here before it
reaches domain code. A reply that does not fit its contract is replaced
by the caller's default, so a malformed model answer never propagates.
"""

import json
import re
from typing import Any, Literal, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from interviewcoach.core.domain.models import (
    CollectedInfoPoint,
    CompanyMatch,
    Engagement,
    InfoPointType,
    TopicFeedback,
    UserIntent,
)

logger = structlog.get_logger().bind(component="contracts")

M = TypeVar("M", bound=BaseModel)

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    return _FENCE_RE.sub("", text).strip()


def extract_json(raw: str | dict | list) -> Any:
    """
    Decode a JSON value from an oracle reply.

    Accepts already-decoded objects, fenced JSON, and JSON embedded in
    surrounding prose (first ``{`` to last ``}``).

    Raises:
        ValueError: If no JSON value can be decoded
    """
    if isinstance(raw, (dict, list)):
        return raw
    text = strip_code_fences(raw)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])


def parse_contract(model: type[M], raw: Any, default: M | None = None) -> M | None:
    """
    Validate an oracle reply against ``model``; return ``default`` on failure.

    Args:
        model: Contract class
        raw: Reply content (text, fenced JSON or decoded object)
        default: Value returned when the reply does not fit the contract

    Returns:
        Validated contract instance or ``default``
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        logger.warning("contract_empty_reply", contract=model.__name__)
        return default
    try:
        return model.model_validate(extract_json(raw))
    except (ValueError, ValidationError) as e:
        logger.warning(
            "contract_violation",
            contract=model.__name__,
            error=str(e)[:200],
            raw=str(raw)[:200],
        )
        return default


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class IntentVerdict(BaseModel):
    """Tier-2 intent classification reply."""

    intent: UserIntent
    confidence: float = 0.5

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        return _clamp(float(v), 0.0, 1.0)


class InfoPointPayload(BaseModel):
    type: InfoPointType = InfoPointType.OTHER
    summary: str
    depth: int = 1
    needs_follow_up: bool = False
    follow_up_direction: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _unknown_type_is_other(cls, v: Any) -> Any:
        valid = {t.value for t in InfoPointType}
        return v if v in valid else InfoPointType.OTHER.value

    @field_validator("depth", mode="before")
    @classmethod
    def _clamp_depth(cls, v: Any) -> int:
        return int(_clamp(int(v), 1, 5))

    def to_domain(self) -> CollectedInfoPoint:
        return CollectedInfoPoint(
            type=self.type,
            summary=self.summary,
            depth=self.depth,
            needs_follow_up=self.needs_follow_up,
            follow_up_direction=self.follow_up_direction,
        )


class TopicTurnAssessment(BaseModel):
    """Combined status assessment + extraction + follow-up for one user turn."""

    status: Literal["collecting", "collected", "abandoned"] = "collecting"
    topic_complete: bool = False
    user_engagement: Engagement = Engagement.MEDIUM
    new_info_points: list[InfoPointPayload] = Field(default_factory=list)
    reasoning: str = ""
    ai_response: str = Field(min_length=1)


class FeedbackPayload(BaseModel):
    score: int = 6
    question_source: dict[str, Any] = Field(default_factory=dict)
    target_ability: dict[str, Any] = Field(default_factory=dict)
    strengths: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    details: str = ""
    immediate_suggestions: list[str] = Field(default_factory=list)
    long_term_suggestions: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, v: Any) -> int:
        return int(_clamp(round(float(v)), 1, 10))

    def to_domain(self, topic_id: str, topic_name: str) -> TopicFeedback:
        return TopicFeedback(
            topic_id=topic_id,
            topic_name=topic_name,
            score=self.score,
            question_source=self.question_source,
            target_ability=self.target_ability,
            strengths=self.strengths,
            gaps=self.gaps,
            details=self.details,
            immediate_suggestions=self.immediate_suggestions,
            long_term_suggestions=self.long_term_suggestions,
            resources=self.resources,
        )


class CompanyMatchPayload(BaseModel):
    company: str = Field(min_length=1)
    match_score: int = 70
    job_title: str | None = None
    linkedin_url: str | None = None
    reasons: list[str] = Field(default_factory=list)
    key_skills: list[str] = Field(default_factory=list)
    preparation_tips: list[str] = Field(default_factory=list)

    @field_validator("match_score", mode="before")
    @classmethod
    def _clamp_match(cls, v: Any) -> int:
        return int(_clamp(round(float(v)), 0, 100))

    def to_domain(self) -> CompanyMatch:
        return CompanyMatch(**self.model_dump())


class CompanyMatchList(BaseModel):
    matches: list[CompanyMatchPayload] = Field(min_length=1)


class NextTopicSuggestion(BaseModel):
    suggested_topic: str = Field(min_length=1)
    reasoning: str = ""
    alternatives: list[str] = Field(default_factory=list)


class InitialTopicPayload(BaseModel):
    topic_name: str = Field(min_length=1)
    target_skills: list[str] = Field(default_factory=list)
    reasoning: str = ""


class OpeningMessagePayload(BaseModel):
    message: str = Field(min_length=1)


class HintPayload(BaseModel):
    hint: str = Field(min_length=1)
    example_direction: str | None = None


class SwitchedQuestionPayload(BaseModel):
    question: str = Field(min_length=1)
    reasoning: str = ""


class SummaryPayload(BaseModel):
    summary: str = Field(min_length=1)


class GraderVerdict(BaseModel):
    score: float
    feedback: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_unit(cls, v: Any) -> float:
        return _clamp(float(v), 0.0, 1.0)
