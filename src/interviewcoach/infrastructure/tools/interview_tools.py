"""
Interview analysis tools used by the feedback and hint agents.

Each tool is bound to a snapshot of the topic it analyzes; the oracle only
chooses when to call it and with which focus.
"""

from typing import Any

import structlog

from interviewcoach.core.domain.contracts import FeedbackPayload, parse_contract
from interviewcoach.core.domain.models import InfoPointType, TopicContext
from interviewcoach.core.domain.topic_machine import format_collected_info, format_messages
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.prompts.interview_prompts import TOPIC_FEEDBACK_PROMPT
from interviewcoach.infrastructure.tools.base_tool import BaseTool


class AnalyzeAnswersTool(BaseTool):
    """Quantitative summary of what the candidate shared on a topic."""

    display_name = "Analyze answers"
    estimated_time_ms = 300

    def __init__(self, topic: TopicContext):
        self.topic = topic

    @property
    def name(self) -> str:
        return "analyze_answers"

    @property
    def description(self) -> str:
        return (
            "Summarize the candidate's answers on the current topic: answer count, average "
            "detail depth, quantified results and STAR coverage."
        )

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        points = self.topic.collected_info
        by_type = {t: [p.summary for p in points if p.type == t] for t in InfoPointType}
        average_depth = round(sum(p.depth for p in points) / len(points), 2) if points else 0.0
        return {
            "success": True,
            "data": {
                "topic": self.topic.name,
                "user_turns": self.topic.user_turns,
                "info_points": len(points),
                "average_depth": average_depth,
                "quantified_results": by_type[InfoPointType.QUANTIFIED_RESULT],
                "star_coverage": {
                    "situation": bool(by_type[InfoPointType.PROJECT_EXPERIENCE]),
                    "action": bool(by_type[InfoPointType.CHALLENGE_SOLUTION] or by_type[InfoPointType.SKILL_CLAIM]),
                    "result": bool(by_type[InfoPointType.QUANTIFIED_RESULT]),
                    "learning": bool(by_type[InfoPointType.LEARNING]),
                },
                "follow_up_needed": [p.summary for p in points if p.needs_follow_up],
            },
        }


class IdentifyKeyMomentsTool(BaseTool):
    """Strongest and weakest moments of the conversation by detail depth."""

    display_name = "Identify key moments"
    estimated_time_ms = 300

    def __init__(self, topic: TopicContext):
        self.topic = topic

    @property
    def name(self) -> str:
        return "identify_key_moments"

    @property
    def description(self) -> str:
        return "Find the candidate's strongest (most detailed) and weakest (vaguest) statements on this topic."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"limit": {"type": "integer", "description": "Moments per category (default 3)"}},
            "required": [],
        }

    async def execute(self, limit: int = 3, **kwargs: Any) -> dict[str, Any]:
        ranked = sorted(self.topic.collected_info, key=lambda p: p.depth, reverse=True)
        strong = [{"summary": p.summary, "depth": p.depth} for p in ranked if p.depth >= 3][: int(limit)]
        weak = [
            {"summary": p.summary, "depth": p.depth, "follow_up": p.follow_up_direction}
            for p in reversed(ranked)
            if p.depth <= 2
        ][: int(limit)]
        return {"success": True, "data": {"strong_moments": strong, "weak_moments": weak}}


class DraftFeedbackTool(BaseTool):
    """Single oracle call drafting structured feedback for the topic."""

    display_name = "Draft feedback"
    estimated_time_ms = 8000

    def __init__(
        self,
        topic: TopicContext,
        position: str,
        llm_provider: LLMProviderProtocol,
        model_alias: str = "fast",
    ):
        self.topic = topic
        self.position = position
        self.llm_provider = llm_provider
        self.model_alias = model_alias
        self.logger = structlog.get_logger().bind(component="draft_feedback_tool")

    @property
    def name(self) -> str:
        return "draft_feedback"

    @property
    def description(self) -> str:
        return "Draft structured feedback (score, strengths, gaps, suggestions) for the topic."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "notes": {"type": "string", "description": "Observations from earlier analysis to take into account"}
            },
            "required": [],
        }

    async def execute(self, notes: str = "", **kwargs: Any) -> dict[str, Any]:
        prompt = TOPIC_FEEDBACK_PROMPT.format(
            position=self.position,
            topic_name=self.topic.name,
            target_skills=", ".join(self.topic.target_skills) or "(unspecified)",
            transcript=format_messages(self.topic.messages, 20, 500),
            collected_info=format_collected_info(self.topic.collected_info),
        )
        if notes:
            prompt += f"\n\nAnalyst notes:\n{notes[:1000]}"

        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": prompt}],
            model=self.model_alias,
            response_format={"type": "json_object"},
            temperature=0.3,
        )
        if not result.get("success"):
            return {"success": False, "error": result.get("error") or "Feedback draft failed"}

        payload = parse_contract(FeedbackPayload, result.get("content"))
        if payload is None:
            return {"success": False, "error": "Feedback draft was not valid JSON"}
        return {"success": True, "data": payload.model_dump()}


STRUGGLE_PATTERNS = (
    ("no_direct_experience", ("never", "no experience", "haven't", "have not", "没做过", "没有经验")),
    ("knowledge_gap", ("don't know", "not sure", "no idea", "不知道", "不清楚")),
    ("unclear_question", ("what do you mean", "not clear", "clarify", "什么意思")),
)

STRUGGLE_APPROACHES = {
    "no_direct_experience": "Use an adjacent experience (school, side project, another team) and say what you would do.",
    "knowledge_gap": "Break the question into smaller parts and start from what you do know.",
    "unclear_question": "Restate the question in your own words before answering.",
    "structure": "Pick one concrete example and walk through it step by step.",
}


class AnalyzeStruggleTool(BaseTool):
    """Classifies why the candidate is stuck."""

    display_name = "Analyze struggle"
    estimated_time_ms = 200

    @property
    def name(self) -> str:
        return "analyze_user_struggle"

    @property
    def description(self) -> str:
        return "Classify why the candidate is stuck (no direct experience, knowledge gap, unclear question, structure)."

    @property
    def parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"message": {"type": "string", "description": "The candidate's latest message"}},
            "required": ["message"],
        }

    async def execute(self, message: str = "", **kwargs: Any) -> dict[str, Any]:
        valid, error = self.validate_params(message=message)
        if not valid:
            return {"success": False, "error": error}
        text = message.lower()
        struggle_type = "structure"
        for candidate, phrases in STRUGGLE_PATTERNS:
            if any(p in text for p in phrases):
                struggle_type = candidate
                break
        return {
            "success": True,
            "data": {"struggle_type": struggle_type, "suggested_approach": STRUGGLE_APPROACHES[struggle_type]},
        }


class AnswerFrameworkTool(BaseTool):
    """STAR answer framework tailored to the topic."""

    display_name = "Answer framework"
    estimated_time_ms = 200

    def __init__(self, topic_name: str):
        self.topic_name = topic_name

    @property
    def name(self) -> str:
        return "get_answer_framework"

    @property
    def description(self) -> str:
        return "Get a STAR answer framework with guiding questions for the current topic."

    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        return {
            "success": True,
            "data": {
                "framework": "STAR",
                "steps": [
                    f"Situation: a project or moment where {self.topic_name} mattered",
                    "Task: what you were responsible for",
                    "Action: the specific steps you took yourself",
                    "Result: the outcome, ideally with numbers",
                ],
                "guiding_questions": [
                    "What was the hardest part and how did you handle it?",
                    "How did you measure success?",
                ],
            },
        }
