"""
Quality Grader

Scores an agent output with a set of graders and aggregates the scores:
- rule: deterministic check function returning 0..1
- llm_judge: the oracle scores the output against a rubric
- similarity: penalizes outputs too close to existing texts (Jaccard)

Grades are advisory; a failing grader scores 0.5 instead of raising.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from interviewcoach.core.domain.contracts import GraderVerdict, parse_contract
from interviewcoach.core.domain.models import GradeDetail, GradeResult
from interviewcoach.core.interfaces.llm import LLMProviderProtocol

JUDGE_SYSTEM_PROMPT = (
    "You are an expert evaluator. Score the output from 0 to 1 "
    "(0 = terrible, 1 = perfect).\n"
    'Return JSON format: {"score": number, "feedback": "brief explanation"}'
)


@dataclass
class RuleGrader:
    name: str
    check: Callable[[Any, Any], float]
    description: str = ""


@dataclass
class LLMJudgeGrader:
    name: str
    prompt: str  # may contain {output} and {context}
    description: str = ""


@dataclass
class SimilarityGrader:
    name: str
    compare_with: list[str] = field(default_factory=list)
    threshold: float = 0.7
    description: str = ""


Grader = RuleGrader | LLMJudgeGrader | SimilarityGrader


def jaccard_similarity(text1: str, text2: str) -> float:
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def _dump(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, indent=2, default=str)


class MultiGrader:
    """
    Runs graders in order and aggregates their scores.

    Args:
        graders: Graders to run
        aggregation: average | min | weighted
        weights: Per-grader weights for weighted aggregation (default 1.0)
        llm_provider: Oracle used by llm_judge graders
        model_alias: Model alias for judge calls
    """

    def __init__(
        self,
        graders: list[Grader],
        aggregation: str = "average",
        weights: dict[str, float] | None = None,
        llm_provider: LLMProviderProtocol | None = None,
        model_alias: str = "fast",
    ):
        self.graders = graders
        self.aggregation = aggregation
        self.weights = weights or {}
        self.llm_provider = llm_provider
        self.model_alias = model_alias
        self.logger = structlog.get_logger().bind(component="multi_grader")

    async def evaluate(self, output: Any, context: Any = None) -> GradeResult:
        details: list[GradeDetail] = []
        for grader in self.graders:
            if isinstance(grader, RuleGrader):
                score, feedback = self._run_rule(grader, output, context)
            elif isinstance(grader, LLMJudgeGrader):
                score, feedback = await self._run_judge(grader, output, context)
            elif isinstance(grader, SimilarityGrader):
                score, feedback = self._run_similarity(grader, output)
            else:
                score, feedback = 0.5, "Unknown grader type"
            details.append(GradeDetail(grader_name=grader.name, score=score, feedback=feedback))

        overall = self.aggregate(details)
        self.logger.debug("grade_complete", overall=round(overall, 3), graders=len(details))
        return GradeResult(overall_score=overall, details=details)

    def aggregate(self, details: list[GradeDetail]) -> float:
        if not details:
            return 0.0
        scores = [d.score for d in details]
        if self.aggregation == "min":
            return min(scores)
        if self.aggregation == "weighted" and self.weights:
            total_weight = 0.0
            weighted_sum = 0.0
            for detail in details:
                weight = self.weights.get(detail.grader_name, 1.0)
                weighted_sum += detail.score * weight
                total_weight += weight
            return weighted_sum / total_weight if total_weight > 0 else 0.0
        return sum(scores) / len(scores)

    def _run_rule(self, grader: RuleGrader, output: Any, context: Any) -> tuple[float, str]:
        try:
            score = max(0.0, min(1.0, float(grader.check(output, context))))
        except Exception as e:
            self.logger.warning("rule_grader_failed", grader=grader.name, error=str(e))
            return 0.5, "Error during evaluation"
        return score, "Passed" if score >= 0.8 else "Needs improvement"

    async def _run_judge(self, grader: LLMJudgeGrader, output: Any, context: Any) -> tuple[float, str]:
        if self.llm_provider is None:
            return 0.5, "No judge available"
        prompt = grader.prompt.replace("{output}", _dump(output)).replace("{context}", _dump(context))
        result = await self.llm_provider.complete(
            messages=[
                {"role": "system", "content": JUDGE_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            model=self.model_alias,
            response_format={"type": "json_object"},
            temperature=0,
        )
        verdict = None
        if result.get("success"):
            verdict = parse_contract(GraderVerdict, result.get("content"))
        if verdict is None:
            self.logger.warning("judge_grader_failed", grader=grader.name, error=result.get("error"))
            return 0.5, "LLM evaluation failed"
        return verdict.score, verdict.feedback

    def _run_similarity(self, grader: SimilarityGrader, output: Any) -> tuple[float, str]:
        text = _dump(output)
        max_similarity = 0.0
        most_similar = ""
        for other in grader.compare_with:
            similarity = jaccard_similarity(text, other)
            if similarity > max_similarity:
                max_similarity = similarity
                most_similar = other[:50]
        if max_similarity > grader.threshold:
            score = max(0.0, 1 - (max_similarity - grader.threshold) * 2)
            return score, f'Too similar to existing content ({max_similarity:.1%} similar to "{most_similar}...")'
        return 1.0, "Sufficiently unique"


# ---------------------------------------------------------------------------
# Preset graders
# ---------------------------------------------------------------------------


def _field(output: Any, name: str) -> Any:
    if isinstance(output, dict):
        return output.get(name)
    return getattr(output, name, None)


def _has_hint(output: Any, _context: Any) -> float:
    hint = _field(output, "hint")
    return 1.0 if isinstance(hint, str) and len(hint) > 10 else 0.0


def _not_direct_answer(output: Any, _context: Any) -> float:
    hint = (_field(output, "hint") or "").lower()
    direct = ("the answer is", "you should say", "答案是", "应该说")
    return 0.3 if any(p in hint for p in direct) else 1.0


def _feedback_has_evidence(output: Any, _context: Any) -> float:
    strengths = _field(output, "strengths") or []
    gaps = _field(output, "gaps") or []
    if strengths and gaps:
        return 1.0
    return 0.5 if strengths or gaps else 0.0


def _feedback_actionable(output: Any, _context: Any) -> float:
    suggestions = _field(output, "immediate_suggestions") or []
    return 1.0 if suggestions else 0.3


HINT_GRADERS: list[Grader] = [
    RuleGrader("has_hint", _has_hint, "Output contains a usable hint"),
    RuleGrader("not_direct_answer", _not_direct_answer, "Hint does not give the answer away"),
]

FEEDBACK_GRADERS: list[Grader] = [
    RuleGrader("has_evidence", _feedback_has_evidence, "Feedback names strengths and gaps"),
    RuleGrader("actionable", _feedback_actionable, "Feedback has immediate suggestions"),
    LLMJudgeGrader(
        "feedback_quality",
        "Evaluate this interview feedback:\n{output}\n\n"
        "Context (topic and collected information):\n{context}\n\n"
        "Score based on:\n1. Grounded in what the candidate said (0-0.4)\n"
        "2. Specific and actionable (0-0.4)\n3. Encouraging tone (0-0.2)",
    ),
]

GRADER_WEIGHTS = {
    "has_hint": 0.5,
    "not_direct_answer": 0.8,
    "has_evidence": 0.5,
    "actionable": 0.3,
    "feedback_quality": 1.0,
}


def create_multi_grader(
    module: str,
    llm_provider: LLMProviderProtocol | None = None,
    custom_graders: list[Grader] | None = None,
) -> MultiGrader:
    """Build the weighted grader set for an agent module."""
    presets = {"hint_system": HINT_GRADERS, "feedback_generation": FEEDBACK_GRADERS}
    graders = custom_graders if custom_graders is not None else presets.get(module, [])
    return MultiGrader(graders, aggregation="weighted", weights=GRADER_WEIGHTS, llm_provider=llm_provider)
