"""
Agent capability bundles.

Each function returns an AgentSpec for the generic ReActAgent: a prompt
builder, an output parser, a tool set and a trace-reconstruction strategy.
Tools are bound to the input they analyze, so a spec is built per run.
"""

from dataclasses import dataclass, field
from typing import Any

from interviewcoach.core.domain.agent import AgentSpec
from interviewcoach.core.domain.contracts import (
    CompanyMatchList,
    CompanyMatchPayload,
    FeedbackPayload,
    HintPayload,
    parse_contract,
)
from interviewcoach.core.domain.models import CollectedInfoPoint, ReActTrace, TopicContext
from interviewcoach.core.domain.topic_machine import format_collected_info, format_messages
from interviewcoach.core.interfaces.job_search import JobSearchClientProtocol
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.prompts.interview_prompts import (
    FEEDBACK_AGENT_PROMPT,
    HINT_AGENT_PROMPT,
    JOB_RECOMMENDATION_AGENT_PROMPT,
)
from interviewcoach.infrastructure.tools.interview_tools import (
    AnalyzeAnswersTool,
    AnalyzeStruggleTool,
    AnswerFrameworkTool,
    DraftFeedbackTool,
    IdentifyKeyMomentsTool,
)
from interviewcoach.infrastructure.tools.job_tools import (
    AnalyzeSkillMatchTool,
    CompanyReviewsTool,
    RecommendationReasonTool,
    SearchJobsTool,
)

# ---------------------------------------------------------------------------
# Feedback agent
# ---------------------------------------------------------------------------


@dataclass
class FeedbackAgentInput:
    topic: TopicContext
    position: str


def build_feedback_prompt(agent_input: FeedbackAgentInput) -> str:
    topic = agent_input.topic
    return FEEDBACK_AGENT_PROMPT.format(
        position=agent_input.position,
        topic_name=topic.name,
        target_skills=", ".join(topic.target_skills) or "(unspecified)",
        transcript=format_messages(topic.messages, 20, 500),
        collected_info=format_collected_info(topic.collected_info),
    )


def parse_feedback_output(text: str, trace: ReActTrace) -> FeedbackPayload | None:
    return parse_contract(FeedbackPayload, text)


def reconstruct_feedback(fragments: list[Any], trace: ReActTrace) -> FeedbackPayload | None:
    """Prefer a drafted feedback observation, else derive one from the answer analysis."""
    for fragment in reversed(fragments):
        if isinstance(fragment, dict) and "strengths" in fragment and "score" in fragment:
            payload = parse_contract(FeedbackPayload, fragment)
            if payload is not None:
                return payload

    analysis = next(
        (f for f in reversed(fragments) if isinstance(f, dict) and "average_depth" in f),
        None,
    )
    if analysis is None:
        return None

    coverage = analysis.get("star_coverage", {})
    strengths = [f"Shared a quantified result: {r}" for r in analysis.get("quantified_results", [])[:3]]
    if coverage.get("situation"):
        strengths.append("Grounded answers in concrete project experience")
    gaps = [f"Needs more detail: {s}" for s in analysis.get("follow_up_needed", [])[:3]]
    if not coverage.get("result"):
        gaps.append("Results were not quantified")
    return FeedbackPayload(
        score=max(1, min(10, round(analysis.get("average_depth", 3) * 2))),
        strengths=strengths or ["Active participation"],
        gaps=gaps,
        details=f"Based on {analysis.get('info_points', 0)} points shared on {analysis.get('topic', 'this topic')}.",
        immediate_suggestions=["Use the STAR method and close every story with a measurable result"],
    )


def create_feedback_agent_spec(
    agent_input: FeedbackAgentInput,
    llm_provider: LLMProviderProtocol,
    model_alias: str = "fast",
) -> AgentSpec[FeedbackAgentInput, FeedbackPayload]:
    topic = agent_input.topic
    return AgentSpec(
        name="feedback_generation",
        display_name="Feedback Generator",
        description=f"Generating feedback for {topic.name}",
        build_prompt=build_feedback_prompt,
        parse_output=parse_feedback_output,
        reconstruct_output=reconstruct_feedback,
        tools=[
            AnalyzeAnswersTool(topic),
            IdentifyKeyMomentsTool(topic),
            DraftFeedbackTool(topic, agent_input.position, llm_provider, model_alias),
        ],
        min_score=0.6,
    )


# ---------------------------------------------------------------------------
# Job recommendation agent
# ---------------------------------------------------------------------------


@dataclass
class JobRecommendationInput:
    position: str
    collected_info: list[CollectedInfoPoint] = field(default_factory=list)
    topic_names: list[str] = field(default_factory=list)
    resume_text: str | None = None
    location: str = "United States"
    limit: int = 5


def build_job_prompt(agent_input: JobRecommendationInput) -> str:
    resume = agent_input.resume_text
    return JOB_RECOMMENDATION_AGENT_PROMPT.format(
        position=agent_input.position,
        location=agent_input.location,
        resume_section=f"Resume summary:\n{resume[:1500]}\n" if resume else "",
        collected_info=format_collected_info(agent_input.collected_info),
        limit=agent_input.limit,
    )


def parse_job_output(text: str, trace: ReActTrace) -> CompanyMatchList | None:
    return parse_contract(CompanyMatchList, text)


def merge_company_matches(candidates: list[CompanyMatchPayload], limit: int) -> list[CompanyMatchPayload]:
    """Merge duplicates per company (best score, union of lists), best first."""
    merged: dict[str, CompanyMatchPayload] = {}
    for match in candidates:
        key = match.company.strip().lower()
        existing = merged.get(key)
        if existing is None:
            merged[key] = match.model_copy(deep=True)
            continue
        existing.match_score = max(existing.match_score, match.match_score)
        existing.job_title = existing.job_title or match.job_title
        existing.linkedin_url = existing.linkedin_url or match.linkedin_url
        for attr in ("reasons", "key_skills", "preparation_tips"):
            values = getattr(existing, attr)
            values.extend(v for v in getattr(match, attr) if v not in values)
    return sorted(merged.values(), key=lambda m: m.match_score, reverse=True)[:limit]


def _job_reconstructor(limit: int):
    def reconstruct(fragments: list[Any], trace: ReActTrace) -> CompanyMatchList | None:
        candidates: list[CompanyMatchPayload] = []
        match_scores = [
            f["match_score"] for f in fragments if isinstance(f, dict) and isinstance(f.get("match_score"), (int, float))
        ]
        default_score = round(sum(match_scores) / len(match_scores)) if match_scores else 70

        for fragment in fragments:
            if not isinstance(fragment, dict):
                continue
            for raw in fragment.get("matches", []) or []:
                payload = parse_contract(CompanyMatchPayload, raw)
                if payload is not None:
                    candidates.append(payload)
            for job in fragment.get("jobs", []) or []:
                if isinstance(job, dict) and job.get("company"):
                    candidates.append(
                        CompanyMatchPayload(
                            company=job["company"],
                            job_title=job.get("title"),
                            linkedin_url=job.get("url"),
                            match_score=default_score,
                            reasons=["Position match"],
                        )
                    )
        if not candidates:
            return None
        return CompanyMatchList(matches=merge_company_matches(candidates, limit))

    return reconstruct


def create_job_recommendation_spec(
    agent_input: JobRecommendationInput,
    llm_provider: LLMProviderProtocol,
    job_search_client: JobSearchClientProtocol | None = None,
    model_alias: str = "fast",
) -> AgentSpec[JobRecommendationInput, CompanyMatchList]:
    tools = [AnalyzeSkillMatchTool(), RecommendationReasonTool(llm_provider, model_alias)]
    if job_search_client is not None:
        tools = [SearchJobsTool(job_search_client), CompanyReviewsTool(job_search_client), *tools]
    return AgentSpec(
        name="job_recommendation",
        display_name="Job Recommender",
        description=f"Finding companies that fit a {agent_input.position}",
        build_prompt=build_job_prompt,
        parse_output=parse_job_output,
        reconstruct_output=_job_reconstructor(agent_input.limit),
        tools=tools,
    )


# ---------------------------------------------------------------------------
# Hint agent
# ---------------------------------------------------------------------------


@dataclass
class HintInput:
    position: str
    topic_name: str
    last_question: str
    user_message: str


def build_hint_prompt(agent_input: HintInput) -> str:
    return HINT_AGENT_PROMPT.format(
        position=agent_input.position,
        topic_name=agent_input.topic_name,
        last_question=agent_input.last_question[:500],
        user_message=agent_input.user_message[:300],
    )


def parse_hint_output(text: str, trace: ReActTrace) -> HintPayload | None:
    payload = parse_contract(HintPayload, text)
    if payload is None and text and not text.lstrip().startswith("{") and len(text.strip()) > 10:
        # plain-text final answers are usable hints
        return HintPayload(hint=text.strip())
    return payload


def reconstruct_hint(fragments: list[Any], trace: ReActTrace) -> HintPayload | None:
    approach = next((f.get("suggested_approach") for f in fragments if isinstance(f, dict) and f.get("suggested_approach")), None)
    steps = next((f.get("steps") for f in fragments if isinstance(f, dict) and f.get("steps")), None)
    if not approach and not steps:
        return None
    parts = [approach] if approach else []
    if steps:
        parts.append("Try this structure: " + "; ".join(steps))
    return HintPayload(hint=" ".join(parts))


def create_hint_agent_spec(agent_input: HintInput) -> AgentSpec[HintInput, HintPayload]:
    return AgentSpec(
        name="hint_system",
        display_name="Hint Coach",
        description=f"Preparing a hint for {agent_input.topic_name}",
        build_prompt=build_hint_prompt,
        parse_output=parse_hint_output,
        reconstruct_output=reconstruct_hint,
        tools=[AnalyzeStruggleTool(), AnswerFrameworkTool(agent_input.topic_name)],
        avg_step_ms=1500,
    )
