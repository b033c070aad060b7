"""
Feedback, company matches and session summaries.

Every public method returns a usable artifact: the reasoning agent is tried
first, then a single oracle call, then a fixed default.
"""

import asyncio
from collections.abc import AsyncIterator

import structlog

from interviewcoach.application.agents import (
    FeedbackAgentInput,
    JobRecommendationInput,
    create_feedback_agent_spec,
    create_job_recommendation_spec,
)
from interviewcoach.config.settings import Settings
from interviewcoach.core.domain.agent import ReActAgent
from interviewcoach.core.domain.contracts import (
    CompanyMatchList,
    FeedbackPayload,
    SummaryPayload,
    parse_contract,
)
from interviewcoach.core.domain.events import AgentEvent
from interviewcoach.core.domain.grader import MultiGrader
from interviewcoach.core.domain.models import (
    CompanyMatch,
    TopicContext,
    TopicFeedback,
    TopicPracticeSession,
)
from interviewcoach.core.domain.topic_machine import format_collected_info, format_messages
from interviewcoach.core.interfaces.job_search import JobSearchClientProtocol
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.prompts.interview_prompts import (
    COMPANY_MATCH_PROMPT,
    OVERALL_SUMMARY_FALLBACK,
    OVERALL_SUMMARY_PROMPT,
    TOPIC_FEEDBACK_PROMPT,
)

DEFAULT_FEEDBACK_SCORE = 6
ENCOURAGEMENT_SCORE = 4


def default_company_matches() -> list[CompanyMatch]:
    return [
        CompanyMatch(
            company="Tech Company",
            match_score=70,
            reasons=["Position match"],
            key_skills=["Technical ability", "Communication skills"],
            preparation_tips=["Learn about company products", "Prepare technical questions"],
        )
    ]


class FeedbackService:
    """
    Produces the per-topic and end-of-session artifacts.

    Args:
        llm_provider: Reasoning oracle
        settings: Timeouts and limits
        job_search_client: Optional job-board connector for the recommender
        feedback_grader: Optional grader attached to feedback agent runs
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        settings: Settings,
        job_search_client: JobSearchClientProtocol | None = None,
        feedback_grader: MultiGrader | None = None,
    ):
        self.llm_provider = llm_provider
        self.settings = settings
        self.job_search_client = job_search_client
        self.feedback_grader = feedback_grader
        self.logger = structlog.get_logger().bind(component="feedback_service")

    # ------------------------------------------------------------------
    # Topic feedback
    # ------------------------------------------------------------------

    async def generate_topic_feedback(self, topic: TopicContext, position: str) -> TopicFeedback:
        """Agent first, then a single oracle call, then a neutral default."""
        agent_input = FeedbackAgentInput(topic=topic, position=position)
        spec = create_feedback_agent_spec(
            agent_input,
            self.llm_provider,
            model_alias=self.settings.fast_model_alias,
        )
        agent = ReActAgent(
            spec,
            self.llm_provider,
            grader=self.feedback_grader,
            model_alias=self.settings.model_alias,
        )
        result = await agent.execute(agent_input)
        if result.success:
            return result.output.to_domain(topic.id, topic.name)

        self.logger.warning(
            "feedback_agent_failed",
            topic=topic.name,
            early_stop_reason=result.trace.early_stop_reason,
        )
        payload = await self._single_call_feedback(topic, position)
        if payload is not None:
            return payload.to_domain(topic.id, topic.name)

        return TopicFeedback(
            topic_id=topic.id,
            topic_name=topic.name,
            score=DEFAULT_FEEDBACK_SCORE,
            strengths=["Active participation"],
            details="Feedback generation failed; showing a default assessment.",
        )

    async def _single_call_feedback(self, topic: TopicContext, position: str) -> FeedbackPayload | None:
        prompt = TOPIC_FEEDBACK_PROMPT.format(
            position=position,
            topic_name=topic.name,
            target_skills=", ".join(topic.target_skills) or "(unspecified)",
            transcript=format_messages(topic.messages, 20, 500),
            collected_info=format_collected_info(topic.collected_info),
        )
        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": prompt}],
            model=self.settings.fast_model_alias,
            response_format={"type": "json_object"},
            temperature=0.3,
        )
        if not result.get("success"):
            self.logger.warning("feedback_call_failed", topic=topic.name, error=result.get("error"))
            return None
        return parse_contract(FeedbackPayload, result.get("content"))

    def encouragement_feedback(self, topic: TopicContext) -> TopicFeedback:
        """Feedback for topics the candidate could not engage with."""
        return TopicFeedback(
            topic_id=topic.id,
            topic_name=topic.name,
            score=ENCOURAGEMENT_SCORE,
            strengths=["Willingness to try"],
            gaps=[f"Limited experience shared on {topic.name}"],
            details="It's fine not to have experience in every area. Note what you'd like to learn here.",
            immediate_suggestions=[f"Prepare one short example related to {topic.name}"],
            long_term_suggestions=[f"Build hands-on experience with {topic.name} through a small project"],
        )

    # ------------------------------------------------------------------
    # Company matches
    # ------------------------------------------------------------------

    def _job_input(self, session: TopicPracticeSession) -> JobRecommendationInput:
        return JobRecommendationInput(
            position=session.target_position,
            collected_info=session.all_collected_info(),
            topic_names=list(session.topic_history),
            resume_text=session.resume_text,
            limit=self.settings.max_company_matches,
        )

    def _job_agent(self, job_input: JobRecommendationInput) -> ReActAgent:
        spec = create_job_recommendation_spec(
            job_input,
            self.llm_provider,
            job_search_client=self.job_search_client,
            model_alias=self.settings.fast_model_alias,
        )
        return ReActAgent(spec, self.llm_provider, model_alias=self.settings.model_alias)

    async def generate_company_matches(self, session: TopicPracticeSession) -> list[CompanyMatch]:
        """
        Company recommendations for the end-of-session report.

        The recommender agent is raced against a secondary timeout; on
        expiry or failure a single oracle call is used, then a default list.
        The result is never empty.
        """
        job_input = self._job_input(session)
        try:
            result = await asyncio.wait_for(
                self._job_agent(job_input).execute(job_input),
                timeout=self.settings.company_match_timeout_seconds,
            )
            if result.success:
                return [m.to_domain() for m in result.output.matches]
            self.logger.warning("company_match_agent_failed", error=result.error)
        except asyncio.TimeoutError:
            self.logger.warning(
                "company_match_agent_timeout",
                timeout_s=self.settings.company_match_timeout_seconds,
            )

        matches = await self._quick_company_matches(session)
        if matches:
            return matches
        self.logger.info("company_match_default_used", session_id=session.id)
        return default_company_matches()

    async def _quick_company_matches(self, session: TopicPracticeSession) -> list[CompanyMatch]:
        prompt = COMPANY_MATCH_PROMPT.format(
            position=session.target_position,
            collected_info=format_collected_info(session.all_collected_info()),
            limit=self.settings.max_company_matches,
        )
        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": prompt}],
            model=self.settings.fast_model_alias,
            response_format={"type": "json_object"},
            temperature=0.3,
        )
        if not result.get("success"):
            self.logger.warning("company_match_call_failed", error=result.get("error"))
            return []
        payload = parse_contract(CompanyMatchList, result.get("content"))
        if payload is None:
            return []
        return [m.to_domain() for m in payload.matches[: self.settings.max_company_matches]]

    async def stream_recommendations(self, session: TopicPracticeSession) -> AsyncIterator[AgentEvent]:
        """Run the recommender agent and yield its events as they happen."""
        job_input = self._job_input(session)
        async for event in self._job_agent(job_input).execute_stream(job_input):
            yield event

    # ------------------------------------------------------------------
    # Session summary
    # ------------------------------------------------------------------

    async def generate_overall_summary(
        self,
        session: TopicPracticeSession,
        feedbacks: list[TopicFeedback],
    ) -> str:
        topic_scores = "\n".join(f"- {f.topic_name}: {f.score}/10" for f in feedbacks) or "(no topics scored)"
        prompt = OVERALL_SUMMARY_PROMPT.format(
            position=session.target_position,
            topic_scores=topic_scores,
            collected_info=format_collected_info(session.all_collected_info()),
        )
        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": prompt}],
            model=self.settings.fast_model_alias,
            response_format={"type": "json_object"},
            temperature=0.5,
        )
        if not result.get("success"):
            self.logger.warning("summary_call_failed", error=result.get("error"))
            return OVERALL_SUMMARY_FALLBACK
        payload = parse_contract(SummaryPayload, result.get("content"))
        return payload.summary if payload else OVERALL_SUMMARY_FALLBACK
