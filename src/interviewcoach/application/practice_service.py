"""
Topic Practice Service

Session-level orchestration on top of the topic state machine:
- start_session: choose the first topic and open it
- send_message: run one state-machine step and apply its outcome
- end_session: close the session and build the final report
- streaming variants for incremental delivery

All session mutations run under the store's per-session lock, so messages
of one session are applied in arrival order.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass, field
from typing import Any

import structlog

from interviewcoach.application.feedback import FeedbackService
from interviewcoach.application.topics import TopicPlanner
from interviewcoach.config.settings import Settings
from interviewcoach.core.domain.errors import (
    NoActiveTopicError,
    SessionForbiddenError,
    SessionNotFoundError,
)
from interviewcoach.core.domain.events import AgentEvent
from interviewcoach.core.domain.models import (
    CollectedInfoPoint,
    CompanyMatch,
    Difficulty,
    ForceEndReason,
    TopicContext,
    TopicFeedback,
    TopicPracticeSession,
    TopicStatus,
    TopicStepResult,
    UserIntent,
)
from interviewcoach.core.domain.topic_machine import TopicStateMachine
from interviewcoach.core.interfaces.session_store import SessionStoreProtocol
from interviewcoach.core.prompts.interview_prompts import (
    END_INTERVIEW_MESSAGE,
    ENGAGED_PROMPT,
    NEXT_TOPIC_TRANSITION,
    VIEW_FEEDBACK_MESSAGE,
)

DIFFICULTY_BY_INTENT = {
    UserIntent.WANT_EASIER: Difficulty.EASIER,
    UserIntent.WANT_HARDER: Difficulty.HARDER,
    UserIntent.WANT_SPECIFIC: Difficulty.SPECIFIC,
}


@dataclass
class StartSessionResult:
    session_id: str
    topic_name: str
    target_skills: list[str]
    opening_message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SendMessageResult:
    response: str
    topic_status: TopicStatus
    user_intent: UserIntent
    topic_name: str | None = None
    feedback: TopicFeedback | None = None
    collected_info: list[CollectedInfoPoint] = field(default_factory=list)
    new_topic: str | None = None
    force_end_reason: ForceEndReason | None = None
    interview_ended: bool = False
    company_matches: list[CompanyMatch] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["topic_status"] = self.topic_status.value
        payload["user_intent"] = self.user_intent.value
        payload["force_end_reason"] = self.force_end_reason.value if self.force_end_reason else None
        for point in payload["collected_info"]:
            point["type"] = point["type"].value
        return payload


@dataclass
class EndSessionResult:
    session_id: str
    feedbacks: list[TopicFeedback]
    recommendations: list[CompanyMatch]
    summary: str
    topics_covered: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class TopicPracticeService:
    """
    Application service for topic-based interview practice.

    Args:
        store: Session store (per-session locking, TTL)
        state_machine: Per-message transition function and topic mutations
        planner: Topic choice, opening messages, hints and question switches
        feedback_service: Feedback, company matches and summaries
        settings: Streaming chunk size and delay
    """

    def __init__(
        self,
        store: SessionStoreProtocol,
        state_machine: TopicStateMachine,
        planner: TopicPlanner,
        feedback_service: FeedbackService,
        settings: Settings,
    ):
        self.store = store
        self.machine = state_machine
        self.planner = planner
        self.feedback = feedback_service
        self.settings = settings
        self.logger = structlog.get_logger().bind(component="topic_practice_service")

    async def _load(self, session_id: str, user_id: str) -> TopicPracticeSession:
        session = await self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if session.user_id != user_id:
            self.logger.warning("session_access_denied", session_id=session_id, user_id=user_id)
            raise SessionForbiddenError(session_id)
        return session

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start_session(
        self,
        user_id: str,
        target_position: str,
        resume_text: str | None = None,
    ) -> StartSessionResult:
        session = TopicPracticeSession(user_id=user_id, target_position=target_position, resume_text=resume_text)
        topic_name, skills = await self.planner.choose_initial_topic(target_position, resume_text)
        topic = self.machine.open_topic(session, topic_name, skills)
        opening = await self.planner.opening_message(topic.name, target_position)
        self.machine.append_message(topic, "assistant", opening)

        async with self.store.lock(session.id):
            await self.store.put(session)

        self.logger.info(
            "session_started",
            session_id=session.id,
            user_id=user_id,
            position=target_position,
            topic=topic.name,
        )
        return StartSessionResult(
            session_id=session.id,
            topic_name=topic.name,
            target_skills=list(topic.target_skills),
            opening_message=opening,
        )

    async def get_session(self, session_id: str, user_id: str) -> TopicPracticeSession:
        """Return a consistent snapshot of the session."""
        return await self._load(session_id, user_id)

    async def end_session(self, session_id: str, user_id: str) -> EndSessionResult:
        """
        Close the session and build the final report.

        Feedback for the open topic, company matches and the overall summary
        are produced concurrently. The session is removed from the store.
        """
        async with self.store.lock(session_id):
            session = await self._load(session_id, user_id)

            topic = session.current_topic
            if topic is not None:
                status = TopicStatus.COLLECTED if topic.collected_info else TopicStatus.ABANDONED
                self.machine.seal_topic(session, status)

            feedback, matches, summary = await asyncio.gather(
                self._final_topic_feedback(session, topic),
                self._company_matches(session),
                self.feedback.generate_overall_summary(session, list(session.feedbacks)),
            )
            feedbacks = [*session.feedbacks, feedback] if feedback is not None else list(session.feedbacks)

            await self.store.delete(session_id)

        self.logger.info(
            "session_ended",
            session_id=session_id,
            topics=len(session.completed_topics),
            recommendations=len(matches),
        )
        return EndSessionResult(
            session_id=session_id,
            feedbacks=feedbacks,
            recommendations=matches,
            summary=summary,
            topics_covered=list(session.topic_history),
        )

    async def _company_matches(self, session: TopicPracticeSession) -> list[CompanyMatch]:
        if session.company_matches:
            return list(session.company_matches)
        return await self.feedback.generate_company_matches(session)

    async def _final_topic_feedback(
        self,
        session: TopicPracticeSession,
        topic: TopicContext | None,
    ) -> TopicFeedback | None:
        if topic is None:
            return None
        if topic.status == TopicStatus.ABANDONED:
            return self.feedback.encouragement_feedback(topic)
        return await self.feedback.generate_topic_feedback(topic, session.target_position)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def send_message(self, session_id: str, user_id: str, message: str) -> SendMessageResult:
        async with self.store.lock(session_id):
            session = await self._load(session_id, user_id)
            topic = session.current_topic
            if topic is None:
                raise NoActiveTopicError(session_id)

            step = await self.machine.step(message, topic, session.target_position, session.resume_text)
            self.machine.append_message(topic, "user", message)

            if step.intent == UserIntent.CONTINUE:
                result = await self._apply_step(session, topic, step)
            else:
                result = await self._apply_intent(session, topic, step.intent, message)

            await self.store.put(session)

        self.logger.info(
            "message_processed",
            session_id=session_id,
            intent=result.user_intent.value,
            status=result.topic_status.value,
            new_topic=result.new_topic,
        )
        return result

    async def send_message_stream(
        self,
        session_id: str,
        user_id: str,
        message: str,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Process the message, then deliver the response in chunks.

        Errors (not found, forbidden) are raised here, before the first
        chunk; the returned iterator yields ``content`` frames and a final
        ``done`` frame with the full result.
        """
        result = await self.send_message(session_id, user_id, message)
        return self._chunks(result)

    async def _chunks(self, result: SendMessageResult) -> AsyncIterator[dict[str, Any]]:
        size = max(1, self.settings.stream_chunk_size)
        delay = self.settings.stream_chunk_delay_ms / 1000
        for start in range(0, len(result.response), size):
            yield {"type": "content", "content": result.response[start : start + size]}
            if delay:
                await asyncio.sleep(delay)
        yield {"type": "done", "result": result.to_dict()}

    async def stream_recommendations(self, session_id: str, user_id: str) -> AsyncIterator[AgentEvent]:
        """Validate access, then return the recommender's event stream."""
        session = await self._load(session_id, user_id)
        return self.feedback.stream_recommendations(session)

    # ------------------------------------------------------------------
    # Outcome handling
    # ------------------------------------------------------------------

    async def _apply_intent(
        self,
        session: TopicPracticeSession,
        topic: TopicContext,
        intent: UserIntent,
        message: str,
    ) -> SendMessageResult:
        position = session.target_position

        if intent == UserIntent.END_INTERVIEW:
            feedback = await self._close_topic(session, topic)
            matches = await self.feedback.generate_company_matches(session)
            session.company_matches = list(matches)
            return SendMessageResult(
                response=END_INTERVIEW_MESSAGE,
                topic_status=topic.status,
                user_intent=intent,
                topic_name=topic.name,
                feedback=feedback,
                collected_info=list(topic.collected_info),
                interview_ended=True,
                company_matches=matches,
            )

        if intent == UserIntent.SWITCH_TOPIC:
            feedback = await self._close_topic(session, topic)
            new_topic, opening = await self._advance(session)
            return SendMessageResult(
                response=NEXT_TOPIC_TRANSITION.format(topic_name=new_topic.name) + opening,
                topic_status=topic.status,
                user_intent=intent,
                topic_name=topic.name,
                feedback=feedback,
                collected_info=list(topic.collected_info),
                new_topic=new_topic.name,
            )

        if intent == UserIntent.NEED_HINT:
            response = await self.planner.generate_hint(topic, position, message)
            self.machine.append_message(topic, "assistant", response)
            return SendMessageResult(
                response=response, topic_status=topic.status, user_intent=intent, topic_name=topic.name
            )

        if intent == UserIntent.VIEW_FEEDBACK:
            preview = await self.feedback.generate_topic_feedback(topic, position)
            self.machine.append_message(topic, "assistant", VIEW_FEEDBACK_MESSAGE)
            return SendMessageResult(
                response=VIEW_FEEDBACK_MESSAGE,
                topic_status=topic.status,
                user_intent=intent,
                topic_name=topic.name,
                feedback=preview,
                collected_info=list(topic.collected_info),
            )

        difficulty = DIFFICULTY_BY_INTENT[intent]
        topic.difficulty = difficulty
        response = await self.planner.switch_question(topic, position, difficulty)
        self.machine.append_message(topic, "assistant", response)
        return SendMessageResult(
            response=response, topic_status=topic.status, user_intent=intent, topic_name=topic.name
        )

    async def _apply_step(
        self,
        session: TopicPracticeSession,
        topic: TopicContext,
        step: TopicStepResult,
    ) -> SendMessageResult:
        self.machine.add_info_points(topic, step.new_info_points)

        if step.force_end or step.status.is_terminal:
            self.machine.append_message(topic, "assistant", step.response)
            feedback = await self._close_topic(session, topic, step.status)
            new_topic, opening = await self._advance(session)
            response = f"{step.response}\n\n{NEXT_TOPIC_TRANSITION.format(topic_name=new_topic.name)}{opening}"
            return SendMessageResult(
                response=response,
                topic_status=step.status,
                user_intent=UserIntent.CONTINUE,
                topic_name=topic.name,
                feedback=feedback,
                collected_info=list(topic.collected_info),
                new_topic=new_topic.name,
                force_end_reason=step.force_end_reason,
            )

        response = step.response
        if step.status == TopicStatus.ENGAGED:
            response = f"{response}\n\n{ENGAGED_PROMPT}"
        self.machine.append_message(topic, "assistant", response)
        return SendMessageResult(
            response=response,
            topic_status=step.status,
            user_intent=UserIntent.CONTINUE,
            topic_name=topic.name,
            collected_info=list(step.new_info_points),
        )

    async def _close_topic(
        self,
        session: TopicPracticeSession,
        topic: TopicContext,
        status: TopicStatus | None = None,
    ) -> TopicFeedback:
        """Generate the topic's feedback, seal it and record the feedback."""
        if status is None:
            status = TopicStatus.COLLECTED if topic.collected_info else TopicStatus.ABANDONED
        if status == TopicStatus.ABANDONED:
            feedback = self.feedback.encouragement_feedback(topic)
        else:
            feedback = await self.feedback.generate_topic_feedback(topic, session.target_position)
        self.machine.seal_topic(session, status)
        session.feedbacks.append(feedback)
        return feedback

    async def _advance(self, session: TopicPracticeSession) -> tuple[TopicContext, str]:
        name, skills = await self.planner.choose_next_topic(session)
        topic = self.machine.open_topic(session, name, skills)
        opening = await self.planner.opening_message(topic.name, session.target_position)
        self.machine.append_message(topic, "assistant", opening)
        return topic, opening
