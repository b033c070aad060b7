"""
Topic Session State Machine

Decides, for each user message, what happens to the active topic:

    collecting --> collected | abandoned      (terminal, topic is sealed)
    collecting --> engaged                    (soft sub-state, presented only)

``step`` evaluates one message in a fixed order:
1. time limit (hard, deterministic, no oracle call)
2. intent cascade (control intents short-circuit)
3. one combined oracle call: status + extraction + follow-up
4. topic completeness (hard, model judgment)
5. engagement (soft)

``step`` does not mutate the topic. Mutations go through the lifecycle
helpers below, which are the only writers of topic messages, collected
information and the session's topic lists.
"""

from collections.abc import Callable
from datetime import datetime

import structlog

from interviewcoach.config.settings import Settings
from interviewcoach.core.domain.contracts import TopicTurnAssessment, parse_contract
from interviewcoach.core.domain.intent import IntentClassifier
from interviewcoach.core.domain.models import (
    ChatMessage,
    CollectedInfoPoint,
    Engagement,
    ForceEndReason,
    TopicContext,
    TopicPracticeSession,
    TopicStatus,
    TopicStepResult,
    UserIntent,
    utcnow,
)
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.prompts.interview_prompts import (
    FALLBACK_FOLLOW_UP,
    TIME_LIMIT_MESSAGE,
    TOPIC_COMPLETE_MESSAGE,
    TOPIC_TURN_PROMPT,
)


def format_collected_info(points: list[CollectedInfoPoint]) -> str:
    if not points:
        return "(none yet)"
    return "\n".join(f"- [{p.type.value}, depth {p.depth}] {p.summary}" for p in points)


def format_messages(messages: list[ChatMessage], limit: int, snippet_chars: int) -> str:
    recent = messages[-limit:] if limit > 0 else []
    if not recent:
        return "(no previous messages)"
    return "\n".join(
        f"{'Candidate' if m.role == 'user' else 'Interviewer'}: {m.content[:snippet_chars]}" for m in recent
    )


class TopicStateMachine:
    """
    Per-message transition function plus topic lifecycle mutations.

    Args:
        llm_provider: Oracle for the combined turn assessment
        intent_classifier: Intent cascade
        settings: Thresholds (time limit, engagement turns, context window)
        clock: Returns the current aware datetime, injectable for tests
        model_alias: Model alias for the turn assessment call
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        intent_classifier: IntentClassifier,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
        model_alias: str = "fast",
    ):
        self.llm_provider = llm_provider
        self.intent_classifier = intent_classifier
        self.settings = settings
        self.clock = clock
        self.model_alias = model_alias
        self.logger = structlog.get_logger().bind(component="topic_state_machine")

    # ------------------------------------------------------------------
    # Transition function
    # ------------------------------------------------------------------

    async def step(
        self,
        user_message: str,
        topic: TopicContext,
        position: str,
        resume_text: str | None = None,
    ) -> TopicStepResult:
        """
        Evaluate one user message against the active topic.

        Args:
            user_message: Latest user message (not yet appended to the topic)
            topic: Active topic
            position: Target position of the session
            resume_text: Optional resume context

        Returns:
            TopicStepResult with the presented status and follow-up response
        """
        elapsed = (self.clock() - topic.started_at).total_seconds()
        if elapsed >= self.settings.topic_time_limit_seconds:
            self.logger.info("topic_force_end", topic=topic.name, reason="time_limit", elapsed_s=int(elapsed))
            return TopicStepResult(
                status=TopicStatus.COLLECTED,
                response=TIME_LIMIT_MESSAGE,
                force_end=True,
                force_end_reason=ForceEndReason.TIME_LIMIT,
            )

        intent = await self.intent_classifier.classify(user_message)
        if intent.intent != UserIntent.CONTINUE:
            self.logger.info(
                "topic_control_intent",
                topic=topic.name,
                intent=intent.intent.value,
                source=intent.source.value,
            )
            return TopicStepResult(
                status=topic.status,
                intent=intent.intent,
                intent_source=intent.source,
            )

        assessment = await self._assess_turn(user_message, topic, position, resume_text)
        new_points = [p.to_domain() for p in assessment.new_info_points]

        if assessment.topic_complete:
            self.logger.info("topic_force_end", topic=topic.name, reason="topic_complete")
            return TopicStepResult(
                status=TopicStatus.COLLECTED,
                response=TOPIC_COMPLETE_MESSAGE,
                intent_source=intent.source,
                new_info_points=new_points,
                force_end=True,
                force_end_reason=ForceEndReason.TOPIC_COMPLETE,
                engagement=assessment.user_engagement,
                reasoning=assessment.reasoning,
            )

        status = TopicStatus(assessment.status)
        user_turns = topic.user_turns + 1
        if (
            status == TopicStatus.COLLECTING
            and user_turns >= self.settings.engaged_turn_threshold
            and assessment.user_engagement == Engagement.HIGH
        ):
            status = TopicStatus.ENGAGED

        self.logger.info(
            "topic_step",
            topic=topic.name,
            status=status.value,
            user_turns=user_turns,
            new_points=len(new_points),
        )
        return TopicStepResult(
            status=status,
            response=assessment.ai_response,
            intent_source=intent.source,
            new_info_points=new_points,
            engagement=assessment.user_engagement,
            reasoning=assessment.reasoning,
        )

    async def _assess_turn(
        self,
        user_message: str,
        topic: TopicContext,
        position: str,
        resume_text: str | None,
    ) -> TopicTurnAssessment:
        fallback = TopicTurnAssessment(ai_response=FALLBACK_FOLLOW_UP, reasoning="fallback")
        prompt = TOPIC_TURN_PROMPT.format(
            position=position,
            topic_name=topic.name,
            target_skills=", ".join(topic.target_skills) or "(unspecified)",
            resume_section=f"Candidate resume (excerpt):\n{resume_text[:1500]}\n" if resume_text else "",
            collected_info=format_collected_info(topic.collected_info),
            recent_messages=format_messages(
                topic.messages,
                self.settings.recent_message_window,
                self.settings.message_snippet_chars,
            ),
            user_message=user_message[: self.settings.message_snippet_chars],
        )
        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": prompt}],
            model=self.model_alias,
            response_format={"type": "json_object"},
            temperature=0.4,
        )
        if not result.get("success"):
            self.logger.warning("topic_assessment_failed", error=result.get("error"))
            return fallback
        return parse_contract(TopicTurnAssessment, result.get("content"), default=fallback)

    # ------------------------------------------------------------------
    # Lifecycle mutations
    # ------------------------------------------------------------------

    def append_message(self, topic: TopicContext, role: str, content: str) -> None:
        if topic.is_sealed:
            raise ValueError(f"Topic '{topic.name}' is sealed")
        topic.messages.append(ChatMessage(role=role, content=content, timestamp=self.clock()))

    def add_info_points(self, topic: TopicContext, points: list[CollectedInfoPoint]) -> None:
        if topic.is_sealed:
            raise ValueError(f"Topic '{topic.name}' is sealed")
        topic.collected_info.extend(points)

    def set_status(self, topic: TopicContext, status: TopicStatus) -> None:
        if topic.is_sealed:
            raise ValueError(f"Topic '{topic.name}' is sealed")
        topic.status = status

    def open_topic(
        self,
        session: TopicPracticeSession,
        name: str,
        target_skills: list[str] | None = None,
    ) -> TopicContext:
        """
        Make a new topic the session's current topic.

        Raises:
            ValueError: If a topic is still active or the name was already used
        """
        if session.current_topic is not None:
            raise ValueError("Seal the current topic before opening a new one")
        if session.has_seen_topic(name):
            raise ValueError(f"Topic already used in this session: {name}")
        topic = TopicContext(name=name, target_skills=list(target_skills or []), started_at=self.clock())
        session.current_topic = topic
        session.topic_history.append(name)
        self.logger.info("topic_opened", session_id=session.id, topic=name)
        return topic

    def seal_topic(self, session: TopicPracticeSession, status: TopicStatus) -> TopicContext:
        """
        Close the current topic and move it to ``completed_topics``.

        Raises:
            ValueError: If there is no current topic or status is not terminal
        """
        topic = session.current_topic
        if topic is None:
            raise ValueError("No active topic to seal")
        if not status.is_terminal:
            raise ValueError(f"Cannot seal a topic with status {status.value}")
        topic.status = status
        topic.ended_at = self.clock()
        session.completed_topics.append(topic)
        session.current_topic = None
        self.logger.info("topic_sealed", session_id=session.id, topic=topic.name, status=status.value)
        return topic
