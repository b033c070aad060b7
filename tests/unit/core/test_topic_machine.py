"""Unit tests for the topic state machine."""

from datetime import datetime, timedelta, timezone

import pytest
from conftest import INTENT, TURN, fail, ok

from interviewcoach.core.domain.intent import IntentClassifier
from interviewcoach.core.domain.models import (
    CollectedInfoPoint,
    Engagement,
    ForceEndReason,
    InfoPointType,
    TopicPracticeSession,
    TopicStatus,
    UserIntent,
)
from interviewcoach.core.domain.topic_machine import TopicStateMachine, format_collected_info, format_messages
from interviewcoach.core.prompts.interview_prompts import (
    FALLBACK_FOLLOW_UP,
    TIME_LIMIT_MESSAGE,
    TOPIC_COMPLETE_MESSAGE,
)

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class MovableClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def wall_clock():
    return MovableClock()


@pytest.fixture
def machine(llm, test_settings, wall_clock):
    return TopicStateMachine(llm, IntentClassifier(llm), test_settings, clock=wall_clock)


@pytest.fixture
def session():
    return TopicPracticeSession(user_id="u1", target_position="Backend Engineer")


def assessment(**overrides):
    reply = {
        "status": "collecting",
        "topic_complete": False,
        "user_engagement": "medium",
        "new_info_points": [],
        "reasoning": "",
        "ai_response": "What was your role in that migration?",
    }
    reply.update(overrides)
    return ok(reply)


class TestStep:
    @pytest.mark.asyncio
    async def test_time_limit_forces_end_without_oracle(self, machine, session, wall_clock, llm):
        """Test an overdue topic ends before any oracle call."""
        topic = machine.open_topic(session, "System Design")
        wall_clock.now = START + timedelta(minutes=11)

        result = await machine.step("I want to end the interview", topic, session.target_position)

        assert result.force_end is True
        assert result.force_end_reason == ForceEndReason.TIME_LIMIT
        assert result.status == TopicStatus.COLLECTED
        assert result.response == TIME_LIMIT_MESSAGE
        assert result.intent == UserIntent.CONTINUE
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_control_intent_short_circuits(self, machine, session, llm):
        topic = machine.open_topic(session, "System Design")

        result = await machine.step("next topic please", topic, session.target_position)

        assert result.intent == UserIntent.SWITCH_TOPIC
        assert result.status == TopicStatus.COLLECTING
        assert result.force_end is False
        assert llm.calls_for(TURN) == []

    @pytest.mark.asyncio
    async def test_regular_turn_extracts_info(self, machine, session, llm):
        llm.route(INTENT, ok({"intent": "continue", "confidence": 0.9}))
        llm.route(
            TURN,
            assessment(
                new_info_points=[
                    {"type": "quantified_result", "summary": "Cut p99 latency by 40%", "depth": 4},
                ],
                user_engagement="high",
            ),
        )
        topic = machine.open_topic(session, "System Design")

        result = await machine.step("We cut p99 latency by 40% with a cache", topic, session.target_position)

        assert result.status == TopicStatus.COLLECTING
        assert result.response == "What was your role in that migration?"
        assert result.new_info_points[0].type == InfoPointType.QUANTIFIED_RESULT
        assert result.engagement == Engagement.HIGH
        assert topic.collected_info == []
        assert topic.messages == []

    @pytest.mark.asyncio
    async def test_topic_complete_forces_end(self, machine, session, llm):
        llm.route(INTENT, ok({"intent": "continue", "confidence": 0.9}))
        llm.route(TURN, assessment(topic_complete=True, status="collecting"))
        topic = machine.open_topic(session, "System Design")

        result = await machine.step("And that is the whole story", topic, session.target_position)

        assert result.force_end is True
        assert result.force_end_reason == ForceEndReason.TOPIC_COMPLETE
        assert result.status == TopicStatus.COLLECTED
        assert result.response == TOPIC_COMPLETE_MESSAGE

    @pytest.mark.asyncio
    async def test_abandoned_status(self, machine, session, llm):
        llm.route(INTENT, ok({"intent": "continue", "confidence": 0.9}))
        llm.route(TURN, assessment(status="abandoned", ai_response="No problem, let's try another angle."))
        topic = machine.open_topic(session, "Kubernetes")

        result = await machine.step("I have never used it", topic, session.target_position)

        assert result.status == TopicStatus.ABANDONED
        assert result.status.is_terminal
        assert result.force_end is False

    @pytest.mark.asyncio
    async def test_engaged_after_enough_turns(self, machine, session, llm):
        """Test a highly engaged user past the turn threshold is presented as engaged."""
        llm.route(INTENT, ok({"intent": "continue", "confidence": 0.9}))
        llm.route(TURN, assessment(user_engagement="high"))
        topic = machine.open_topic(session, "System Design")
        for i in range(4):
            machine.append_message(topic, "user", f"answer {i}")

        result = await machine.step("Another detailed answer", topic, session.target_position)

        assert result.status == TopicStatus.ENGAGED
        assert topic.status == TopicStatus.COLLECTING

    @pytest.mark.asyncio
    async def test_high_engagement_below_threshold_is_collecting(self, machine, session, llm):
        llm.route(INTENT, ok({"intent": "continue", "confidence": 0.9}))
        llm.route(TURN, assessment(user_engagement="high"))
        topic = machine.open_topic(session, "System Design")

        result = await machine.step("A detailed answer", topic, session.target_position)

        assert result.status == TopicStatus.COLLECTING

    @pytest.mark.asyncio
    async def test_oracle_failure_uses_fallback_follow_up(self, machine, session, llm):
        llm.route(INTENT, ok({"intent": "continue", "confidence": 0.9}))
        llm.route(TURN, fail())
        topic = machine.open_topic(session, "System Design")

        result = await machine.step("We used Postgres", topic, session.target_position)

        assert result.status == TopicStatus.COLLECTING
        assert result.response == FALLBACK_FOLLOW_UP
        assert result.new_info_points == []

    @pytest.mark.asyncio
    async def test_malformed_assessment_uses_fallback(self, machine, session, llm):
        llm.route(INTENT, ok({"intent": "continue", "confidence": 0.9}))
        llm.route(TURN, ok("the candidate seems fine"))
        topic = machine.open_topic(session, "System Design")

        result = await machine.step("We used Postgres", topic, session.target_position)

        assert result.response == FALLBACK_FOLLOW_UP


class TestLifecycle:
    def test_open_topic_records_history(self, machine, session):
        topic = machine.open_topic(session, "System Design", ["scalability"])

        assert session.current_topic is topic
        assert session.topic_history == ["System Design"]
        assert topic.started_at == START
        assert topic.target_skills == ["scalability"]

    def test_cannot_open_while_active(self, machine, session):
        machine.open_topic(session, "System Design")
        with pytest.raises(ValueError):
            machine.open_topic(session, "Teamwork")

    def test_topic_names_are_never_repeated(self, machine, session):
        machine.open_topic(session, "System Design")
        machine.seal_topic(session, TopicStatus.COLLECTED)
        with pytest.raises(ValueError):
            machine.open_topic(session, "system design ")

    def test_seal_moves_topic_to_completed(self, machine, session):
        topic = machine.open_topic(session, "System Design")
        sealed = machine.seal_topic(session, TopicStatus.ABANDONED)

        assert sealed is topic
        assert session.current_topic is None
        assert session.completed_topics == [topic]
        assert topic.status == TopicStatus.ABANDONED
        assert topic.ended_at == START

    def test_seal_requires_terminal_status(self, machine, session):
        machine.open_topic(session, "System Design")
        with pytest.raises(ValueError):
            machine.seal_topic(session, TopicStatus.ENGAGED)

    def test_seal_without_topic(self, machine, session):
        with pytest.raises(ValueError):
            machine.seal_topic(session, TopicStatus.COLLECTED)

    def test_sealed_topic_is_immutable(self, machine, session):
        topic = machine.open_topic(session, "System Design")
        machine.seal_topic(session, TopicStatus.COLLECTED)
        point = CollectedInfoPoint(type=InfoPointType.LEARNING, summary="x")

        with pytest.raises(ValueError):
            machine.append_message(topic, "user", "late answer")
        with pytest.raises(ValueError):
            machine.add_info_points(topic, [point])
        with pytest.raises(ValueError):
            machine.set_status(topic, TopicStatus.COLLECTING)


class TestFormatting:
    def test_format_collected_info(self):
        points = [CollectedInfoPoint(type=InfoPointType.SKILL_CLAIM, summary="Knows Go", depth=2)]
        assert format_collected_info(points) == "- [skill_claim, depth 2] Knows Go"
        assert format_collected_info([]) == "(none yet)"

    def test_format_messages_window(self, machine, session):
        topic = machine.open_topic(session, "System Design")
        machine.append_message(topic, "assistant", "Tell me about a design")
        machine.append_message(topic, "user", "A queue-based pipeline")

        assert format_messages(topic.messages, 1, 5) == "Candidate: A que"
        assert format_messages([], 5, 100) == "(no previous messages)"
