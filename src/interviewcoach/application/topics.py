"""
Topic planning: choosing topics, opening them, hints and question switches.
"""

import re

import structlog

from interviewcoach.application.agents import HintInput, create_hint_agent_spec
from interviewcoach.config.settings import Settings
from interviewcoach.core.domain.agent import ReActAgent
from interviewcoach.core.domain.contracts import (
    HintPayload,
    InitialTopicPayload,
    NextTopicSuggestion,
    OpeningMessagePayload,
    SwitchedQuestionPayload,
    parse_contract,
)
from interviewcoach.core.domain.grader import MultiGrader
from interviewcoach.core.domain.models import Difficulty, TopicContext, TopicPracticeSession
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.prompts.interview_prompts import (
    DEFAULT_TOPIC_NAME,
    DEFAULT_TOPIC_SKILLS,
    FALLBACK_TOPIC_POOL,
    GENERAL_FOCUS,
    HINT_PROMPT,
    INITIAL_TOPIC_PROMPT,
    NEXT_TOPIC_PROMPT,
    OPENING_MESSAGE_FALLBACK,
    OPENING_MESSAGE_PROMPT,
    STAR_HINT_TEMPLATE,
    SWITCH_FALLBACK_QUESTIONS,
    SWITCH_GUIDANCE,
    SWITCH_QUESTION_PROMPT,
    SWITCH_TRANSITIONS,
    TECHNICAL_FOCUS,
    TECHNICAL_POSITION_KEYWORDS,
)

_TECHNICAL_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in TECHNICAL_POSITION_KEYWORDS) + r")\b",
    re.IGNORECASE,
)


def is_technical_position(position: str) -> bool:
    return bool(_TECHNICAL_RE.search(position))


def last_question(topic: TopicContext) -> str:
    for message in reversed(topic.messages):
        if message.role == "assistant":
            return message.content
    return f"Tell me about your experience with {topic.name}."


def _resume_section(resume_text: str | None) -> str:
    return f"Candidate resume (excerpt):\n{resume_text[:1500]}\n" if resume_text else ""


class TopicPlanner:
    """
    Oracle-backed topic decisions, each with a deterministic fallback.

    Args:
        llm_provider: Reasoning oracle
        settings: Model aliases
        hint_grader: Optional grader attached to hint agent runs
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        settings: Settings,
        hint_grader: MultiGrader | None = None,
    ):
        self.llm_provider = llm_provider
        self.settings = settings
        self.hint_grader = hint_grader
        self.logger = structlog.get_logger().bind(component="topic_planner")

    async def _ask(self, prompt: str, temperature: float = 0.5) -> str | None:
        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": prompt}],
            model=self.settings.fast_model_alias,
            response_format={"type": "json_object"},
            temperature=temperature,
        )
        if not result.get("success"):
            self.logger.warning("planner_call_failed", error=result.get("error"))
            return None
        return result.get("content")

    async def choose_initial_topic(self, position: str, resume_text: str | None = None) -> tuple[str, list[str]]:
        """Pick the first topic; technical roles get a hands-on technical focus."""
        technical = is_technical_position(position)
        content = await self._ask(
            INITIAL_TOPIC_PROMPT.format(
                position=position,
                focus=TECHNICAL_FOCUS if technical else GENERAL_FOCUS,
                resume_section=_resume_section(resume_text),
            )
        )
        payload = parse_contract(InitialTopicPayload, content)
        if payload is None:
            return DEFAULT_TOPIC_NAME, list(DEFAULT_TOPIC_SKILLS)
        self.logger.info("initial_topic_chosen", topic=payload.topic_name, technical=technical)
        return payload.topic_name.strip(), payload.target_skills

    async def choose_next_topic(self, session: TopicPracticeSession) -> tuple[str, list[str]]:
        """
        Pick a topic name not yet seen in this session.

        Order: oracle suggestion, its alternatives, the fallback pool, then a
        numbered variant of the default topic.
        """
        content = await self._ask(
            NEXT_TOPIC_PROMPT.format(
                position=session.target_position,
                history=", ".join(session.topic_history) or "(none)",
                resume_section=_resume_section(session.resume_text),
            )
        )
        suggestion = parse_contract(NextTopicSuggestion, content)
        if suggestion is not None:
            for name in [suggestion.suggested_topic, *suggestion.alternatives]:
                name = name.strip()
                if name and not session.has_seen_topic(name):
                    return name, []
            self.logger.info("next_topic_suggestion_repeated", suggestion=suggestion.suggested_topic)

        for name, skills in FALLBACK_TOPIC_POOL:
            if not session.has_seen_topic(name):
                return name, list(skills)

        part = 2
        while session.has_seen_topic(f"{DEFAULT_TOPIC_NAME} - Part {part}"):
            part += 1
        return f"{DEFAULT_TOPIC_NAME} - Part {part}", list(DEFAULT_TOPIC_SKILLS)

    async def opening_message(self, topic_name: str, position: str) -> str:
        content = await self._ask(OPENING_MESSAGE_PROMPT.format(topic_name=topic_name, position=position), 0.7)
        payload = parse_contract(OpeningMessagePayload, content)
        return payload.message if payload else OPENING_MESSAGE_FALLBACK.format(topic_name=topic_name)

    async def generate_hint(self, topic: TopicContext, position: str, user_message: str) -> str:
        """Hint agent, then a single oracle call, then the STAR template."""
        hint_input = HintInput(
            position=position,
            topic_name=topic.name,
            last_question=last_question(topic),
            user_message=user_message,
        )
        agent = ReActAgent(
            create_hint_agent_spec(hint_input),
            self.llm_provider,
            grader=self.hint_grader,
            model_alias=self.settings.fast_model_alias,
        )
        result = await agent.execute(hint_input)
        if result.success:
            return _format_hint(result.output)

        self.logger.warning("hint_agent_failed", early_stop_reason=result.trace.early_stop_reason)
        content = await self._ask(
            HINT_PROMPT.format(
                position=position,
                topic_name=topic.name,
                last_question=hint_input.last_question[:500],
                user_message=user_message[:300],
            )
        )
        payload = parse_contract(HintPayload, content)
        if payload is not None:
            return _format_hint(payload)
        return STAR_HINT_TEMPLATE.format(topic_name=topic.name)

    async def switch_question(self, topic: TopicContext, position: str, direction: Difficulty) -> str:
        """Return the transition prefix plus a question in the requested direction."""
        content = await self._ask(
            SWITCH_QUESTION_PROMPT.format(
                position=position,
                topic_name=topic.name,
                last_question=last_question(topic)[:500],
                direction=direction.value,
                direction_guidance=SWITCH_GUIDANCE[direction.value],
            ),
            0.7,
        )
        payload = parse_contract(SwitchedQuestionPayload, content)
        question = (
            payload.question
            if payload
            else SWITCH_FALLBACK_QUESTIONS[direction.value].format(topic_name=topic.name)
        )
        return SWITCH_TRANSITIONS[direction.value] + question


def _format_hint(payload: HintPayload) -> str:
    if payload.example_direction:
        return f"{payload.hint}\n\nFor example: {payload.example_direction}"
    return payload.hint
