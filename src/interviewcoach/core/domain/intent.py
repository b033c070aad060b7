"""
Intent Classifier Cascade

Two tiers:
1. Deterministic rules: bare command words and canonical phrases per intent,
   checked in a fixed priority order. No oracle call.
2. Oracle fallback: one constrained call returning an intent enum plus a
   confidence. Anything but a confident, non-default verdict resolves to
   ``continue``.
"""

import re
from dataclasses import dataclass

import structlog

from interviewcoach.core.domain.contracts import IntentVerdict, parse_contract
from interviewcoach.core.domain.models import IntentResult, IntentSource, UserIntent
from interviewcoach.core.interfaces.llm import LLMProviderProtocol
from interviewcoach.core.prompts.interview_prompts import INTENT_CLASSIFIER_PROMPT

DEFAULT_CONTINUE_CONFIDENCE = 0.7
ORACLE_FAILURE_CONFIDENCE = 0.5


@dataclass(frozen=True)
class IntentRule:
    intent: UserIntent
    confidence: float
    command: re.Pattern
    phrases: tuple[str, ...]

    def matches(self, text: str) -> bool:
        return bool(self.command.match(text)) or any(p in text for p in self.phrases)


def _command(*words: str) -> re.Pattern:
    # the keyword must be the whole message, give or take "please" and punctuation
    alternatives = "|".join(re.escape(w) for w in words)
    return re.compile(
        r"^(?:please\s+)?(?:" + alternatives + r")(?:\s*,?\s*please)?[\s.!?,~。！？，…了吧啊呢]*$",
        re.IGNORECASE,
    )


# Priority order: earlier rules win when several match.
INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        UserIntent.END_INTERVIEW,
        0.95,
        _command("end", "stop", "finish", "done", "quit", "exit", "that's all", "thats all", "结束", "够了"),
        (
            "end the interview", "end interview", "stop the interview", "finish the interview",
            "i'm done", "i am done", "that's enough", "let's stop", "end the session",
            "结束面试", "不想继续", "不想聊了",
        ),
    ),
    IntentRule(
        UserIntent.SWITCH_TOPIC,
        0.95,
        _command("next topic", "next question", "switch", "skip", "change topic", "换话题", "下一个话题"),
        (
            "switch topic", "next topic", "different question", "different topic", "skip this",
            "let's move on", "can we move on", "change the topic", "talk about something else", "换个话题", "聊点别的",
        ),
    ),
    IntentRule(
        UserIntent.NEED_HINT,
        0.9,
        _command("hint", "help", "stuck", "提示", "帮助", "不知道"),
        (
            "give me a hint", "need a hint", "can i get a hint", "i don't know how",
            "i'm stuck", "help me answer", "给我提示", "不知道怎么", "没思路",
        ),
    ),
    IntentRule(
        UserIntent.WANT_EASIER,
        0.9,
        _command("easier", "simpler", "换简单", "太难", "简单点"),
        ("too hard", "too difficult", "easier one", "easier question", "simpler question", "换简单的", "换个简单", "这个太难"),
    ),
    IntentRule(
        UserIntent.WANT_HARDER,
        0.9,
        _command("harder", "more challenging", "换难", "太简单"),
        ("too easy", "too simple", "harder one", "harder question", "more challenging", "换难的", "换个难", "这个太简单"),
    ),
    IntentRule(
        UserIntent.WANT_SPECIFIC,
        0.9,
        _command("specific", "real question"),
        (
            "specific question", "real interview question", "actual question", "concrete question",
            "具体题目", "具体一点", "给我一道题", "实际的题", "真正的面试题",
        ),
    ),
    IntentRule(
        UserIntent.VIEW_FEEDBACK,
        0.85,
        _command("feedback"),
        ("view feedback", "see feedback", "show feedback", "show me feedback", "how am i doing", "how did i do", "查看反馈", "看看反馈"),
    ),
)


def _normalize(message: str) -> str:
    return message.strip().lower().replace("’", "'")


def match_intent_rules(message: str) -> IntentResult | None:
    """Tier 1: return the first matching rule's intent, or None."""
    text = _normalize(message)
    if not text:
        return None
    for rule in INTENT_RULES:
        if rule.matches(text):
            return IntentResult(rule.intent, rule.confidence, IntentSource.RULE)
    return None


class IntentClassifier:
    """
    Rules-first intent classifier.

    Args:
        llm_provider: Oracle for tier 2
        confidence_threshold: Tier-2 verdicts must exceed this to count
        model_alias: Model alias for the tier-2 call
    """

    def __init__(
        self,
        llm_provider: LLMProviderProtocol,
        confidence_threshold: float = 0.7,
        model_alias: str = "fast",
    ):
        self.llm_provider = llm_provider
        self.confidence_threshold = confidence_threshold
        self.model_alias = model_alias
        self.logger = structlog.get_logger().bind(component="intent_classifier")

    async def classify(self, message: str) -> IntentResult:
        if not _normalize(message):
            return IntentResult(UserIntent.CONTINUE, DEFAULT_CONTINUE_CONFIDENCE, IntentSource.RULE)

        rule_result = match_intent_rules(message)
        if rule_result is not None:
            self.logger.info("intent_rule_match", intent=rule_result.intent.value)
            return rule_result

        return await self._classify_with_oracle(message)

    async def _classify_with_oracle(self, message: str) -> IntentResult:
        result = await self.llm_provider.complete(
            messages=[{"role": "user", "content": INTENT_CLASSIFIER_PROMPT.format(message=message[:200])}],
            model=self.model_alias,
            response_format={"type": "json_object"},
            temperature=0,
        )
        verdict = parse_contract(IntentVerdict, result.get("content")) if result.get("success") else None
        if verdict is None:
            self.logger.warning("intent_oracle_failed", error=result.get("error"))
            return IntentResult(UserIntent.CONTINUE, ORACLE_FAILURE_CONFIDENCE, IntentSource.ORACLE)

        if verdict.intent != UserIntent.CONTINUE and verdict.confidence > self.confidence_threshold:
            self.logger.info("intent_oracle_match", intent=verdict.intent.value, confidence=verdict.confidence)
            return IntentResult(verdict.intent, verdict.confidence, IntentSource.ORACLE)

        confidence = verdict.confidence if verdict.intent == UserIntent.CONTINUE else DEFAULT_CONTINUE_CONFIDENCE
        return IntentResult(UserIntent.CONTINUE, confidence, IntentSource.ORACLE)
