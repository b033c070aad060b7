"""
Shared fixtures.

``RoutingLLM`` is a scripted oracle: each route pairs a marker substring
with replies. A call is answered by the first route whose marker appears in
any message of the request; a route with several replies hands them out in
order and then repeats the last one.
"""

import json
from typing import Any

import pytest

from interviewcoach.config.settings import Settings
from interviewcoach.infrastructure.persistence.in_memory_session_store import InMemorySessionStore

# Markers that identify each oracle prompt
INTENT = "Determine their intent"
TURN = "In ONE reply"
TOPIC_FEEDBACK = "Write feedback for a candidate"
COMPANY_MATCH = "Suggest up to"
SUMMARY = "Summarize a mock interview"
NEXT_TOPIC = "Suggest the next interview practice topic"
INITIAL_TOPIC = "Choose the first interview practice topic"
OPENING = "Open the topic"
HINT = "is stuck on the topic"
SWITCH = "The candidate asked for a"
FEEDBACK_AGENT = "generating feedback for one practice topic"
JOB_AGENT = "career advisor"
HINT_AGENT = "helping a stuck interview candidate"
JUDGE = "expert evaluator"


def ok(content: Any) -> dict[str, Any]:
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"success": True, "content": content}


def fail(error: str = "LLM unavailable") -> dict[str, Any]:
    return {"success": False, "error": error}


class RoutingLLM:
    """Scripted LLMProviderProtocol implementation."""

    def __init__(self) -> None:
        self.routes: list[tuple[str, list[Any]]] = []
        self.calls: list[dict[str, Any]] = []

    def route(self, marker: str, *replies: Any) -> "RoutingLLM":
        self.routes.append((marker, list(replies)))
        return self

    def calls_for(self, marker: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if any(marker in str(m.get("content")) for m in c["messages"])]

    async def complete(self, messages: list[dict[str, Any]], model: str | None = None, **kwargs: Any) -> dict[str, Any]:
        self.calls.append({"messages": messages, "model": model, **kwargs})
        for marker, replies in self.routes:
            if any(marker in str(m.get("content")) for m in messages):
                reply = replies.pop(0) if len(replies) > 1 else replies[0]
                if callable(reply):
                    reply = await reply(messages)
                return reply
        return fail("no scripted reply")


@pytest.fixture
def llm():
    """Scripted oracle with no routes (every call fails)."""
    return RoutingLLM()


@pytest.fixture
def test_settings():
    """Settings independent of the developer's environment."""
    return Settings(
        topic_time_limit_seconds=600,
        engaged_turn_threshold=5,
        company_match_timeout_seconds=8,
        max_company_matches=5,
        stream_chunk_size=10,
        stream_chunk_delay_ms=0,
        model_alias="main",
        fast_model_alias="fast",
    )


@pytest.fixture
def memory_store():
    return InMemorySessionStore(ttl_seconds=3600)


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()
