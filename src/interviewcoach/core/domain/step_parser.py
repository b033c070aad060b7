"""
Reasoning-Step Parser

Parses one oracle reply written in the text grammar

    Thought: <reasoning>
    Action: <tool_name>
    Action Input: {"param": "value"}

or

    Thought: <reasoning>
    Final Answer: <answer>

into a ParsedStep. Matching is case-insensitive. A "Final Answer:" marker
always wins over an action. An action whose input is not a JSON object is
dropped. Parsing never raises.
"""

import json
import re
from dataclasses import dataclass

from interviewcoach.core.domain.models import ToolAction

THOUGHT_RE = re.compile(r"Thought:\s*([\s\S]*?)(?=Action:|Final Answer:|$)", re.IGNORECASE)
FINAL_ANSWER_RE = re.compile(r"Final Answer:\s*([\s\S]*?)$", re.IGNORECASE)
ACTION_RE = re.compile(r"Action:\s*(\w+)\s*\n\s*Action Input:\s*(\{[\s\S]*\})", re.IGNORECASE)

COMPLETION_PHRASES = ("i have enough information", "final answer")


@dataclass(frozen=True)
class ParsedStep:
    thought: str
    action: ToolAction | None = None
    final_answer: str | None = None
    is_final: bool = False


def _parse_action_input(raw: str) -> dict | None:
    """Decode the JSON object after "Action Input:", trimming trailing prose."""
    candidate = raw.strip()
    while candidate:
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            cut = candidate.rfind("}", 0, len(candidate) - 1)
            if cut == -1:
                return None
            candidate = candidate[: cut + 1]
            continue
        return value if isinstance(value, dict) else None
    return None


def parse_step(response: str) -> ParsedStep:
    """
    Parse one oracle reply.

    Args:
        response: Raw reply text

    Returns:
        ParsedStep with thought, optional action and final answer
    """
    text = response or ""

    thought_match = THOUGHT_RE.search(text)
    thought = thought_match.group(1).strip() if thought_match else text.strip()

    final_match = FINAL_ANSWER_RE.search(text)
    if final_match:
        return ParsedStep(thought=thought, final_answer=final_match.group(1).strip(), is_final=True)

    action = None
    action_match = ACTION_RE.search(text)
    if action_match:
        params = _parse_action_input(action_match.group(2))
        if params is not None:
            action = ToolAction(tool_name=action_match.group(1), params=params)

    if action is None:
        lowered = thought.lower()
        if any(phrase in lowered for phrase in COMPLETION_PHRASES):
            return ParsedStep(thought=thought, is_final=True)

    return ParsedStep(thought=thought, action=action)
