"""
Prompt fragments of the text-grammar reasoning loop.

The grammar is parsed by ``core.domain.step_parser``; keep both in sync.
"""

REACT_FORMAT_INSTRUCTIONS = """Respond using EXACTLY this format:

Thought: <your reasoning about what to do next>
Action: <tool name>
Action Input: <JSON object with the tool parameters>

When you have enough information, respond with:

Thought: I have enough information to answer.
Final Answer: <your final answer, as JSON when an output format is given>

Rules:
- Use at most one Action per response.
- Never write the Observation yourself; it is provided after the tool runs.
- Prefer a complete Final Answer over more tool calls when time is short."""

BEGIN_MESSAGE = "Begin your analysis."

TIME_BUDGET_LINE = "Time Budget: You have {remaining_ms}ms remaining. Be efficient."

OBSERVATION_MESSAGE = "Observation: {observation}\n\nRemaining time: {remaining_ms}ms. Continue your analysis."

CONTINUE_NUDGE = "Continue your analysis. Remaining time: {remaining_ms}ms."

FINISH_NOW = "Time is running out. Please provide your Final Answer now."


def build_system_prompt(task_prompt: str, tools_description: str, remaining_ms: int) -> str:
    return "\n\n".join(
        [
            task_prompt.strip(),
            tools_description,
            REACT_FORMAT_INSTRUCTIONS,
            TIME_BUDGET_LINE.format(remaining_ms=remaining_ms),
        ]
    )
