"""
Application settings and centralized runtime constants.

All thresholds that drive the topic state machine, the intent cascade and
session-end fallbacks live here so that no module hardcodes its own copy.
Values are read from environment variables (``.env`` supported).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class TimeBudgetConfig:
    """
    Time budget for one agent module.

    Attributes:
        max_time_ms: Hard deadline for the whole run
        priority: speed | quality | balanced
        warning_threshold_ms: Elapsed time after which the run is "near timeout"
                              (defaults to 70% of max_time_ms)
    """

    max_time_ms: int
    priority: str = "balanced"
    warning_threshold_ms: int | None = None

    @property
    def warning_ms(self) -> int:
        if self.warning_threshold_ms is not None:
            return self.warning_threshold_ms
        return int(self.max_time_ms * 0.7)


TIME_BUDGETS: dict[str, TimeBudgetConfig] = {
    "question_generation": TimeBudgetConfig(10000, "quality", 7000),
    "hint_system": TimeBudgetConfig(3000, "speed", 2000),
    "next_question": TimeBudgetConfig(5000, "balanced", 3500),
    "response_analysis": TimeBudgetConfig(5000, "quality", 3500),
    "feedback_generation": TimeBudgetConfig(60000, "quality"),
    "job_recommendation": TimeBudgetConfig(120000, "quality"),
    "persona_generation": TimeBudgetConfig(30000, "quality"),
    "interview_simulation": TimeBudgetConfig(300000, "quality"),
    "prompt_optimization": TimeBudgetConfig(120000, "quality"),
}

DEFAULT_TIME_BUDGET = TimeBudgetConfig(10000, "balanced")


def get_time_budget(module: str) -> TimeBudgetConfig:
    """Return the configured budget for a module, or the default budget."""
    return TIME_BUDGETS.get(module, DEFAULT_TIME_BUDGET)


class Settings:
    """Application settings loaded from environment variables.

    Keyword overrides take precedence over the environment, which keeps
    tests independent of the developer's shell.
    """

    def __init__(self, **overrides: Any) -> None:
        # Topic state machine
        self.topic_time_limit_seconds: float = float(os.getenv("TOPIC_TIME_LIMIT_SECONDS", "600"))
        self.engaged_turn_threshold: int = int(os.getenv("ENGAGED_TURN_THRESHOLD", "5"))
        self.recent_message_window: int = int(os.getenv("RECENT_MESSAGE_WINDOW", "6"))
        self.message_snippet_chars: int = int(os.getenv("MESSAGE_SNIPPET_CHARS", "300"))

        # Intent cascade
        self.intent_confidence_threshold: float = float(os.getenv("INTENT_CONFIDENCE_THRESHOLD", "0.7"))

        # Session end
        self.company_match_timeout_seconds: float = float(os.getenv("COMPANY_MATCH_TIMEOUT_SECONDS", "8"))
        self.max_company_matches: int = int(os.getenv("MAX_COMPANY_MATCHES", "5"))

        # Session store
        self.session_store: str = os.getenv("SESSION_STORE", "memory")  # memory | file
        self.session_store_dir: str = os.getenv(
            "SESSION_STORE_DIR", str(Path.cwd().joinpath("data", "sessions"))
        )
        self.session_ttl_seconds: float = float(os.getenv("SESSION_TTL_SECONDS", "7200"))

        # Simulated incremental delivery over a non-streaming oracle
        self.stream_chunk_size: int = int(os.getenv("STREAM_CHUNK_SIZE", "10"))
        self.stream_chunk_delay_ms: int = int(os.getenv("STREAM_CHUNK_DELAY_MS", "20"))

        # Oracle
        self.llm_config_path: str = os.getenv("LLM_CONFIG_PATH", "configs/llm_config.yaml")
        self.model_alias: str = os.getenv("MODEL_ALIAS", "main")
        self.fast_model_alias: str = os.getenv("FAST_MODEL_ALIAS", "fast")

        # API
        self.api_host: str = os.getenv("API_HOST", "0.0.0.0")
        self.api_port: int = int(os.getenv("API_PORT", "8070"))
        self.debug: bool = _env_bool("DEBUG")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    def as_dict(self) -> dict[str, Any]:
        return dict(vars(self))


settings = Settings()
