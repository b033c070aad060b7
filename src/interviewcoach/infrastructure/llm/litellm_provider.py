"""
LiteLLM provider - the reasoning oracle adapter.

Resolves model aliases from a YAML configuration, merges per-model
parameters and retries transient failures. Every call ends in a
``Completion``; callers receive its dict form, so provider errors arrive as
``{"success": False, "error": ...}`` and ``complete`` never raises for them.
"""

import asyncio
import os
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import litellm
import structlog
import yaml

ALLOWED_PARAMS = (
    "temperature",
    "top_p",
    "max_tokens",
    "frequency_penalty",
    "presence_penalty",
    "response_format",
)


@dataclass
class RetryPolicy:
    """When and how long to wait before calling the oracle again."""

    max_attempts: int = 3
    backoff_multiplier: float = 2.0
    timeout: int = 30
    retry_on_errors: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, raw: dict[str, Any] | None) -> "RetryPolicy":
        raw = raw or {}
        defaults = cls()
        return cls(
            max_attempts=int(raw.get("max_attempts", defaults.max_attempts)),
            backoff_multiplier=float(raw.get("backoff_multiplier", defaults.backoff_multiplier)),
            timeout=int(raw.get("timeout", defaults.timeout)),
            retry_on_errors=list(raw.get("retry_on_errors", [])),
        )

    def is_retryable(self, error: Exception) -> bool:
        name, text = type(error).__name__, str(error)
        return any(marker in name or marker in text for marker in self.retry_on_errors)

    def backoff_seconds(self, attempt: int) -> float:
        """Delay after the given 1-based attempt failed."""
        return self.backoff_multiplier ** (attempt - 1)


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_response(cls, response: Any) -> "TokenUsage":
        # litellm returns a Usage object; some providers hand back a plain dict
        usage = getattr(response, "usage", None) or {}
        read = usage.get if isinstance(usage, dict) else lambda key, default: getattr(usage, key, default)
        return cls(
            prompt_tokens=read("prompt_tokens", 0) or 0,
            completion_tokens=read("completion_tokens", 0) or 0,
            total_tokens=read("total_tokens", 0) or 0,
        )


@dataclass
class Completion:
    """Outcome of one ``complete`` call, successful or not."""

    success: bool
    model: str
    content: str | None = None
    usage: TokenUsage | None = None
    latency_ms: int = 0
    error: str | None = None
    error_type: str | None = None
    attempts: int = 1

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "model": self.model, "attempts": self.attempts}
        if self.success:
            payload["content"] = self.content
            payload["usage"] = asdict(self.usage or TokenUsage())
            payload["latency_ms"] = self.latency_ms
        else:
            payload["error"] = self.error
            payload["error_type"] = self.error_type
        return payload


class LiteLLMProvider:
    """
    Chat completion provider backed by litellm.

    Args:
        config_path: Path to the YAML model configuration

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config is empty or defines no models
    """

    def __init__(self, config_path: str = "configs/llm_config.yaml"):
        self.logger = structlog.get_logger().bind(component="litellm_provider")
        config = self._read_config(config_path)

        self.default_model = config.get("default_model", "main")
        self.models: dict[str, str] = config.get("models") or {}
        self.model_params: dict[str, dict[str, Any]] = config.get("model_params") or {}
        self.default_params: dict[str, Any] = config.get("default_params") or {}
        self.retry_policy = RetryPolicy.from_config(config.get("retry_policy"))
        if not self.models:
            raise ValueError(f"No models defined in {config_path}")

        api_key_env = (config.get("provider") or {}).get("api_key_env", "OPENAI_API_KEY")
        if not os.getenv(api_key_env):
            self.logger.warning("llm_api_key_missing", env_var=api_key_env)

        self.logger.info("llm_provider_ready", default_model=self.default_model, aliases=list(self.models))

    @staticmethod
    def _read_config(config_path: str) -> dict[str, Any]:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"LLM config not found: {config_path}")
        config = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not config:
            raise ValueError(f"LLM config is empty: {config_path}")
        return config

    def resolve_model(self, model_alias: str | None) -> str:
        alias = model_alias or self.default_model
        return self.models.get(alias, alias)

    def call_params(self, model: str, overrides: dict[str, Any]) -> dict[str, Any]:
        """Configured parameters for ``model`` with call overrides applied, unknown keys dropped."""
        base = self.model_params.get(model)
        if base is None:
            base = next(
                (params for prefix, params in self.model_params.items() if model.startswith(prefix)),
                self.default_params,
            )
        merged = {**base, **overrides}
        return {k: v for k, v in merged.items() if k in ALLOWED_PARAMS and v is not None}

    async def complete(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Run a chat completion, retrying errors the policy names.

        Returns:
            ``Completion.to_dict()``: content, usage and latency on success;
            error and error_type on failure
        """
        model_name = self.resolve_model(model)
        params = self.call_params(model_name, kwargs)
        policy = self.retry_policy

        attempt = 0
        while True:
            attempt += 1
            try:
                completion = await self._call(model_name, messages, params)
            except Exception as e:
                if attempt < policy.max_attempts and policy.is_retryable(e):
                    delay = policy.backoff_seconds(attempt)
                    self.logger.warning(
                        "llm_retry_scheduled", model=model_name, attempt=attempt, error_type=type(e).__name__, delay_s=delay
                    )
                    await asyncio.sleep(delay)
                    continue
                self.logger.error(
                    "llm_call_failed", model=model_name, attempts=attempt, error_type=type(e).__name__, error=str(e)[:200]
                )
                return Completion(
                    success=False, model=model_name, error=str(e), error_type=type(e).__name__, attempts=attempt
                ).to_dict()

            completion.attempts = attempt
            return completion.to_dict()

    async def _call(self, model_name: str, messages: list[dict[str, Any]], params: dict[str, Any]) -> Completion:
        started = time.perf_counter()
        response = await litellm.acompletion(
            model=model_name,
            messages=messages,
            timeout=self.retry_policy.timeout,
            **params,
        )
        usage = TokenUsage.from_response(response)
        latency_ms = int((time.perf_counter() - started) * 1000)
        self.logger.info("llm_call_ok", model=model_name, tokens=usage.total_tokens, latency_ms=latency_ms)
        return Completion(
            success=True,
            model=model_name,
            content=response.choices[0].message.content,
            usage=usage,
            latency_ms=latency_ms,
        )
