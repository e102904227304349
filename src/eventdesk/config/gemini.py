"""Gemini configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
GEMINI_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class GeminiConfig:
    api_key: str
    model: str
    resilience: ResilienceConfig


def get_gemini_config(*, resilience: ResilienceConfig | None = None) -> GeminiConfig:
    values = require_env_vars(("GEMINI_API_KEY",))
    return GeminiConfig(
        api_key=values["GEMINI_API_KEY"],
        model=optional_env_var("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        resilience=resilience
        or ResilienceConfig(
            name="gemini",
            base_url=GEMINI_BASE_URL,
            timeout_seconds=GEMINI_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=2),
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        ),
    )
