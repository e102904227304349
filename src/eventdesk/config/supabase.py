"""Supabase configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

SUPABASE_TIMEOUT_SECONDS = 15.0
REALTIME_HEARTBEAT_SECONDS = 25.0


@dataclass(frozen=True, slots=True)
class SupabaseConfig:
    """Holds the project URL and anon key used by REST and realtime."""

    url: str
    anon_key: str
    resilience: ResilienceConfig
    heartbeat_seconds: float = REALTIME_HEARTBEAT_SECONDS

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1"

    @property
    def realtime_url(self) -> str:
        base = self.url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base.removeprefix("https://")
        elif base.startswith("http://"):
            base = "ws://" + base.removeprefix("http://")
        return f"{base}/realtime/v1/websocket?apikey={self.anon_key}&vsn=1.0.0"


def get_supabase_config(*, resilience: ResilienceConfig | None = None) -> SupabaseConfig:
    values = require_env_vars(("SUPABASE_URL", "SUPABASE_ANON_KEY"))
    url = values["SUPABASE_URL"].strip()
    anon_key = values["SUPABASE_ANON_KEY"].strip()
    return SupabaseConfig(
        url=url,
        anon_key=anon_key,
        resilience=resilience
        or ResilienceConfig(
            name="supabase",
            base_url=f"{url.rstrip('/')}/rest/v1",
            timeout_seconds=SUPABASE_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
            default_headers={
                "apikey": anon_key,
                "Authorization": f"Bearer {anon_key}",
            },
        ),
    )
