"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .gemini import GeminiConfig, get_gemini_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .supabase import SupabaseConfig, get_supabase_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "GeminiConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SupabaseConfig",
    "configure_logging",
    "get_database_config",
    "get_gemini_config",
    "get_storage_config",
    "get_supabase_config",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
