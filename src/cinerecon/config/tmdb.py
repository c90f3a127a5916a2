"""TMDB configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy, http_cache_config

DEFAULT_TMDB_BASE_URL = "https://api.themoviedb.org/3"
DEFAULT_TMDB_LANGUAGE = "en-US"


@dataclass(frozen=True, slots=True)
class TmdbConfig:
    resilience: ResilienceConfig
    language: str = DEFAULT_TMDB_LANGUAGE
    cast_limit: int = 5


def get_tmdb_config() -> TmdbConfig:
    values = require_env_vars(("TMDB_API_KEY",))
    resilience = ResilienceConfig(
        name="tmdb",
        base_url=DEFAULT_TMDB_BASE_URL,
        ratelimit=RateLimit(max_calls=40, per_seconds=1.0),
        retry=RetryPolicy(total=3),
        cache=http_cache_config(),
        default_params={"api_key": values["TMDB_API_KEY"]},
        default_headers={"Accept": "application/json"},
    )
    return TmdbConfig(resilience=resilience)
