"""OMDb configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy, http_cache_config

DEFAULT_OMDB_BASE_URL = "https://www.omdbapi.com/"


def _cacheable_payload(payload: object) -> bool:
    # OMDb reports errors, including its daily request limit, with HTTP 200
    return not (isinstance(payload, dict) and payload.get("Response") == "False")


@dataclass(frozen=True, slots=True)
class OmdbConfig:
    resilience: ResilienceConfig


def get_omdb_config() -> OmdbConfig:
    values = require_env_vars(("OMDB_API_KEY",))
    resilience = ResilienceConfig(
        name="omdb",
        base_url=DEFAULT_OMDB_BASE_URL,
        # free keys are capped per day, so stay well under the per-second burst limit
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        retry=RetryPolicy(total=2),
        cache=http_cache_config(should_cache=_cacheable_payload),
        default_params={"apikey": values["OMDB_API_KEY"]},
    )
    return OmdbConfig(resilience=resilience)
