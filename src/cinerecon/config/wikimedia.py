"""Wikidata and Wikipedia configuration values.

Both APIs are keyless but ask for a descriptive User-Agent with contact details.
"""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy, http_cache_config

DEFAULT_WIKIDATA_BASE_URL = "https://www.wikidata.org/w"
DEFAULT_WIKIPEDIA_BASE_URL = "https://en.wikipedia.org/w"
DEFAULT_CONTACT = "https://github.com/cinerecon/cinerecon"
USER_AGENT_PRODUCT = "cinerecon/0.1"


@dataclass(frozen=True, slots=True)
class WikidataConfig:
    resilience: ResilienceConfig
    language: str = "en"


@dataclass(frozen=True, slots=True)
class WikipediaConfig:
    resilience: ResilienceConfig
    # page title suffixes tried in order after "<title> (<year> film)"
    film_suffixes: tuple[str, ...] = ("film", "Telugu film")


def _cacheable_payload(payload: object) -> bool:
    # ratelimited and maxlag errors arrive with HTTP 200
    return not (isinstance(payload, dict) and "error" in payload)


def _user_agent() -> str:
    contact = optional_env("WIKIMEDIA_CONTACT") or DEFAULT_CONTACT
    return f"{USER_AGENT_PRODUCT} ({contact})"


def get_wikidata_config() -> WikidataConfig:
    resilience = ResilienceConfig(
        name="wikidata",
        base_url=DEFAULT_WIKIDATA_BASE_URL,
        ratelimit=RateLimit(max_calls=50, per_seconds=1.0),
        retry=RetryPolicy(total=3),
        cache=http_cache_config(should_cache=_cacheable_payload),
        default_headers={"User-Agent": _user_agent()},
        default_params={"format": "json"},
    )
    return WikidataConfig(resilience=resilience)


def get_wikipedia_config() -> WikipediaConfig:
    resilience = ResilienceConfig(
        name="wikipedia",
        base_url=DEFAULT_WIKIPEDIA_BASE_URL,
        ratelimit=RateLimit(max_calls=100, per_seconds=1.0),
        retry=RetryPolicy(total=3),
        cache=http_cache_config(should_cache=_cacheable_payload),
        default_headers={"User-Agent": _user_agent()},
        default_params={"format": "json", "formatversion": "2"},
    )
    return WikipediaConfig(resilience=resilience)
