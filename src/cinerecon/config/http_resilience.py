"""Configuration types for resilient HTTP clients."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import httpx

from .errors import InvalidConfigurationValueError

if TYPE_CHECKING:
    from collections.abc import Mapping

ShouldCacheHook = Callable[[object], bool]


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = field(default_factory=lambda: frozenset({"GET", "HEAD"}))
    status_forcelist: frozenset[int] = field(
        default_factory=lambda: frozenset({429, 500, 502, 503, 504})
    )
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    backoff_jitter: float = 1.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class CacheConfig:
    enabled: bool = True
    backend: Literal["sqlite", "memory"] = "sqlite"
    sqlite_path: str | None = None
    default_ttl_seconds: float | None = 24 * 60 * 60
    refresh_ttl_on_access: bool = False
    # payloads the predicate rejects are served but never stored
    should_cache: ShouldCacheHook | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 15.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: CacheConfig | None = field(default_factory=CacheConfig)
    default_headers: Mapping[str, str] | None = None
    default_params: Mapping[str, str] | None = None


def http_cache_config(*, should_cache: ShouldCacheHook | None = None) -> CacheConfig | None:
    """Return the cache settings selected by ``CINERECON_HTTP_CACHE``.

    Accepted values are ``sqlite`` (default), ``memory`` and ``off``.
    """

    mode = (os.getenv("CINERECON_HTTP_CACHE") or "sqlite").strip().lower()
    if mode == "off":
        return None
    if mode not in {"sqlite", "memory"}:
        raise InvalidConfigurationValueError(
            "CINERECON_HTTP_CACHE", mode, "one of sqlite, memory, off"
        )
    backend: Literal["sqlite", "memory"] = "memory" if mode == "memory" else "sqlite"
    return CacheConfig(backend=backend, should_cache=should_cache)
