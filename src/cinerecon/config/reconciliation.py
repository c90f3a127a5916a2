"""Reconciliation thresholds and batch tuning."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import env_float, env_int, env_list

DEFAULT_SOURCE_PRIORITY = ("manual", "internal", "tmdb", "wikipedia", "wikidata", "omdb")


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    """Tuning knobs; ``None`` field sets keep the built-in defaults."""

    min_external_sources: int = 3
    min_confidence: float = 0.8
    auto_fix_fields: frozenset[str] | None = None
    identity_fields: frozenset[str] | None = None
    source_priority: tuple[str, ...] = DEFAULT_SOURCE_PRIORITY
    # extra spelling aliases on top of the built-in ones, folded form -> canonical form
    aliases: dict[str, str] = field(default_factory=dict[str, str])
    max_concurrency: int = 5
    fetch_timeout_seconds: float = 20.0


def get_reconciliation_config() -> ReconciliationConfig:
    auto_fix = env_list("CINERECON_AUTO_FIX_FIELDS")
    return ReconciliationConfig(
        max_concurrency=env_int("CINERECON_MAX_CONCURRENCY", 5),
        fetch_timeout_seconds=env_float("CINERECON_FETCH_TIMEOUT", 20.0),
        source_priority=env_list("CINERECON_SOURCE_PRIORITY") or DEFAULT_SOURCE_PRIORITY,
        auto_fix_fields=frozenset(auto_fix) if auto_fix is not None else None,
    )
