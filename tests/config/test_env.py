from __future__ import annotations

import pytest

from cinerecon.config import (
    InvalidConfigurationValueError,
    MissingConfigurationError,
    env_float,
    env_int,
    env_list,
    get_omdb_config,
    get_reconciliation_config,
    get_tmdb_config,
    get_wikidata_config,
    optional_env,
    require_env_vars,
)
from cinerecon.config.http_resilience import http_cache_config


def test_require_env_vars_returns_stripped_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", " value ")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError, match="MISSING_A, MISSING_B"):
        require_env_vars(["MISSING_B", "MISSING_A"])


def test_optional_env_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "  ")

    assert optional_env("EXAMPLE_VAR") is None


def test_numeric_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_INT", "7")
    monkeypatch.setenv("EXAMPLE_FLOAT", "2.5")
    monkeypatch.delenv("EXAMPLE_UNSET", raising=False)

    assert env_int("EXAMPLE_INT", 1) == 7
    assert env_float("EXAMPLE_FLOAT", 1.0) == 2.5
    assert env_int("EXAMPLE_UNSET", 3) == 3


@pytest.mark.parametrize(("raw", "expected"), [("seven", "an integer"), ("0", ">= 1")])
def test_invalid_integer_override(monkeypatch: pytest.MonkeyPatch, raw: str, expected: str) -> None:
    monkeypatch.setenv("EXAMPLE_INT", raw)

    with pytest.raises(InvalidConfigurationValueError, match=expected):
        env_int("EXAMPLE_INT", 1)


def test_env_list_splits_on_commas(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_LIST", "tmdb, wikidata,,omdb ")

    assert env_list("EXAMPLE_LIST") == ("tmdb", "wikidata", "omdb")


def test_reconciliation_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CINERECON_MAX_CONCURRENCY", "2")
    monkeypatch.setenv("CINERECON_FETCH_TIMEOUT", "7.5")
    monkeypatch.setenv("CINERECON_SOURCE_PRIORITY", "wikidata,tmdb")
    monkeypatch.setenv("CINERECON_AUTO_FIX_FIELDS", "runtime,language")

    config = get_reconciliation_config()

    assert config.max_concurrency == 2
    assert config.fetch_timeout_seconds == 7.5
    assert config.source_priority == ("wikidata", "tmdb")
    assert config.auto_fix_fields == frozenset({"runtime", "language"})


def test_reconciliation_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "CINERECON_MAX_CONCURRENCY",
        "CINERECON_FETCH_TIMEOUT",
        "CINERECON_SOURCE_PRIORITY",
        "CINERECON_AUTO_FIX_FIELDS",
    ):
        monkeypatch.delenv(name, raising=False)

    config = get_reconciliation_config()

    assert config.max_concurrency == 5
    assert config.auto_fix_fields is None
    assert config.source_priority[:2] == ("manual", "internal")


@pytest.mark.parametrize(("mode", "backend"), [("sqlite", "sqlite"), ("MEMORY", "memory")])
def test_http_cache_modes(monkeypatch: pytest.MonkeyPatch, mode: str, backend: str) -> None:
    monkeypatch.setenv("CINERECON_HTTP_CACHE", mode)

    cache = http_cache_config()

    assert cache is not None
    assert cache.backend == backend


def test_http_cache_off_and_invalid(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CINERECON_HTTP_CACHE", "off")
    assert http_cache_config() is None

    monkeypatch.setenv("CINERECON_HTTP_CACHE", "redis")
    with pytest.raises(InvalidConfigurationValueError, match="CINERECON_HTTP_CACHE"):
        http_cache_config()


def test_keyed_providers_require_their_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    monkeypatch.setenv("OMDB_API_KEY", "omdb-key")

    with pytest.raises(MissingConfigurationError, match="TMDB_API_KEY"):
        get_tmdb_config()
    resilience = get_omdb_config().resilience
    assert resilience.default_params == {"apikey": "omdb-key"}
    assert resilience.ratelimit is not None


def test_wikimedia_user_agent_carries_contact(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WIKIMEDIA_CONTACT", "ops@example.org")

    resilience = get_wikidata_config().resilience

    assert resilience.default_headers is not None
    assert resilience.default_headers["User-Agent"].endswith("(ops@example.org)")
    assert resilience.base_url == "https://www.wikidata.org/w"


def test_error_payloads_are_not_cached(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CINERECON_HTTP_CACHE", "memory")
    monkeypatch.setenv("OMDB_API_KEY", "omdb-key")

    omdb_cache = get_omdb_config().resilience.cache
    wikidata_cache = get_wikidata_config().resilience.cache

    assert omdb_cache is not None
    assert omdb_cache.should_cache is not None
    assert omdb_cache.should_cache({"Response": "True", "Title": "Eega"})
    assert not omdb_cache.should_cache({"Response": "False", "Error": "Request limit reached!"})
    assert wikidata_cache is not None
    assert wikidata_cache.should_cache is not None
    assert wikidata_cache.should_cache({"entities": {}})
    assert not wikidata_cache.should_cache({"error": {"code": "maxlag"}})
