"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, env_int, env_list, optional_env, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationValueError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .omdb import OmdbConfig, get_omdb_config
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .tmdb import TmdbConfig, get_tmdb_config
from .wikimedia import WikidataConfig, WikipediaConfig, get_wikidata_config, get_wikipedia_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationValueError",
    "MissingConfigurationError",
    "OmdbConfig",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "TmdbConfig",
    "WikidataConfig",
    "WikipediaConfig",
    "configure_logging",
    "env_float",
    "env_int",
    "env_list",
    "get_database_config",
    "get_omdb_config",
    "get_reconciliation_config",
    "get_storage_config",
    "get_tmdb_config",
    "get_wikidata_config",
    "get_wikipedia_config",
    "optional_env",
    "require_env_vars",
]
