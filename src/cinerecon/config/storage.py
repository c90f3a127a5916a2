"""Where cinerecon keeps its files.

Everything a run leaves behind sits under one data directory: the entity
database, the HTTP response cache and the validation reports. The directory
is ``CINERECON_DATA_DIR`` when set, otherwise ``cinerecon`` under the
platform's per-user data location. ``DATABASE_URI`` moves the entity store
out of the data directory entirely.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

from .env import optional_env

if TYPE_CHECKING:
    from datetime import datetime

APP_DIR_NAME: Final[str] = "cinerecon"
DEFAULT_DB_FILENAME: Final[str] = "cinerecon.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"
REPORTS_DIRNAME: Final[str] = "reports"
REPORT_FILENAME_FORMAT: Final[str] = "validation-%Y%m%dT%H%M%SZ.json"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    @property
    def root(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def _locate(self, name: str, *, is_dir: bool = False, ensure: bool = True) -> Path:
        path = self.root / name
        if ensure:
            (path if is_dir else path.parent).mkdir(parents=True, exist_ok=True)
        return path

    def database_path(self, *, ensure: bool = True) -> Path:
        return self._locate(DEFAULT_DB_FILENAME, ensure=ensure)

    def http_cache_path(self, *, ensure: bool = True) -> Path:
        return self._locate(HTTP_CACHE_FILENAME, ensure=ensure)

    def reports_dir(self, *, ensure: bool = True) -> Path:
        return self._locate(REPORTS_DIRNAME, is_dir=True, ensure=ensure)

    def report_path(self, generated_at: datetime) -> Path:
        """Default JSON report location for a run started at ``generated_at``."""

        return self.reports_dir() / generated_at.strftime(REPORT_FILENAME_FORMAT)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        base = optional_env("LOCALAPPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Local"
    base = optional_env("XDG_DATA_HOME")
    return Path(base) if base else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    explicit = optional_env("CINERECON_DATA_DIR")
    if explicit:
        return StorageConfig(data_dir=Path(explicit))
    return StorageConfig(data_dir=_platform_data_home() / APP_DIR_NAME)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = optional_env("DATABASE_URI")
    if uri is None:
        database = (storage or get_storage_config()).database_path()
        uri = f"sqlite+pysqlite:///{database}"
    return DatabaseConfig(uri=uri)


def get_http_cache_path() -> Path:
    return get_storage_config().http_cache_path()
