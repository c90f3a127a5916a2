"""OMDb adapter."""

from __future__ import annotations

from .client import OmdbClient
from .fetcher import OmdbConnector
from .translator import title_to_record

__all__ = ["OmdbClient", "OmdbConnector", "title_to_record"]
