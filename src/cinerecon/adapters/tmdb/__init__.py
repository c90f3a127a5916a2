"""TMDB adapter."""

from __future__ import annotations

from .client import TmdbClient
from .fetcher import TmdbConnector
from .translator import movie_to_record, person_to_record

__all__ = [
    "TmdbClient",
    "TmdbConnector",
    "movie_to_record",
    "person_to_record",
]
