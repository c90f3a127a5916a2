"""Wikidata adapter."""

from __future__ import annotations

from .client import WikidataClient
from .fetcher import WikidataConnector
from .translator import entity_to_record

__all__ = ["WikidataClient", "WikidataConnector", "entity_to_record"]
