"""Wikipedia adapter."""

from __future__ import annotations

from .client import WikipediaClient
from .fetcher import WikipediaConnector, page_candidates
from .infobox import Infobox, find_infobox
from .translator import page_to_record

__all__ = [
    "Infobox",
    "WikipediaClient",
    "WikipediaConnector",
    "find_infobox",
    "page_candidates",
    "page_to_record",
]
