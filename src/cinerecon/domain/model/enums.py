"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Provider(StrEnum):
    """Origin of a claim about an entity field."""

    MANUAL = "manual"
    INTERNAL = "internal"
    TMDB = "tmdb"
    WIKIPEDIA = "wikipedia"
    WIKIDATA = "wikidata"
    OMDB = "omdb"

    @property
    def is_external(self) -> bool:
        return self not in {Provider.MANUAL, Provider.INTERNAL}


EXTERNAL_PROVIDERS: tuple[Provider, ...] = tuple(p for p in Provider if p.is_external)


class EntityKind(StrEnum):
    MOVIE = "movie"
    PERSON = "person"


class ExternalNamespace(StrEnum):
    """Keys of ``Entity.external_ids``."""

    TMDB = "tmdb"
    IMDB = "imdb"
    WIKIDATA = "wikidata"
    WIKIPEDIA = "wikipedia"
