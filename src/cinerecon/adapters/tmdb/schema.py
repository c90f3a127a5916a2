"""TMDB response schemas (v3 API)."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

TMDB_GENDER_FEMALE = 1
TMDB_GENDER_MALE = 2


class TmdbBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow")
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug("TMDB %s: unmodeled keys: %s", type(self).__name__, ", ".join(sorted(new_keys)))


class TmdbSearchResult(TmdbBaseModel):
    id: int
    title: str | None = None
    name: str | None = None
    release_date: str | None = None
    popularity: float | None = None


class TmdbSearchResponse(TmdbBaseModel):
    page: int = 1
    results: list[TmdbSearchResult] = Field(default_factory=list[TmdbSearchResult])
    total_results: int = 0


class TmdbFindResponse(TmdbBaseModel):
    movie_results: list[TmdbSearchResult] = Field(default_factory=list[TmdbSearchResult])
    person_results: list[TmdbSearchResult] = Field(default_factory=list[TmdbSearchResult])


class TmdbCastCredit(TmdbBaseModel):
    name: str
    character: str | None = None
    order: int | None = None
    gender: int | None = None


class TmdbCrewCredit(TmdbBaseModel):
    name: str
    job: str | None = None
    department: str | None = None


class TmdbCredits(TmdbBaseModel):
    cast: list[TmdbCastCredit] = Field(default_factory=list[TmdbCastCredit])
    crew: list[TmdbCrewCredit] = Field(default_factory=list[TmdbCrewCredit])


class TmdbMovie(TmdbBaseModel):
    id: int
    title: str
    original_title: str | None = None
    release_date: str | None = None
    runtime: int | None = None
    overview: str | None = None
    original_language: str | None = None
    imdb_id: str | None = None
    credits: TmdbCredits | None = None


class TmdbPerson(TmdbBaseModel):
    id: int
    name: str
    birthday: str | None = None
    place_of_birth: str | None = None
    biography: str | None = None
    known_for_department: str | None = None
    imdb_id: str | None = None
