"""TMDB API client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cinerecon.adapters.provider_client import ClientFactory, ProviderClient

from .schema import TmdbFindResponse, TmdbMovie, TmdbPerson, TmdbSearchResponse

if TYPE_CHECKING:
    from cinerecon.config.tmdb import TmdbConfig


class TmdbClient(ProviderClient):
    def __init__(
        self,
        *,
        config: TmdbConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(config.resilience, client_factory=client_factory)
        self._language = config.language

    async def search_movies(self, *, title: str, year: int | None = None) -> TmdbSearchResponse:
        params = {"query": title, "language": self._language, "include_adult": "false"}
        if year is not None:
            params["primary_release_year"] = str(year)
        payload = await self.get_json("search/movie", params)
        return TmdbSearchResponse.model_validate(payload or {})

    async def search_people(self, *, name: str) -> TmdbSearchResponse:
        params = {"query": name, "language": self._language, "include_adult": "false"}
        payload = await self.get_json("search/person", params)
        return TmdbSearchResponse.model_validate(payload or {})

    async def find_by_imdb_id(self, imdb_id: str) -> TmdbFindResponse:
        payload = await self.get_json(f"find/{imdb_id}", {"external_source": "imdb_id"})
        return TmdbFindResponse.model_validate(payload or {})

    async def movie(self, movie_id: int | str) -> TmdbMovie | None:
        params = {"language": self._language, "append_to_response": "credits"}
        payload = await self.get_json(f"movie/{movie_id}", params)
        if payload is None:
            return None
        return TmdbMovie.model_validate(payload)

    async def person(self, person_id: int | str) -> TmdbPerson | None:
        payload = await self.get_json(f"person/{person_id}", {"language": self._language})
        if payload is None:
            return None
        return TmdbPerson.model_validate(payload)
