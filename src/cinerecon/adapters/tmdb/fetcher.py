"""TMDB source connector."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

from cinerecon.adapters.provider_client import ProviderAPIError
from cinerecon.domain.model import EntityKind, ExternalNamespace, Provider
from cinerecon.domain.reconciliation import TransientFetchError, title_similarity

from .client import TmdbClient
from .translator import movie_to_record, person_to_record

if TYPE_CHECKING:
    from types import TracebackType

    from cinerecon.adapters.provider_client import ClientFactory
    from cinerecon.config.tmdb import TmdbConfig
    from cinerecon.domain.reconciliation import SourceQuery, SourceRecord

    from .schema import TmdbSearchResult

log = getLogger(__name__)


class TmdbConnector:
    """Look entities up on TMDB by id, IMDb id or title search."""

    def __init__(
        self,
        *,
        config: TmdbConfig,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._config = config
        self._client = TmdbClient(config=config, client_factory=client_factory)

    @property
    def provider(self) -> Provider:
        return Provider.TMDB

    async def __aenter__(self) -> Self:
        await self._client.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self._client.__aexit__(exc_type, exc, tb)

    async def fetch(self, query: SourceQuery) -> SourceRecord | None:
        try:
            if query.kind is EntityKind.PERSON:
                return await self._fetch_person(query)
            return await self._fetch_movie(query)
        except ProviderAPIError as exc:
            log.warning("TMDB fetch failed for %r: %s", query.title, exc)
            raise TransientFetchError(self.provider, str(exc)) from exc

    async def _fetch_movie(self, query: SourceQuery) -> SourceRecord | None:
        movie_id = query.external_id(ExternalNamespace.TMDB)
        if movie_id is None:
            movie_id = await self._resolve_movie_id(query)
        if movie_id is None:
            return None
        movie = await self._client.movie(movie_id)
        if movie is None:
            return None
        return movie_to_record(movie, cast_limit=self._config.cast_limit)

    async def _resolve_movie_id(self, query: SourceQuery) -> int | None:
        imdb_id = query.external_id(ExternalNamespace.IMDB)
        if imdb_id is not None:
            found = await self._client.find_by_imdb_id(imdb_id)
            if found.movie_results:
                return found.movie_results[0].id
        search = await self._client.search_movies(title=query.title, year=query.year)
        results = search.results
        if not results and query.year is not None:
            # release years drift between catalogs; retry without the filter
            results = (await self._client.search_movies(title=query.title)).results
        best = _best_result(results, query.title)
        return best.id if best is not None else None

    async def _fetch_person(self, query: SourceQuery) -> SourceRecord | None:
        person_id: int | str | None = query.external_id(ExternalNamespace.TMDB)
        if person_id is None:
            search = await self._client.search_people(name=query.title)
            best = _best_result(search.results, query.title)
            if best is None:
                return None
            person_id = best.id
        person = await self._client.person(person_id)
        if person is None:
            return None
        return person_to_record(person)


def _best_result(results: list[TmdbSearchResult], title: str) -> TmdbSearchResult | None:
    """Highest title similarity, TMDB's own ranking breaks ties."""

    best: TmdbSearchResult | None = None
    best_score = -1
    for result in results:
        score = title_similarity(title, result.title or result.name)
        if score > best_score:
            best, best_score = result, score
    return best
