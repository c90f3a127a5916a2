from __future__ import annotations

import asyncio

import httpx
import pytest

from cinerecon.adapters.tmdb import TmdbConnector
from cinerecon.config.tmdb import TmdbConfig
from cinerecon.domain.model import EntityKind
from cinerecon.domain.reconciliation import SourceQuery, SourceRecord, TransientFetchError
from tests.support.http import RecordingHandler, offline_resilience
from tests.support.payloads import MOVIE_PAYLOAD

BASE_URL = "http://tmdb.test/3"


def _config() -> TmdbConfig:
    return TmdbConfig(resilience=offline_resilience("tmdb", BASE_URL))


def _fetch(handler: RecordingHandler, query: SourceQuery) -> SourceRecord | None:
    async def run() -> SourceRecord | None:
        async with TmdbConnector(
            config=_config(), client_factory=handler.client_factory()
        ) as connector:
            return await connector.fetch(query)

    return asyncio.run(run())


def _search_then_movie(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/3/search/movie":
        return httpx.Response(
            200,
            json={
                "page": 1,
                "results": [
                    {"id": 9, "title": "Baahubali 2: The Conclusion"},
                    {"id": 256040, "title": "Baahubali: The Beginning"},
                ],
                "total_results": 2,
            },
        )
    if request.url.path == "/3/movie/256040":
        return httpx.Response(200, json=MOVIE_PAYLOAD)
    return httpx.Response(404, json={"status_code": 34})


def test_search_picks_the_closest_title() -> None:
    handler = RecordingHandler(_search_then_movie)
    query = SourceQuery(kind=EntityKind.MOVIE, title="Baahubali: The Beginning", year=2015)

    record = _fetch(handler, query)

    assert record is not None
    assert record.external_id == "256040"
    assert handler.paths == ["/3/search/movie", "/3/movie/256040"]
    assert handler.params(0)["primary_release_year"] == "2015"
    assert handler.params(1)["append_to_response"] == "credits"


def test_known_tmdb_id_skips_search() -> None:
    handler = RecordingHandler(_search_then_movie)
    query = SourceQuery(
        kind=EntityKind.MOVIE,
        title="Baahubali",
        external_ids={"tmdb": "256040"},
    )

    record = _fetch(handler, query)

    assert record is not None
    assert handler.paths == ["/3/movie/256040"]


def test_imdb_id_is_resolved_through_find() -> None:
    def route(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/3/find/tt2631186":
            return httpx.Response(200, json={"movie_results": [{"id": 256040, "title": "x"}]})
        return _search_then_movie(request)

    handler = RecordingHandler(route)
    query = SourceQuery(
        kind=EntityKind.MOVIE,
        title="Baahubali: The Beginning",
        external_ids={"imdb": "tt2631186"},
    )

    record = _fetch(handler, query)

    assert record is not None
    assert handler.paths == ["/3/find/tt2631186", "/3/movie/256040"]
    assert handler.params(0)["external_source"] == "imdb_id"


def test_empty_search_retries_without_year_then_gives_up() -> None:
    handler = RecordingHandler(lambda _request: httpx.Response(200, json={"results": []}))
    query = SourceQuery(kind=EntityKind.MOVIE, title="Unknown Film", year=1990)

    assert _fetch(handler, query) is None
    assert handler.paths == ["/3/search/movie", "/3/search/movie"]
    assert "primary_release_year" not in handler.params(1)


def test_person_lookup() -> None:
    def route(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/3/search/person":
            return httpx.Response(200, json={"results": [{"id": 237045, "name": "Prabhas"}]})
        return httpx.Response(200, json={"id": 237045, "name": "Prabhas", "birthday": "1979-10-23"})

    handler = RecordingHandler(route)

    record = _fetch(handler, SourceQuery(kind=EntityKind.PERSON, title="Prabhas"))

    assert record is not None
    assert record.fields == {"birth_date": "1979-10-23"}
    assert handler.paths == ["/3/search/person", "/3/person/237045"]


def test_server_error_becomes_transient_fetch_error() -> None:
    handler = RecordingHandler(lambda _request: httpx.Response(503))
    query = SourceQuery(kind=EntityKind.MOVIE, title="Baahubali", external_ids={"tmdb": "1"})

    with pytest.raises(TransientFetchError, match="HTTP 503"):
        _fetch(handler, query)


def test_missing_movie_is_not_found() -> None:
    handler = RecordingHandler(lambda _request: httpx.Response(404))
    query = SourceQuery(kind=EntityKind.MOVIE, title="Gone", external_ids={"tmdb": "404"})

    assert _fetch(handler, query) is None
