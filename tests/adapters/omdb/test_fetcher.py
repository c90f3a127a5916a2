from __future__ import annotations

import asyncio

import httpx
import pytest

from cinerecon.adapters.omdb import OmdbConnector
from cinerecon.config.omdb import OmdbConfig
from cinerecon.domain.model import EntityKind
from cinerecon.domain.reconciliation import SourceQuery, SourceRecord, TransientFetchError
from tests.support.http import RecordingHandler, offline_resilience
from tests.support.payloads import EEGA


def _fetch(handler: RecordingHandler, query: SourceQuery) -> SourceRecord | None:
    config = OmdbConfig(resilience=offline_resilience("omdb", "http://omdb.test/"))

    async def run() -> SourceRecord | None:
        async with OmdbConnector(config=config, client_factory=handler.client_factory()) as connector:
            return await connector.fetch(query)

    return asyncio.run(run())


def test_imdb_id_lookup() -> None:
    handler = RecordingHandler(lambda _request: httpx.Response(200, json=EEGA))
    query = SourceQuery(kind=EntityKind.MOVIE, title="Eega", external_ids={"imdb": "tt2258337"})

    record = _fetch(handler, query)

    assert record is not None
    assert record.fields["runtime"] == 134
    assert handler.params() == {"i": "tt2258337", "plot": "full"}


def test_title_lookup_falls_back_to_no_year() -> None:
    def route(request: httpx.Request) -> httpx.Response:
        if "y" in request.url.params:
            return httpx.Response(200, json={"Response": "False", "Error": "Movie not found!"})
        return httpx.Response(200, json=EEGA)

    handler = RecordingHandler(route)

    record = _fetch(handler, SourceQuery(kind=EntityKind.MOVIE, title="Eega", year=2013))

    assert record is not None
    assert record.year == 2012
    assert [request.url.params.get("y") for request in handler.requests] == ["2013", None]


def test_miss_is_not_found() -> None:
    handler = RecordingHandler(
        lambda _request: httpx.Response(200, json={"Response": "False", "Error": "Movie not found!"})
    )

    assert _fetch(handler, SourceQuery(kind=EntityKind.MOVIE, title="Nothing")) is None
    assert len(handler.requests) == 1


def test_other_errors_are_transient() -> None:
    handler = RecordingHandler(
        lambda _request: httpx.Response(
            200, json={"Response": "False", "Error": "Request limit reached!"}
        )
    )

    with pytest.raises(TransientFetchError, match="Request limit reached"):
        _fetch(handler, SourceQuery(kind=EntityKind.MOVIE, title="Eega"))


def test_people_are_never_requested() -> None:
    handler = RecordingHandler(lambda _request: httpx.Response(500))

    assert _fetch(handler, SourceQuery(kind=EntityKind.PERSON, title="Nani")) is None
    assert handler.requests == []
