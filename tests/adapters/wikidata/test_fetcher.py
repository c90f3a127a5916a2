from __future__ import annotations

import asyncio

import httpx
import pytest

from cinerecon.adapters.wikidata import WikidataConnector
from cinerecon.config.wikimedia import WikidataConfig
from cinerecon.domain.model import EntityKind
from cinerecon.domain.reconciliation import SourceQuery, SourceRecord, TransientFetchError
from tests.support.http import RecordingHandler, offline_resilience
from tests.support.payloads import item_claims, value_claim, wikidata_item, wikidata_label

FILM = wikidata_item(
    "Q19865069",
    "Baahubali: The Beginning",
    **(
        item_claims("P31", "Q11424")
        | item_claims("P57", "Q3633000")
        | {"P577": [value_claim("P577", {"time": "+2015-07-10T00:00:00Z", "precision": 11})]}
    ),
)
SEQUEL = wikidata_item(
    "Q20000001",
    "Baahubali 2: The Conclusion",
    **(
        item_claims("P31", "Q11424")
        | {"P577": [value_claim("P577", {"time": "+2017-04-28T00:00:00Z", "precision": 11})]}
    ),
)
HUMAN = wikidata_item("Q3595498", "Baahubali", **item_claims("P31", "Q5"))


def _route(request: httpx.Request) -> httpx.Response:
    params = request.url.params
    if params["action"] == "wbsearchentities":
        hits = [{"id": "Q3595498"}, {"id": "Q20000001"}, {"id": "Q19865069"}]
        return httpx.Response(200, json={"search": hits})
    if params.get("props") == "labels":
        entities = {
            entity_id: {"id": entity_id, "labels": wikidata_label("S. S. Rajamouli")}
            for entity_id in params["ids"].split("|")
        }
        return httpx.Response(200, json={"entities": entities})
    catalog = {item["id"]: item for item in (FILM, SEQUEL, HUMAN)}
    entities = {
        entity_id: catalog.get(entity_id, {"id": entity_id, "missing": ""})
        for entity_id in params["ids"].split("|")
    }
    return httpx.Response(200, json={"entities": entities})


def _fetch(handler: RecordingHandler, query: SourceQuery) -> SourceRecord | None:
    config = WikidataConfig(resilience=offline_resilience("wikidata", "http://wikidata.test/w"))

    async def run() -> SourceRecord | None:
        async with WikidataConnector(
            config=config, client_factory=handler.client_factory()
        ) as connector:
            return await connector.fetch(query)

    return asyncio.run(run())


def test_search_keeps_films_and_prefers_the_closest_year() -> None:
    handler = RecordingHandler(_route)
    query = SourceQuery(kind=EntityKind.MOVIE, title="Baahubali: The Beginning", year=2015)

    record = _fetch(handler, query)

    assert record is not None
    assert record.external_id == "Q19865069"
    assert record.fields == {"director": "S. S. Rajamouli"}
    assert set(handler.paths) == {"/w/api.php"}
    assert handler.params(1)["ids"] == "Q3595498|Q20000001|Q19865069"
    assert handler.params(2) == {
        "action": "wbgetentities",
        "ids": "Q3633000",
        "props": "labels",
        "languages": "en",
    }


def test_known_wikidata_id_skips_search() -> None:
    handler = RecordingHandler(_route)
    query = SourceQuery(
        kind=EntityKind.MOVIE, title="Baahubali", external_ids={"wikidata": "Q19865069"}
    )

    record = _fetch(handler, query)

    assert record is not None
    assert handler.params(0)["ids"] == "Q19865069"
    assert handler.params(0)["action"] == "wbgetentities"


def test_missing_item_is_not_found() -> None:
    handler = RecordingHandler(_route)
    query = SourceQuery(kind=EntityKind.MOVIE, title="Gone", external_ids={"wikidata": "Q404"})

    assert _fetch(handler, query) is None


def test_no_such_entity_error_is_not_found() -> None:
    handler = RecordingHandler(
        lambda _request: httpx.Response(
            200, json={"error": {"code": "no-such-entity", "info": "Could not find"}}
        )
    )
    query = SourceQuery(kind=EntityKind.MOVIE, title="Gone", external_ids={"wikidata": "Q404"})

    assert _fetch(handler, query) is None


def test_api_error_is_transient() -> None:
    handler = RecordingHandler(
        lambda _request: httpx.Response(200, json={"error": {"code": "maxlag", "info": "lagged"}})
    )

    with pytest.raises(TransientFetchError, match="maxlag"):
        _fetch(handler, SourceQuery(kind=EntityKind.MOVIE, title="Baahubali"))
