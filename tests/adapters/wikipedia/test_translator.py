from __future__ import annotations

import pytest

from cinerecon.adapters.wikipedia import page_candidates, page_to_record
from cinerecon.adapters.wikipedia.schema import WikipediaPage
from cinerecon.adapters.wikipedia.translator import parse_runtime
from cinerecon.domain.model import CastName, EntityKind, Provider
from cinerecon.domain.reconciliation import SourceQuery
from tests.support.payloads import BAAHUBALI_WIKITEXT, PRABHAS_WIKITEXT


def test_film_page_to_record() -> None:
    page = WikipediaPage(title="Baahubali: The Beginning", wikitext=BAAHUBALI_WIKITEXT)

    record = page_to_record(page, kind=EntityKind.MOVIE)

    assert record is not None
    assert record.provider is Provider.WIKIPEDIA
    assert record.title == "Baahubali: The Beginning"
    assert record.year == 2015
    assert record.external_id == "Baahubali: The Beginning"
    assert record.source_url == "https://en.wikipedia.org/wiki/Baahubali%3A_The_Beginning"
    assert record.fields == {
        "director": "S. S. Rajamouli",
        "producer": "Shobu Yarlagadda",
        "music_director": "M. M. Keeravani",
        "cinematographer": "K. K. Senthil Kumar",
        "writer": "K. V. Vijayendra Prasad",
        "language": "Telugu",
        "runtime": 159,
        "hero": "Prabhas",
        "cast": (CastName("Prabhas"), CastName("Rana Daggubati"), CastName("Anushka Shetty")),
    }


def test_person_page_to_record() -> None:
    page = WikipediaPage(title="Prabhas", wikitext=PRABHAS_WIKITEXT)

    record = page_to_record(page, kind=EntityKind.PERSON)

    assert record is not None
    assert record.year is None
    assert record.fields == {
        "birth_place": "Chennai, Tamil Nadu, India",
        "birth_date": "1979-10-23",
        "occupation": "Actor",
    }


def test_infobox_of_the_wrong_kind_is_ignored() -> None:
    person_page = WikipediaPage(title="Prabhas", wikitext=PRABHAS_WIKITEXT)
    film_page = WikipediaPage(title="Eega (film)", wikitext=BAAHUBALI_WIKITEXT)

    assert page_to_record(person_page, kind=EntityKind.MOVIE) is None
    assert page_to_record(film_page, kind=EntityKind.PERSON) is None
    assert page_to_record(WikipediaPage(title="Eega"), kind=EntityKind.MOVIE) is None


def test_title_falls_back_to_page_title_without_disambiguation() -> None:
    page = WikipediaPage(title="Eega (film)", wikitext="{{Infobox film\n| director = Rajamouli\n}}")

    record = page_to_record(page, kind=EntityKind.MOVIE)

    assert record is not None
    assert record.title == "Eega"
    assert record.year is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("159 minutes", 159),
        ("134 min", 134),
        ("2h 39m", 159),
        ("2 hours 15 min", 135),
        ("unknown", None),
        (None, None),
    ],
)
def test_parse_runtime(raw: str | None, expected: int | None) -> None:
    assert parse_runtime(raw) == expected


def test_page_candidates() -> None:
    suffixes = ("film", "Telugu film")

    movie = SourceQuery(kind=EntityKind.MOVIE, title="Eega", year=2012)
    assert page_candidates(movie, suffixes) == [
        "Eega (2012 film)",
        "Eega (film)",
        "Eega (Telugu film)",
        "Eega",
    ]
    undated = SourceQuery(kind=EntityKind.MOVIE, title="Eega")
    assert page_candidates(undated, ()) == ["Eega"]
    person = SourceQuery(kind=EntityKind.PERSON, title="Nani")
    assert page_candidates(person, suffixes) == ["Nani", "Nani (actor)"]
    known = SourceQuery(kind=EntityKind.MOVIE, title="Eega", external_ids={"wikipedia": "Eega"})
    assert page_candidates(known, suffixes) == ["Eega"]
