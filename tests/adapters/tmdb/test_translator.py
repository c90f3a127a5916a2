from __future__ import annotations

from cinerecon.adapters.tmdb import movie_to_record, person_to_record
from cinerecon.adapters.tmdb.schema import TmdbMovie, TmdbPerson
from cinerecon.domain.model import CastDetail, Provider
from tests.support.payloads import MOVIE_PAYLOAD


def test_movie_to_record_maps_credits_onto_fields() -> None:
    record = movie_to_record(TmdbMovie.model_validate(MOVIE_PAYLOAD), cast_limit=3)

    assert record.provider is Provider.TMDB
    assert record.title == "Baahubali: The Beginning"
    assert record.year == 2015
    assert record.external_id == "256040"
    assert record.source_url == "https://www.themoviedb.org/movie/256040"
    assert record.fields["director"] == "S. S. Rajamouli"
    assert record.fields["music_director"] == "M. M. Keeravani"
    assert record.fields["cinematographer"] == "K. K. Senthil Kumar"
    assert record.fields["producer"] == "Shobu Yarlagadda"
    assert record.fields["writer"] == "K. V. Vijayendra Prasad"
    assert record.fields["runtime"] == 159
    assert record.fields["language"] == "te"
    assert record.fields["hero"] == "Prabhas"
    assert record.fields["heroine"] == "Tamannaah Bhatia"
    assert record.fields["cast"] == (
        CastDetail(name="Prabhas", role="Shivudu", order=0),
        CastDetail(name="Rana Daggubati", role="Bhallaladeva", order=1),
        CastDetail(name="Tamannaah Bhatia", role="Avanthika", order=2),
    )


def test_movie_without_credits_or_runtime_omits_those_fields() -> None:
    movie = TmdbMovie.model_validate({"id": 1, "title": "Untitled", "runtime": 0, "overview": ""})

    record = movie_to_record(movie)

    assert record.fields == {}
    assert record.year is None


def test_person_to_record() -> None:
    person = TmdbPerson.model_validate(
        {
            "id": 237045,
            "name": "Prabhas",
            "birthday": "1979-10-23",
            "place_of_birth": "Chennai, Tamil Nadu, India",
            "biography": "Prabhas is an Indian actor.",
            "known_for_department": "Acting",
        }
    )

    record = person_to_record(person)

    assert record.title == "Prabhas"
    assert record.year is None
    assert record.fields == {
        "biography": "Prabhas is an Indian actor.",
        "birth_place": "Chennai, Tamil Nadu, India",
        "birth_date": "1979-10-23",
        "occupation": "Acting",
    }
