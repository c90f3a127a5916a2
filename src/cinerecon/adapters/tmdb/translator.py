"""Translate TMDB payloads into source records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from cinerecon.domain.model import CastDetail, Provider
from cinerecon.domain.reconciliation import SourceRecord, normalize_year

from .schema import TMDB_GENDER_FEMALE, TMDB_GENDER_MALE

if TYPE_CHECKING:
    from cinerecon.domain.model import FieldValue

    from .schema import TmdbCastCredit, TmdbCredits, TmdbMovie, TmdbPerson

TMDB_WEB_URL: Final = "https://www.themoviedb.org"

# crew jobs mapped onto catalog fields; the first matching credit wins
CREW_JOB_FIELDS: Final[dict[str, str]] = {
    "Director": "director",
    "Original Music Composer": "music_director",
    "Music": "music_director",
    "Music Director": "music_director",
    "Producer": "producer",
    "Director of Photography": "cinematographer",
    "Screenplay": "writer",
    "Writer": "writer",
}


def movie_to_record(movie: TmdbMovie, *, cast_limit: int = 5) -> SourceRecord:
    fields: dict[str, FieldValue] = {
        "runtime": movie.runtime or None,
        "synopsis": movie.overview or None,
        "language": movie.original_language or None,
    }
    if movie.credits is not None:
        fields.update(_credit_fields(movie.credits, cast_limit=cast_limit))
    return SourceRecord(
        provider=Provider.TMDB,
        title=movie.title,
        year=normalize_year(movie.release_date),
        fields={key: value for key, value in fields.items() if value is not None},
        source_url=f"{TMDB_WEB_URL}/movie/{movie.id}",
        external_id=str(movie.id),
    )


def person_to_record(person: TmdbPerson) -> SourceRecord:
    fields: dict[str, FieldValue] = {
        "biography": person.biography or None,
        "birth_place": person.place_of_birth or None,
        "birth_date": person.birthday or None,
        "occupation": person.known_for_department or None,
    }
    return SourceRecord(
        provider=Provider.TMDB,
        title=person.name,
        year=None,
        fields={key: value for key, value in fields.items() if value is not None},
        source_url=f"{TMDB_WEB_URL}/person/{person.id}",
        external_id=str(person.id),
    )


def _credit_fields(credits: TmdbCredits, *, cast_limit: int) -> dict[str, FieldValue]:
    fields: dict[str, FieldValue] = {}
    for crew in credits.crew:
        field_name = CREW_JOB_FIELDS.get(crew.job or "")
        if field_name is not None and field_name not in fields:
            fields[field_name] = crew.name

    billed = sorted(credits.cast, key=_billing_order)
    hero = next((c.name for c in billed if c.gender == TMDB_GENDER_MALE), None)
    heroine = next((c.name for c in billed if c.gender == TMDB_GENDER_FEMALE), None)
    if hero:
        fields["hero"] = hero
    if heroine:
        fields["heroine"] = heroine
    if billed and cast_limit > 0:
        fields["cast"] = tuple(
            CastDetail(name=credit.name, role=credit.character or None, order=credit.order)
            for credit in billed[:cast_limit]
        )
    return fields


def _billing_order(credit: TmdbCastCredit) -> int:
    return credit.order if credit.order is not None else 1_000_000
