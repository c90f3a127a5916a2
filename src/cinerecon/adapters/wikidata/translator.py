"""Translate Wikidata items into source records."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Final

from cinerecon.domain.model import CastName, EntityKind, Provider
from cinerecon.domain.reconciliation import SourceRecord

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cinerecon.domain.model import FieldValue

    from .schema import WikidataEntity

WIKIDATA_ENTITY_URL: Final = "https://www.wikidata.org/wiki/{entity_id}"

INSTANCE_OF: Final = "P31"
PUBLICATION_DATE: Final = "P577"
DURATION: Final = "P2047"
DATE_OF_BIRTH: Final = "P569"

# item-valued properties whose first label becomes a field value
MOVIE_ITEM_FIELDS: Final[dict[str, str]] = {
    "P57": "director",
    "P86": "music_director",
    "P162": "producer",
    "P344": "cinematographer",
    "P58": "writer",
    "P364": "language",
}
PERSON_ITEM_FIELDS: Final[dict[str, str]] = {
    "P19": "birth_place",
    "P106": "occupation",
}
CAST_MEMBER: Final = "P161"
CAST_LIMIT: Final = 5

FILM_CLASSES: Final = frozenset({"Q11424", "Q24869", "Q202866", "Q229390", "Q506240"})
HUMAN_CLASS: Final = "Q5"

MINUTE_UNIT: Final = "http://www.wikidata.org/entity/Q7727"
HOUR_UNIT: Final = "http://www.wikidata.org/entity/Q25235"

# Wikidata time precision codes
PRECISION_DAY: Final = 11
PRECISION_MONTH: Final = 10
PRECISION_YEAR: Final = 9


def is_kind(entity: WikidataEntity, kind: EntityKind) -> bool:
    classes = set(entity.item_ids(INSTANCE_OF))
    if kind is EntityKind.PERSON:
        return HUMAN_CLASS in classes
    return bool(classes & FILM_CLASSES)


def linked_item_ids(entity: WikidataEntity, kind: EntityKind) -> list[str]:
    """Items whose labels are needed to translate ``entity``."""

    ids: list[str] = []
    if kind is EntityKind.PERSON:
        for prop in PERSON_ITEM_FIELDS:
            ids.extend(entity.item_ids(prop)[:1])
        return ids
    for prop in MOVIE_ITEM_FIELDS:
        ids.extend(entity.item_ids(prop)[:1])
    ids.extend(entity.item_ids(CAST_MEMBER)[:CAST_LIMIT])
    return ids


def release_year(entity: WikidataEntity) -> int | None:
    years = [
        year
        for year in (_time_parts(value)[0] for value in entity.values(PUBLICATION_DATE))
        if year is not None
    ]
    # the earliest publication is the original release
    return min(years) if years else None


def entity_to_record(
    entity: WikidataEntity,
    *,
    kind: EntityKind,
    labels: Mapping[str, str],
    language: str = "en",
) -> SourceRecord:
    if kind is EntityKind.PERSON:
        fields = _person_fields(entity, labels)
        year = None
    else:
        fields = _movie_fields(entity, labels)
        year = release_year(entity)
    return SourceRecord(
        provider=Provider.WIKIDATA,
        title=entity.label(language) or "",
        year=year,
        fields={key: value for key, value in fields.items() if value is not None},
        source_url=WIKIDATA_ENTITY_URL.format(entity_id=entity.id),
        external_id=entity.id,
    )


def _movie_fields(entity: WikidataEntity, labels: Mapping[str, str]) -> dict[str, FieldValue]:
    fields: dict[str, FieldValue] = {
        field_name: _first_label(entity, prop, labels)
        for prop, field_name in MOVIE_ITEM_FIELDS.items()
    }
    cast = tuple(
        CastName(labels[item_id])
        for item_id in entity.item_ids(CAST_MEMBER)[:CAST_LIMIT]
        if item_id in labels
    )
    fields["cast"] = cast or None
    durations = [minutes for minutes in map(_minutes, entity.values(DURATION)) if minutes]
    fields["runtime"] = durations[0] if durations else None
    return fields


def _person_fields(entity: WikidataEntity, labels: Mapping[str, str]) -> dict[str, FieldValue]:
    fields: dict[str, FieldValue] = {
        field_name: _first_label(entity, prop, labels)
        for prop, field_name in PERSON_ITEM_FIELDS.items()
    }
    births = entity.values(DATE_OF_BIRTH)
    fields["birth_date"] = _format_date(births[0]) if births else None
    return fields


def _first_label(entity: WikidataEntity, prop: str, labels: Mapping[str, str]) -> str | None:
    for item_id in entity.item_ids(prop):
        if item_id in labels:
            return labels[item_id]
    return None


def _time_parts(value: Any) -> tuple[int | None, int | None, int | None]:
    if not isinstance(value, dict):
        return (None, None, None)
    raw = str(value.get("time", ""))
    # "+2015-07-10T00:00:00Z"; unknown month or day is encoded as 00
    date_part = raw.lstrip("+").split("T", 1)[0]
    pieces = date_part.split("-")
    if len(pieces) != 3 or not all(piece.isdigit() for piece in pieces):
        return (None, None, None)
    year, month, day = (int(piece) for piece in pieces)
    precision = int(value.get("precision", PRECISION_DAY))
    if precision < PRECISION_MONTH or month == 0:
        return (year, None, None)
    if precision < PRECISION_DAY or day == 0:
        return (year, month, None)
    return (year, month, day)


def _format_date(value: Any) -> str | None:
    year, month, day = _time_parts(value)
    if year is None:
        return None
    if month is None:
        return f"{year:04d}"
    if day is None:
        return f"{year:04d}-{month:02d}"
    return f"{year:04d}-{month:02d}-{day:02d}"


def _minutes(value: Any) -> int | None:
    if not isinstance(value, dict):
        return None
    try:
        amount = Decimal(str(value.get("amount", "")))
    except InvalidOperation:
        return None
    unit = value.get("unit")
    if unit == HOUR_UNIT:
        amount *= 60
    elif unit != MINUTE_UNIT:
        return None
    return int(amount.to_integral_value())
