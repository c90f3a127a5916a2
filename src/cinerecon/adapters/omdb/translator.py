"""Translate OMDb payloads into source records."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

from cinerecon.domain.model import CastName, Provider
from cinerecon.domain.reconciliation import SourceRecord, normalize_year

if TYPE_CHECKING:
    from cinerecon.domain.model import FieldValue

    from .schema import OmdbTitle

IMDB_TITLE_URL: Final = "https://www.imdb.com/title/{imdb_id}/"
_RUNTIME_MINUTES = re.compile(r"(\d+)\s*min")
# "Jane Doe (screenplay), John Roe (story)" -> credit roles are dropped
_CREDIT_ROLE = re.compile(r"\s*\([^)]*\)\s*$")


def title_to_record(title: OmdbTitle) -> SourceRecord:
    actors = _split_names(title.actors)
    fields: dict[str, FieldValue] = {
        "director": _first_name(title.director),
        "writer": _first_name(title.writer),
        "synopsis": title.plot,
        "runtime": _runtime_minutes(title.runtime),
        "language": _first_name(title.language),
        "hero": actors[0] if actors else None,
        "cast": tuple(CastName(name) for name in actors) or None,
    }
    return SourceRecord(
        provider=Provider.OMDB,
        title=title.title or "",
        year=normalize_year(title.year),
        fields={key: value for key, value in fields.items() if value is not None},
        source_url=IMDB_TITLE_URL.format(imdb_id=title.imdb_id) if title.imdb_id else None,
        external_id=title.imdb_id,
    )


def _split_names(raw: str | None) -> list[str]:
    if not raw:
        return []
    names = (_CREDIT_ROLE.sub("", part).strip() for part in raw.split(","))
    return [name for name in names if name]


def _first_name(raw: str | None) -> str | None:
    names = _split_names(raw)
    return names[0] if names else None


def _runtime_minutes(raw: str | None) -> int | None:
    if not raw:
        return None
    found = _RUNTIME_MINUTES.search(raw)
    return int(found.group(1)) if found else None
