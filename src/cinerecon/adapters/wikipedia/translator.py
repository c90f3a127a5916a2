"""Translate Wikipedia infoboxes into source records."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final
from urllib.parse import quote

from cinerecon.domain.model import CastName, EntityKind, Provider
from cinerecon.domain.reconciliation import SourceRecord, normalize_year

from .infobox import find_infobox

if TYPE_CHECKING:
    from cinerecon.domain.model import FieldValue

    from .infobox import Infobox
    from .schema import WikipediaPage

WIKIPEDIA_PAGE_URL: Final = "https://en.wikipedia.org/wiki/{title}"
_DISAMBIGUATION = re.compile(r"\s*\([^)]*\)\s*$")
_MINUTES = re.compile(r"(\d+)\s*(?:min|minutes)\b", re.IGNORECASE)
_HOURS_MINUTES = re.compile(r"(\d+)\s*h(?:ours?)?\s*(\d+)\s*m", re.IGNORECASE)

PERSON_INFOBOX_KINDS: Final = frozenset(
    {"person", "actor", "musical artist", "officeholder", "writer", "artist"}
)


def page_to_record(page: WikipediaPage, *, kind: EntityKind) -> SourceRecord | None:
    """``None`` when the page carries no infobox of the expected kind."""

    infobox = find_infobox(page.wikitext)
    if infobox is None:
        return None
    if kind is EntityKind.PERSON:
        if infobox.kind not in PERSON_INFOBOX_KINDS:
            return None
        fields = _person_fields(infobox)
        year = None
    else:
        if infobox.kind != "film":
            return None
        fields = _movie_fields(infobox)
        year = normalize_year(infobox.text("released", "release date"))
    return SourceRecord(
        provider=Provider.WIKIPEDIA,
        title=infobox.text("name") or _DISAMBIGUATION.sub("", page.title),
        year=year,
        fields={key: value for key, value in fields.items() if value is not None},
        source_url=WIKIPEDIA_PAGE_URL.format(title=quote(page.title.replace(" ", "_"))),
        external_id=page.title,
    )


def _movie_fields(infobox: Infobox) -> dict[str, FieldValue]:
    starring = infobox.items("starring", "cast")
    return {
        "director": infobox.first("director", "directed by"),
        "producer": infobox.first("producer", "producers", "produced by"),
        "music_director": infobox.first("music", "music by", "music director"),
        "cinematographer": infobox.first("cinematography", "cinematographer"),
        "writer": infobox.first("writer", "screenplay", "written by", "story"),
        "language": infobox.first("language"),
        "runtime": parse_runtime(infobox.text("runtime")),
        "hero": starring[0] if starring else None,
        "cast": tuple(CastName(name) for name in starring) or None,
    }


def _person_fields(infobox: Infobox) -> dict[str, FieldValue]:
    return {
        "birth_place": infobox.text("birth place"),
        "birth_date": infobox.first("birth date"),
        "occupation": infobox.first("occupation", "occupations"),
    }


def parse_runtime(raw: str | None) -> int | None:
    if not raw:
        return None
    hours_minutes = _HOURS_MINUTES.search(raw)
    if hours_minutes is not None:
        return int(hours_minutes.group(1)) * 60 + int(hours_minutes.group(2))
    minutes = _MINUTES.search(raw)
    return int(minutes.group(1)) if minutes else None
