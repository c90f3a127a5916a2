"""Field values held in an entity's canonical field map."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final, cast

from .cast import CastDetail, CastMember, CastName, cast_member_from_raw, cast_member_to_raw

type FieldValue = str | int | CastMember | tuple[CastMember, ...] | None

INTEGER_FIELDS: Final[frozenset[str]] = frozenset({"runtime", "release_year"})
CAST_LIST_FIELDS: Final[frozenset[str]] = frozenset({"cast"})
CAST_LIST_SEPARATOR: Final[str] = "; "


def is_blank(value: FieldValue) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, tuple):
        return len(value) == 0
    return False


def render_field_value(value: FieldValue) -> str | None:
    """Render a value as the string used in reports and review sheets."""

    match value:
        case None:
            return None
        case str():
            return value
        case int():
            return str(value)
        case CastName(name=name) | CastDetail(name=name):
            return name
        case tuple():
            return CAST_LIST_SEPARATOR.join(member.name for member in value)
    raise TypeError(f"Unsupported field value: {type(value).__name__}")


def parse_field_value(field: str, raw: str | None) -> FieldValue:
    """Parse a reviewer-entered string back into the field's value type."""

    if raw is None or not raw.strip():
        return None
    text = raw.strip()
    if field in INTEGER_FIELDS:
        try:
            return int(text)
        except ValueError as exc:
            raise ValueError(f"Field {field} expects an integer, got {raw!r}") from exc
    if field in CAST_LIST_FIELDS:
        names = [part.strip() for part in text.split(";")]
        return tuple(CastName(name) for name in names if name)
    return text


def field_value_from_raw(raw: object) -> FieldValue:
    """Decode a JSON-compatible stored value."""

    if isinstance(raw, bool):
        return int(raw)
    if raw is None or isinstance(raw, str | int):
        return raw
    if isinstance(raw, Mapping):
        return cast_member_from_raw(raw)
    if isinstance(raw, Sequence):
        return tuple(cast_member_from_raw(item) for item in cast(Sequence[Any], raw))
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    raise TypeError(f"Unsupported stored field value: {type(raw).__name__}")


def field_value_to_raw(value: FieldValue) -> object:
    """Encode a value into a JSON-compatible structure."""

    match value:
        case None | str() | int():
            return value
        case CastName() | CastDetail():
            return cast_member_to_raw(value)
        case tuple():
            return [cast_member_to_raw(member) for member in value]
    raise TypeError(f"Unsupported field value: {type(value).__name__}")


def field_map_from_raw(raw: Mapping[str, object] | None) -> dict[str, FieldValue]:
    if not raw:
        return {}
    return {str(key): field_value_from_raw(value) for key, value in raw.items()}


def field_map_to_raw(fields: Mapping[str, FieldValue]) -> dict[str, object]:
    return {key: field_value_to_raw(value) for key, value in sorted(fields.items())}
