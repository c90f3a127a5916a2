"""Cast entries as a tagged union.

Stored and provider payloads carry cast entries either as bare names or as
``{"name", "role", "order"}`` mappings. They are parsed into ``CastName`` or
``CastDetail`` once, at the boundary, so downstream code can match on type.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast


@dataclass(frozen=True, slots=True)
class CastName:
    name: str


@dataclass(frozen=True, slots=True, kw_only=True)
class CastDetail:
    name: str
    role: str | None = None
    order: int | None = None


type CastMember = CastName | CastDetail


def cast_member_from_raw(raw: object) -> CastMember:
    """Parse a stored or provider cast entry into the tagged union."""

    if isinstance(raw, CastName | CastDetail):
        return raw
    if isinstance(raw, str):
        return CastName(raw.strip())
    if isinstance(raw, Mapping):
        payload = cast(Mapping[str, Any], raw)
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Cast entry without a name: {raw!r}")
        role = payload.get("role")
        order = payload.get("order")
        if role is None and order is None:
            return CastName(name.strip())
        return CastDetail(
            name=name.strip(),
            role=str(role) if role is not None else None,
            order=int(order) if order is not None else None,
        )
    raise TypeError(f"Unsupported cast entry: {type(raw).__name__}")


def cast_member_to_raw(member: CastMember) -> str | dict[str, object]:
    match member:
        case CastName(name=name):
            return name
        case CastDetail(name=name, role=role, order=order):
            payload: dict[str, object] = {"name": name}
            if role is not None:
                payload["role"] = role
            if order is not None:
                payload["order"] = order
            return payload
