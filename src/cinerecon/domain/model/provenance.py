"""Audit records written alongside every field change."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .entity import new_id

if TYPE_CHECKING:
    from .enums import Provider
    from .fields import FieldValue


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class FieldChange:
    """One applied write, with enough context for a manual rollback."""

    id: str = field(default_factory=new_id)
    entity_id: str
    field_name: str
    old_value: FieldValue
    new_value: FieldValue
    sources: tuple[Provider, ...]
    rationale: str = ""
    applied_by: str = "cinerecon"
    applied_at: datetime = field(default_factory=utcnow)
