"""Entities under reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from .enums import EntityKind
from .fields import is_blank

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import ExternalNamespace
    from .fields import FieldValue


# identity attributes exposed through the field map
TITLE_FIELDS = frozenset({"title", "name"})
YEAR_FIELD = "release_year"


def new_id() -> str:
    return str(uuid4())


@dataclass
class QualityMetadata:
    """Data quality block maintained by the apply layer.

    Positional construction is kept so the SQLAlchemy composite can build it.
    """

    grade: str | None = None
    last_verified_at: datetime | None = None
    needs_manual_review: bool = False


@dataclass(eq=False, kw_only=True)
class Entity:
    """A movie or person record owned by the catalog store."""

    id: str = field(default_factory=new_id)
    kind: EntityKind = EntityKind.MOVIE
    title: str
    year: int | None = None
    external_ids: dict[str, str] = field(default_factory=dict[str, str])
    fields: dict[str, FieldValue] = field(default_factory=dict[str, "FieldValue"])
    # fields whose current value was set by a manual correction
    manual_fields: set[str] = field(default_factory=set[str])
    quality: QualityMetadata = field(default_factory=QualityMetadata)
    version: int = 1

    @property
    def display_name(self) -> str:
        if self.year is None:
            return self.title
        return f"{self.title} ({self.year})"

    def value_of(self, field_name: str) -> FieldValue:
        if field_name in TITLE_FIELDS:
            return self.title
        if field_name == YEAR_FIELD:
            return self.year
        return self.fields.get(field_name)

    def has_value(self, field_name: str) -> bool:
        return not is_blank(self.value_of(field_name))

    def set_value(self, field_name: str, value: FieldValue) -> None:
        if field_name in TITLE_FIELDS:
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Entity {self.id} needs a non-empty title")
            self.title = value
        elif field_name == YEAR_FIELD:
            if value is not None and not isinstance(value, int):
                raise ValueError(f"Entity {self.id} year must be an integer")
            self.year = value
        elif is_blank(value):
            self.fields.pop(field_name, None)
        else:
            # reassign so JSON columns see the change
            self.fields = {**self.fields, field_name: value}

    def external_id(self, namespace: ExternalNamespace | str) -> str | None:
        return self.external_ids.get(str(namespace))
