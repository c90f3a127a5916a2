"""Claims produced by sources, and manual corrections fed back by reviewers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cinerecon.domain.model import EntityKind, Provider, is_blank, utcnow

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from datetime import datetime

    from cinerecon.domain.model import Entity, FieldValue

    from .match import MatchCategory, MatchDecision


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceQuery:
    """What a connector is asked to look up."""

    kind: EntityKind
    title: str
    year: int | None = None
    external_ids: Mapping[str, str] = field(default_factory=dict[str, str])

    @classmethod
    def for_entity(cls, entity: Entity) -> SourceQuery:
        return cls(
            kind=entity.kind,
            title=entity.title,
            year=entity.year,
            external_ids=dict(entity.external_ids),
        )

    def external_id(self, namespace: str) -> str | None:
        return self.external_ids.get(namespace)


@dataclass(slots=True, kw_only=True)
class SourceRecord:
    """One provider's snapshot of one candidate entity."""

    provider: Provider
    title: str
    year: int | None
    fields: dict[str, FieldValue] = field(default_factory=dict[str, "FieldValue"])
    source_url: str | None = None
    external_id: str | None = None
    fetched_at: datetime = field(default_factory=utcnow)
    match: MatchDecision | None = None

    def claims(self, entity_id: str) -> Iterator[FieldClaim]:
        """Yield one claim per non-blank field; requires a match decision."""

        if self.match is None:
            raise ValueError(f"{self.provider} record has not been matched yet")
        for field_name, value in sorted(self.fields.items()):
            if is_blank(value):
                continue
            yield FieldClaim(
                entity_id=entity_id,
                field_name=field_name,
                value=value,
                source=self.provider,
                match_category=self.match.category,
            )


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldClaim:
    """One source's assertion of a field value."""

    entity_id: str
    field_name: str
    value: FieldValue
    source: Provider
    # None for the internal value, which is never paired
    match_category: MatchCategory | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Correction:
    """A manually curated value for one entity field."""

    entity_id: str
    field_name: str
    value: FieldValue
    rationale: str
    source: Provider = Provider.MANUAL


def internal_claim(entity: Entity, field_name: str) -> FieldClaim | None:
    value = entity.value_of(field_name)
    if is_blank(value):
        return None
    return FieldClaim(
        entity_id=entity.id,
        field_name=field_name,
        value=value,
        source=Provider.INTERNAL,
    )
