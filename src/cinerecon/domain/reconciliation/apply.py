"""Apply layer: the single write path for approved field changes.

Automated consensus, reviewer decisions and manual corrections all become
``ApprovedChange`` records and go through ``apply_changes``. Each entity's
changes are written in one store transaction together with a ``FieldChange``
provenance row per written field.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from itertools import groupby
from typing import TYPE_CHECKING

from cinerecon.domain.model import FieldChange, Provider, utcnow
from cinerecon.domain.ports.persistence import WriteMetadata

from .errors import ApplyConflict, ReconciliationError
from .normalize import DEFAULT_NORMALIZER

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from cinerecon.domain.model import Entity, FieldValue, QualityMetadata
    from cinerecon.domain.ports.persistence import EntityStore

    from .claims import Correction
    from .normalize import Normalizer
    from .policy import ReviewDecision

log = logging.getLogger(__name__)


class Unset(Enum):
    """Marker for changes that do not check the current value before writing."""

    TOKEN = auto()


UNSET = Unset.TOKEN


@dataclass(frozen=True, slots=True, kw_only=True)
class ApprovedChange:
    entity_id: str
    field_name: str
    new_value: FieldValue
    sources: tuple[Provider, ...]
    expected_current: FieldValue | Unset = UNSET
    rationale: str = ""
    confidence: float | None = None

    @property
    def is_manual(self) -> bool:
        return Provider.MANUAL in self.sources

    @classmethod
    def from_decision(cls, decision: ReviewDecision) -> ApprovedChange:
        if decision.consensus is None:
            raise ValueError(f"{decision.entity_id}/{decision.field_name} has no consensus")
        return cls(
            entity_id=decision.entity_id,
            field_name=decision.field_name,
            new_value=decision.consensus.recommended_value,
            sources=decision.consensus.agreeing_sources,
            expected_current=decision.current_value,
            rationale=decision.rationale,
            confidence=decision.score,
        )

    @classmethod
    def from_correction(cls, correction: Correction) -> ApprovedChange:
        return cls(
            entity_id=correction.entity_id,
            field_name=correction.field_name,
            new_value=correction.value,
            sources=(correction.source,),
            rationale=correction.rationale,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class ApplyFailure:
    change: ApprovedChange
    reason: str


@dataclass(slots=True)
class ApplyResult:
    written: list[FieldChange] = field(default_factory=list[FieldChange])
    unchanged: list[ApprovedChange] = field(default_factory=list[ApprovedChange])
    failed: list[ApplyFailure] = field(default_factory=list[ApplyFailure])

    @property
    def writes(self) -> int:
        return len(self.written)

    def failure_for(self, entity_id: str, field_name: str) -> ApplyFailure | None:
        for failure in self.failed:
            if failure.change.entity_id == entity_id and failure.change.field_name == field_name:
                return failure
        return None

    def extend(self, other: ApplyResult) -> None:
        self.written.extend(other.written)
        self.unchanged.extend(other.unchanged)
        self.failed.extend(other.failed)


@dataclass(frozen=True, slots=True)
class EntityWritePlan:
    """Field writes for one entity, as ``(change, old value)`` pairs."""

    writes: tuple[tuple[ApprovedChange, FieldValue], ...]
    unchanged: tuple[ApprovedChange, ...]


def plan_entity_write(
    entity: Entity,
    changes: Sequence[ApprovedChange],
    *,
    normalizer: Normalizer = DEFAULT_NORMALIZER,
) -> EntityWritePlan:
    """Check changes against the entity as currently stored.

    Changes whose value is already in place are skipped. A change whose
    expected current value no longer matches raises ``ApplyConflict``, which
    aborts the entity's whole write.
    """

    writes: list[tuple[ApprovedChange, FieldValue]] = []
    unchanged: list[ApprovedChange] = []
    planned: dict[str, FieldValue] = {}
    for change in changes:
        if change.entity_id != entity.id:
            raise ValueError(f"Change for {change.entity_id} applied to {entity.id}")
        current = planned.get(change.field_name, entity.value_of(change.field_name))
        if normalizer.equals(current, change.new_value):
            unchanged.append(change)
            continue
        expected = change.expected_current
        if not isinstance(expected, Unset) and not normalizer.equals(current, expected):
            raise ApplyConflict(entity.id, change.field_name, expected=expected, actual=current)
        writes.append((change, current))
        planned[change.field_name] = change.new_value
    return EntityWritePlan(writes=tuple(writes), unchanged=tuple(unchanged))


def write_plan(
    entity: Entity,
    plan: EntityWritePlan,
    metadata: WriteMetadata,
) -> list[FieldChange]:
    """Mutate ``entity`` according to ``plan`` and return the provenance rows."""

    records: list[FieldChange] = []
    for change, old_value in plan.writes:
        entity.set_value(change.field_name, change.new_value)
        if change.is_manual:
            entity.manual_fields = entity.manual_fields | {change.field_name}
        else:
            entity.manual_fields = entity.manual_fields - {change.field_name}
        records.append(
            FieldChange(
                entity_id=entity.id,
                field_name=change.field_name,
                old_value=old_value,
                new_value=change.new_value,
                sources=change.sources,
                rationale=change.rationale,
                applied_by=metadata.applied_by,
                applied_at=metadata.applied_at,
            )
        )
    if records:
        entity.version += 1
    if metadata.quality is not None:
        entity.quality = metadata.quality
    return records


def apply_changes(
    store: EntityStore,
    changes: Iterable[ApprovedChange],
    *,
    applied_by: str,
    quality_by_entity: Mapping[str, QualityMetadata] | None = None,
    applied_at: datetime | None = None,
) -> ApplyResult:
    """Write approved changes, one transaction per entity.

    Failures are recorded per entity and never raised: a conflicting or missing
    entity marks all of its changes as failed and leaves it untouched.
    """

    quality_by_entity = quality_by_entity or {}
    by_entity: dict[str, list[ApprovedChange]] = {
        entity_id: list(group)
        for entity_id, group in groupby(
            sorted(changes, key=lambda change: (change.entity_id, change.field_name)),
            key=lambda change: change.entity_id,
        )
    }
    result = ApplyResult()
    for entity_id in sorted(set(by_entity) | set(quality_by_entity)):
        entity_changes = by_entity.get(entity_id, [])
        metadata = WriteMetadata(
            applied_by=applied_by,
            applied_at=applied_at or utcnow(),
            quality=quality_by_entity.get(entity_id),
        )
        try:
            outcome = store.update_fields(entity_id, entity_changes, metadata)
        except (ReconciliationError, ValueError) as exc:
            log.warning("Apply failed for entity %s: %s", entity_id, exc)
            result.failed.extend(
                ApplyFailure(change=change, reason=str(exc)) for change in entity_changes
            )
            continue
        result.written.extend(outcome.written)
        result.unchanged.extend(outcome.unchanged)
        for record in outcome.written:
            log.info(
                "Applied %s.%s: %r -> %r (%s)",
                entity_id,
                record.field_name,
                record.old_value,
                record.new_value,
                ", ".join(record.sources),
            )
    return result
