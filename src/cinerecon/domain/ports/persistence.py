"""Ports for persisting entities and their change history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from cinerecon.domain.model import utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from cinerecon.domain.model import Entity, EntityKind, FieldChange, QualityMetadata
    from cinerecon.domain.reconciliation.apply import ApprovedChange


@dataclass(frozen=True, slots=True, kw_only=True)
class EntityFilter:
    """Selection of entities for a validation run.

    ``has_external_id`` is either ``True`` (any namespace) or a namespace name.
    """

    kind: EntityKind | None = None
    limit: int | None = None
    year_from: int | None = None
    year_to: int | None = None
    has_external_id: bool | str = False
    entity_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class WriteMetadata:
    applied_by: str
    applied_at: datetime = field(default_factory=utcnow)
    quality: QualityMetadata | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldWriteResult:
    written: tuple[FieldChange, ...] = ()
    unchanged: tuple[ApprovedChange, ...] = ()


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class EntityRepository(Repository["Entity"], Protocol):
    def get(self, entity_id: str) -> Entity | None: ...

    def select(self, entity_filter: EntityFilter) -> list[Entity]: ...


@runtime_checkable
class FieldChangeRepository(Repository["FieldChange"], Protocol):
    def for_entity(self, entity_id: str) -> list[FieldChange]: ...


@runtime_checkable
class EntityStore(Protocol):
    """The catalog as seen by a reconciliation run.

    ``update_fields`` is one transaction: either every change for the entity is
    written together with its provenance, or nothing is. It raises
    ``ApplyConflict`` when a field no longer holds the value a change expects and
    ``EntityNotFoundError`` for unknown ids.
    """

    def get_entity(self, entity_id: str) -> Entity: ...

    def update_fields(
        self,
        entity_id: str,
        changes: Sequence[ApprovedChange],
        metadata: WriteMetadata,
    ) -> FieldWriteResult: ...

    def list_entities_needing_validation(self, entity_filter: EntityFilter) -> list[Entity]: ...

    def history(self, entity_id: str) -> list[FieldChange]: ...

    def close(self) -> None: ...
