"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from cinerecon.domain.model import Entity, FieldChange

from .mappings import entity_table, field_change_table

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from cinerecon.domain.ports.persistence import EntityFilter


class SqlAlchemyEntityRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Entity) -> None:
        self.session.add(entity)

    def get(self, entity_id: str) -> Entity | None:
        return self.session.get(Entity, entity_id)

    def select(self, entity_filter: EntityFilter) -> list[Entity]:
        """Entities matching the filter, least recently verified first."""

        stmt = select(Entity)
        if entity_filter.kind is not None:
            stmt = stmt.where(entity_table.c.kind == entity_filter.kind)
        if entity_filter.year_from is not None:
            stmt = stmt.where(entity_table.c.year >= entity_filter.year_from)
        if entity_filter.year_to is not None:
            stmt = stmt.where(entity_table.c.year <= entity_filter.year_to)
        if entity_filter.entity_ids:
            stmt = stmt.where(entity_table.c.id.in_(entity_filter.entity_ids))
        stmt = stmt.order_by(
            entity_table.c.last_verified_at.is_(None).desc(),
            entity_table.c.last_verified_at.asc(),
            entity_table.c.id.asc(),
        )
        # external ids live in a JSON column, so that filter runs in Python
        if entity_filter.limit is not None and not entity_filter.has_external_id:
            stmt = stmt.limit(entity_filter.limit)

        entities = list(self.session.execute(stmt).scalars())
        if entity_filter.has_external_id:
            entities = [
                entity for entity in entities if _has_external_id(entity, entity_filter)
            ]
            if entity_filter.limit is not None:
                entities = entities[: entity_filter.limit]
        return entities


def _has_external_id(entity: Entity, entity_filter: EntityFilter) -> bool:
    wanted = entity_filter.has_external_id
    if isinstance(wanted, str):
        return bool(entity.external_ids.get(wanted))
    return any(entity.external_ids.values())


class SqlAlchemyFieldChangeRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: FieldChange) -> None:
        self.session.add(entity)

    def for_entity(self, entity_id: str) -> list[FieldChange]:
        stmt = (
            select(FieldChange)
            .where(field_change_table.c.entity_id == entity_id)
            .order_by(field_change_table.c.applied_at.asc(), field_change_table.c.id.asc())
        )
        return list(self.session.execute(stmt).scalars())
