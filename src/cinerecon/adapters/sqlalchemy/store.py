"""Entity store on top of the SQLAlchemy unit of work."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cinerecon.config import get_database_config
from cinerecon.domain.ports.persistence import FieldWriteResult
from cinerecon.domain.reconciliation import (
    DEFAULT_NORMALIZER,
    EntityNotFoundError,
    StoreWriteError,
    plan_entity_write,
    write_plan,
)

from .mappings import start_mappers
from .migrations import upgrade_head
from .unit_of_work import SqlAlchemyUnitOfWork

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from sqlalchemy.engine import Engine

    from cinerecon.domain.model import Entity, FieldChange
    from cinerecon.domain.ports.persistence import EntityFilter, WriteMetadata
    from cinerecon.domain.reconciliation import ApprovedChange, Normalizer

log = logging.getLogger(__name__)


class SqlAlchemyEntityStore:
    """``EntityStore`` backed by a relational database."""

    def __init__(
        self,
        engine: Engine,
        *,
        normalizer: Normalizer = DEFAULT_NORMALIZER,
        owns_engine: bool = False,
    ) -> None:
        start_mappers()
        self.engine = engine
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )
        self._normalizer = normalizer
        self._owns_engine = owns_engine

    def unit_of_work(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self._session_factory)

    def add_entities(self, entities: Iterable[Entity]) -> int:
        count = 0
        try:
            with self.unit_of_work() as uow:
                for entity in entities:
                    uow.repositories.entities.add(entity)
                    count += 1
                uow.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Could not add entities: {exc}") from exc
        return count

    def get_entity(self, entity_id: str) -> Entity:
        with self.unit_of_work() as uow:
            entity = uow.repositories.entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return entity

    def update_fields(
        self,
        entity_id: str,
        changes: Sequence[ApprovedChange],
        metadata: WriteMetadata,
    ) -> FieldWriteResult:
        try:
            with self.unit_of_work() as uow:
                entity = uow.repositories.entities.get(entity_id)
                if entity is None:
                    raise EntityNotFoundError(entity_id)
                plan = plan_entity_write(entity, changes, normalizer=self._normalizer)
                records = write_plan(entity, plan, metadata)
                for record in records:
                    uow.repositories.field_changes.add(record)
                uow.commit()
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"Write for entity {entity_id} failed: {exc}") from exc
        if records:
            log.debug("Entity %s: %d field(s) written", entity_id, len(records))
        return FieldWriteResult(written=tuple(records), unchanged=plan.unchanged)

    def list_entities_needing_validation(self, entity_filter: EntityFilter) -> list[Entity]:
        with self.unit_of_work() as uow:
            return uow.repositories.entities.select(entity_filter)

    def history(self, entity_id: str) -> list[FieldChange]:
        with self.unit_of_work() as uow:
            return uow.repositories.field_changes.for_entity(entity_id)

    def close(self) -> None:
        if self._owns_engine:
            self.engine.dispose()


def create_store_engine(database_uri: str) -> Engine:
    url = make_url(database_uri)
    if url.get_backend_name() == "sqlite" and url.database in {None, "", ":memory:"}:
        # batch writes happen on worker threads; they must see the same in-memory database
        return create_engine(
            url, poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    return create_engine(url)


@contextmanager
def open_entity_store(
    *,
    database_uri: str | None = None,
    engine: Engine | None = None,
    normalizer: Normalizer = DEFAULT_NORMALIZER,
) -> Iterator[SqlAlchemyEntityStore]:
    """Open the store, bringing the schema up to date first."""

    owns_engine = engine is None
    resolved_engine = engine or create_store_engine(database_uri or get_database_config().uri)
    start_mappers()
    upgrade_head(engine=resolved_engine)
    store = SqlAlchemyEntityStore(
        resolved_engine, normalizer=normalizer, owns_engine=owns_engine
    )
    try:
        yield store
    finally:
        store.close()
