"""Reusable fakes and builders for reconciliation tests."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Self

from cinerecon.domain.model import Entity, EntityKind, FieldChange, Provider
from cinerecon.domain.ports.persistence import FieldWriteResult
from cinerecon.domain.reconciliation import (
    DEFAULT_NORMALIZER,
    EntityNotFoundError,
    SourceRecord,
    plan_entity_write,
    write_plan,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence
    from types import TracebackType

    from cinerecon.domain.model import FieldValue
    from cinerecon.domain.ports.persistence import EntityFilter, WriteMetadata
    from cinerecon.domain.reconciliation import ApprovedChange, Normalizer, SourceQuery

EXTERNAL = (Provider.TMDB, Provider.WIKIPEDIA, Provider.WIKIDATA, Provider.OMDB)


def movie(
    title: str = "Baahubali: The Beginning",
    year: int | None = 2015,
    *,
    entity_id: str = "movie-1",
    **fields: FieldValue,
) -> Entity:
    return Entity(id=entity_id, kind=EntityKind.MOVIE, title=title, year=year, fields=dict(fields))


def person(name: str = "Prabhas", *, entity_id: str = "person-1", **fields: FieldValue) -> Entity:
    return Entity(id=entity_id, kind=EntityKind.PERSON, title=name, fields=dict(fields))


def record(
    provider: Provider,
    *,
    title: str = "Baahubali: The Beginning",
    year: int | None = 2015,
    **fields: FieldValue,
) -> SourceRecord:
    return SourceRecord(provider=provider, title=title, year=year, fields=dict(fields))


def agreeing_records(count: int, **fields: FieldValue) -> list[SourceRecord]:
    return [record(provider, **fields) for provider in EXTERNAL[:count]]


def clone(entity: Entity) -> Entity:
    # mapped instances carry ORM state, so copy field by field
    return Entity(
        id=entity.id,
        kind=entity.kind,
        title=entity.title,
        year=entity.year,
        external_ids=dict(entity.external_ids),
        fields=dict(entity.fields),
        manual_fields=set(entity.manual_fields),
        quality=replace(entity.quality),
        version=entity.version,
    )


@dataclass
class InMemoryEntityStore:
    """``EntityStore`` over a dict, with the same write planning as the real store."""

    entities: dict[str, Entity] = field(default_factory=dict[str, Entity])
    changes: list[FieldChange] = field(default_factory=list[FieldChange])
    normalizer: Normalizer = DEFAULT_NORMALIZER
    fail_for: set[str] = field(default_factory=set[str])
    closed: bool = False

    @classmethod
    def of(cls, *entities: Entity) -> InMemoryEntityStore:
        return cls(entities={entity.id: entity for entity in entities})

    def get_entity(self, entity_id: str) -> Entity:
        entity = self.entities.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(entity_id)
        return clone(entity)

    def update_fields(
        self,
        entity_id: str,
        changes: Sequence[ApprovedChange],
        metadata: WriteMetadata,
    ) -> FieldWriteResult:
        if entity_id in self.fail_for:
            raise ValueError(f"write refused for {entity_id}")
        # work on a copy so a conflict leaves the stored entity untouched
        entity = self.get_entity(entity_id)
        plan = plan_entity_write(entity, changes, normalizer=self.normalizer)
        records = write_plan(entity, plan, metadata)
        self.entities[entity_id] = entity
        self.changes.extend(records)
        return FieldWriteResult(written=tuple(records), unchanged=plan.unchanged)

    def list_entities_needing_validation(self, entity_filter: EntityFilter) -> list[Entity]:
        selected = [
            clone(entity)
            for entity in self.entities.values()
            if entity_filter.kind is None or entity.kind is entity_filter.kind
        ]
        if entity_filter.limit is not None:
            selected = selected[: entity_filter.limit]
        return selected

    def history(self, entity_id: str) -> list[FieldChange]:
        return [change for change in self.changes if change.entity_id == entity_id]

    def close(self) -> None:
        self.closed = True

    def factory(self) -> StoreFactory:
        return StoreFactory(self)


@dataclass
class StoreFactory:
    """Hands out one shared in-memory store and remembers the normalizers it got."""

    store: InMemoryEntityStore
    normalizers: list[Normalizer] = field(default_factory=list["Normalizer"])

    @contextmanager
    def __call__(self, normalizer: Normalizer) -> Iterator[InMemoryEntityStore]:
        self.normalizers.append(normalizer)
        self.store.normalizer = normalizer
        yield self.store


@dataclass
class FakeConnector:
    """Connector answering from a title -> record (or exception) table."""

    source: Provider
    answers: Mapping[str, SourceRecord | BaseException | None] = field(
        default_factory=dict[str, "SourceRecord | BaseException | None"]
    )
    delay: float = 0.0
    queries: list[SourceQuery] = field(default_factory=list["SourceQuery"])
    entered: int = 0
    exited: int = 0
    in_flight: int = 0
    max_in_flight: int = 0

    @property
    def provider(self) -> Provider:
        return self.source

    async def __aenter__(self) -> Self:
        self.entered += 1
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.exited += 1

    async def fetch(self, query: SourceQuery) -> SourceRecord | None:
        self.queries.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            answer = self.answers.get(query.title)
            if isinstance(answer, BaseException):
                raise answer
            return deepcopy(answer)
        finally:
            self.in_flight -= 1


def connectors_for(entities: Iterable[Entity], **fields: FieldValue) -> list[FakeConnector]:
    """One connector per external provider, each claiming ``fields`` for every entity."""

    entity_list = list(entities)
    return [
        FakeConnector(
            source=provider,
            answers={
                entity.title: record(provider, title=entity.title, year=entity.year, **fields)
                for entity in entity_list
            },
        )
        for provider in EXTERNAL
    ]
