from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest

from cinerecon.domain.model import Entity, EntityKind, Provider
from cinerecon.domain.ports.persistence import EntityFilter
from cinerecon.domain.reconciliation import (
    BatchOptions,
    ReconciliationEngine,
    ReviewState,
    TransientFetchError,
    ValidationBatch,
)
from cinerecon.domain.reconciliation.batch import FetchStatus
from tests.support.reconciliation import (
    EXTERNAL,
    FakeConnector,
    InMemoryEntityStore,
    connectors_for,
    movie,
    record,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cinerecon.adapters.sqlalchemy import SqlAlchemyEntityStore
    from cinerecon.domain.ports.persistence import EntityStore, FieldWriteResult, WriteMetadata
    from cinerecon.domain.reconciliation import ApprovedChange


def _batch(
    connectors: list[FakeConnector],
    store: EntityStore,
    *,
    auto_fix: bool = False,
    max_concurrency: int = 5,
    fetch_timeout_seconds: float = 5.0,
) -> ValidationBatch:
    return ValidationBatch(
        connectors=connectors,
        engine=ReconciliationEngine(),
        store=store,
        options=BatchOptions(
            auto_fix=auto_fix,
            max_concurrency=max_concurrency,
            fetch_timeout_seconds=fetch_timeout_seconds,
        ),
    )


def test_auto_fix_applies_consensus_and_marks_decisions_applied() -> None:
    entity = movie()
    store = InMemoryEntityStore.of(entity)
    connectors = connectors_for([entity], director="S. S. Rajamouli")

    result = _batch(connectors, store, auto_fix=True).run([entity])

    assert store.entities[entity.id].fields["director"] == "S. S. Rajamouli"
    assert store.entities[entity.id].quality.grade == "A"
    assert store.entities[entity.id].quality.last_verified_at is not None
    assert result.apply_result.writes == 1
    (run,) = result.runs
    assert run.outcome is not None
    assert [decision.state for decision in run.outcome.decisions] == [ReviewState.APPLIED]
    assert result.report.auto_fixed.count == 1
    assert result.report.auto_fixed.items[0].state == "applied"
    assert all(connector.entered == connector.exited == 1 for connector in connectors)


def test_report_only_mode_never_writes() -> None:
    entity = movie()
    store = InMemoryEntityStore.of(entity)

    result = _batch(connectors_for([entity], director="X"), store).run([entity])

    assert "director" not in store.entities[entity.id].fields
    assert store.changes == []
    assert result.report.auto_fixed.items[0].state == "auto_approve"
    assert not result.report.auto_fix_enabled


def test_fetch_failures_are_counted_per_provider() -> None:
    entities = [movie(entity_id="m1"), movie("Eega", 2012, entity_id="m2")]
    connectors = connectors_for(entities, runtime=159)
    connectors[0].answers = {
        "Baahubali: The Beginning": TransientFetchError(Provider.TMDB, "HTTP 503"),
        "Eega": TransientFetchError(Provider.TMDB, "HTTP 503"),
    }
    connectors[3].answers = {"Eega": None}

    result = _batch(connectors, InMemoryEntityStore.of(*entities)).run(entities)

    assert result.fetch_failures == {Provider.TMDB: 2}
    assert result.report.fetch_failures == {"tmdb": 2}
    assert not result.providers_unreachable
    statuses = {run.entity.id: run.fetch_status for run in result.runs}
    assert statuses["m1"][Provider.TMDB] is FetchStatus.FAILED
    assert statuses["m2"][Provider.OMDB] is FetchStatus.NOT_FOUND
    assert statuses["m2"][Provider.WIKIDATA] is FetchStatus.FOUND


def test_slow_provider_times_out_without_blocking_others() -> None:
    entity = movie()
    connectors = connectors_for([entity], runtime=159)
    connectors[1].delay = 1.0

    result = _batch(
        connectors,
        InMemoryEntityStore.of(entity),
        fetch_timeout_seconds=0.05,
    ).run([entity])

    assert result.fetch_failures == {Provider.WIKIPEDIA: 1}
    assert result.report.auto_fixed.count == 1


def test_unexpected_connector_error_only_fails_that_fetch() -> None:
    entity = movie()
    connectors = connectors_for([entity], runtime=159)
    connectors[2].answers = {entity.title: KeyError("payload")}

    result = _batch(connectors, InMemoryEntityStore.of(entity)).run([entity])

    assert result.fetch_failures == {Provider.WIKIDATA: 1}
    assert result.report.failed_entities == []


def test_every_fetch_failing_marks_providers_unreachable() -> None:
    entity = movie()
    connectors = [
        FakeConnector(source=provider, answers={entity.title: TransientFetchError(provider, "down")})
        for provider in EXTERNAL
    ]

    result = _batch(connectors, InMemoryEntityStore.of(entity)).run([entity])

    assert result.providers_unreachable
    assert sum(result.fetch_failures.values()) == 4


def test_concurrency_is_bounded() -> None:
    entities = [movie(f"Movie {index}", 2000 + index, entity_id=f"m{index}") for index in range(6)]
    connectors = connectors_for(entities, runtime=120)
    for connector in connectors:
        connector.delay = 0.01

    _batch(connectors, InMemoryEntityStore.of(*entities), max_concurrency=2).run(entities)

    assert all(connector.max_in_flight <= 2 for connector in connectors)
    assert all(len(connector.queries) == 6 for connector in connectors)


def test_progress_reports_every_entity() -> None:
    entities = [movie(f"Movie {index}", 2000 + index, entity_id=f"m{index}") for index in range(3)]
    seen: list[tuple[int, int]] = []
    batch = ValidationBatch(
        connectors=connectors_for(entities, runtime=120),
        engine=ReconciliationEngine(),
        store=InMemoryEntityStore.of(*entities),
        progress=lambda done, total: seen.append((done, total)),
    )

    result = batch.run(entities)

    assert sorted(seen) == [(1, 3), (2, 3), (3, 3)]
    assert result.report.total_entities == 3


def test_apply_failure_is_reported_per_field() -> None:
    entity = movie()
    store = InMemoryEntityStore.of(entity)
    store.fail_for.add(entity.id)

    result = _batch(connectors_for([entity], runtime=159), store, auto_fix=True).run([entity])

    assert result.report.apply_failed.count == 1
    assert result.report.apply_failed.items[0].reason == f"write refused for {entity.id}"
    assert result.report.auto_fixed.count == 0


def test_records_for_other_entities_do_not_leak() -> None:
    first = movie(entity_id="m1")
    second = movie("Eega", 2012, entity_id="m2")
    connectors = [
        FakeConnector(
            source=provider,
            answers={
                first.title: record(provider, director="S. S. Rajamouli"),
                second.title: record(provider, title="Eega", year=2012, director="Rajamouli"),
            },
        )
        for provider in EXTERNAL
    ]

    result = _batch(connectors, InMemoryEntityStore.of(first, second)).run([first, second])

    values = {item.entity_id: item.new_value for item in result.report.auto_fixed.items}
    assert values == {"m1": "S. S. Rajamouli", "m2": "Rajamouli"}


def test_batch_options_are_validated() -> None:
    with pytest.raises(ValueError, match="max_concurrency"):
        BatchOptions(max_concurrency=0)
    with pytest.raises(ValueError, match="fetch_timeout_seconds"):
        BatchOptions(fetch_timeout_seconds=0)


@dataclass
class ThreadRecordingStore(InMemoryEntityStore):
    write_threads: set[int] = field(default_factory=set[int])

    def update_fields(
        self,
        entity_id: str,
        changes: Sequence[ApprovedChange],
        metadata: WriteMetadata,
    ) -> FieldWriteResult:
        self.write_threads.add(threading.get_ident())
        return super().update_fields(entity_id, changes, metadata)


def test_store_writes_stay_off_the_event_loop_thread() -> None:
    entities = [movie(entity_id="m1"), movie("Eega", 2012, entity_id="m2")]
    store = ThreadRecordingStore.of(*entities)

    result = _batch(connectors_for(entities, runtime=134), store, auto_fix=True).run(entities)

    assert result.apply_result.writes == 2
    assert store.write_threads
    assert threading.get_ident() not in store.write_threads


def test_auto_fix_writes_through_the_sql_store(entity_store: SqlAlchemyEntityStore) -> None:
    entity_store.add_entities(
        [
            Entity(id="m1", kind=EntityKind.MOVIE, title="Eega", year=2012),
            Entity(id="m2", kind=EntityKind.MOVIE, title="Magadheera", year=2009),
        ]
    )
    entities = entity_store.list_entities_needing_validation(EntityFilter())

    result = _batch(connectors_for(entities, runtime=134), entity_store, auto_fix=True).run(
        entities
    )

    assert result.apply_result.writes == 2
    assert entity_store.get_entity("m1").fields == {"runtime": 134}
    assert entity_store.get_entity("m2").version == 2
    assert entity_store.get_entity("m2").quality.grade == "A"
