from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from cinerecon.domain.model import Provider, QualityMetadata
from cinerecon.domain.ports.persistence import WriteMetadata
from cinerecon.domain.reconciliation import (
    UNSET,
    ApplyConflict,
    ApprovedChange,
    Correction,
    apply_changes,
    plan_entity_write,
    write_plan,
)
from tests.support.reconciliation import InMemoryEntityStore, movie

if TYPE_CHECKING:
    from cinerecon.domain.model import FieldValue
    from cinerecon.domain.reconciliation.apply import Unset

APPLIED_AT = datetime(2026, 3, 1, 12, tzinfo=UTC)
SOURCES = (Provider.TMDB, Provider.WIKIPEDIA, Provider.WIKIDATA)


def _change(
    field_name: str,
    value: FieldValue,
    *,
    expected_current: FieldValue | Unset = UNSET,
    rationale: str = "",
) -> ApprovedChange:
    return ApprovedChange(
        entity_id="movie-1",
        field_name=field_name,
        new_value=value,
        sources=SOURCES,
        expected_current=expected_current,
        rationale=rationale,
    )


def test_apply_writes_value_and_provenance() -> None:
    store = InMemoryEntityStore.of(movie())

    result = apply_changes(
        store,
        [_change("director", "S. S. Rajamouli", expected_current=None, rationale="3/3 agree")],
        applied_by="cinerecon",
        applied_at=APPLIED_AT,
    )

    assert result.writes == 1
    assert store.entities["movie-1"].fields["director"] == "S. S. Rajamouli"
    assert store.entities["movie-1"].version == 2
    (change,) = store.history("movie-1")
    assert change.old_value is None
    assert change.new_value == "S. S. Rajamouli"
    assert change.sources == SOURCES
    assert change.rationale == "3/3 agree"
    assert change.applied_at == APPLIED_AT


def test_applying_twice_writes_once() -> None:
    store = InMemoryEntityStore.of(movie())
    changes = [_change("runtime", 159, expected_current=None)]

    first = apply_changes(store, changes, applied_by="cinerecon")
    second = apply_changes(store, changes, applied_by="cinerecon")

    assert first.writes == 1
    assert second.writes == 0
    assert len(second.unchanged) == 1
    assert not second.failed
    assert len(store.history("movie-1")) == 1


def test_normalized_equal_value_is_not_rewritten() -> None:
    store = InMemoryEntityStore.of(movie(director="SS Rajamouli"))

    result = apply_changes(store, [_change("director", "S. S. Rajamouli")], applied_by="cinerecon")

    assert result.writes == 0
    assert store.entities["movie-1"].fields["director"] == "SS Rajamouli"


def test_changed_entity_fails_the_whole_entity_write() -> None:
    store = InMemoryEntityStore.of(movie(director="Edited Meanwhile"))
    changes = [
        _change("director", "S. S. Rajamouli", expected_current=None),
        _change("runtime", 159, expected_current=None),
    ]

    result = apply_changes(store, changes, applied_by="cinerecon")

    assert result.writes == 0
    assert {failure.change.field_name for failure in result.failed} == {"director", "runtime"}
    assert "changed since it was read" in result.failed[0].reason
    assert "runtime" not in store.entities["movie-1"].fields
    assert store.history("movie-1") == []


def test_missing_entity_is_reported_not_raised() -> None:
    store = InMemoryEntityStore.of()

    result = apply_changes(store, [_change("runtime", 159)], applied_by="cinerecon")

    assert result.failure_for("movie-1", "runtime") is not None
    assert "does not exist" in result.failed[0].reason


def test_manual_changes_mark_the_field_as_curated() -> None:
    store = InMemoryEntityStore.of(movie(producer="Wrong"))
    correction = Correction(
        entity_id="movie-1",
        field_name="producer",
        value="Shobu Yarlagadda",
        rationale="checked the credits",
    )

    apply_changes(store, [ApprovedChange.from_correction(correction)], applied_by="reviewer")
    assert store.entities["movie-1"].manual_fields == {"producer"}

    apply_changes(store, [_change("producer", "Arka Media Works")], applied_by="cinerecon")
    assert store.entities["movie-1"].manual_fields == set()


def test_quality_is_written_even_without_field_changes() -> None:
    store = InMemoryEntityStore.of(movie())
    quality = QualityMetadata(grade="B", last_verified_at=APPLIED_AT, needs_manual_review=True)

    apply_changes(store, [], applied_by="cinerecon", quality_by_entity={"movie-1": quality})

    assert store.entities["movie-1"].quality == quality
    assert store.entities["movie-1"].version == 1


def test_plan_checks_later_changes_against_earlier_ones() -> None:
    entity = movie()
    plan = plan_entity_write(
        entity,
        [
            _change("runtime", 159, expected_current=None),
            _change("runtime", 160, expected_current=159),
        ],
    )

    records = write_plan(entity, plan, WriteMetadata(applied_by="cinerecon"))

    assert [record.old_value for record in records] == [None, 159]
    assert entity.fields["runtime"] == 160


def test_plan_rejects_changes_for_other_entities() -> None:
    change = ApprovedChange(entity_id="other", field_name="runtime", new_value=1, sources=SOURCES)

    with pytest.raises(ValueError, match="applied to movie-1"):
        plan_entity_write(movie(), [change])


def test_conflict_error_carries_both_values() -> None:
    with pytest.raises(ApplyConflict) as excinfo:
        plan_entity_write(movie(runtime=150), [_change("runtime", 159, expected_current=140)])

    assert excinfo.value.expected == 140
    assert excinfo.value.actual == 150
