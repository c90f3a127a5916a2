"""Run report: what was fixed, what needs a human, what was discarded.

The report is the exchange format of a run. It is written as JSON, rendered
as a review sheet (CSV/markdown) and read back for later apply passes, so its
schema is a pydantic model. Values appear twice: rendered as text for people,
and encoded (the ``*_data`` keys) so that reading a report back yields exactly
the values the run decided on. Items are sorted by entity and field, which
keeps reports of identical runs diffable.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from cinerecon.domain.model import (
    EXTERNAL_PROVIDERS,
    Provider,
    field_value_to_raw,
    render_field_value,
    utcnow,
)

from .policy import ReviewState, Severity

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from cinerecon.domain.model import Entity, FieldValue

    from .apply import ApplyResult
    from .engine import EntityOutcome
    from .policy import ReviewDecision


class ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class AutoFixedItem(ReportModel):
    entity: str
    entity_id: str
    field: str
    old_value: str | None
    new_value: str
    sources: list[str]
    confidence: float | None = None
    state: str = ReviewState.AUTO_APPROVE.value
    old_data: Any = None
    new_data: Any = None


class ReviewItem(ReportModel):
    entity: str
    entity_id: str
    field: str
    current_value: str | None
    recommendation: str
    recommended_value: str | None = None
    sources: list[str] = []
    alternatives: list[str] = []
    provider_values: dict[str, str] = {}
    confidence: float = 0.0
    severity: str = Severity.WARNING.value
    rationale: str = ""
    current_data: Any = None
    recommended_data: Any = None


class ApplyFailedItem(ReportModel):
    entity: str
    entity_id: str
    field: str
    old_value: str | None
    new_value: str | None
    sources: list[str]
    reason: str


class RejectedItem(ReportModel):
    entity: str
    entity_id: str
    field: str
    current_value: str | None
    claimed_values: dict[str, str]
    rationale: str


class AutoFixedSection(ReportModel):
    count: int = 0
    items: list[AutoFixedItem] = []


class ReviewSection(ReportModel):
    count: int = 0
    items: list[ReviewItem] = []


class ApplyFailedSection(ReportModel):
    count: int = 0
    items: list[ApplyFailedItem] = []


class RejectedSection(ReportModel):
    count: int = 0
    items: list[RejectedItem] = []


class ValidationReport(ReportModel):
    generated_at: datetime
    auto_fix_enabled: bool = False
    total_entities: int
    failed_entities: list[str] = []
    auto_fixed: AutoFixedSection = AutoFixedSection()
    needs_review: ReviewSection = ReviewSection()
    apply_failed: ApplyFailedSection = ApplyFailedSection()
    rejected: RejectedSection = RejectedSection()
    fetch_failures: dict[str, int] = {}
    quality_grades: dict[str, int] = {}


def _sort_key(item: AutoFixedItem | ReviewItem | ApplyFailedItem | RejectedItem) -> tuple[str, ...]:
    return (item.entity.casefold(), item.entity_id, item.field)


def _text(value: FieldValue) -> str | None:
    return render_field_value(value)


def _data(value: FieldValue) -> Any:
    return field_value_to_raw(value)


def _recommendation(decision: ReviewDecision) -> str:
    consensus = decision.consensus
    if consensus is None:
        return "Keep current value"
    if consensus.conflicted:
        options = " | ".join(_describe_group(group.value, group.sources) for group in consensus.groups)
        return f"Choose between: {options}"
    recommended = _text(consensus.recommended_value)
    if decision.current_value is not None and _text(decision.current_value) == recommended:
        return f'Keep "{recommended}"'
    return f'Set to "{recommended}" ({", ".join(consensus.agreeing_sources)})'


def _describe_group(value: FieldValue, sources: Iterable[Provider]) -> str:
    return f'"{_text(value)}" ({", ".join(sources)})'


def _provider_values(outcome: EntityOutcome, field_name: str) -> dict[str, str]:
    values: dict[str, str] = {}
    current = _text(outcome.entity.value_of(field_name))
    if current is not None:
        values[Provider.INTERNAL.value] = current
    for provider in EXTERNAL_PROVIDERS:
        record = outcome.record_for(provider)
        if record is None:
            continue
        rendered = _text(record.fields.get(field_name))
        if rendered is not None:
            values[provider.value] = rendered
    return values


@dataclass(slots=True)
class ReportBuilder:
    """Accumulate entity outcomes into one ``ValidationReport``."""

    auto_fix_enabled: bool = False
    _entities: int = 0
    _failed_entities: list[str] = field(default_factory=list[str])
    _auto_fixed: list[AutoFixedItem] = field(default_factory=list[AutoFixedItem])
    _needs_review: list[ReviewItem] = field(default_factory=list[ReviewItem])
    _apply_failed: list[ApplyFailedItem] = field(default_factory=list[ApplyFailedItem])
    _rejected: list[RejectedItem] = field(default_factory=list[RejectedItem])
    _fetch_failures: Counter[str] = field(default_factory=Counter[str])
    _grades: Counter[str] = field(default_factory=Counter[str])

    def add(self, outcome: EntityOutcome, apply_result: ApplyResult | None = None) -> None:
        self._entities += 1
        self._grades[outcome.grade] += 1
        for decision in outcome.decisions:
            self._add_decision(outcome, decision, apply_result)

    def add_failed_entity(self, entity: Entity) -> None:
        self._entities += 1
        self._failed_entities.append(entity.id)

    def add_fetch_failures(self, failures: Mapping[Provider, int]) -> None:
        for provider, count in failures.items():
            self._fetch_failures[str(provider)] += count

    def build(self, generated_at: datetime | None = None) -> ValidationReport:
        auto_fixed = sorted(self._auto_fixed, key=_sort_key)
        needs_review = sorted(self._needs_review, key=_sort_key)
        apply_failed = sorted(self._apply_failed, key=_sort_key)
        rejected = sorted(self._rejected, key=_sort_key)
        return ValidationReport(
            generated_at=generated_at or utcnow(),
            auto_fix_enabled=self.auto_fix_enabled,
            total_entities=self._entities,
            failed_entities=sorted(self._failed_entities),
            auto_fixed=AutoFixedSection(count=len(auto_fixed), items=auto_fixed),
            needs_review=ReviewSection(count=len(needs_review), items=needs_review),
            apply_failed=ApplyFailedSection(count=len(apply_failed), items=apply_failed),
            rejected=RejectedSection(count=len(rejected), items=rejected),
            fetch_failures=dict(sorted(self._fetch_failures.items())),
            quality_grades=dict(sorted(self._grades.items())),
        )

    def _add_decision(
        self,
        outcome: EntityOutcome,
        decision: ReviewDecision,
        apply_result: ApplyResult | None,
    ) -> None:
        entity = outcome.entity
        label = entity.display_name
        consensus = decision.consensus
        match decision.state:
            case ReviewState.AUTO_APPROVE | ReviewState.APPLIED if consensus is not None:
                self._auto_fixed.append(
                    AutoFixedItem(
                        entity=label,
                        entity_id=entity.id,
                        field=decision.field_name,
                        old_value=_text(decision.current_value),
                        new_value=_text(consensus.recommended_value) or "",
                        sources=[str(source) for source in consensus.agreeing_sources],
                        confidence=round(decision.score, 4),
                        state=decision.state.value,
                        old_data=_data(decision.current_value),
                        new_data=_data(consensus.recommended_value),
                    )
                )
            case ReviewState.APPLY_FAILED:
                failure = (
                    apply_result.failure_for(entity.id, decision.field_name)
                    if apply_result is not None
                    else None
                )
                self._apply_failed.append(
                    ApplyFailedItem(
                        entity=label,
                        entity_id=entity.id,
                        field=decision.field_name,
                        old_value=_text(decision.current_value),
                        new_value=_text(decision.recommended_value),
                        sources=[str(source) for source in decision.sources],
                        reason=failure.reason if failure is not None else decision.rationale,
                    )
                )
            case ReviewState.NEEDS_REVIEW:
                groups = consensus.groups if consensus is not None else ()
                self._needs_review.append(
                    ReviewItem(
                        entity=label,
                        entity_id=entity.id,
                        field=decision.field_name,
                        current_value=_text(decision.current_value),
                        recommendation=_recommendation(decision),
                        recommended_value=_text(decision.recommended_value),
                        sources=[str(source) for source in decision.sources],
                        alternatives=[
                            _describe_group(group.value, group.sources) for group in groups[1:]
                        ],
                        provider_values=_provider_values(outcome, decision.field_name),
                        confidence=round(decision.score, 4),
                        severity=(
                            decision.issue.severity.value
                            if decision.issue is not None
                            else Severity.WARNING.value
                        ),
                        rationale=decision.rationale,
                        current_data=_data(decision.current_value),
                        recommended_data=_data(decision.recommended_value),
                    )
                )
            case ReviewState.REJECTED:
                self._rejected.append(
                    RejectedItem(
                        entity=label,
                        entity_id=entity.id,
                        field=decision.field_name,
                        current_value=_text(decision.current_value),
                        claimed_values={
                            str(claim.source): _text(claim.value) or ""
                            for claim in decision.rejected_claims
                        },
                        rationale=decision.rationale,
                    )
                )
            case _:
                raise ValueError(f"Unexpected decision state {decision.state} in report")
