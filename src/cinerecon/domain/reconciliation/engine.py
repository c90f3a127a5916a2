"""Per-entity reconciliation: match sources, build consensus, decide fields.

The engine is synchronous and side-effect free. Fetching happens before it
(see ``batch``) and writing after it (see ``apply``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cinerecon.domain.model import EntityKind, QualityMetadata, utcnow

from .claims import internal_claim
from .consensus import build_consensus
from .errors import MatchAmbiguous
from .match import match_candidate
from .normalize import normalize_year
from .policy import DecisionPolicy, ReviewState, quality_grade

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime

    from cinerecon.domain.model import Entity, FieldValue, Provider

    from .claims import FieldClaim, SourceRecord
    from .consensus import ConsensusResult
    from .match import MatchCategory, MatchDecision
    from .policy import ReviewDecision

log = logging.getLogger(__name__)


def pairing_year(
    kind: EntityKind,
    year: int | None,
    fields: Mapping[str, FieldValue],
) -> int | None:
    """Year used to pair records: release year for movies, birth year for people."""

    if year is None and kind is EntityKind.PERSON:
        return normalize_year(fields.get("birth_date"))
    return year


@dataclass(slots=True, kw_only=True)
class EntityOutcome:
    """Everything learned about one entity during a run."""

    entity: Entity
    records: tuple[SourceRecord, ...]
    match_decisions: dict[Provider, MatchDecision]
    consensus_by_field: dict[str, ConsensusResult]
    decisions: list[ReviewDecision]
    grade: str

    def in_state(self, state: ReviewState) -> list[ReviewDecision]:
        return [decision for decision in self.decisions if decision.state is state]

    @property
    def needs_manual_review(self) -> bool:
        return any(decision.state is ReviewState.NEEDS_REVIEW for decision in self.decisions)

    def quality(self, verified_at: datetime | None = None) -> QualityMetadata:
        return QualityMetadata(
            grade=self.grade,
            last_verified_at=verified_at or utcnow(),
            needs_manual_review=self.needs_manual_review,
        )

    def record_for(self, provider: Provider) -> SourceRecord | None:
        for record in self.records:
            if record.provider == provider:
                return record
        return None


@dataclass(slots=True, kw_only=True)
class ReconciliationEngine:
    """Reconcile one entity against the records its sources returned."""

    policy: DecisionPolicy = field(default_factory=DecisionPolicy)
    field_filter: frozenset[str] | None = None

    def reconcile(self, entity: Entity, records: Sequence[SourceRecord]) -> EntityOutcome:
        match_decisions: dict[Provider, MatchDecision] = {}
        accepted: dict[str, list[FieldClaim]] = {}
        rejected: dict[str, list[FieldClaim]] = {}

        for record in sorted(records, key=lambda item: item.provider):
            decision = match_candidate(
                internal_title=entity.title,
                internal_year=pairing_year(entity.kind, entity.year, entity.fields),
                candidate_title=record.title,
                candidate_year=pairing_year(entity.kind, record.year, record.fields),
            )
            record.match = decision
            match_decisions[record.provider] = decision
            target = accepted
            if not decision.accepted:
                log.info("Entity %s: %s", entity.id, MatchAmbiguous(record.provider, decision))
                target = rejected
            for claim in record.claims(entity.id):
                if self._wanted(claim.field_name):
                    target.setdefault(claim.field_name, []).append(claim)

        categories: dict[Provider, MatchCategory] = {
            provider: decision.category for provider, decision in match_decisions.items()
        }
        consensus_by_field: dict[str, ConsensusResult] = {}
        decisions: list[ReviewDecision] = []
        for field_name in sorted(set(accepted) | set(rejected)):
            claims = list(accepted.get(field_name, ()))
            current = internal_claim(entity, field_name)
            if current is not None:
                claims.append(current)
            consensus = (
                build_consensus(
                    claims,
                    normalizer=self.policy.normalizer,
                    source_priority=self.policy.source_priority,
                )
                if claims
                else None
            )
            if consensus is not None:
                consensus_by_field[field_name] = consensus
            decision = self.policy.decide_field(
                entity,
                field_name,
                consensus,
                match_categories=categories,
                rejected_claims=rejected.get(field_name, ()),
            )
            if decision is not None:
                decisions.append(decision)

        grade = quality_grade(
            consensus.confidence
            for consensus in consensus_by_field.values()
            if any(group.external_count for group in consensus.groups)
        )
        return EntityOutcome(
            entity=entity,
            records=tuple(records),
            match_decisions=match_decisions,
            consensus_by_field=consensus_by_field,
            decisions=decisions,
            grade=grade,
        )

    def _wanted(self, field_name: str) -> bool:
        return self.field_filter is None or field_name in self.field_filter


