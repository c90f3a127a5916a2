"""Decision engine: turn a field's consensus into a review decision.

Evaluation order for one (entity, field):

1. only rejected pairings offered a value -> REJECTED
2. nothing disagrees with the current value -> no decision
3. identity-critical field -> NEEDS_REVIEW
4. a claim came from a MANUAL_REVIEW pairing -> NEEDS_REVIEW
5. no majority (conflicted consensus) -> NEEDS_REVIEW
6. the majority confirms the current value -> no decision
7. field outside the auto-fix allow-list -> NEEDS_REVIEW
8. too few external sources or too little agreement -> NEEDS_REVIEW
9. the write would regress a trusted value -> NEEDS_REVIEW
10. otherwise AUTO_APPROVE

AUTO_APPROVE decisions later move to APPLIED or APPLY_FAILED once the apply
layer reports back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from cinerecon.domain.model import Provider, is_blank

from .consensus import DEFAULT_SOURCE_PRIORITY
from .errors import ConflictUnresolvable
from .match import MatchCategory
from .normalize import DEFAULT_NORMALIZER

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from cinerecon.domain.model import Entity, FieldValue

    from .claims import FieldClaim
    from .consensus import ConsensusResult
    from .normalize import Normalizer

log = logging.getLogger(__name__)

DEFAULT_AUTO_FIX_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "synopsis",
        "director",
        "hero",
        "heroine",
        "music_director",
        "producer",
        "cinematographer",
        "writer",
        "runtime",
        "language",
        "cast",
        "biography",
        "birth_place",
        "occupation",
    }
)
DEFAULT_IDENTITY_FIELDS: Final[frozenset[str]] = frozenset(
    {"title", "slug", "release_year", "name"}
)
DEFAULT_CRITICAL_FIELDS: Final[frozenset[str]] = frozenset({"director", "hero", "release_date"})


class ReviewState(StrEnum):
    NEW = "new"
    AUTO_APPROVE = "auto_approve"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"
    APPLIED = "applied"
    APPLY_FAILED = "apply_failed"


_TRANSITIONS: Final[dict[ReviewState, frozenset[ReviewState]]] = {
    ReviewState.NEW: frozenset(
        {ReviewState.AUTO_APPROVE, ReviewState.NEEDS_REVIEW, ReviewState.REJECTED}
    ),
    ReviewState.AUTO_APPROVE: frozenset({ReviewState.APPLIED, ReviewState.APPLY_FAILED}),
}


class Severity(StrEnum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class SuggestedAction(StrEnum):
    APPLY = "apply"
    REVIEW = "review"
    DISCARD = "discard"
    RETRY = "retry"


@dataclass(frozen=True, slots=True, kw_only=True)
class ValidationIssue:
    field_name: str
    severity: Severity
    message: str
    auto_resolvable: bool
    suggested_action: SuggestedAction


class InvalidTransitionError(ValueError):
    pass


@dataclass(slots=True, kw_only=True)
class ReviewDecision:
    """State of one (entity, field) as it moves through the decision engine."""

    entity_id: str
    field_name: str
    current_value: FieldValue
    state: ReviewState = ReviewState.NEW
    rationale: str = ""
    score: float = 0.0
    consensus: ConsensusResult | None = None
    issue: ValidationIssue | None = None
    rejected_claims: tuple[FieldClaim, ...] = ()

    @property
    def recommended_value(self) -> FieldValue:
        if self.consensus is None:
            return None
        return self.consensus.recommended_value

    @property
    def sources(self) -> tuple[Provider, ...]:
        if self.consensus is None:
            return tuple(claim.source for claim in self.rejected_claims)
        return self.consensus.agreeing_sources

    def transition(self, state: ReviewState, rationale: str | None = None) -> None:
        allowed = _TRANSITIONS.get(self.state, frozenset())
        if state not in allowed:
            raise InvalidTransitionError(
                f"{self.entity_id}/{self.field_name}: {self.state} -> {state} is not allowed"
            )
        self.state = state
        if rationale:
            self.rationale = f"{self.rationale}; {rationale}" if self.rationale else rationale


@dataclass(frozen=True, slots=True, kw_only=True)
class DecisionPolicy:
    """Thresholds and field lists used to classify a consensus."""

    min_external_sources: int = 3
    min_confidence: float = 0.8
    auto_fix_fields: frozenset[str] = DEFAULT_AUTO_FIX_FIELDS
    identity_fields: frozenset[str] = DEFAULT_IDENTITY_FIELDS
    critical_fields: frozenset[str] = DEFAULT_CRITICAL_FIELDS
    source_priority: tuple[Provider, ...] = DEFAULT_SOURCE_PRIORITY
    normalizer: Normalizer = field(default_factory=lambda: DEFAULT_NORMALIZER)

    def decide_field(
        self,
        entity: Entity,
        field_name: str,
        consensus: ConsensusResult | None,
        *,
        match_categories: Mapping[Provider, MatchCategory],
        rejected_claims: Sequence[FieldClaim] = (),
    ) -> ReviewDecision | None:
        """Classify one field, or return ``None`` when nothing needs deciding."""

        current = entity.value_of(field_name)
        current_key = self.normalizer.normalize(current)
        decision = ReviewDecision(
            entity_id=entity.id,
            field_name=field_name,
            current_value=current,
            consensus=consensus,
            rejected_claims=tuple(rejected_claims),
        )

        if consensus is None or not any(group.external_count for group in consensus.groups):
            return self._reject_voided(decision, current_key)
        if not _has_discrepancy(consensus, current_key):
            return None

        score = consensus.confidence
        if field_name in self.identity_fields:
            return self._settle(
                decision,
                ReviewState.NEEDS_REVIEW,
                f"identity-critical field; {_describe(consensus)}",
                score=score,
            )

        uncertain = sorted(
            source
            for group in consensus.groups
            for source in group.sources
            if match_categories.get(source) is MatchCategory.MANUAL_REVIEW
        )
        if uncertain:
            return self._settle(
                decision,
                ReviewState.NEEDS_REVIEW,
                f"uncertain pairing for {', '.join(uncertain)}; {_describe(consensus)}",
                score=score,
            )

        try:
            _require_majority(consensus)
        except ConflictUnresolvable as exc:
            return self._settle(decision, ReviewState.NEEDS_REVIEW, str(exc), score=score)

        if consensus.winner.key == current_key:
            log.debug(
                "Current %s of %s confirmed by majority; outvoted: %s",
                field_name,
                entity.id,
                [group.sources for group in consensus.groups[1:]],
            )
            return None

        if field_name not in self.auto_fix_fields:
            return self._settle(
                decision,
                ReviewState.NEEDS_REVIEW,
                f"field not eligible for auto-fix; {_describe(consensus)}",
                score=score,
            )

        if consensus.external_agreeing < self.min_external_sources:
            return self._settle(
                decision,
                ReviewState.NEEDS_REVIEW,
                f"only {consensus.external_agreeing} external source(s) agree, "
                f"{self.min_external_sources} required; {_describe(consensus)}",
                score=score,
            )
        if consensus.confidence < self.min_confidence:
            return self._settle(
                decision,
                ReviewState.NEEDS_REVIEW,
                f"confidence {consensus.confidence:.2f} below {self.min_confidence:.2f}; "
                f"{_describe(consensus)}",
                score=score,
            )

        violation = self.regression_violation(entity, field_name, consensus)
        if violation is not None:
            return self._settle(decision, ReviewState.NEEDS_REVIEW, violation, score=score)

        return self._settle(decision, ReviewState.AUTO_APPROVE, _describe(consensus), score=score)

    def regression_violation(
        self,
        entity: Entity,
        field_name: str,
        consensus: ConsensusResult,
    ) -> str | None:
        """Return why writing the consensus would regress a trusted value, if it would."""

        current = entity.value_of(field_name)
        if is_blank(current):
            return None
        if self.normalizer.equals(current, consensus.recommended_value):
            return None
        if field_name in entity.manual_fields:
            return "current value was set by a manual correction"
        current_group = consensus.group_for(Provider.INTERNAL)
        current_support = current_group.size if current_group is not None else 0
        if consensus.winner.size <= current_support:
            return (
                f"current value has equal or stronger support ({current_support} "
                f"vs {consensus.winner.size})"
            )
        return None

    def _reject_voided(self, decision: ReviewDecision, current_key: str) -> ReviewDecision | None:
        differing = tuple(
            claim
            for claim in decision.rejected_claims
            if self.normalizer.normalize(claim.value) != current_key
        )
        if not differing:
            return None
        decision.rejected_claims = differing
        sources = ", ".join(sorted(claim.source for claim in differing))
        return self._settle(
            decision,
            ReviewState.REJECTED,
            f"pairing rejected for {sources}; claims voided",
            score=0.0,
        )

    def _settle(
        self,
        decision: ReviewDecision,
        state: ReviewState,
        rationale: str,
        *,
        score: float,
    ) -> ReviewDecision:
        decision.score = score
        decision.transition(state, rationale)
        decision.issue = self._issue_for(decision)
        log.debug(
            "Decision %s/%s: %s (%s)",
            decision.entity_id,
            decision.field_name,
            state,
            rationale,
        )
        return decision

    def _issue_for(self, decision: ReviewDecision) -> ValidationIssue:
        field_name = decision.field_name
        if decision.state is ReviewState.REJECTED:
            return ValidationIssue(
                field_name=field_name,
                severity=Severity.INFO,
                message=f"Discarded claims for {field_name} from unmatched sources",
                auto_resolvable=False,
                suggested_action=SuggestedAction.DISCARD,
            )
        if field_name in self.identity_fields or field_name in self.critical_fields:
            severity = Severity.CRITICAL
        elif decision.state is ReviewState.AUTO_APPROVE:
            severity = Severity.INFO
        else:
            severity = Severity.WARNING
        auto = decision.state is ReviewState.AUTO_APPROVE
        return ValidationIssue(
            field_name=field_name,
            severity=severity,
            message=f"{field_name} differs from external sources ({decision.rationale})",
            auto_resolvable=auto,
            suggested_action=SuggestedAction.APPLY if auto else SuggestedAction.REVIEW,
        )


def _has_discrepancy(consensus: ConsensusResult, current_key: str) -> bool:
    return any(group.external_count and group.key != current_key for group in consensus.groups)


def _require_majority(consensus: ConsensusResult) -> None:
    if consensus.conflicted:
        raise ConflictUnresolvable(consensus.field_name, consensus)


def _describe(consensus: ConsensusResult) -> str:
    sources = ", ".join(consensus.agreeing_sources)
    return (
        f"{consensus.agreeing_count}/{consensus.total_considered} sources agree "
        f"({sources}); confidence {consensus.confidence:.2f}"
    )


def quality_grade(confidences: Iterable[float]) -> str:
    """Letter grade for an entity from the agreement of its checked fields."""

    values = list(confidences)
    if not values:
        return "A"
    average = sum(values) / len(values)
    for threshold, grade in ((0.9, "A"), (0.8, "B"), (0.7, "C"), (0.6, "D")):
        if average >= threshold:
            return grade
    return "F"
