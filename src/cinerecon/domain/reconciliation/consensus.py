"""Per-field consensus over the claims of all accepted sources.

Claims are grouped by normalized value. The biggest group wins; equally
sized groups are ranked by the best source priority they contain, then by
their normalized key, so the outcome never depends on claim arrival order.
Minority groups are kept on the result for audit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from cinerecon.domain.model import Provider

from .normalize import DEFAULT_NORMALIZER

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from cinerecon.domain.model import FieldValue

    from .claims import FieldClaim
    from .normalize import Normalizer

log = logging.getLogger(__name__)

DEFAULT_SOURCE_PRIORITY: Final[tuple[Provider, ...]] = (
    Provider.MANUAL,
    Provider.INTERNAL,
    Provider.TMDB,
    Provider.WIKIPEDIA,
    Provider.WIKIDATA,
    Provider.OMDB,
)


@dataclass(frozen=True, slots=True, kw_only=True)
class ValueGroup:
    """Sources agreeing on one normalized value, highest priority first."""

    key: str
    value: FieldValue
    sources: tuple[Provider, ...]

    @property
    def size(self) -> int:
        return len(self.sources)

    @property
    def external_count(self) -> int:
        return sum(1 for source in self.sources if source.is_external)


@dataclass(frozen=True, slots=True, kw_only=True)
class ConsensusResult:
    field_name: str
    recommended_value: FieldValue
    agreeing_sources: tuple[Provider, ...]
    confidence: float
    conflicted: bool
    groups: tuple[ValueGroup, ...]
    total_considered: int

    @property
    def winner(self) -> ValueGroup:
        return self.groups[0]

    @property
    def agreeing_count(self) -> int:
        return len(self.agreeing_sources)

    @property
    def external_agreeing(self) -> int:
        return self.winner.external_count

    def group_for(self, source: Provider) -> ValueGroup | None:
        for group in self.groups:
            if source in group.sources:
                return group
        return None


def _priority_rank(priority: Sequence[Provider]) -> dict[Provider, int]:
    ranks = {source: index for index, source in enumerate(priority)}
    fallback = len(ranks)
    # providers missing from a custom order still rank deterministically
    for offset, source in enumerate(Provider):
        ranks.setdefault(source, fallback + offset)
    return ranks


def build_consensus(
    claims: Iterable[FieldClaim],
    *,
    normalizer: Normalizer = DEFAULT_NORMALIZER,
    source_priority: Sequence[Provider] = DEFAULT_SOURCE_PRIORITY,
) -> ConsensusResult:
    """Aggregate the claims for one (entity, field) into a consensus."""

    ranks = _priority_rank(source_priority)
    keyed = sorted(
        ((ranks[claim.source], normalizer.normalize(claim.value), claim) for claim in claims),
        key=lambda item: (item[0], item[1]),
    )
    if not keyed:
        raise ValueError("Cannot build consensus without claims")

    field_name = keyed[0][2].field_name
    seen_sources: set[Provider] = set()
    members: dict[str, list[FieldClaim]] = {}
    for _rank, key, claim in keyed:
        if claim.field_name != field_name:
            raise ValueError(f"Mixed fields in consensus: {field_name} and {claim.field_name}")
        if claim.source in seen_sources:
            log.debug("Ignoring repeated %s claim for %s", claim.source, field_name)
            continue
        seen_sources.add(claim.source)
        members.setdefault(key, []).append(claim)

    groups = [
        ValueGroup(
            key=key,
            value=group_claims[0].value,
            sources=tuple(claim.source for claim in group_claims),
        )
        for key, group_claims in members.items()
    ]
    groups.sort(key=lambda group: (-group.size, ranks[group.sources[0]], group.key))

    total = sum(group.size for group in groups)
    winner = groups[0]
    return ConsensusResult(
        field_name=field_name,
        recommended_value=winner.value,
        agreeing_sources=winner.sources,
        confidence=winner.size / total,
        conflicted=_is_conflicted(groups),
        groups=tuple(groups),
        total_considered=total,
    )


def _is_conflicted(groups: Sequence[ValueGroup]) -> bool:
    if len(groups) < 2:  # noqa: PLR2004
        return False
    if sum(1 for group in groups if group.size > 1) >= 2:  # noqa: PLR2004
        return True
    return groups[0].size - groups[1].size <= 1
