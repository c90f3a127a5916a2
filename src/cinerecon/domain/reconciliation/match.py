"""Entity matching: is a source's candidate the same movie or person?

The matcher classifies the pairing only. Field values are judged later by the
consensus and decision stages, which only ever see claims from sources that
were not rejected here.

Rules, checked in this order:

- REJECT: year delta above 2, or similarity below 90 with a year delta above 1
- AUTO_APPROVE: year delta of at most 1 and an exact (100) title similarity
- MANUAL_REVIEW: everything else
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final

from rapidfuzz import fuzz

from .normalize import normalize_title

EXACT_SIMILARITY: Final = 100
REVIEW_SIMILARITY: Final = 90
AUTO_YEAR_TOLERANCE: Final = 1
MAX_YEAR_DELTA: Final = 2


class MatchCategory(StrEnum):
    AUTO_APPROVE = "auto_approve"
    MANUAL_REVIEW = "manual_review"
    REJECT = "reject"


@dataclass(frozen=True, slots=True, kw_only=True)
class MatchDecision:
    category: MatchCategory
    score: int
    year_delta: int | None
    rationale: str

    @property
    def accepted(self) -> bool:
        return self.category is not MatchCategory.REJECT


def title_similarity(left: str | None, right: str | None) -> int:
    """Token based similarity of two titles on a 0-100 scale."""

    left_key = normalize_title(left)
    right_key = normalize_title(right)
    if not left_key or not right_key:
        return 0
    if left_key == right_key:
        return EXACT_SIMILARITY
    # never report 100 for titles whose keys differ (e.g. reordered words)
    return min(round(fuzz.token_sort_ratio(left_key, right_key)), EXACT_SIMILARITY - 1)


def year_delta(left: int | None, right: int | None) -> int | None:
    if left is None or right is None:
        return None
    return abs(left - right)


def classify_pairing(similarity: int, delta: int | None) -> MatchCategory:
    if delta is None:
        # without both years only a near-identical title is worth a human's time
        if similarity >= REVIEW_SIMILARITY:
            return MatchCategory.MANUAL_REVIEW
        return MatchCategory.REJECT
    if delta > MAX_YEAR_DELTA or (similarity < REVIEW_SIMILARITY and delta > AUTO_YEAR_TOLERANCE):
        return MatchCategory.REJECT
    if delta <= AUTO_YEAR_TOLERANCE and similarity == EXACT_SIMILARITY:
        return MatchCategory.AUTO_APPROVE
    return MatchCategory.MANUAL_REVIEW


def match_candidate(
    *,
    internal_title: str,
    internal_year: int | None,
    candidate_title: str,
    candidate_year: int | None,
) -> MatchDecision:
    """Classify the pairing of an internal record with one source candidate."""

    similarity = title_similarity(internal_title, candidate_title)
    delta = year_delta(internal_year, candidate_year)
    category = classify_pairing(similarity, delta)
    delta_text = "unknown" if delta is None else str(delta)
    rationale = (
        f"{category}: title similarity {similarity} for {candidate_title!r} "
        f"vs {internal_title!r}, year delta {delta_text}"
    )
    return MatchDecision(category=category, score=similarity, year_delta=delta, rationale=rationale)
