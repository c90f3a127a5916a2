"""Reconciliation core: cross-check catalog fields against external sources.

Flow for every entity:
1) source connectors fetch candidate records (``batch``)
2) the entity matcher classifies each pairing (``match``)
3) claims are grouped per field into a consensus (``consensus``)
4) the decision engine classifies each field (``policy``)
5) auto-approved fields are written with provenance (``apply``)
6) every outcome lands in the run report (``report``)
"""

from __future__ import annotations

from .apply import (
    UNSET,
    ApplyFailure,
    ApplyResult,
    ApprovedChange,
    apply_changes,
    plan_entity_write,
    write_plan,
)
from .batch import BatchOptions, BatchResult, ProgressCounter, ValidationBatch
from .claims import Correction, FieldClaim, SourceQuery, SourceRecord
from .consensus import DEFAULT_SOURCE_PRIORITY, ConsensusResult, ValueGroup, build_consensus
from .engine import EntityOutcome, ReconciliationEngine
from .errors import (
    ApplyConflict,
    ConflictUnresolvable,
    EntityNotFoundError,
    MatchAmbiguous,
    ProvidersUnavailableError,
    ReconciliationError,
    StoreWriteError,
    TransientFetchError,
)
from .match import MatchCategory, MatchDecision, match_candidate, title_similarity
from .normalize import DEFAULT_NORMALIZER, Normalizer, equals, normalize, normalize_year
from .policy import (
    DecisionPolicy,
    ReviewDecision,
    ReviewState,
    Severity,
    SuggestedAction,
    ValidationIssue,
)
from .report import ReportBuilder, ValidationReport

__all__ = [
    "DEFAULT_NORMALIZER",
    "DEFAULT_SOURCE_PRIORITY",
    "UNSET",
    "ApplyConflict",
    "ApplyFailure",
    "ApplyResult",
    "ApprovedChange",
    "BatchOptions",
    "BatchResult",
    "ConflictUnresolvable",
    "ConsensusResult",
    "Correction",
    "DecisionPolicy",
    "EntityNotFoundError",
    "EntityOutcome",
    "FieldClaim",
    "MatchAmbiguous",
    "MatchCategory",
    "MatchDecision",
    "Normalizer",
    "ProgressCounter",
    "ProvidersUnavailableError",
    "ReconciliationEngine",
    "ReconciliationError",
    "ReportBuilder",
    "ReviewDecision",
    "ReviewState",
    "Severity",
    "SourceQuery",
    "SourceRecord",
    "StoreWriteError",
    "SuggestedAction",
    "TransientFetchError",
    "ValidationBatch",
    "ValidationIssue",
    "ValidationReport",
    "ValueGroup",
    "apply_changes",
    "build_consensus",
    "equals",
    "match_candidate",
    "normalize",
    "normalize_year",
    "plan_entity_write",
    "title_similarity",
    "write_plan",
]
