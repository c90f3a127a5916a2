"""Error taxonomy of a reconciliation run.

"Not found" is not an error: connectors return ``None`` for it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cinerecon.domain.model import FieldValue, Provider

    from .consensus import ConsensusResult
    from .match import MatchDecision


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class TransientFetchError(ReconciliationError):
    """A provider could not be reached after the client's retries."""

    def __init__(self, provider: Provider, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class MatchAmbiguous(ReconciliationError):  # noqa: N818
    """A source's candidate cannot be paired with the internal entity."""

    def __init__(self, provider: Provider, decision: MatchDecision) -> None:
        super().__init__(f"{provider}: {decision.rationale}")
        self.provider = provider
        self.decision = decision


class ConflictUnresolvable(ReconciliationError):  # noqa: N818
    """Consensus for a field has no clear majority group."""

    def __init__(self, field_name: str, consensus: ConsensusResult) -> None:
        sizes = ", ".join(str(len(group.sources)) for group in consensus.groups)
        super().__init__(f"No majority for {field_name} (group sizes: {sizes})")
        self.field_name = field_name
        self.consensus = consensus


class ApplyConflict(ReconciliationError):  # noqa: N818
    """The entity changed between the read and the write."""

    def __init__(
        self,
        entity_id: str,
        field_name: str,
        *,
        expected: FieldValue,
        actual: FieldValue,
    ) -> None:
        super().__init__(
            f"Entity {entity_id} field {field_name} changed since it was read "
            f"(expected {expected!r}, found {actual!r})"
        )
        self.entity_id = entity_id
        self.field_name = field_name
        self.expected = expected
        self.actual = actual


class EntityNotFoundError(ReconciliationError):
    def __init__(self, entity_id: str) -> None:
        super().__init__(f"Entity {entity_id} does not exist")
        self.entity_id = entity_id


class ProvidersUnavailableError(ReconciliationError):
    """No provider answered a single request during the run."""

    def __init__(self, failures: Mapping[Provider, int]) -> None:
        detail = ", ".join(f"{provider}={count}" for provider, count in sorted(failures.items()))
        super().__init__(f"No provider reachable ({detail or 'no connectors configured'})")
        self.failures = dict(failures)


class StoreWriteError(ReconciliationError):
    """The entity store failed to commit a write."""
