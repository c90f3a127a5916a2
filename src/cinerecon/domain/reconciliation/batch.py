"""Batch validation over many entities with bounded concurrency.

Entities are independent. Each one is processed by its own task: fetch all
sources concurrently (each fetch with its own timeout), reconcile, and when
auto-fix is enabled apply the auto-approved fields. A semaphore bounds the
entities in flight; provider rate limits live in the connectors. Store writes
run in a worker thread, one at a time. The progress counter is the only other
state shared between tasks, and results are aggregated only after every task
has finished.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .apply import ApplyResult, ApprovedChange, apply_changes
from .claims import SourceQuery
from .errors import TransientFetchError
from .policy import ReviewState
from .report import ReportBuilder

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from cinerecon.domain.model import Entity, Provider
    from cinerecon.domain.ports.fetching import SourceConnector
    from cinerecon.domain.ports.persistence import EntityStore

    from .claims import SourceRecord
    from .engine import EntityOutcome, ReconciliationEngine
    from .report import ValidationReport

log = logging.getLogger(__name__)

type ProgressCallback = Callable[[int, int], None]

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_FETCH_TIMEOUT_SECONDS = 20.0


class FetchStatus(StrEnum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True, slots=True, kw_only=True)
class BatchOptions:
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    auto_fix: bool = False
    applied_by: str = "cinerecon"

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be positive")


@dataclass(slots=True)
class ProgressCounter:
    """Entities finished so far; only touched from the event loop."""

    total: int
    done: int = 0
    callback: ProgressCallback | None = None

    def advance(self) -> int:
        self.done += 1
        if self.callback is not None:
            self.callback(self.done, self.total)
        return self.done


@dataclass(slots=True, kw_only=True)
class EntityRun:
    entity: Entity
    fetch_status: dict[Provider, FetchStatus]
    outcome: EntityOutcome | None = None
    apply_result: ApplyResult | None = None


@dataclass(slots=True, kw_only=True)
class BatchResult:
    report: ValidationReport
    runs: list[EntityRun]
    apply_result: ApplyResult = field(default_factory=ApplyResult)
    fetch_failures: Counter[Provider] = field(default_factory=Counter["Provider"])
    fetch_responses: Counter[Provider] = field(default_factory=Counter["Provider"])

    @property
    def providers_unreachable(self) -> bool:
        """True when fetches were attempted and not a single one got an answer."""

        return bool(self.fetch_failures) and not self.fetch_responses


@dataclass(slots=True, kw_only=True)
class ValidationBatch:
    """Run the reconciliation engine over a list of entities."""

    connectors: Sequence[SourceConnector]
    engine: ReconciliationEngine
    store: EntityStore
    options: BatchOptions = field(default_factory=BatchOptions)
    progress: ProgressCallback | None = None

    def run(self, entities: Sequence[Entity]) -> BatchResult:
        return asyncio.run(self.run_async(entities))

    async def run_async(self, entities: Sequence[Entity]) -> BatchResult:
        counter = ProgressCounter(total=len(entities), callback=self.progress)
        semaphore = asyncio.Semaphore(self.options.max_concurrency)
        write_lock = asyncio.Lock()
        async with AsyncExitStack() as stack:
            for connector in self.connectors:
                await stack.enter_async_context(connector)
            runs = await asyncio.gather(
                *(self._process(entity, semaphore, write_lock, counter) for entity in entities)
            )
        return self._aggregate(list(runs))

    async def _process(
        self,
        entity: Entity,
        semaphore: asyncio.Semaphore,
        write_lock: asyncio.Lock,
        counter: ProgressCounter,
    ) -> EntityRun:
        async with semaphore:
            records, status = await self._gather_sources(entity)
            run = EntityRun(entity=entity, fetch_status=status)
            try:
                run.outcome = self.engine.reconcile(entity, records)
                if self.options.auto_fix:
                    # store writes are blocking; one at a time, off the event loop
                    async with write_lock:
                        run.apply_result = await asyncio.to_thread(self._apply, run.outcome)
            except Exception:
                log.exception("Reconciliation failed for entity %s", entity.id)
            done = counter.advance()
            log.debug("Finished %s (%s/%s)", entity.display_name, done, counter.total)
            return run

    async def _gather_sources(
        self,
        entity: Entity,
    ) -> tuple[list[SourceRecord], dict[Provider, FetchStatus]]:
        query = SourceQuery.for_entity(entity)
        results = await asyncio.gather(
            *(self._fetch_one(connector, query, entity) for connector in self.connectors)
        )
        records: list[SourceRecord] = []
        status: dict[Provider, FetchStatus] = {}
        for provider, fetch_status, record in results:
            status[provider] = fetch_status
            if record is not None:
                records.append(record)
        return records, status

    async def _fetch_one(
        self,
        connector: SourceConnector,
        query: SourceQuery,
        entity: Entity,
    ) -> tuple[Provider, FetchStatus, SourceRecord | None]:
        provider = connector.provider
        try:
            async with asyncio.timeout(self.options.fetch_timeout_seconds):
                record = await connector.fetch(query)
        except TimeoutError:
            log.warning(
                "%s timed out after %ss for %s",
                provider,
                self.options.fetch_timeout_seconds,
                entity.display_name,
            )
            return provider, FetchStatus.FAILED, None
        except TransientFetchError as exc:
            log.warning("%s unavailable for %s: %s", provider, entity.display_name, exc)
            return provider, FetchStatus.FAILED, None
        except Exception:
            # e.g. a payload the provider schema does not accept
            log.exception("%s fetch crashed for %s", provider, entity.display_name)
            return provider, FetchStatus.FAILED, None
        if record is None:
            log.debug("%s has no record for %s", provider, entity.display_name)
            return provider, FetchStatus.NOT_FOUND, None
        return provider, FetchStatus.FOUND, record

    def _apply(self, outcome: EntityOutcome) -> ApplyResult:
        approved = outcome.in_state(ReviewState.AUTO_APPROVE)
        result = apply_changes(
            self.store,
            [ApprovedChange.from_decision(decision) for decision in approved],
            applied_by=self.options.applied_by,
            quality_by_entity={outcome.entity.id: outcome.quality()},
        )
        for decision in approved:
            failure = result.failure_for(decision.entity_id, decision.field_name)
            if failure is None:
                decision.transition(ReviewState.APPLIED)
            else:
                decision.transition(ReviewState.APPLY_FAILED, failure.reason)
        return result

    def _aggregate(self, runs: list[EntityRun]) -> BatchResult:
        builder = ReportBuilder(auto_fix_enabled=self.options.auto_fix)
        failures: Counter[Provider] = Counter()
        responses: Counter[Provider] = Counter()
        apply_result = ApplyResult()
        for run in runs:
            for provider, fetch_status in run.fetch_status.items():
                if fetch_status is FetchStatus.FAILED:
                    failures[provider] += 1
                else:
                    responses[provider] += 1
            if run.outcome is None:
                builder.add_failed_entity(run.entity)
                continue
            builder.add(run.outcome, run.apply_result)
            if run.apply_result is not None:
                apply_result.extend(run.apply_result)
        builder.add_fetch_failures(failures)
        return BatchResult(
            report=builder.build(),
            runs=runs,
            apply_result=apply_result,
            fetch_failures=failures,
            fetch_responses=responses,
        )
