"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from cinerecon.adapters.omdb import OmdbConnector
from cinerecon.adapters.report_files import (
    corrections_to_changes,
    decisions_to_changes,
    read_corrections,
    read_json_report,
    read_review_decisions,
    report_to_changes,
    write_json_report,
    write_markdown_report,
    write_review_csv,
)
from cinerecon.adapters.sqlalchemy import open_entity_store
from cinerecon.adapters.tmdb import TmdbConnector
from cinerecon.adapters.wikidata import WikidataConnector
from cinerecon.adapters.wikipedia import WikipediaConnector
from cinerecon.config import (
    InvalidConfigurationValueError,
    MissingConfigurationError,
    get_omdb_config,
    get_reconciliation_config,
    get_storage_config,
    get_tmdb_config,
    get_wikidata_config,
    get_wikipedia_config,
)
from cinerecon.domain.model import Provider
from cinerecon.domain.ports.persistence import EntityFilter
from cinerecon.domain.reconciliation import (
    DEFAULT_NORMALIZER,
    BatchOptions,
    DecisionPolicy,
    ProvidersUnavailableError,
    ReconciliationEngine,
    ValidationBatch,
    apply_changes,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from contextlib import AbstractContextManager
    from pathlib import Path

    from cinerecon.config import ReconciliationConfig
    from cinerecon.domain.model import EntityKind
    from cinerecon.domain.ports.fetching import SourceConnector
    from cinerecon.domain.ports.persistence import EntityStore
    from cinerecon.domain.reconciliation import (
        ApplyResult,
        ApprovedChange,
        BatchResult,
        Normalizer,
        ValidationReport,
    )
    from cinerecon.domain.reconciliation.batch import ProgressCallback

type StoreFactory = Callable[[Normalizer], AbstractContextManager[EntityStore]]

log = getLogger(__name__)

REVIEWER = "reviewer"


@dataclass(frozen=True, slots=True, kw_only=True)
class RunOptions:
    limit: int | None = None
    auto_fix: bool = False
    field_name: str | None = None
    year_from: int | None = None
    year_to: int | None = None
    has_external_id: bool | str = False
    kind: EntityKind | None = None
    max_concurrency: int | None = None
    report_path: Path | None = None
    csv_path: Path | None = None
    markdown_path: Path | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class RunSummary:
    processed: int
    applied: int
    pending_review: int
    apply_failures: int
    failed_entities: int = 0
    fetch_failures: dict[str, int] = field(default_factory=dict[str, int])
    report_path: Path | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ApplySummary:
    requested: int
    written: int
    unchanged: int
    failed: int


def _default_store(normalizer: Normalizer) -> AbstractContextManager[EntityStore]:
    return open_entity_store(normalizer=normalizer)


def build_connectors() -> list[SourceConnector]:
    """Connectors for every provider whose configuration is present."""

    factories: list[tuple[Provider, Callable[[], SourceConnector]]] = [
        (Provider.TMDB, lambda: TmdbConnector(config=get_tmdb_config())),
        (Provider.WIKIPEDIA, lambda: WikipediaConnector(config=get_wikipedia_config())),
        (Provider.WIKIDATA, lambda: WikidataConnector(config=get_wikidata_config())),
        (Provider.OMDB, lambda: OmdbConnector(config=get_omdb_config())),
    ]
    connectors: list[SourceConnector] = []
    for provider, factory in factories:
        try:
            connectors.append(factory())
        except MissingConfigurationError as exc:
            log.warning("Skipping %s: %s", provider, exc)
    return connectors


def build_policy(config: ReconciliationConfig) -> DecisionPolicy:
    try:
        priority = tuple(Provider(name) for name in config.source_priority)
    except ValueError as exc:
        raise InvalidConfigurationValueError(
            "CINERECON_SOURCE_PRIORITY",
            ",".join(config.source_priority),
            "provider names",
        ) from exc
    normalizer = DEFAULT_NORMALIZER.with_aliases(config.aliases)
    defaults = DecisionPolicy()
    return DecisionPolicy(
        min_external_sources=config.min_external_sources,
        min_confidence=config.min_confidence,
        auto_fix_fields=(
            config.auto_fix_fields
            if config.auto_fix_fields is not None
            else defaults.auto_fix_fields
        ),
        identity_fields=(
            config.identity_fields
            if config.identity_fields is not None
            else defaults.identity_fields
        ),
        source_priority=priority,
        normalizer=normalizer,
    )


def run_validation(
    options: RunOptions,
    *,
    connectors: Sequence[SourceConnector] | None = None,
    store_factory: StoreFactory | None = None,
    config: ReconciliationConfig | None = None,
    progress: ProgressCallback | None = None,
) -> RunSummary:
    """Validate a selection of entities against every configured provider.

    Pending reviews are a normal outcome. ``ProvidersUnavailableError`` is
    raised when no connector is configured, or when not a single fetch of the
    run got an answer; the report is still written in the latter case.
    """

    effective_config = config or get_reconciliation_config()
    policy = build_policy(effective_config)
    active_connectors = list(connectors) if connectors is not None else build_connectors()
    if not active_connectors:
        raise ProvidersUnavailableError({})

    batch_options = BatchOptions(
        max_concurrency=options.max_concurrency or effective_config.max_concurrency,
        fetch_timeout_seconds=effective_config.fetch_timeout_seconds,
        auto_fix=options.auto_fix,
    )
    entity_filter = EntityFilter(
        kind=options.kind,
        limit=options.limit,
        year_from=options.year_from,
        year_to=options.year_to,
        has_external_id=options.has_external_id,
    )
    field_filter = frozenset({options.field_name}) if options.field_name else None
    log.info(
        "Starting validation: providers=%s, limit=%s, auto_fix=%s, field=%s, years=%s-%s",
        ",".join(connector.provider for connector in active_connectors),
        options.limit,
        options.auto_fix,
        options.field_name,
        options.year_from,
        options.year_to,
    )

    with (store_factory or _default_store)(policy.normalizer) as store:
        entities = store.list_entities_needing_validation(entity_filter)
        batch = ValidationBatch(
            connectors=active_connectors,
            engine=ReconciliationEngine(policy=policy, field_filter=field_filter),
            store=store,
            options=batch_options,
            progress=progress,
        )
        result = batch.run(entities)

    report_path = _export(result.report, options)
    summary = _summarize(result, report_path)
    log.info(
        "Finished validation: processed=%s, applied=%s, pending_review=%s, "
        "apply_failures=%s, failed_entities=%s, fetch_failures=%s",
        summary.processed,
        summary.applied,
        summary.pending_review,
        summary.apply_failures,
        summary.failed_entities,
        summary.fetch_failures,
    )
    if result.providers_unreachable:
        raise ProvidersUnavailableError(dict(result.fetch_failures))
    return summary


def _export(report: ValidationReport, options: RunOptions) -> Path:
    report_path = options.report_path or get_storage_config().report_path(report.generated_at)
    write_json_report(report, report_path)
    if options.csv_path is not None:
        write_review_csv(report, options.csv_path)
    if options.markdown_path is not None:
        write_markdown_report(report, options.markdown_path)
    return report_path


def _summarize(result: BatchResult, report_path: Path) -> RunSummary:
    report = result.report
    return RunSummary(
        processed=report.total_entities,
        applied=result.apply_result.writes,
        pending_review=report.needs_review.count,
        apply_failures=report.apply_failed.count,
        failed_entities=len(report.failed_entities),
        fetch_failures=dict(report.fetch_failures),
        report_path=report_path,
    )


def apply_review_decisions(
    csv_path: Path,
    *,
    store_factory: StoreFactory | None = None,
    applied_by: str = REVIEWER,
) -> ApplySummary:
    """Apply the APPROVE/EDIT rows of a completed review sheet."""

    changes = decisions_to_changes(read_review_decisions(csv_path))
    log.info("Applying %d reviewer decision(s) from %s", len(changes), csv_path)
    return _apply(changes, store_factory=store_factory, applied_by=applied_by)


def apply_corrections(
    json_path: Path,
    *,
    store_factory: StoreFactory | None = None,
    applied_by: str = REVIEWER,
) -> ApplySummary:
    """Apply a JSON list of manual corrections."""

    changes = corrections_to_changes(read_corrections(json_path))
    log.info("Applying %d correction(s) from %s", len(changes), json_path)
    return _apply(changes, store_factory=store_factory, applied_by=applied_by)


def reapply_report(
    report_path: Path,
    *,
    store_factory: StoreFactory | None = None,
    applied_by: str = "cinerecon",
) -> ApplySummary:
    """Write a report's auto-fixed values again; already applied ones are skipped."""

    changes = report_to_changes(read_json_report(report_path))
    log.info("Re-applying %d change(s) from %s", len(changes), report_path)
    return _apply(changes, store_factory=store_factory, applied_by=applied_by)


def _apply(
    changes: list[ApprovedChange],
    *,
    store_factory: StoreFactory | None,
    applied_by: str,
) -> ApplySummary:
    normalizer = build_policy(get_reconciliation_config()).normalizer
    with (store_factory or _default_store)(normalizer) as store:
        result: ApplyResult = apply_changes(store, changes, applied_by=applied_by)
    summary = ApplySummary(
        requested=len(changes),
        written=result.writes,
        unchanged=len(result.unchanged),
        failed=len(result.failed),
    )
    log.info(
        "Finished apply: requested=%s, written=%s, unchanged=%s, failed=%s",
        summary.requested,
        summary.written,
        summary.unchanged,
        summary.failed,
    )
    return summary
