"""Report files: JSON export, review sheets and the reviewer round trip.

A review sheet (CSV) carries one row per auto-fixed or pending item plus two
blank columns for the reviewer: ``Final Decision`` (APPROVE, EDIT or REJECT)
and ``Final Value`` (required for EDIT). The trailing ``... JSON`` columns hold
the encoded current and recommended values, so approving a cast row keeps
roles and billing order. ``read_review_decisions`` reads the
completed sheet back; the rows become manual ``ApprovedChange`` records.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from cinerecon.domain.model import (
    INTEGER_FIELDS,
    FieldValue,
    Provider,
    field_value_from_raw,
    parse_field_value,
)
from cinerecon.domain.reconciliation import ApprovedChange, Correction, ValidationReport

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

log = logging.getLogger(__name__)

REVIEW_PROVIDERS: Final[tuple[Provider, ...]] = (
    Provider.TMDB,
    Provider.WIKIPEDIA,
    Provider.WIKIDATA,
    Provider.OMDB,
)
PROVIDER_COLUMNS: Final[dict[Provider, str]] = {
    Provider.TMDB: "TMDB",
    Provider.WIKIPEDIA: "Wikipedia",
    Provider.WIKIDATA: "Wikidata",
    Provider.OMDB: "OMDB",
}
CSV_COLUMNS: Final[tuple[str, ...]] = (
    "Entity",
    "Entity ID",
    "Field",
    "Status",
    "Current Value",
    "Recommended Value",
    "Recommendation",
    "Sources",
    "Confidence",
    *PROVIDER_COLUMNS.values(),
    "Final Decision",
    "Final Value",
    "Current Value JSON",
    "Recommended Value JSON",
)


class FinalDecision(StrEnum):
    APPROVE = "APPROVE"
    EDIT = "EDIT"
    REJECT = "REJECT"


@dataclass(frozen=True, slots=True, kw_only=True)
class ReviewerDecision:
    """One completed row of a review sheet."""

    entity_id: str
    field_name: str
    decision: FinalDecision
    value: FieldValue
    current_value: FieldValue


# JSON report -----------------------------------------------------------------


def write_json_report(report: ValidationReport, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report.model_dump_json(indent=2) + "\n", encoding="utf-8")
    log.info("Wrote report to %s", path)
    return path


def read_json_report(path: Path) -> ValidationReport:
    return ValidationReport.model_validate_json(path.read_text(encoding="utf-8"))


# Review sheet ----------------------------------------------------------------


def review_rows(report: ValidationReport) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for fixed in report.auto_fixed.items:
        rows.append(
            _row(
                entity=fixed.entity,
                entity_id=fixed.entity_id,
                field=fixed.field,
                status=fixed.state,
                current=fixed.old_value,
                recommended=fixed.new_value,
                recommendation=f'Applied "{fixed.new_value}"',
                sources=fixed.sources,
                confidence=fixed.confidence,
                provider_values={},
                current_data=fixed.old_data,
                recommended_data=fixed.new_data,
            )
        )
    for item in report.needs_review.items:
        rows.append(
            _row(
                entity=item.entity,
                entity_id=item.entity_id,
                field=item.field,
                status="needs_review",
                current=item.current_value,
                recommended=item.recommended_value,
                recommendation=item.recommendation,
                sources=item.sources,
                confidence=item.confidence,
                provider_values=item.provider_values,
                current_data=item.current_data,
                recommended_data=item.recommended_data,
            )
        )
    return rows


def _row(
    *,
    entity: str,
    entity_id: str,
    field: str,
    status: str,
    current: str | None,
    recommended: str | None,
    recommendation: str,
    sources: Sequence[str],
    confidence: float | None,
    provider_values: dict[str, str],
    current_data: Any,
    recommended_data: Any,
) -> dict[str, str]:
    row = {
        "Entity": entity,
        "Entity ID": entity_id,
        "Field": field,
        "Status": status,
        "Current Value": current or "",
        "Recommended Value": recommended or "",
        "Recommendation": recommendation,
        "Sources": ", ".join(sources),
        "Confidence": f"{confidence:.2f}" if confidence is not None else "",
        "Final Decision": "",
        "Final Value": "",
        "Current Value JSON": _encode(current_data),
        "Recommended Value JSON": _encode(recommended_data),
    }
    for provider, column in PROVIDER_COLUMNS.items():
        row[column] = provider_values.get(provider.value, "")
    return row


def _encode(data: Any) -> str:
    if data is None:
        return ""
    return json.dumps(data, ensure_ascii=False)


def _cell_value(
    row: dict[str, str],
    column: str,
    field_name: str,
    *,
    location: str,
) -> FieldValue:
    """Value of ``column``, preferring its encoded twin when the sheet has one."""

    encoded = (row.get(f"{column} JSON") or "").strip()
    if not encoded:
        return parse_field_value(field_name, row.get(column))
    try:
        return field_value_from_raw(json.loads(encoded))
    except (ValueError, TypeError) as exc:
        raise ValueError(f"{location}: unreadable {column} JSON: {exc}") from exc


def write_review_csv(report: ValidationReport, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_COLUMNS, quoting=csv.QUOTE_ALL)
        writer.writeheader()
        writer.writerows(review_rows(report))
    log.info("Wrote review sheet to %s", path)
    return path


def read_review_decisions(path: Path) -> list[ReviewerDecision]:
    """Completed rows of a review sheet; blank and REJECT rows are skipped."""

    decisions: list[ReviewerDecision] = []
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        missing = {"Entity ID", "Field", "Final Decision"} - set(reader.fieldnames or ())
        if missing:
            raise ValueError(f"{path}: missing columns {', '.join(sorted(missing))}")
        # header is line 1
        for line, row in enumerate(reader, start=2):
            decision = _parse_row(row, path=path, line=line)
            if decision is not None:
                decisions.append(decision)
    return decisions


def _parse_row(row: dict[str, str], *, path: Path, line: int) -> ReviewerDecision | None:
    raw_decision = (row.get("Final Decision") or "").strip().upper()
    if not raw_decision:
        return None
    try:
        decision = FinalDecision(raw_decision)
    except ValueError as exc:
        raise ValueError(f"{path}:{line}: unknown final decision {raw_decision!r}") from exc
    if decision is FinalDecision.REJECT:
        return None

    field_name = row["Field"].strip()
    location = f"{path}:{line}"
    if decision is FinalDecision.APPROVE:
        value = _cell_value(row, "Recommended Value", field_name, location=location)
        if value is None:
            raise ValueError(f"{location}: APPROVE without a recommended value")
    else:
        value = parse_field_value(field_name, row.get("Final Value"))
        if value is None:
            raise ValueError(f"{location}: EDIT requires a Final Value")
    return ReviewerDecision(
        entity_id=row["Entity ID"].strip(),
        field_name=field_name,
        decision=decision,
        value=value,
        current_value=_cell_value(row, "Current Value", field_name, location=location),
    )


def decisions_to_changes(decisions: Iterable[ReviewerDecision]) -> list[ApprovedChange]:
    return [
        ApprovedChange(
            entity_id=decision.entity_id,
            field_name=decision.field_name,
            new_value=decision.value,
            sources=(Provider.MANUAL,),
            expected_current=decision.current_value,
            rationale=f"reviewer {decision.decision.value.lower()}",
        )
        for decision in decisions
    ]


# Markdown --------------------------------------------------------------------


def _cell(value: str | None) -> str:
    if not value:
        return ""
    return value.replace("|", "\\|").replace("\n", " ")


def render_markdown(report: ValidationReport) -> str:
    lines = [
        "# Validation report",
        "",
        f"Generated: {report.generated_at.isoformat()}",
        "",
        "| Metric | Count |",
        "| --- | --- |",
        f"| Entities processed | {report.total_entities} |",
        f"| Auto-fixed | {report.auto_fixed.count} |",
        f"| Needs review | {report.needs_review.count} |",
        f"| Apply failed | {report.apply_failed.count} |",
        f"| Rejected | {report.rejected.count} |",
        f"| Failed entities | {len(report.failed_entities)} |",
    ]
    if report.fetch_failures:
        lines += ["", "## Fetch failures", "", "| Provider | Failures |", "| --- | --- |"]
        lines += [f"| {provider} | {count} |" for provider, count in report.fetch_failures.items()]

    if report.auto_fixed.items:
        lines += [
            "",
            "## Auto-fixed",
            "",
            "| Entity | Field | Old | New | Sources |",
            "| --- | --- | --- | --- | --- |",
        ]
        lines += [
            f"| {_cell(item.entity)} | {item.field} | {_cell(item.old_value)} "
            f"| {_cell(item.new_value)} | {', '.join(item.sources)} |"
            for item in report.auto_fixed.items
        ]

    if report.needs_review.items:
        provider_headers = " | ".join(PROVIDER_COLUMNS.values())
        lines += [
            "",
            "## Needs review",
            "",
            f"| Entity | Field | Current | {provider_headers} | Recommendation | Final Decision |",
            "| --- | --- | --- | " + " | ".join("---" for _ in PROVIDER_COLUMNS) + " | --- | --- |",
        ]
        for item in report.needs_review.items:
            provider_cells = " | ".join(
                _cell(item.provider_values.get(provider.value)) for provider in PROVIDER_COLUMNS
            )
            lines.append(
                f"| {_cell(item.entity)} | {item.field} | {_cell(item.current_value)} "
                f"| {provider_cells} | {_cell(item.recommendation)} |  |"
            )
    return "\n".join(lines) + "\n"


def write_markdown_report(report: ValidationReport, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_markdown(report), encoding="utf-8")
    log.info("Wrote markdown report to %s", path)
    return path


# Corrections -----------------------------------------------------------------


class CorrectionPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    entity_id: str = Field(min_length=1)
    field_name: str = Field(alias="field", min_length=1)
    value: Any = None
    rationale: str = Field(min_length=1)

    def to_correction(self) -> Correction:
        value = self.value
        if isinstance(value, str) and self.field_name in INTEGER_FIELDS:
            parsed = parse_field_value(self.field_name, value)
        else:
            parsed = field_value_from_raw(value)
        return Correction(
            entity_id=self.entity_id,
            field_name=self.field_name,
            value=parsed,
            rationale=self.rationale,
        )


_CORRECTIONS = TypeAdapter(list[CorrectionPayload])


def read_corrections(path: Path) -> list[Correction]:
    """Read a JSON list of ``{entity_id, field, value, rationale}`` records."""

    payloads = _CORRECTIONS.validate_json(path.read_text(encoding="utf-8"))
    return [payload.to_correction() for payload in payloads]


def corrections_to_changes(corrections: Iterable[Correction]) -> list[ApprovedChange]:
    return [ApprovedChange.from_correction(correction) for correction in corrections]


def report_to_changes(report: ValidationReport) -> list[ApprovedChange]:
    """Auto-fixed items of a report as changes, for re-applying a run's writes."""

    changes: list[ApprovedChange] = []
    for item in report.auto_fixed.items:
        if item.new_data is not None:
            new_value = field_value_from_raw(item.new_data)
            expected_current = field_value_from_raw(item.old_data)
        else:
            # reports without encoded values only have the rendered text
            new_value = parse_field_value(item.field, item.new_value)
            expected_current = parse_field_value(item.field, item.old_value)
        changes.append(
            ApprovedChange(
                entity_id=item.entity_id,
                field_name=item.field,
                new_value=new_value,
                sources=tuple(Provider(source) for source in item.sources),
                expected_current=expected_current,
                rationale="re-applied from report",
                confidence=item.confidence,
            )
        )
    return changes
