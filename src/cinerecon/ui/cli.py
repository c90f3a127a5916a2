from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from cinerecon.app import (
    RunOptions,
    apply_corrections,
    apply_review_decisions,
    reapply_report,
    run_validation,
)
from cinerecon.config import ConfigurationError, configure_logging
from cinerecon.domain.model import EntityKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cross-check catalog records against external film databases"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate entities against all providers")
    validate.add_argument("--limit", type=int, help="Maximum number of entities to validate")
    validate.add_argument(
        "--auto-fix",
        action="store_true",
        help="Write auto-approved fields (default: report only)",
    )
    validate.add_argument("--field", type=str, help="Only validate this field")
    validate.add_argument(
        "--decade",
        type=int,
        help="Only entities released in this decade, e.g. 1990",
    )
    validate.add_argument("--from-year", type=int, help="Earliest release year (inclusive)")
    validate.add_argument("--to-year", type=int, help="Latest release year (inclusive)")
    validate.add_argument(
        "--has-external-id",
        nargs="?",
        const=True,
        default=False,
        metavar="NAMESPACE",
        help="Only entities with an external id (optionally in this namespace)",
    )
    validate.add_argument(
        "--kind",
        choices=[kind.value for kind in EntityKind],
        help="Only validate movies or people",
    )
    validate.add_argument(
        "--concurrency",
        type=int,
        help="Entities processed at the same time (defaults to config)",
    )
    validate.add_argument("--report", type=Path, help="Path of the JSON report")
    validate.add_argument("--csv", type=Path, help="Also write a review sheet (CSV)")
    validate.add_argument("--markdown", type=Path, help="Also write a markdown report")

    decisions = subparsers.add_parser(
        "apply-decisions",
        help="Apply the APPROVE/EDIT rows of a completed review sheet",
    )
    decisions.add_argument("csv_path", type=Path, help="Completed review sheet")

    corrections = subparsers.add_parser(
        "apply-corrections",
        help="Apply a JSON list of manual corrections",
    )
    corrections.add_argument("json_path", type=Path, help="Corrections file")

    reapply = subparsers.add_parser(
        "reapply-report",
        help="Write the auto-fixed values of an earlier report again",
    )
    reapply.add_argument("report_path", type=Path, help="JSON report of an earlier run")

    return parser.parse_args(list(argv))


def _year_range(args: argparse.Namespace) -> tuple[int | None, int | None]:
    if args.decade is not None:
        if args.from_year is not None or args.to_year is not None:
            raise ValueError("--decade cannot be combined with --from-year/--to-year")
        if args.decade % 10 != 0:
            raise ValueError(f"Decade must be a multiple of ten, got {args.decade}")
        return args.decade, args.decade + 9
    if args.from_year is not None and args.to_year is not None and args.from_year > args.to_year:
        raise ValueError("--from-year must not be after --to-year")
    return args.from_year, args.to_year


def _run_options(args: argparse.Namespace) -> RunOptions:
    if args.limit is not None and args.limit < 1:
        raise ValueError("--limit must be at least 1")
    if args.concurrency is not None and args.concurrency < 1:
        raise ValueError("--concurrency must be at least 1")
    year_from, year_to = _year_range(args)
    return RunOptions(
        limit=args.limit,
        auto_fix=args.auto_fix,
        field_name=args.field,
        year_from=year_from,
        year_to=year_to,
        has_external_id=args.has_external_id,
        kind=EntityKind(args.kind) if args.kind else None,
        max_concurrency=args.concurrency,
        report_path=args.report,
        csv_path=args.csv,
        markdown_path=args.markdown,
    )


def _progress(done: int, total: int) -> None:
    if done == total or done % 25 == 0:
        log.info("Progress: %s/%s entities", done, total)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    options: RunOptions | None = None
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command == "validate":
            options = _run_options(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if options is not None:
            summary = run_validation(options, progress=_progress)
            log.info(
                "Validation finished: %s processed, %s applied, %s pending review, report at %s",
                summary.processed,
                summary.applied,
                summary.pending_review,
                summary.report_path,
            )
        elif parsed_args.command == "apply-decisions":
            apply_review_decisions(parsed_args.csv_path)
        elif parsed_args.command == "apply-corrections":
            apply_corrections(parsed_args.json_path)
        elif parsed_args.command == "reapply-report":
            reapply_report(parsed_args.report_path)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ConfigurationError, ValueError):
        log.exception("Invalid configuration or input")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during run")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
