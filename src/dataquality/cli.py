"""Command line entry point for on-demand and scheduled scans.

Usage:
    dq-scan run
    dq-scan summary
    dq-scan list --type "Invalid Email"
"""

from __future__ import annotations

import argparse
import logging
import sys

from dataquality.core.config import AppSettings
from dataquality.core.exceptions import DataQualityError
from dataquality.core.logging import configure_logging
from dataquality.models.issues import Severity
from dataquality.services.data_quality import ALL_TYPES, DataQualityService, build_service

logger = logging.getLogger(__name__)


def _run(service: DataQualityService, args: argparse.Namespace) -> None:
    result = service.run_all_scans()
    print(result.message)
    if args.verbose:
        print(result.summary.model_dump_json(indent=2))


def _summary(service: DataQualityService, args: argparse.Namespace) -> None:
    summary = service.get_issues_summary()
    print(f"Open issues: {summary.total_count}")
    for severity in Severity:
        print(f"  {severity.value:<6} {summary.severity_counts.get(severity, 0)}")


def _list(service: DataQualityService, args: argparse.Namespace) -> None:
    for issue in service.get_issues_by_type(args.type):
        print(
            f"{issue.id}  {issue.severity.value:<6}  {issue.issue_type.value:<15}  "
            f"{issue.object_type.value}:{issue.record_id}  {issue.description}"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dq-scan", description="Data quality scan engine")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run all scans and reconcile issues")
    run.add_argument("-v", "--verbose", action="store_true", help="Print the run summary as JSON")
    run.set_defaults(handler=_run)

    summary = sub.add_parser("summary", help="Print open issue counts by severity")
    summary.set_defaults(handler=_summary)

    listing = sub.add_parser("list", help="List open issues")
    listing.add_argument("--type", default=ALL_TYPES, help="Issue type label, e.g. 'Invalid Email'")
    listing.set_defaults(handler=_list)
    return parser


def main(argv: list[str] | None = None, service: DataQualityService | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = AppSettings()
    configure_logging(settings.log_level)
    try:
        args.handler(service or build_service(settings), args)
    except DataQualityError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
