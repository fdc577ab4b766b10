"""ScanOrchestrator: one coordinated detect / classify / reconcile / persist pass."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Sequence

from dataquality.core.config import ScanConfig
from dataquality.core.exceptions import LedgerError, ScanFailedError
from dataquality.core.protocols import IEvaluator, IIssueLedger, IRecordSource
from dataquality.engine.reconciler import reconcile
from dataquality.engine.severity import SeverityClassifier
from dataquality.evaluators import default_evaluators
from dataquality.models.issues import Finding, IssueType, SeverityUpdate
from dataquality.models.records import (
    FieldRequest,
    ObjectType,
    RecordField,
    Snapshot,
    SourceRecord,
)
from dataquality.models.scan import ReconcilePlan, RunSummary, ScanResult

logger = logging.getLogger(__name__)


class ScanOrchestrator:
    """Run every registered evaluator and persist the reconciled result.

    Evaluators are independent and may run on a thread pool; all of them finish
    before reconciliation starts. Persistence is all-or-nothing for the pass:
    severity refreshes are applied first and reverted if issue creation fails.
    """

    def __init__(
        self,
        *,
        source: IRecordSource,
        ledger: IIssueLedger,
        evaluators: Sequence[IEvaluator] | None = None,
        classifier: SeverityClassifier | None = None,
        config: ScanConfig | None = None,
    ) -> None:
        self._config = config or ScanConfig()
        self._source = source
        self._ledger = ledger
        self._evaluators = list(evaluators) if evaluators is not None else default_evaluators()
        self._classifier = classifier or SeverityClassifier(self._config.severity_overrides)

    def run_all_scans(self) -> ScanResult:
        started = time.monotonic()
        logger.info("Starting data quality scan with %d evaluators", len(self._evaluators))

        findings = self._collect_findings()
        keys = {f.key for f in findings}
        try:
            existing = self._ledger.query_issues_by_key(keys)
        except LedgerError as exc:
            raise ScanFailedError(f"Scan failed while reading existing issues: {exc}") from exc

        plan = reconcile(
            existing, findings, self._classifier, reopen_fixed=self._config.reopen_fixed
        )
        logger.info(
            "Reconciled %d findings: %d to create, %d severity refreshes",
            len(findings), len(plan.to_create), len(plan.to_update_severity),
        )
        self._apply(plan)

        summary = _summarize(findings, plan, started)
        logger.info("Scan finished in %d ms", summary.duration_ms)
        return ScanResult(message=_message(summary), summary=summary)

    # ---- detection ----

    def _collect_findings(self) -> list[Finding]:
        requests = merge_requests(r for e in self._evaluators for r in e.requirements)
        if self._config.parallel and len(self._evaluators) > 1:
            with ThreadPoolExecutor(max_workers=self._config.max_workers) as pool:
                fetched = list(pool.map(self._fetch, requests))
                records: Snapshot = dict(zip((r.object_type for r in requests), fetched))
                futures = [pool.submit(self._run_evaluator, e, records) for e in self._evaluators]
                results = [future.result() for future in futures]
        else:
            records = {r.object_type: self._fetch(r) for r in requests}
            results = [self._run_evaluator(e, records) for e in self._evaluators]
        return [finding for result in results for finding in result]

    def _fetch(self, request: FieldRequest) -> list[SourceRecord]:
        return self._source.fetch(request.object_type, request.fields, self._config.record_limit)

    def _run_evaluator(self, evaluator: IEvaluator, records: Snapshot) -> list[Finding]:
        snapshot: Snapshot = {r.object_type: records[r.object_type] for r in evaluator.requirements}
        findings = evaluator.evaluate(snapshot)
        logger.info(
            "%s: %d findings from %d records",
            evaluator.issue_type, len(findings), sum(len(v) for v in snapshot.values()),
        )
        return findings

    # ---- persistence ----

    def _apply(self, plan: ReconcilePlan) -> None:
        updates = plan.to_update_severity
        if updates:
            try:
                self._ledger.update_severity(updates)
            except LedgerError as exc:
                raise ScanFailedError(f"Scan failed while refreshing severities: {exc}") from exc

        if plan.to_create:
            try:
                self._ledger.create_issues(plan.to_create)
            except LedgerError as exc:
                self._revert(updates)
                raise ScanFailedError(f"Scan failed while creating issues: {exc}") from exc

    def _revert(self, updates: list[SeverityUpdate]) -> None:
        if not updates:
            return
        logger.error("Issue creation failed; reverting %d severity refreshes", len(updates))
        try:
            self._ledger.update_severity([u.reverted() for u in updates])
        except LedgerError as exc:
            raise ScanFailedError(
                f"Scan failed and {len(updates)} severity refreshes could not be reverted: {exc}"
            ) from exc


def _summarize(findings: list[Finding], plan: ReconcilePlan, started: float) -> RunSummary:
    summary = RunSummary(
        created_count=len(plan.to_create),
        refreshed_count=len(plan.to_update_severity),
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    for finding in findings:
        summary.findings_by_type[finding.issue_type] += 1
    for issue in plan.to_create:
        summary.created_by_type[issue.issue_type] += 1
    return summary


def _message(summary: RunSummary) -> str:
    if summary.finding_count == 0:
        return "Scan complete. No data quality issues found."
    breakdown = ", ".join(
        f"{t.value}: {summary.created_by_type[t]}" for t in IssueType if summary.created_by_type[t]
    )
    text = (
        f"Scan complete. {summary.created_count} new issues found, "
        f"{summary.refreshed_count} existing issues updated."
    )
    return f"{text} ({breakdown})" if breakdown else text


def merge_requests(requests: Iterable[FieldRequest]) -> list[FieldRequest]:
    """Collapse field requests to one per object type, unioning their fields."""
    merged: dict[ObjectType, list[RecordField]] = {}
    for request in requests:
        fields = merged.setdefault(request.object_type, [])
        fields.extend(f for f in request.fields if f not in fields)
    return [FieldRequest(object_type=t, fields=tuple(f)) for t, f in merged.items()]
