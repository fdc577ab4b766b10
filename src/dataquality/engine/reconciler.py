"""Issue reconciliation: merge a scan's findings into the existing ledger.

Rules:
    * At most one Open issue per (record id, issue type).
    * A finding that matches an Open issue only refreshes its severity, and only
      when the severity actually changed. DetectedDate and RecordOwner are kept.
    * A finding that matches only Fixed/Ignored issues is dropped; closed issues
      are never resurrected. With ``reopen_fixed`` a key whose history is all
      Fixed gets a fresh Open issue; Ignored always wins.
    * Open issues with no matching finding are left alone. Closing is a user action.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from typing import Iterable

from dataquality.core.types import IssueKey
from dataquality.engine.severity import SeverityClassifier
from dataquality.models.issues import (
    Finding,
    Issue,
    IssueStatus,
    SeverityUpdate,
    utcnow,
)
from dataquality.models.scan import ReconcilePlan

logger = logging.getLogger(__name__)


def _may_reopen(history: list[Issue], reopen_fixed: bool) -> bool:
    return reopen_fixed and all(i.status == IssueStatus.FIXED for i in history)


def reconcile(
    existing: Iterable[Issue],
    findings: Iterable[Finding],
    classifier: SeverityClassifier,
    *,
    reopen_fixed: bool = False,
    now: datetime | None = None,
) -> ReconcilePlan:
    """Build the create / severity-refresh plan for one scan pass.

    Args:
        existing: Every ledger issue, of any status, sharing a key with ``findings``.
        findings: All findings of the pass.
        classifier: Resolves each finding's signal to a severity.
        reopen_fixed: Policy switch for re-triggering issues the user marked Fixed.
        now: DetectedDate for created issues.
    """
    now = now or utcnow()
    history: dict[IssueKey, list[Issue]] = defaultdict(list)
    for issue in existing:
        history[issue.key].append(issue)

    plan = ReconcilePlan()
    seen: set[IssueKey] = set()
    for finding in findings:
        if finding.key in seen:
            continue
        seen.add(finding.key)

        severity = classifier.classify(finding.issue_type, finding.signal)
        issues = history.get(finding.key, [])
        open_issues = [i for i in issues if i.is_open]
        if open_issues:
            current = open_issues[0]
            if len(open_issues) > 1:
                logger.warning("Multiple open issues for %s; refreshing %s only", finding.key, current.id)
            if current.severity != severity:
                plan.to_update_severity.append(
                    SeverityUpdate(issue_id=current.id, previous=current.severity, severity=severity)
                )
            continue

        if issues and not _may_reopen(issues, reopen_fixed):
            continue

        plan.to_create.append(
            Issue(
                record_id=finding.record_id,
                object_type=finding.object_type,
                issue_type=finding.issue_type,
                severity=severity,
                description=finding.description,
                record_owner=finding.record_owner,
                detected_date=now,
            )
        )
    return plan
