"""Scan run result models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from dataquality.models.issues import Issue, IssueType, SeverityUpdate


class ReconcilePlan(BaseModel):
    """Writes a scan pass wants to apply to the issue ledger."""

    to_create: list[Issue] = Field(default_factory=list)
    to_update_severity: list[SeverityUpdate] = Field(default_factory=list)


class RunSummary(BaseModel):
    """Counts for one completed scan pass."""

    created_count: int = 0
    refreshed_count: int = 0
    findings_by_type: dict[IssueType, int] = Field(
        default_factory=lambda: {t: 0 for t in IssueType}
    )
    created_by_type: dict[IssueType, int] = Field(
        default_factory=lambda: {t: 0 for t in IssueType}
    )
    duration_ms: int = 0

    @property
    def finding_count(self) -> int:
        return sum(self.findings_by_type.values())


class ScanResult(BaseModel):
    """What ``run_all_scans`` hands back to its caller."""

    message: str
    summary: RunSummary
