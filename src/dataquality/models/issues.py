"""Finding and Issue models: transient detections and the persisted ledger rows."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from dataquality.core.exceptions import InvalidRequestError
from dataquality.core.types import IssueKey
from dataquality.models.records import ObjectType


class IssueType(StrEnum):
    DUPLICATE = "Duplicate"
    INVALID_EMAIL = "Invalid Email"
    INVALID_PHONE = "Invalid Phone"
    ORPHANED_RECORD = "Orphaned Record"


class Severity(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        """Sort weight; higher is more severe."""
        return {"High": 3, "Medium": 2, "Low": 1}[self.value]


class IssueStatus(StrEnum):
    OPEN = "Open"
    FIXED = "Fixed"
    IGNORED = "Ignored"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_issue_id() -> str:
    return uuid.uuid4().hex


class Finding(BaseModel):
    """A single rule hit produced by an evaluator, before reconciliation."""

    issue_type: IssueType
    record_id: str
    object_type: ObjectType
    record_owner: str = ""
    description: str
    signal: str  # raw severity signal, resolved by SeverityClassifier

    model_config = {"frozen": True}

    @property
    def key(self) -> IssueKey:
        return (self.record_id, self.issue_type.value)


class Issue(BaseModel):
    """Persisted, user-actionable data quality issue."""

    id: str = Field(default_factory=new_issue_id)
    record_id: str
    object_type: ObjectType
    issue_type: IssueType
    severity: Severity
    description: str = ""
    record_owner: str = ""  # copied at detection time, never refreshed
    status: IssueStatus = IssueStatus.OPEN
    detected_date: datetime = Field(default_factory=utcnow)
    fixed_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _fixed_date_matches_status(self) -> Issue:
        if (self.status == IssueStatus.FIXED) != (self.fixed_date is not None):
            raise ValueError("fixed_date must be set if and only if status is Fixed")
        return self

    @property
    def key(self) -> IssueKey:
        return (self.record_id, self.issue_type.value)

    @property
    def is_open(self) -> bool:
        return self.status == IssueStatus.OPEN

    def with_status(self, status: IssueStatus, now: datetime | None = None) -> Issue:
        """Return a copy moved to ``status``; Fixed stamps fixed_date, others clear it."""
        fixed_date = (now or utcnow()) if status == IssueStatus.FIXED else None
        return self.model_copy(update={"status": status, "fixed_date": fixed_date})


class SeverityUpdate(BaseModel):
    """Severity refresh for an Open issue reaffirmed by a rescan."""

    issue_id: str
    previous: Severity
    severity: Severity

    def reverted(self) -> SeverityUpdate:
        return SeverityUpdate(issue_id=self.issue_id, previous=self.severity, severity=self.previous)


class IssueSummary(BaseModel):
    """Dashboard header counts."""

    total_count: int = 0
    severity_counts: dict[Severity, int] = Field(
        default_factory=lambda: {s: 0 for s in Severity}
    )

    @classmethod
    def from_issues(cls, issues: list[Issue]) -> IssueSummary:
        counts = {s: 0 for s in Severity}
        for issue in issues:
            counts[issue.severity] += 1
        return cls(total_count=sum(counts.values()), severity_counts=counts)


def sort_issues(issues: list[Issue]) -> list[Issue]:
    """Order for display: severity High→Low, then newest detection first."""
    return sorted(
        issues,
        key=lambda i: (i.severity.rank, i.detected_date),
        reverse=True,
    )


CLOSING_STATUSES = frozenset({IssueStatus.FIXED, IssueStatus.IGNORED})


def ensure_closing_status(status: IssueStatus | str) -> IssueStatus:
    """Status mutations may only move an issue to Fixed or Ignored."""
    try:
        parsed = IssueStatus(status)
    except ValueError:
        parsed = None
    if parsed not in CLOSING_STATUSES:
        raise InvalidRequestError(f"Status must be Fixed or Ignored, got {status!r}")
    return parsed
