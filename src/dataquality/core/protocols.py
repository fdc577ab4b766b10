"""Protocol interfaces for the data quality engine.

All inter-layer communication uses these Protocols: structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from dataquality.core.types import IssueId, IssueKey
from dataquality.models.issues import (
    Finding,
    Issue,
    IssueStatus,
    IssueSummary,
    IssueType,
    SeverityUpdate,
)
from dataquality.models.records import (
    FieldRequest,
    ObjectType,
    RecordField,
    Snapshot,
    SourceRecord,
)


# ---------------------------------------------------------------------------
# Record Source
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordSource(Protocol):
    """Bounded, field-projected snapshots of business records."""

    def fetch(
        self, object_type: ObjectType, fields: Iterable[RecordField], limit: int = 10_000
    ) -> list[SourceRecord]: ...


# ---------------------------------------------------------------------------
# Evaluators
# ---------------------------------------------------------------------------

@runtime_checkable
class IEvaluator(Protocol):
    """A single deterministic detection rule."""

    issue_type: IssueType
    requirements: list[FieldRequest]

    def evaluate(self, snapshot: Snapshot) -> list[Finding]: ...


# ---------------------------------------------------------------------------
# Issue Ledger
# ---------------------------------------------------------------------------

@runtime_checkable
class IIssueLedger(Protocol):
    """Persisted set of issues; bulk writes are all-or-nothing per call."""

    def create_issues(self, batch: list[Issue]) -> None: ...

    def update_severity(self, batch: list[SeverityUpdate]) -> None: ...

    def query_issues_by_key(self, keys: Iterable[IssueKey]) -> list[Issue]: ...

    def query_open_issues_by_key(self, keys: Iterable[IssueKey]) -> list[Issue]: ...

    def get_issue(self, issue_id: IssueId) -> Issue: ...

    def get_all_issues(self, status: IssueStatus | None = IssueStatus.OPEN) -> list[Issue]: ...

    def get_issues_by_type(
        self, issue_type: IssueType, status: IssueStatus | None = IssueStatus.OPEN
    ) -> list[Issue]: ...

    def get_issues_summary(self, status: IssueStatus | None = IssueStatus.OPEN) -> IssueSummary: ...

    def set_status(self, issue_id: IssueId, status: IssueStatus) -> Issue: ...

    def bulk_set_status(self, issue_ids: list[IssueId], status: IssueStatus) -> list[Issue]: ...


# ---------------------------------------------------------------------------
# Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...
