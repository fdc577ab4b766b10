"""In-memory backends for unit tests and local runs: dict-backed fakes."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Iterable

from dataquality.core.exceptions import IssueNotFoundError, LedgerError, SourceUnavailableError
from dataquality.core.types import IssueKey
from dataquality.models.issues import (
    Issue,
    IssueStatus,
    IssueSummary,
    IssueType,
    SeverityUpdate,
    ensure_closing_status,
    sort_issues,
    utcnow,
)
from dataquality.models.records import ObjectType, RecordField, SourceRecord
from dataquality.persistence.record_rows import project_rows


class MemoryRecordSource:
    """Dict-backed IRecordSource for unit tests."""

    def __init__(self) -> None:
        self._rows: dict[ObjectType, list[dict[str, Any]]] = defaultdict(list)
        self.unavailable = False
        self.fetch_log: list[tuple[ObjectType, tuple[RecordField, ...], int]] = []

    def add(self, object_type: ObjectType, **row: Any) -> None:
        self._rows[ObjectType(object_type)].append(row)

    def add_many(self, object_type: ObjectType, rows: Iterable[dict[str, Any]]) -> None:
        for row in rows:
            self.add(object_type, **row)

    def update(self, object_type: ObjectType, record_id: str, **changes: Any) -> None:
        for row in self._rows[ObjectType(object_type)]:
            if row.get("id") == record_id:
                row.update(changes)

    def fetch(
        self, object_type: ObjectType, fields: Iterable[RecordField], limit: int = 10_000
    ) -> list[SourceRecord]:
        fields = tuple(fields)
        self.fetch_log.append((object_type, fields, limit))
        if self.unavailable:
            raise SourceUnavailableError(object_type, "memory source marked unavailable")
        return project_rows(object_type, self._rows[object_type][:limit], fields)


class MemoryIssueLedger:
    """Dict-backed IIssueLedger for unit tests.

    Writes are staged on a copy and swapped in only when the whole batch
    succeeds. ``fail_after`` simulates an infrastructure failure after that many
    issues of a create batch were written; ``max_batch_size`` simulates a
    platform batch limit.
    """

    def __init__(self, *, fail_after: int | None = None, max_batch_size: int | None = None) -> None:
        self._issues: dict[str, Issue] = {}
        self._lock = threading.Lock()
        self.fail_after = fail_after
        self.max_batch_size = max_batch_size

    # ---- bulk writes ----

    def create_issues(self, batch: list[Issue]) -> None:
        with self._lock:
            self._check_batch_size(batch)
            staged = dict(self._issues)
            open_keys = {i.key for i in staged.values() if i.is_open}
            for written, issue in enumerate(batch):
                if self.fail_after is not None and written >= self.fail_after:
                    raise LedgerError(f"Simulated write failure after {written} issues")
                if issue.id in staged:
                    raise LedgerError(f"Issue {issue.id} already exists")
                if issue.is_open and issue.key in open_keys:
                    raise LedgerError(f"Open issue already exists for {issue.key}")
                staged[issue.id] = issue
                open_keys.add(issue.key)
            self._issues = staged

    def update_severity(self, batch: list[SeverityUpdate]) -> None:
        with self._lock:
            self._check_batch_size(batch)
            staged = dict(self._issues)
            for update in batch:
                issue = staged.get(update.issue_id)
                if issue is None or not issue.is_open:
                    raise LedgerError(f"Issue {update.issue_id} is no longer open")
                staged[update.issue_id] = issue.model_copy(update={"severity": update.severity})
            self._issues = staged

    def _check_batch_size(self, batch: list[Any]) -> None:
        if self.max_batch_size is not None and len(batch) > self.max_batch_size:
            raise LedgerError(
                f"Batch of {len(batch)} exceeds the limit of {self.max_batch_size}"
            )

    # ---- reads ----

    def query_issues_by_key(self, keys: Iterable[IssueKey]) -> list[Issue]:
        wanted = set(keys)
        return [i for i in self._issues.values() if i.key in wanted]

    def query_open_issues_by_key(self, keys: Iterable[IssueKey]) -> list[Issue]:
        return [i for i in self.query_issues_by_key(keys) if i.is_open]

    def get_issue(self, issue_id: str) -> Issue:
        try:
            return self._issues[issue_id]
        except KeyError:
            raise IssueNotFoundError([issue_id]) from None

    def get_all_issues(self, status: IssueStatus | None = IssueStatus.OPEN) -> list[Issue]:
        return sort_issues(
            [i for i in self._issues.values() if status is None or i.status == status]
        )

    def get_issues_by_type(
        self, issue_type: IssueType, status: IssueStatus | None = IssueStatus.OPEN
    ) -> list[Issue]:
        return [i for i in self.get_all_issues(status) if i.issue_type == issue_type]

    def get_issues_summary(self, status: IssueStatus | None = IssueStatus.OPEN) -> IssueSummary:
        return IssueSummary.from_issues(self.get_all_issues(status))

    # ---- status mutations ----

    def set_status(self, issue_id: str, status: IssueStatus) -> Issue:
        return self.bulk_set_status([issue_id], status)[0]

    def bulk_set_status(self, issue_ids: list[str], status: IssueStatus) -> list[Issue]:
        status = ensure_closing_status(status)
        with self._lock:
            missing = [i for i in issue_ids if i not in self._issues]
            if missing:
                raise IssueNotFoundError(missing)
            now = utcnow()
            updated = [self._issues[i].with_status(status, now) for i in issue_ids]
            for issue in updated:
                self._issues[issue.id] = issue
            return updated


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)
