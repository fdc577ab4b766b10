"""Unit tests for the dict-backed ledger and record source."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from dataquality.core.exceptions import (
    InvalidRequestError,
    IssueNotFoundError,
    LedgerError,
    SourceUnavailableError,
)
from dataquality.core.protocols import ICacheBackend, IIssueLedger, IRecordSource
from dataquality.models.issues import Issue, IssueStatus, IssueType, Severity
from dataquality.models.records import ObjectType, RecordField
from tests.fakes import MemoryCacheBackend, MemoryIssueLedger, MemoryRecordSource

T0 = datetime(2026, 10, 1, tzinfo=timezone.utc)


def _issue(record_id: str, severity: Severity = Severity.MEDIUM, days: int = 0,
           issue_type: IssueType = IssueType.INVALID_PHONE) -> Issue:
    return Issue(
        record_id=record_id,
        object_type=ObjectType.CONTACT,
        issue_type=issue_type,
        severity=severity,
        description="Contains letters",
        detected_date=T0 + timedelta(days=days),
    )


def test_backends_satisfy_protocols():
    assert isinstance(MemoryRecordSource(), IRecordSource)
    assert isinstance(MemoryIssueLedger(), IIssueLedger)
    assert isinstance(MemoryCacheBackend(), ICacheBackend)


class TestMemoryRecordSource:
    def test_projects_only_requested_fields(self):
        source = MemoryRecordSource()
        source.add(ObjectType.ACCOUNT, id="001", name="Acme", phone="555-1234", website="acme.com")
        [rec] = source.fetch(ObjectType.ACCOUNT, [RecordField.NAME])
        assert rec.name == "Acme"
        assert rec.phone is None and rec.website is None

    def test_respects_limit(self):
        source = MemoryRecordSource()
        source.add_many(ObjectType.LEAD, [{"id": str(i)} for i in range(5)])
        assert len(source.fetch(ObjectType.LEAD, [RecordField.ID], limit=3)) == 3

    def test_skips_malformed_rows(self):
        source = MemoryRecordSource()
        source.add(ObjectType.CONTACT, id="ok", phone="555-1234")
        source.add(ObjectType.CONTACT, id="bad", phone=5551234)
        source.add(ObjectType.CONTACT, phone="555-1234")  # no id
        records = source.fetch(ObjectType.CONTACT, [RecordField.PHONE])
        assert [r.id for r in records] == ["ok"]

    def test_unavailable_raises(self):
        source = MemoryRecordSource()
        source.unavailable = True
        with pytest.raises(SourceUnavailableError):
            source.fetch(ObjectType.CASE, [RecordField.PARENT_ID])


class TestMemoryIssueLedger:
    def test_reads_sorted_by_severity_then_newest(self):
        ledger = MemoryIssueLedger()
        ledger.create_issues([
            _issue("a", Severity.MEDIUM, days=5),
            _issue("b", Severity.HIGH, days=1),
            _issue("c", Severity.LOW, days=9),
            _issue("d", Severity.HIGH, days=3),
        ])
        assert [i.record_id for i in ledger.get_all_issues()] == ["d", "b", "a", "c"]

    def test_rejects_second_open_issue_for_key(self):
        ledger = MemoryIssueLedger()
        ledger.create_issues([_issue("a")])
        with pytest.raises(LedgerError):
            ledger.create_issues([_issue("b"), _issue("a")])
        assert [i.record_id for i in ledger.get_all_issues()] == ["a"]

    def test_set_status_fixed_stamps_date(self):
        ledger = MemoryIssueLedger()
        issue = _issue("a")
        ledger.create_issues([issue])
        fixed = ledger.set_status(issue.id, IssueStatus.FIXED)
        assert fixed.fixed_date is not None
        assert ledger.get_all_issues() == []
        assert ledger.get_all_issues(status=IssueStatus.FIXED) == [fixed]

    def test_set_status_rejects_open(self):
        ledger = MemoryIssueLedger()
        issue = _issue("a")
        ledger.create_issues([issue])
        with pytest.raises(InvalidRequestError):
            ledger.set_status(issue.id, IssueStatus.OPEN)

    def test_bulk_set_status_is_all_or_nothing(self):
        ledger = MemoryIssueLedger()
        issue = _issue("a")
        ledger.create_issues([issue])
        with pytest.raises(IssueNotFoundError) as exc_info:
            ledger.bulk_set_status([issue.id, "missing"], IssueStatus.FIXED)
        assert exc_info.value.issue_ids == ["missing"]
        assert ledger.get_issue(issue.id).status == IssueStatus.OPEN

    def test_summary_totals_match_buckets(self):
        ledger = MemoryIssueLedger()
        ledger.create_issues([_issue("a", Severity.HIGH), _issue("b"), _issue("c", Severity.LOW)])
        summary = ledger.get_issues_summary()
        assert summary.total_count == 3 == sum(summary.severity_counts.values())
        assert summary.severity_counts[Severity.LOW] == 1
