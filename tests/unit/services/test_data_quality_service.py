"""Tests for DataQualityService over memory backends."""

from __future__ import annotations

import pytest

from dataquality.core.config import AppSettings
from dataquality.core.exceptions import CacheError, InvalidRequestError, IssueNotFoundError
from dataquality.models.issues import IssueStatus, IssueType, Severity
from dataquality.models.records import ObjectType
from dataquality.services.data_quality import (
    SUMMARY_CACHE_KEY,
    DataQualityService,
    build_service,
    parse_issue_type,
)
from tests.fakes import MemoryCacheBackend, MemoryIssueLedger, MemoryRecordSource


@pytest.fixture
def source():
    src = MemoryRecordSource()
    src.add(ObjectType.ACCOUNT, id="001A", name="Acme", phone="555-CALL-NOW")
    src.add(ObjectType.CONTACT, id="003A", email="jane@gmial.com", parent_id="001A")
    src.add(ObjectType.CONTACT, id="003B", email="not-an-email", parent_id="001A")
    return src


@pytest.fixture
def cache():
    return MemoryCacheBackend()


@pytest.fixture
def ledger():
    return MemoryIssueLedger()


@pytest.fixture
def service(source, ledger, cache):
    return DataQualityService(
        settings=AppSettings(backend="memory"), source=source, ledger=ledger, cache=cache,
    )


class TestParseIssueType:
    @pytest.mark.parametrize("label", ["Invalid Email", "InvalidEmail", "invalid_email"])
    def test_accepts_label_variants(self, label):
        assert parse_issue_type(label) == IssueType.INVALID_EMAIL

    def test_rejects_unknown(self):
        with pytest.raises(InvalidRequestError, match="Unknown issue type"):
            parse_issue_type("Spam")


class TestScanAndQuery:
    def test_run_all_scans_returns_message_and_counts(self, service):
        result = service.run_all_scans()
        assert result.summary.created_count == 3
        assert "3 new issues found" in result.message

    def test_filter_by_type(self, service):
        service.run_all_scans()
        assert len(service.get_issues_by_type("All")) == 3
        phone = service.get_issues_by_type("Invalid Phone")
        assert [i.record_id for i in phone] == ["001A"]

    def test_unknown_filter_rejected_before_reading(self, service, ledger, monkeypatch):
        monkeypatch.setattr(ledger, "get_issues_by_type", lambda *a, **kw: pytest.fail("read"))
        with pytest.raises(InvalidRequestError):
            service.get_issues_by_type("Nope")


class TestSummaryCache:
    def test_summary_is_cached(self, service, cache):
        service.run_all_scans()
        summary = service.get_issues_summary()
        assert summary.total_count == 3
        assert summary.severity_counts[Severity.HIGH] == 2
        assert cache.get(SUMMARY_CACHE_KEY) is not None
        assert service.get_issues_summary() == summary

    def test_status_change_invalidates_summary(self, service, cache):
        service.run_all_scans()
        service.get_issues_summary()
        issue = service.get_all_issues()[0]

        assert service.mark_as_fixed(issue.id) == "Issue marked as fixed"
        assert cache.get(SUMMARY_CACHE_KEY) is None
        assert service.get_issues_summary().total_count == 2

    def test_scan_invalidates_summary(self, service, cache):
        service.get_issues_summary()
        service.run_all_scans()
        assert cache.get(SUMMARY_CACHE_KEY) is None


class TestTriage:
    def test_mark_as_ignored(self, service, ledger):
        service.run_all_scans()
        issue = service.get_all_issues()[0]
        assert service.mark_as_ignored(issue.id) == "Issue marked as ignored"
        stored = ledger.get_issue(issue.id)
        assert stored.status == IssueStatus.IGNORED
        assert stored.fixed_date is None

    def test_bulk_mark_as_fixed(self, service):
        service.run_all_scans()
        ids = [i.id for i in service.get_all_issues()]
        assert service.bulk_mark_as_fixed(ids) == "3 issues marked as fixed"
        assert service.get_all_issues() == []

    def test_bulk_requires_selection(self, service):
        with pytest.raises(InvalidRequestError):
            service.bulk_mark_as_fixed([])

    def test_unknown_issue(self, service):
        with pytest.raises(IssueNotFoundError):
            service.mark_as_fixed("missing")

    def test_blank_issue_id(self, service):
        with pytest.raises(InvalidRequestError):
            service.mark_as_ignored("  ")


def test_build_service_with_memory_backend():
    service = build_service(AppSettings(backend="memory"))
    assert service.health_check()["status"] == "healthy"
    assert service.run_all_scans().summary.created_count == 0


class _BrokenCache(MemoryCacheBackend):
    """Cache whose selected operations fail like an unreachable Redis."""

    def __init__(self, *failing: str) -> None:
        super().__init__()
        self.failing = set(failing)

    def _check(self, op: str) -> None:
        if op in self.failing:
            raise CacheError(f"Redis {op.upper()} failed: connection refused")

    def get(self, key):
        self._check("get")
        return super().get(key)

    def setex(self, key, ttl, value):
        self._check("setex")
        super().setex(key, ttl, value)

    def delete(self, key):
        self._check("delete")
        super().delete(key)


def _service_with(source, ledger, cache) -> DataQualityService:
    return DataQualityService(
        settings=AppSettings(backend="memory"), source=source, ledger=ledger, cache=cache,
    )


class TestCacheFailures:
    def test_scan_succeeds_when_invalidation_fails(self, source, ledger):
        service = _service_with(source, ledger, _BrokenCache("delete"))
        result = service.run_all_scans()
        assert result.summary.created_count == 3
        assert len(ledger.get_all_issues()) == 3

    def test_status_change_succeeds_when_cache_is_down(self, source, ledger):
        service = _service_with(source, ledger, _BrokenCache("get", "setex", "delete"))
        service.run_all_scans()
        issue = ledger.get_all_issues()[0]
        assert service.mark_as_fixed(issue.id) == "Issue marked as fixed"
        assert ledger.get_issue(issue.id).status == IssueStatus.FIXED

    def test_summary_falls_back_to_ledger_when_cache_is_down(self, source, ledger):
        service = _service_with(source, ledger, _BrokenCache("get", "setex", "delete"))
        service.run_all_scans()
        assert service.get_issues_summary().total_count == 3

    def test_summary_still_returned_when_caching_it_fails(self, source, ledger):
        cache = _BrokenCache()
        service = _service_with(source, ledger, cache)
        service.run_all_scans()
        cache.failing = {"setex"}
        assert service.get_issues_summary().total_count == 3


class TestSummaryConsistency:
    def test_summary_computed_during_a_status_change_is_not_served_afterwards(
        self, service, ledger, monkeypatch
    ):
        service.run_all_scans()
        target = service.get_all_issues()[0]
        read_ledger = ledger.get_issues_summary

        def summary_then_concurrent_fix(*args, **kwargs):
            stale = read_ledger(*args, **kwargs)
            monkeypatch.setattr(ledger, "get_issues_summary", read_ledger)
            service.mark_as_fixed(target.id)
            return stale

        monkeypatch.setattr(ledger, "get_issues_summary", summary_then_concurrent_fix)
        assert service.get_issues_summary().total_count == 3  # computed before the fix
        assert service.get_issues_summary().total_count == 2
