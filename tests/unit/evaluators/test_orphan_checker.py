"""Tests for OrphanChecker."""

from __future__ import annotations

from dataquality.evaluators.orphan_checker import ORPHAN_CONTACT, ORPHAN_REVENUE, OrphanChecker
from dataquality.models.issues import IssueType
from dataquality.models.records import ObjectType, RecordField
from tests.fakes import record

A = ObjectType.ACCOUNT
C = ObjectType.CONTACT
O = ObjectType.OPPORTUNITY
CS = ObjectType.CASE


def _snapshot(children):
    snapshot = {A: [record(A, "001A"), record(A, "001B")]}
    snapshot.update(children)
    return snapshot


class TestOrphanChecker:
    def test_contact_without_account(self):
        findings = OrphanChecker().evaluate(_snapshot({C: [record(C, "003A", parent_id=None)]}))
        assert len(findings) == 1
        assert findings[0].issue_type == IssueType.ORPHANED_RECORD
        assert findings[0].signal == ORPHAN_CONTACT
        assert findings[0].description == "Contact has no Account"

    def test_dangling_reference_behaves_like_empty(self):
        findings = OrphanChecker().evaluate(_snapshot({C: [record(C, "003A", parent_id="001Z")]}))
        assert len(findings) == 1
        assert findings[0].signal == ORPHAN_CONTACT
        assert findings[0].description.startswith("Contact has no Account")
        assert "001Z" in findings[0].description

    def test_opportunities_and_cases_are_revenue_orphans(self):
        snapshot = _snapshot({
            O: [record(O, "006A", parent_id=""), record(O, "006B", parent_id="001A")],
            CS: [record(CS, "500A", parent_id="gone")],
        })
        findings = OrphanChecker().evaluate(snapshot)
        assert {(f.record_id, f.signal) for f in findings} == {
            ("006A", ORPHAN_REVENUE),
            ("500A", ORPHAN_REVENUE),
        }

    def test_valid_parents_produce_nothing(self):
        snapshot = _snapshot({C: [record(C, "003A", parent_id="001A")]})
        assert OrphanChecker().evaluate(snapshot) == []

    def test_parent_ids_are_fetched_as_ids_only(self):
        account_request = next(
            r for r in OrphanChecker.requirements if r.object_type == ObjectType.ACCOUNT
        )
        assert account_request.fields == (RecordField.ID,)
