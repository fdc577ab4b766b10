"""OrphanChecker: records whose required parent Account is missing."""

from __future__ import annotations

from typing import Optional

from dataquality.evaluators.base import check_each, is_blank
from dataquality.models.issues import Finding, IssueType
from dataquality.models.records import (
    FieldRequest,
    ObjectType,
    RecordField,
    Snapshot,
    SourceRecord,
)

# Child type -> parent type of its required lookup.
REQUIRED_PARENTS: dict[ObjectType, ObjectType] = {
    ObjectType.CONTACT: ObjectType.ACCOUNT,
    ObjectType.OPPORTUNITY: ObjectType.ACCOUNT,
    ObjectType.CASE: ObjectType.ACCOUNT,
}

# Severity signals
ORPHAN_REVENUE = "orphan_revenue"  # Opportunity/Case: breaks reporting and revenue tracking
ORPHAN_CONTACT = "orphan_contact"

_CHILD_FIELDS = (RecordField.ID, RecordField.OWNER, RecordField.PARENT_ID)


class OrphanChecker:
    """Flag Contacts, Opportunities and Cases with no valid parent Account."""

    issue_type = IssueType.ORPHANED_RECORD
    requirements = [
        FieldRequest(object_type=ObjectType.ACCOUNT, fields=(RecordField.ID,)),
    ] + [FieldRequest(object_type=child, fields=_CHILD_FIELDS) for child in REQUIRED_PARENTS]

    def evaluate(self, snapshot: Snapshot) -> list[Finding]:
        parent_ids: dict[ObjectType, set[str]] = {
            parent: {r.id for r in snapshot.get(parent, [])}
            for parent in set(REQUIRED_PARENTS.values())
        }
        findings: list[Finding] = []
        for child, parent in REQUIRED_PARENTS.items():
            valid = parent_ids[parent]
            findings.extend(
                check_each(
                    snapshot.get(child, []),
                    lambda record, parent=parent, valid=valid: self.check(record, parent, valid),
                    "orphans",
                )
            )
        return findings

    def check(
        self, record: SourceRecord, parent: ObjectType, valid_parent_ids: set[str]
    ) -> Optional[Finding]:
        if is_blank(record.parent_id):
            description = f"{record.object_type} has no {parent}"
        elif record.parent_id.strip() not in valid_parent_ids:
            description = (
                f"{record.object_type} has no {parent} "
                f"(references missing {parent} {record.parent_id.strip()})"
            )
        else:
            return None

        signal = ORPHAN_CONTACT if record.object_type == ObjectType.CONTACT else ORPHAN_REVENUE
        return Finding(
            issue_type=self.issue_type,
            record_id=record.id,
            object_type=record.object_type,
            record_owner=record.owner,
            description=description,
            signal=signal,
        )
