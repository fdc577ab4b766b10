"""PhoneValidator: letters, length and known-fake checks on phone numbers."""

from __future__ import annotations

import re
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

MIN_DIGITS = 7
MAX_DIGITS = 15  # E.164

_LETTERS = re.compile(r"[A-Za-z]")
_NON_DIGIT = re.compile(r"\D")

ASCENDING = "01234567890123456789"
DESCENDING = "98765432109876543210"

FAKE_NUMBERS = frozenset({
    "5555555555",
    "5551234567",
    "1234567890",
    "0123456789",
    "9876543210",
    "8675309",
    "18005555555",
})

# Severity signals
CONTAINS_LETTERS = "contains_letters"
INVALID_LENGTH = "invalid_length"
FAKE_PATTERN = "fake_pattern"

_FIELDS = (RecordField.ID, RecordField.OWNER, RecordField.PHONE)
_OBJECT_TYPES = (ObjectType.ACCOUNT, ObjectType.CONTACT, ObjectType.LEAD)


def is_fake(digits: str) -> bool:
    """All one digit, a run up or down the keypad, or a blacklisted number."""
    if len(set(digits)) == 1:
        return True
    if digits in ASCENDING or digits in DESCENDING:
        return True
    return digits in FAKE_NUMBERS


class PhoneValidator:
    """Flag Account/Contact/Lead phone numbers that cannot be dialled."""

    issue_type = IssueType.INVALID_PHONE
    requirements = [FieldRequest(object_type=t, fields=_FIELDS) for t in _OBJECT_TYPES]

    def evaluate(self, snapshot: Snapshot) -> list[Finding]:
        findings: list[Finding] = []
        for object_type in _OBJECT_TYPES:
            findings.extend(check_each(snapshot.get(object_type, []), self.check, "phone"))
        return findings

    def check(self, record: SourceRecord) -> Optional[Finding]:
        if is_blank(record.phone):
            return None
        phone = record.phone.strip()

        if _LETTERS.search(phone):
            return self._finding(record, f"Contains letters: {phone}", CONTAINS_LETTERS)

        digits = _NON_DIGIT.sub("", phone)
        if not MIN_DIGITS <= len(digits) <= MAX_DIGITS:
            return self._finding(
                record, f"Invalid length ({len(digits)} digits): {phone}", INVALID_LENGTH
            )

        if is_fake(digits):
            return self._finding(record, f"Suspicious/fake number: {phone}", FAKE_PATTERN)
        return None

    def _finding(self, record: SourceRecord, description: str, signal: str) -> Finding:
        return Finding(
            issue_type=self.issue_type,
            record_id=record.id,
            object_type=record.object_type,
            record_owner=record.owner,
            description=description,
            signal=signal,
        )
