"""EmailValidator: format and common-domain-typo checks for Contact and Lead emails."""

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

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

# Misspelled domain -> intended domain. Exact lookups only, no fuzzy matching.
DOMAIN_TYPOS: dict[str, str] = {
    "gmial.com": "gmail.com",
    "gmai.com": "gmail.com",
    "gmal.com": "gmail.com",
    "gamil.com": "gmail.com",
    "gnail.com": "gmail.com",
    "gmail.co": "gmail.com",
    "gmail.cm": "gmail.com",
    "yahooo.com": "yahoo.com",
    "yaho.com": "yahoo.com",
    "yhoo.com": "yahoo.com",
    "yahoo.co": "yahoo.com",
    "hotmial.com": "hotmail.com",
    "hotmai.com": "hotmail.com",
    "hotmal.com": "hotmail.com",
    "hotmil.com": "hotmail.com",
    "outlok.com": "outlook.com",
    "outloo.com": "outlook.com",
    "outlook.co": "outlook.com",
    "iclod.com": "icloud.com",
    "icloud.co": "icloud.com",
}

# Severity signals
INVALID_FORMAT = "invalid_format"
DOMAIN_TYPO = "domain_typo"

_FIELDS = (RecordField.ID, RecordField.OWNER, RecordField.EMAIL)


class EmailValidator:
    """Flag Contact/Lead emails that are malformed or use a misspelled domain."""

    issue_type = IssueType.INVALID_EMAIL
    requirements = [
        FieldRequest(object_type=ObjectType.CONTACT, fields=_FIELDS),
        FieldRequest(object_type=ObjectType.LEAD, fields=_FIELDS),
    ]

    def evaluate(self, snapshot: Snapshot) -> list[Finding]:
        findings: list[Finding] = []
        for object_type in (ObjectType.CONTACT, ObjectType.LEAD):
            findings.extend(check_each(snapshot.get(object_type, []), self.check, "email"))
        return findings

    def check(self, record: SourceRecord) -> Optional[Finding]:
        if is_blank(record.email):
            return None
        email = record.email.strip()

        if not EMAIL_PATTERN.match(email):
            return self._finding(record, f"Invalid format: {email}", INVALID_FORMAT)

        domain = email.rsplit("@", 1)[1].lower()
        suggestion = DOMAIN_TYPOS.get(domain)
        if suggestion is not None:
            return self._finding(record, f"Likely typo of {suggestion}: {email}", DOMAIN_TYPO)
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
