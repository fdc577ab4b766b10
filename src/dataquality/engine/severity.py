"""SeverityClassifier: single place where rule signals become severities."""

from __future__ import annotations

from typing import Mapping

from dataquality.core.exceptions import InvalidRequestError
from dataquality.evaluators import duplicate_matcher, email_validator, orphan_checker, phone_validator
from dataquality.models.issues import IssueType, Severity

_LABELS = frozenset(t.value for t in IssueType)

DEFAULT_POLICY: dict[tuple[IssueType, str], Severity] = {
    (IssueType.DUPLICATE, duplicate_matcher.LARGE_CLUSTER): Severity.HIGH,
    (IssueType.DUPLICATE, duplicate_matcher.EXACT_CONTACT_MATCH): Severity.HIGH,
    (IssueType.DUPLICATE, duplicate_matcher.NAME_AND_CONTACT): Severity.MEDIUM,
    (IssueType.INVALID_EMAIL, email_validator.INVALID_FORMAT): Severity.HIGH,
    (IssueType.INVALID_EMAIL, email_validator.DOMAIN_TYPO): Severity.MEDIUM,
    (IssueType.INVALID_PHONE, phone_validator.CONTAINS_LETTERS): Severity.HIGH,
    (IssueType.INVALID_PHONE, phone_validator.INVALID_LENGTH): Severity.HIGH,
    (IssueType.INVALID_PHONE, phone_validator.FAKE_PATTERN): Severity.MEDIUM,
    (IssueType.ORPHANED_RECORD, orphan_checker.ORPHAN_REVENUE): Severity.HIGH,
    (IssueType.ORPHANED_RECORD, orphan_checker.ORPHAN_CONTACT): Severity.MEDIUM,
}


class SeverityClassifier:
    """Resolve ``(issue_type, signal)`` to a Severity.

    Overrides are keyed either by issue type label (``"Invalid Phone"``), which
    applies to every signal of that rule, or by ``"<label>:<signal>"`` for a
    single signal. The more specific key wins. Unknown signals fall back to Low.
    """

    def __init__(self, overrides: Mapping[str, Severity] | None = None) -> None:
        self._overrides: dict[str, Severity] = {}
        for key, severity in (overrides or {}).items():
            label = key.split(":", 1)[0]
            if label not in _LABELS:
                raise InvalidRequestError(f"Unknown issue type in severity override: {key!r}")
            self._overrides[key] = Severity(severity)

    def classify(self, issue_type: IssueType, signal: str) -> Severity:
        specific = self._overrides.get(f"{issue_type.value}:{signal}")
        if specific is not None:
            return specific
        general = self._overrides.get(issue_type.value)
        if general is not None:
            return general
        return DEFAULT_POLICY.get((issue_type, signal), Severity.LOW)
