"""Shared plumbing for rule evaluators."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from dataquality.models.issues import Finding
from dataquality.models.records import SourceRecord

logger = logging.getLogger(__name__)

RecordCheck = Callable[[SourceRecord], Optional[Finding]]


def check_each(records: Iterable[SourceRecord], check: RecordCheck, rule: str) -> list[Finding]:
    """Apply ``check`` to every record, skipping records the check cannot read.

    A single malformed record must not abort the rest of the snapshot.
    """
    findings: list[Finding] = []
    for record in records:
        try:
            finding = check(record)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning(
                "%s: skipping malformed record %s: %s", rule, getattr(record, "id", "<no id>"), exc
            )
            continue
        if finding is not None:
            findings.append(finding)
    return findings


def is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
