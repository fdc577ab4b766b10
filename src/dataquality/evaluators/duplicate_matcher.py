"""DuplicateMatcher: clusters Accounts sharing a normalized name + contact key."""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import NamedTuple, Optional

from dataquality.models.issues import Finding, IssueType
from dataquality.models.records import (
    FieldRequest,
    ObjectType,
    RecordField,
    Snapshot,
    SourceRecord,
)

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^0-9a-z]")
_URL_PREFIX = re.compile(r"^(https?://)?(www\.)?")

# Severity signals
LARGE_CLUSTER = "large_cluster"
EXACT_CONTACT_MATCH = "exact_contact_match"
NAME_AND_CONTACT = "name_and_contact"


def normalize(value: Optional[str]) -> str:
    """Lower-case, drop punctuation, collapse internal whitespace."""
    if not value:
        return ""
    text = _PUNCTUATION.sub("", value.lower())
    return _WHITESPACE.sub(" ", text).strip()


def normalize_contact(value: Optional[str], *, url: bool = False) -> str:
    """Lower-case and keep only letters and digits."""
    if not value:
        return ""
    text = value.strip().lower()
    if url:
        text = _URL_PREFIX.sub("", text).rstrip("/")
    return _NON_ALNUM.sub("", text)


class _Member(NamedTuple):
    record: SourceRecord
    key: str
    phone: str
    website: str


def _member(record: SourceRecord) -> Optional[_Member]:
    name = normalize(record.name)
    phone = normalize_contact(record.phone)
    website = normalize_contact(record.website, url=True)
    contact = phone or website
    if not name or not contact:
        return None
    return _Member(record=record, key=f"{name}|{contact}", phone=phone, website=website)


def _cluster_signal(members: list[_Member]) -> str:
    if len(members) >= 3:
        return LARGE_CLUSTER
    first = members[0]
    if first.phone and first.website and all(
        m.phone == first.phone and m.website == first.website for m in members
    ):
        return EXACT_CONTACT_MATCH
    return NAME_AND_CONTACT


class DuplicateMatcher:
    """Emit one finding per Account in every cluster of two or more."""

    issue_type = IssueType.DUPLICATE
    requirements = [
        FieldRequest(
            object_type=ObjectType.ACCOUNT,
            fields=(
                RecordField.ID,
                RecordField.OWNER,
                RecordField.NAME,
                RecordField.PHONE,
                RecordField.WEBSITE,
            ),
        )
    ]

    def evaluate(self, snapshot: Snapshot) -> list[Finding]:
        clusters: dict[str, list[_Member]] = defaultdict(list)
        for record in snapshot.get(ObjectType.ACCOUNT, []):
            try:
                member = _member(record)
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning("duplicates: skipping malformed record %s: %s", record.id, exc)
                continue
            if member is not None:
                clusters[member.key].append(member)

        findings: list[Finding] = []
        for key in sorted(clusters):
            members = sorted(clusters[key], key=lambda m: m.record.id)
            if len(members) < 2:
                continue
            signal = _cluster_signal(members)
            for member in members:
                others = ", ".join(
                    f'"{o.record.name}"' for o in members if o.record.id != member.record.id
                )
                findings.append(
                    Finding(
                        issue_type=self.issue_type,
                        record_id=member.record.id,
                        object_type=member.record.object_type,
                        record_owner=member.record.owner,
                        description=f"Possible duplicate of {others}",
                        signal=signal,
                    )
                )
        return findings
