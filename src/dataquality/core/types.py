"""Type aliases used across the data quality engine."""

from __future__ import annotations

RecordId = str
IssueId = str
IssueKey = tuple[RecordId, str]  # (record_id, issue type value)
