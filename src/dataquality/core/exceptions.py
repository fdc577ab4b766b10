"""Data quality engine exception hierarchy."""

from __future__ import annotations


class DataQualityError(Exception):
    """Base exception for all data quality engine errors."""


class SourceUnavailableError(DataQualityError):
    """The record store could not be reached; nothing was written."""

    def __init__(self, object_type: str, message: str) -> None:
        self.object_type = object_type
        super().__init__(f"Record store unavailable while reading {object_type}: {message}")


class ScanFailedError(DataQualityError):
    """A scan pass could not persist its results and was rolled back."""


class LedgerError(DataQualityError):
    """Issue ledger read or write failed."""


class IssueNotFoundError(DataQualityError):
    """A status mutation referenced an unknown issue id."""

    def __init__(self, issue_ids: list[str]) -> None:
        self.issue_ids = issue_ids
        super().__init__(f"Issue not found: {', '.join(issue_ids)}")


class InvalidRequestError(DataQualityError):
    """Malformed input to a public operation."""


class CacheError(DataQualityError):
    """Redis cache operation failed."""
