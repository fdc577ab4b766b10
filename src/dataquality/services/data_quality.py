"""DataQualityService: the operations the dashboard and CLI call.

Wraps the scan orchestrator and the issue ledger, caches the summary header
and turns every mutation into a user-displayable message.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from pydantic import BaseModel

from dataquality.core.config import AppSettings
from dataquality.core.exceptions import CacheError, InvalidRequestError
from dataquality.core.protocols import ICacheBackend, IEvaluator, IIssueLedger, IRecordSource
from dataquality.engine.orchestrator import ScanOrchestrator
from dataquality.models.issues import Issue, IssueStatus, IssueSummary, IssueType
from dataquality.models.scan import ScanResult
from dataquality.persistence import create_persistence

logger = logging.getLogger(__name__)

ALL_TYPES = "All"
SUMMARY_CACHE_KEY = "issues:summary"
SUMMARY_GENERATION_KEY = "issues:summary:generation"
GENERATION_TTL = 7 * 24 * 3600

_TYPE_LOOKUP = {t.value.replace(" ", "").lower(): t for t in IssueType}


def parse_issue_type(label: str) -> IssueType:
    """Accept a dashboard label ("Invalid Email") or its compact form ("InvalidEmail")."""
    issue_type = _TYPE_LOOKUP.get(label.replace(" ", "").replace("_", "").lower())
    if issue_type is None:
        choices = ", ".join([ALL_TYPES, *(t.value for t in IssueType)])
        raise InvalidRequestError(f"Unknown issue type {label!r}; expected one of: {choices}")
    return issue_type


class _CachedSummary(BaseModel):
    generation: str
    summary: IssueSummary


class DataQualityService:
    """Scan, query and triage data quality issues."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        source: IRecordSource,
        ledger: IIssueLedger,
        cache: ICacheBackend,
        evaluators: Sequence[IEvaluator] | None = None,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._cache = cache
        self._orchestrator = ScanOrchestrator(
            source=source, ledger=ledger, evaluators=evaluators, config=settings.scan
        )

    # ---- scanning ----

    def run_all_scans(self) -> ScanResult:
        result = self._orchestrator.run_all_scans()
        self._invalidate_summary()
        return result

    # ---- reads ----

    def get_issues_summary(self) -> IssueSummary:
        """Open issue counts, served from the cache while its generation is current.

        Entries are tagged with the generation read before the ledger query, and
        every mutation starts a new generation, so a summary computed concurrently
        with a mutation is never served after it. Cache failures fall back to the
        ledger.
        """
        try:
            generation = self._summary_generation()
            cached = self._cache.get(SUMMARY_CACHE_KEY)
        except CacheError as exc:
            logger.warning("Summary cache unavailable, reading ledger: %s", exc)
            return self._ledger.get_issues_summary()

        if cached is not None:
            entry = _CachedSummary.model_validate_json(cached)
            if entry.generation == generation:
                return entry.summary

        summary = self._ledger.get_issues_summary()
        entry = _CachedSummary(generation=generation, summary=summary)
        try:
            self._cache.setex(SUMMARY_CACHE_KEY, self._settings.redis.summary_ttl, entry.model_dump_json())
        except CacheError as exc:
            logger.warning("Could not cache issue summary: %s", exc)
        return summary

    def _summary_generation(self) -> str:
        generation = self._cache.get(SUMMARY_GENERATION_KEY)
        if generation is None:
            generation = uuid.uuid4().hex
            self._cache.setex(SUMMARY_GENERATION_KEY, GENERATION_TTL, generation)
        return generation

    def get_all_issues(self) -> list[Issue]:
        return self._ledger.get_all_issues()

    def get_issues_by_type(self, issue_type: str) -> list[Issue]:
        if issue_type == ALL_TYPES:
            return self.get_all_issues()
        return self._ledger.get_issues_by_type(parse_issue_type(issue_type))

    # ---- triage ----

    def mark_as_fixed(self, issue_id: str) -> str:
        self._set_status([issue_id], IssueStatus.FIXED)
        return "Issue marked as fixed"

    def mark_as_ignored(self, issue_id: str) -> str:
        self._set_status([issue_id], IssueStatus.IGNORED)
        return "Issue marked as ignored"

    def bulk_mark_as_fixed(self, issue_ids: list[str]) -> str:
        if not issue_ids:
            raise InvalidRequestError("No issues selected")
        updated = self._set_status(issue_ids, IssueStatus.FIXED)
        return f"{len(updated)} issues marked as fixed"

    def _set_status(self, issue_ids: list[str], status: IssueStatus) -> list[Issue]:
        if any(not issue_id or not issue_id.strip() for issue_id in issue_ids):
            raise InvalidRequestError("Issue id must not be empty")
        if len(issue_ids) == 1:
            updated = [self._ledger.set_status(issue_ids[0], status)]
        else:
            updated = self._ledger.bulk_set_status(issue_ids, status)
        logger.info("Marked %d issues as %s", len(updated), status)
        self._invalidate_summary()
        return updated

    def _invalidate_summary(self) -> None:
        try:
            self._cache.setex(SUMMARY_GENERATION_KEY, GENERATION_TTL, uuid.uuid4().hex)
            self._cache.delete(SUMMARY_CACHE_KEY)
        except CacheError as exc:
            # the write is committed; a stale summary expires after summary_ttl
            logger.warning("Could not invalidate issue summary cache: %s", exc)

    def health_check(self) -> dict[str, Any]:
        return {
            "service": self.__class__.__name__,
            "status": "healthy",
            "environment": self._settings.environment,
        }


def build_service(settings: AppSettings | None = None) -> DataQualityService:
    """Wire a service against the backends selected by ``settings.backend``."""
    settings = settings or AppSettings()
    source, ledger, cache = create_persistence(settings)
    return DataQualityService(settings=settings, source=source, ledger=ledger, cache=cache)
