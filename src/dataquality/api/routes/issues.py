"""Issue listing, summary and triage endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from dataquality.api.routes.deps import get_service
from dataquality.models.issues import Issue, IssueSummary
from dataquality.services.data_quality import ALL_TYPES, DataQualityService

router = APIRouter(tags=["issues"])


class BulkFixRequest(BaseModel):
    issue_ids: list[str]


class MessageResponse(BaseModel):
    message: str


@router.get("", response_model=list[Issue])
def list_issues(
    issue_type: str = Query(ALL_TYPES, alias="type"),
    service: DataQualityService = Depends(get_service),
) -> list[Issue]:
    """Open issues, most severe and newest first, optionally filtered by type label."""
    return service.get_issues_by_type(issue_type)


@router.get("/summary", response_model=IssueSummary)
def summary(service: DataQualityService = Depends(get_service)) -> IssueSummary:
    return service.get_issues_summary()


@router.post("/bulk-fix", response_model=MessageResponse)
def bulk_fix(
    body: BulkFixRequest, service: DataQualityService = Depends(get_service)
) -> MessageResponse:
    return MessageResponse(message=service.bulk_mark_as_fixed(body.issue_ids))


@router.post("/{issue_id}/fix", response_model=MessageResponse)
def fix(issue_id: str, service: DataQualityService = Depends(get_service)) -> MessageResponse:
    return MessageResponse(message=service.mark_as_fixed(issue_id))


@router.post("/{issue_id}/ignore", response_model=MessageResponse)
def ignore(issue_id: str, service: DataQualityService = Depends(get_service)) -> MessageResponse:
    return MessageResponse(message=service.mark_as_ignored(issue_id))
