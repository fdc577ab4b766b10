"""Scan trigger endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dataquality.api.routes.deps import get_service
from dataquality.models.scan import ScanResult
from dataquality.services.data_quality import DataQualityService

router = APIRouter(tags=["scans"])


@router.post("", response_model=ScanResult)
def run_all_scans(service: DataQualityService = Depends(get_service)) -> ScanResult:
    """Run every evaluator and reconcile the findings into the issue ledger."""
    return service.run_all_scans()
