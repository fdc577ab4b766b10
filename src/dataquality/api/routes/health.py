"""Health check endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from dataquality.api.routes.deps import get_service
from dataquality.services.data_quality import DataQualityService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
def ready(service: DataQualityService = Depends(get_service)) -> dict[str, Any]:
    return service.health_check()
