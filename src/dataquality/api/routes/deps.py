"""Request-scoped dependencies."""

from __future__ import annotations

from fastapi import Request

from dataquality.services.data_quality import DataQualityService


def get_service(request: Request) -> DataQualityService:
    return request.app.state.service
