from __future__ import annotations

from fastapi import APIRouter

from models.schemas import HealthStatus

from ..app_info import VERSION

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthStatus)
def health() -> HealthStatus:
    return HealthStatus(status="ok", version=VERSION)


__all__ = ["router"]
