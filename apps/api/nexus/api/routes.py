from typing import Any

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from nexus.api.auth import router as auth_router
from nexus.api.projects import router as projects_router
from nexus.api.records import entitlements_router, router as records_router
from nexus.api.tenants import router as tenants_router
from nexus.business.subscription.catalog import PLAN_CATALOG
from nexus.core.config import get_settings
from nexus.metrics import generate_metrics_payload, metrics_content_type

router = APIRouter()
router.include_router(auth_router)
router.include_router(records_router)
router.include_router(entitlements_router)
router.include_router(tenants_router)
router.include_router(projects_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/api/plans", tags=["plans"])
def list_plans() -> list[dict[str, Any]]:
    return [plan.model_dump(mode="json") for plan in PLAN_CATALOG.values()]


@router.get("/metrics", tags=["system"])
def metrics() -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
