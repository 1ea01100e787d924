from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from nexus.api.dependencies import get_identity, get_runtime
from nexus.api.errors import DOMAIN_ERRORS, domain_error_response
from nexus.api.schemas import PaymentStatusUpdate
from nexus.platform.tenancy.identity import IdentityContext
from nexus.runtime import Runtime


router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("/{project_id}/payments/{payment_id}/status", response_model=None)
async def update_payment_status(
    request: Request,
    project_id: str,
    payment_id: str,
    dto: PaymentStatusUpdate,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    try:
        project = await runtime.projects.update_payment_status(ctx, project_id, payment_id, dto.status)
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return project.public_view()
