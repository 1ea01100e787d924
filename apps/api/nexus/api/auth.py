from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from nexus.accounts.schemas import LoginRequest, RegistrationRequest
from nexus.api.dependencies import get_identity_session, get_runtime
from nexus.api.errors import DOMAIN_ERRORS, domain_error_response, error_response
from nexus.api.schemas import TokenResponse
from nexus.business.subscription.catalog import DEFAULT_PLAN
from nexus.core.auth import create_access_token
from nexus.platform.tenancy.identity import IdentitySession
from nexus.platform.tenancy.scoping import active_tenant_name
from nexus.records import User
from nexus.runtime import Runtime


router = APIRouter(prefix="/api", tags=["auth"])


def _token_for(user: User) -> TokenResponse:
    return TokenResponse(access_token=create_access_token(user.id), user=user.public_view())


@router.post("/auth/register", status_code=201, response_model=None)
async def register(
    request: Request,
    dto: RegistrationRequest,
    runtime: Runtime = Depends(get_runtime),
) -> TokenResponse | JSONResponse:
    try:
        user = await runtime.accounts.register(dto, today=date.today())
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return _token_for(user)


@router.post("/auth/login", response_model=None)
def login(
    request: Request,
    dto: LoginRequest,
    runtime: Runtime = Depends(get_runtime),
) -> TokenResponse | JSONResponse:
    user = runtime.accounts.login(dto.email, dto.password)
    if user is None:
        return error_response(
            request,
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="invalid_credentials",
            message="Invalid email or password",
        )
    return _token_for(user)


@router.get("/me")
def me(
    session: IdentitySession = Depends(get_identity_session),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any]:
    ctx = session.context
    company = runtime.store.get_company(ctx.active_tenant_id)
    return {
        "actor": {
            "id": ctx.actor.id,
            "name": ctx.actor.name,
            "email": ctx.actor.email,
            "role": ctx.actor.role,
            "tenant_id": ctx.actor.tenant_id,
        },
        "active_tenant_id": ctx.active_tenant_id,
        "active_tenant_name": active_tenant_name(runtime.store, ctx),
        "plan": (company.plan if company is not None else None) or DEFAULT_PLAN,
        "is_super_admin": ctx.is_super_admin,
        "is_impersonating": ctx.is_impersonating,
        "active_view": session.active_view,
    }
