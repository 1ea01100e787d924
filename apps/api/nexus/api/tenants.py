from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from nexus.accounts.schemas import OnboardTenantRequest
from nexus.api.dependencies import get_identity, get_runtime
from nexus.api.errors import DOMAIN_ERRORS, domain_error_response
from nexus.api.schemas import ChangePlanRequest, PaySubscriptionRequest, TenantUpdate
from nexus.business.subscription.service import is_overdue
from nexus.platform.tenancy.errors import RecordNotFound, SuperAdminRequired
from nexus.platform.tenancy.identity import IdentityContext
from nexus.platform.tenancy.scoping import scope_tenants
from nexus.records import COMPANIES
from nexus.runtime import Runtime


router = APIRouter(prefix="/api/tenants", tags=["tenants"])


def _tenant_view(company, today: date) -> dict[str, Any]:
    return {**company.public_view(), "is_overdue": is_overdue(company, today)}


@router.get("")
def list_tenants(
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> list[dict[str, Any]]:
    today = date.today()
    return [_tenant_view(company, today) for company in scope_tenants(runtime.store.companies, ctx)]


@router.post("", status_code=201, response_model=None)
async def onboard_tenant(
    request: Request,
    dto: OnboardTenantRequest,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    try:
        result = await runtime.accounts.onboard_tenant(ctx, dto, today=date.today())
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return {
        "company": result.company.public_view(),
        "admin": result.admin.public_view(),
        "temporary_password": result.temporary_password,
    }


@router.put("/{tenant_id}", response_model=None)
async def update_tenant(
    request: Request,
    tenant_id: str,
    dto: TenantUpdate,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    changes = dto.model_dump(exclude_none=True)
    try:
        if "subscription_status" in changes and not ctx.has_global_view:
            raise SuperAdminRequired("change subscription status")
        company = runtime.store.get_company(tenant_id)
        if company is None:
            raise RecordNotFound(COMPANIES, tenant_id)
        updated = await runtime.coordinator.update_tenant(ctx, company.model_copy(update=changes))
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return _tenant_view(updated, date.today())


@router.post("/{tenant_id}/subscription/pay", response_model=None)
async def pay_subscription(
    request: Request,
    tenant_id: str,
    dto: PaySubscriptionRequest,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    today = date.today()
    try:
        company = await runtime.subscriptions.pay_subscription(ctx, tenant_id, dto.card, today=today)
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return _tenant_view(company, today)


@router.post("/{tenant_id}/subscription/record-payment", response_model=None)
async def record_subscription_payment(
    request: Request,
    tenant_id: str,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    today = date.today()
    try:
        company = await runtime.subscriptions.record_subscription_payment(ctx, tenant_id, today=today)
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return _tenant_view(company, today)


@router.post("/{tenant_id}/subscription/plan", response_model=None)
async def change_plan(
    request: Request,
    tenant_id: str,
    dto: ChangePlanRequest,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    try:
        company = await runtime.subscriptions.change_plan(ctx, tenant_id, dto.plan, dto.billing_cycle)
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return _tenant_view(company, date.today())
