from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from nexus.accounts.service import EmailAlreadyRegistered
from nexus.business.subscription.entitlements import EntitlementDecision
from nexus.business.subscription.service import UnknownPlanError
from nexus.context import get_correlation_id
from nexus.platform.tenancy.errors import (
    CrossTenantMutationForbidden,
    ImpersonationForbidden,
    NoActiveTenant,
    PersistenceError,
    RecordNotFound,
    SuperAdminRequired,
    TenancyError,
    TenantReassignmentForbidden,
)


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=payload.__dict__)


_TENANCY_ERRORS: list[tuple[type[TenancyError], int, str]] = [
    (NoActiveTenant, status.HTTP_409_CONFLICT, "no_active_tenant"),
    (TenantReassignmentForbidden, status.HTTP_403_FORBIDDEN, "tenant_reassignment_forbidden"),
    (CrossTenantMutationForbidden, status.HTTP_403_FORBIDDEN, "cross_tenant_mutation_forbidden"),
    (ImpersonationForbidden, status.HTTP_403_FORBIDDEN, "impersonation_forbidden"),
    (SuperAdminRequired, status.HTTP_403_FORBIDDEN, "super_admin_required"),
    (RecordNotFound, status.HTTP_404_NOT_FOUND, "record_not_found"),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE, "persistence_failed"),
]


def domain_error_response(request: Request, exc: Exception) -> JSONResponse:
    """Render a tenancy, plan, account or validation failure as an error envelope."""

    if isinstance(exc, TenancyError):
        for error_type, status_code, code in _TENANCY_ERRORS:
            if isinstance(exc, error_type):
                return error_response(request, status_code=status_code, code=code, message=str(exc))
        return error_response(request, status_code=status.HTTP_400_BAD_REQUEST, code="tenancy_error", message=str(exc))
    if isinstance(exc, UnknownPlanError):
        return error_response(
            request,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="unknown_plan",
            message=str(exc),
            details={"plan": exc.plan_name},
        )
    if isinstance(exc, EmailAlreadyRegistered):
        return error_response(request, status_code=status.HTTP_409_CONFLICT, code="email_already_registered", message=str(exc))
    if isinstance(exc, ValidationError):
        return error_response(
            request,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_failed",
            message="Request payload failed validation",
            details=json.loads(exc.json(include_url=False)),
        )
    raise exc


def entitlement_denied_response(request: Request, decision: EntitlementDecision) -> JSONResponse:
    return error_response(
        request,
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        code="entitlement_denied",
        message=decision.reason or "Plan limit reached",
        details=decision.model_dump(mode="json"),
    )


DOMAIN_ERRORS = (TenancyError, UnknownPlanError, EmailAlreadyRegistered, ValidationError)
