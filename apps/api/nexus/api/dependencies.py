from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from nexus.context import set_active_tenant
from nexus.core.auth import AuthUser, get_current_user as get_auth_user
from nexus.platform.tenancy.errors import ImpersonationForbidden
from nexus.platform.tenancy.identity import Actor, IdentityContext, IdentitySession
from nexus.records import EntityKind, User
from nexus.runtime import Runtime


IMPERSONATION_HEADER = "x-impersonate-tenant"


def get_runtime(request: Request) -> Runtime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store not loaded")
    return runtime


async def get_current_account(
    auth_user: AuthUser = Depends(get_auth_user),
    runtime: Runtime = Depends(get_runtime),
) -> User:
    if not auth_user.authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="authentication required")
    user = runtime.store.get(EntityKind.USERS, auth_user.sub)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unknown user")
    return user


async def get_identity_session(
    request: Request,
    user: User = Depends(get_current_account),
    runtime: Runtime = Depends(get_runtime),
) -> IdentitySession:
    session = IdentitySession(actor=Actor.from_user(user))
    impersonated_id = request.headers.get(IMPERSONATION_HEADER)
    if impersonated_id:
        tenant = runtime.store.get_company(impersonated_id)
        if tenant is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="impersonated tenant not found")
        try:
            session.start_impersonation(tenant)
        except ImpersonationForbidden as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    set_active_tenant(session.context.active_tenant_id)
    return session


async def get_identity(session: IdentitySession = Depends(get_identity_session)) -> IdentityContext:
    return session.context
