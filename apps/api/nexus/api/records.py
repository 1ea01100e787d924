from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from nexus.accounts.schemas import MemberCreate
from nexus.api.dependencies import get_identity, get_runtime
from nexus.api.errors import DOMAIN_ERRORS, domain_error_response, entitlement_denied_response
from nexus.business.subscription.entitlements import FEATURE_FOR_COLLECTION, FeatureKey, check_limit
from nexus.core.auth import hash_password
from nexus.platform.tenancy.identity import IdentityContext
from nexus.platform.tenancy.scoping import scope_records
from nexus.records import RECORD_TYPES, EntityKind, User
from nexus.runtime import Runtime


router = APIRouter(prefix="/api/records", tags=["records"])
entitlements_router = APIRouter(prefix="/api/entitlements", tags=["entitlements"])


@router.get("/{collection}")
def list_records(
    collection: EntityKind,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> list[dict[str, Any]]:
    return [record.public_view() for record in scope_records(runtime.store.records(collection), ctx)]


@router.post("/{collection}", status_code=201, response_model=None)
async def create_record(
    request: Request,
    collection: EntityKind,
    payload: dict[str, Any] = Body(...),
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    feature = FEATURE_FOR_COLLECTION.get(collection)
    if feature is not None:
        decision = check_limit(feature, ctx, runtime.store)
        if not decision.allowed:
            return entitlement_denied_response(request, decision)

    try:
        if collection is EntityKind.USERS:
            created = await runtime.accounts.add_member(ctx, MemberCreate.model_validate(payload))
            return {**created.user.public_view(), "temporary_password": created.temporary_password}
        record = await runtime.coordinator.create(ctx, collection, payload)
        return record.public_view()
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)


@router.put("/{collection}/{record_id}", response_model=None)
async def update_record(
    request: Request,
    collection: EntityKind,
    record_id: str,
    payload: dict[str, Any] = Body(...),
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any] | JSONResponse:
    document = {**payload, "id": record_id}
    try:
        if collection is EntityKind.USERS:
            user = User.model_validate(_with_password_hash(document, runtime.store.get(collection, record_id)))
            updated = await runtime.accounts.update_member(ctx, user)
        else:
            updated = await runtime.coordinator.update(ctx, RECORD_TYPES[collection].model_validate(document))
        return updated.public_view()
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)


@router.delete("/{collection}/{record_id}", response_model=None)
async def delete_record(
    request: Request,
    collection: EntityKind,
    record_id: str,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, str] | JSONResponse:
    try:
        await runtime.coordinator.delete(ctx, collection, record_id)
    except DOMAIN_ERRORS as exc:
        return domain_error_response(request, exc)
    return {"status": "deleted"}


@entitlements_router.get("/{feature}")
def get_entitlement(
    feature: FeatureKey,
    ctx: IdentityContext = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> dict[str, Any]:
    return check_limit(feature, ctx, runtime.store).model_dump(mode="json")


def _with_password_hash(document: dict[str, Any], stored: Any) -> dict[str, Any]:
    # public views never carry the hash; keep the stored one unless a new password is sent
    password = document.pop("password", None)
    if password:
        document["password_hash"] = hash_password(password)
    elif stored is not None:
        document["password_hash"] = getattr(stored, "password_hash", None)
    return document
