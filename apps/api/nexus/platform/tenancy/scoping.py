from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TypeVar

from nexus.platform.tenancy.identity import IdentityContext
from nexus.platform.tenancy.store import EntityStore
from nexus.records import Company, EntityKind, TenantScopedRecord


T = TypeVar("T", bound=TenantScopedRecord)

FALLBACK_TENANT_NAME = "Company"


def scope_records(records: Iterable[T], ctx: IdentityContext) -> list[T]:
    """Narrow ``records`` to what ``ctx`` may see, preserving input order.

    A SuperAdmin who is not impersonating sees everything. Anyone else sees only
    records owned by the active tenant; records pointing at a tenant that no longer
    exists simply never match.
    """

    if ctx.has_global_view:
        return list(records)
    active_tenant_id = ctx.active_tenant_id
    if active_tenant_id is None:
        return []
    return [record for record in records if record.tenant_id == active_tenant_id]


def scope_tenants(companies: Iterable[Company], ctx: IdentityContext) -> list[Company]:
    """Tenants are matched on their own id rather than on an owning ``tenant_id``."""

    if ctx.has_global_view:
        return list(companies)
    active_tenant_id = ctx.active_tenant_id
    if active_tenant_id is None:
        return []
    return [company for company in companies if company.id == active_tenant_id]


def scope_collections(store: EntityStore, ctx: IdentityContext) -> dict[str, Sequence[TenantScopedRecord | Company]]:
    scoped: dict[str, Sequence[TenantScopedRecord | Company]] = {
        "companies": scope_tenants(store.companies, ctx),
    }
    for kind in EntityKind:
        scoped[kind.value] = scope_records(store.records(kind), ctx)
    return scoped


def scoped_count(store: EntityStore, kind: EntityKind, ctx: IdentityContext) -> int:
    return len(scope_records(store.records(kind), ctx))


def active_tenant_name(store: EntityStore, ctx: IdentityContext) -> str:
    company = store.get_company(ctx.active_tenant_id)
    if company is not None:
        return company.name
    if ctx.active_tenant_id and ctx.active_tenant_id.strip():
        return ctx.active_tenant_id
    return FALLBACK_TENANT_NAME
