from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from opentelemetry.trace import Status, StatusCode

from nexus import audit, events
from nexus.metrics import observe_mutation, observe_mutation_rejected, observe_persistence_failure
from nexus.otel import mutation_span
from nexus.platform.tenancy.errors import (
    CrossTenantMutationForbidden,
    NoActiveTenant,
    PersistenceError,
    RecordNotFound,
    TenantReassignmentForbidden,
)
from nexus.platform.tenancy.identity import Actor, IdentityContext
from nexus.platform.tenancy.storage import StorageBackend
from nexus.platform.tenancy.store import EntityStore
from nexus.records import (
    COMPANIES,
    DRAFT_TYPES,
    RECORD_TYPES,
    Company,
    CompanyDraft,
    EntityKind,
    Record,
    RecordDraft,
    TenantScopedRecord,
    new_record_id,
    utcnow,
)


logger = logging.getLogger("nexus.tenancy")

COMPANY_ID_PREFIX = "comp"


@dataclass(slots=True)
class MutationCoordinator:
    """Two-phase create/update/delete: persist through storage, then commit to the store.

    The store is touched only after the storage call returned, with no await in
    between, so a failed persist leaves it exactly as it was.
    """

    store: EntityStore
    storage: StorageBackend

    async def create(
        self,
        ctx: IdentityContext,
        kind: EntityKind,
        draft: RecordDraft | Mapping[str, Any],
    ) -> TenantScopedRecord:
        collection = kind.value
        tenant_id = ctx.active_tenant_id
        if not tenant_id:
            self._reject(ctx, collection, None, "no_active_tenant")
            raise NoActiveTenant(collection)

        validated = _coerce_draft(DRAFT_TYPES[kind], draft)
        record_cls = RECORD_TYPES[kind]
        record = record_cls.from_draft(
            validated,
            record_id=new_record_id(record_cls.id_prefix),
            tenant_id=tenant_id,
            now=utcnow(),
        )

        await self._persist(ctx, "create", collection, record, self.storage.save)
        self.store.append(record)
        self._committed(ctx, "create", collection, record, before=None, after=record)
        return record

    async def update(self, ctx: IdentityContext, record: TenantScopedRecord) -> TenantScopedRecord:
        collection = record.kind.value
        original = self.store.get(record.kind, record.id)
        if original is None:
            self._reject(ctx, collection, record.id, "not_found")
            raise RecordNotFound(collection, record.id)
        if record.tenant_id != original.tenant_id:
            self._reject(ctx, collection, record.id, "tenant_reassignment")
            raise TenantReassignmentForbidden(collection, record.id, original.tenant_id, record.tenant_id)
        self._ensure_owned(ctx, collection, original.id, original.tenant_id)

        await self._persist(ctx, "update", collection, record, self.storage.update)
        self.store.replace(record)
        self._committed(ctx, "update", collection, record, before=original, after=record)
        return record

    async def delete(self, ctx: IdentityContext, kind: EntityKind, record_id: str) -> None:
        collection = kind.value
        original = self.store.get(kind, record_id)
        if original is None:
            logger.debug("record_delete_noop", extra={"collection": collection, "record_id": record_id})
            return
        self._ensure_owned(ctx, collection, original.id, original.tenant_id)

        async def _delete(target_collection: str, target: Record) -> None:
            await self.storage.delete(target_collection, target.id)

        await self._persist(ctx, "delete", collection, original, _delete)
        self.store.remove(kind, record_id)
        self._committed(ctx, "delete", collection, original, before=original, after=None)

    async def create_tenant(self, draft: CompanyDraft | Mapping[str, Any], *, actor_id: str) -> Company:
        """Create a tenant. Who may do so (self-registration, SuperAdmin onboarding) is decided by the caller."""
        validated = _coerce_draft(CompanyDraft, draft)
        company = Company(id=new_record_id(COMPANY_ID_PREFIX), **validated.model_dump())
        ctx = _system_context(actor_id, company.id)

        await self._persist(ctx, "create", COMPANIES, company, self.storage.save)
        self.store.append_company(company)
        self._committed(ctx, "create", COMPANIES, company, before=None, after=company)
        return company

    async def update_tenant(self, ctx: IdentityContext, company: Company) -> Company:
        original = self.store.get_company(company.id)
        if original is None:
            self._reject(ctx, COMPANIES, company.id, "not_found")
            raise RecordNotFound(COMPANIES, company.id)
        self._ensure_owned(ctx, COMPANIES, company.id, company.id)

        await self._persist(ctx, "update", COMPANIES, company, self.storage.update)
        self.store.replace_company(company)
        self._committed(ctx, "update", COMPANIES, company, before=original, after=company)
        return company

    async def delete_tenant(self, ctx: IdentityContext, tenant_id: str) -> None:
        """Remove a tenant row. Used to roll back a signup whose first user could not be stored."""
        original = self.store.get_company(tenant_id)
        if original is None:
            return
        self._ensure_owned(ctx, COMPANIES, tenant_id, tenant_id)

        async def _delete(target_collection: str, target: Record) -> None:
            await self.storage.delete(target_collection, target.id)

        await self._persist(ctx, "delete", COMPANIES, original, _delete)
        self.store.remove_company(tenant_id)
        self._committed(ctx, "delete", COMPANIES, original, before=original, after=None)

    def _ensure_owned(self, ctx: IdentityContext, collection: str, record_id: str, owner_id: str) -> None:
        if ctx.has_global_view or owner_id == ctx.active_tenant_id:
            return
        self._reject(ctx, collection, record_id, "cross_tenant")
        raise CrossTenantMutationForbidden(collection, record_id, ctx.active_tenant_id)

    def _reject(self, ctx: IdentityContext, collection: str, record_id: str | None, reason: str) -> None:
        observe_mutation_rejected(collection=collection, reason=reason)
        logger.warning(
            "mutation_rejected",
            extra={
                "collection": collection,
                "record_id": record_id,
                "tenant_id": ctx.active_tenant_id,
                "actor_id": ctx.actor.id,
                "error": reason,
            },
        )

    async def _persist(
        self,
        ctx: IdentityContext,
        action: str,
        collection: str,
        record: Record,
        call: Callable[[str, Any], Awaitable[None]],
    ) -> None:
        started = time.perf_counter()
        with mutation_span(collection, action, tenant_id=ctx.active_tenant_id, actor_id=ctx.actor.id) as span:
            span.set_attribute("tenancy.record_id", record.id)
            try:
                await call(collection, record)
            except PersistenceError as exc:
                observe_persistence_failure(collection=collection, action=action)
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                logger.warning(
                    "mutation_persist_failed",
                    extra={
                        "collection": collection,
                        "record_id": record.id,
                        "action": action,
                        "tenant_id": ctx.active_tenant_id,
                        "actor_id": ctx.actor.id,
                        "error": str(exc)[:500],
                    },
                )
                raise
        observe_mutation(collection=collection, action=action, duration=time.perf_counter() - started)

    def _committed(
        self,
        ctx: IdentityContext,
        action: str,
        collection: str,
        record: Record,
        *,
        before: Record | None,
        after: Record | None,
    ) -> None:
        tenant_id = getattr(record, "tenant_id", record.id)
        audit.record(
            actor_user_id=ctx.actor.id,
            tenant_id=tenant_id,
            entity_type=f"tenancy.{collection}",
            entity_id=record.id,
            action=f"{collection}.{action}",
            before=before.public_view() if before is not None else None,
            after=after.public_view() if after is not None else None,
        )
        events.publish(
            events.build_envelope(
                f"tenancy.record.{action}",
                actor_user_id=ctx.actor.id,
                tenant_id=tenant_id,
                payload={"collection": collection, "record_id": record.id},
            )
        )
        logger.info(
            f"record_{action}",
            extra={
                "collection": collection,
                "record_id": record.id,
                "action": action,
                "tenant_id": tenant_id,
                "actor_id": ctx.actor.id,
            },
        )


def _coerce_draft(draft_cls: type[RecordDraft], draft: RecordDraft | Mapping[str, Any]) -> RecordDraft:
    if isinstance(draft, draft_cls):
        return draft
    if isinstance(draft, RecordDraft):
        return draft_cls.model_validate(draft.model_dump())
    return draft_cls.model_validate(dict(draft))


def _system_context(actor_id: str, tenant_id: str) -> IdentityContext:
    return IdentityContext(actor=Actor(id=actor_id, tenant_id=tenant_id))
