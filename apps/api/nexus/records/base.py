from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, ClassVar, Literal, Self

from pydantic import BaseModel, ConfigDict


Currency = Literal["BRL", "USD", "EUR"]

CURRENCY_SYMBOLS: dict[str, str] = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
}


class EntityKind(StrEnum):
    USERS = "users"
    CLIENTS = "clients"
    PARTNERS = "partners"
    PROJECTS = "projects"
    SAAS_PRODUCTS = "saas_products"
    LEADS = "leads"
    TRANSACTIONS = "transactions"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class Record(BaseModel):
    """Immutable stored record. Changes are made with ``model_copy(update=...)``."""

    model_config = ConfigDict(frozen=True)

    private_fields: ClassVar[frozenset[str]] = frozenset()

    id: str

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def public_view(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude=set(self.private_fields))


class RecordDraft(BaseModel):
    """Caller-supplied fields for a new record; ids, ownership and defaults are assigned on create."""

    model_config = ConfigDict(extra="forbid")


class TenantScopedRecord(Record):
    kind: ClassVar[EntityKind]
    id_prefix: ClassVar[str] = "rec"

    tenant_id: str

    @classmethod
    def from_draft(cls, draft: RecordDraft, *, record_id: str, tenant_id: str, now: datetime) -> Self:
        return cls(id=record_id, tenant_id=tenant_id, **draft.model_dump())
