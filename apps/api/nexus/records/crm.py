from __future__ import annotations

from datetime import datetime
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field

from nexus.records.base import EntityKind, RecordDraft, TenantScopedRecord


LeadStatus = Literal["New", "Contacted", "Qualified", "Proposal", "Won", "Lost"]


class Client(TenantScopedRecord):
    kind = EntityKind.CLIENTS
    id_prefix = "cli"

    name: str
    company_name: str = ""
    email: str = ""
    phone: str = ""
    cpf: str = ""
    cnpj: str = ""


class ClientDraft(RecordDraft):
    name: str = Field(min_length=1)
    company_name: str = ""
    email: str = ""
    phone: str = ""
    cpf: str = ""
    cnpj: str = ""


class Partner(TenantScopedRecord):
    kind = EntityKind.PARTNERS
    id_prefix = "par"

    name: str
    role: str = ""
    hourly_rate: float = 0
    is_available: bool = True

    @classmethod
    def from_draft(cls, draft: RecordDraft, *, record_id: str, tenant_id: str, now: datetime) -> Self:
        return cls(id=record_id, tenant_id=tenant_id, is_available=True, **draft.model_dump())


class PartnerDraft(RecordDraft):
    name: str = Field(min_length=1)
    role: str = ""
    hourly_rate: float = Field(default=0, ge=0)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    sender: Literal["user", "lead"]
    timestamp: datetime


class Lead(TenantScopedRecord):
    kind = EntityKind.LEADS
    id_prefix = "lead"

    name: str
    phone: str = ""
    email: str | None = None
    address: str | None = None
    status: LeadStatus = "New"
    source: str = "Manual"
    notes: str | None = None
    created_at: datetime
    messages: tuple[ChatMessage, ...] = ()

    @classmethod
    def from_draft(cls, draft: RecordDraft, *, record_id: str, tenant_id: str, now: datetime) -> Self:
        data = draft.model_dump()
        data["messages"] = data.get("messages") or ()
        return cls(id=record_id, tenant_id=tenant_id, created_at=now, **data)


class LeadDraft(RecordDraft):
    name: str = Field(min_length=1)
    phone: str = ""
    email: str | None = None
    address: str | None = None
    status: LeadStatus = "New"
    source: str = "Manual"
    notes: str | None = None
    messages: list[ChatMessage] | None = None
