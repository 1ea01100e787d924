from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from nexus.records.base import Currency, EntityKind, Record, RecordDraft, TenantScopedRecord


UserRole = Literal["SuperAdmin", "Admin", "Member"]
SubscriptionStatus = Literal["Active", "Inactive"]
BillingCycle = Literal["monthly", "yearly"]


class User(TenantScopedRecord):
    kind = EntityKind.USERS
    id_prefix = "user"
    private_fields = frozenset({"password_hash"})

    name: str
    email: EmailStr
    role: UserRole = "Member"
    phone: str | None = None
    tax_id: str | None = None
    password_hash: str | None = None


class UserDraft(RecordDraft):
    name: str = Field(min_length=1)
    email: EmailStr
    role: UserRole = "Member"
    phone: str | None = None
    tax_id: str | None = None
    password_hash: str | None = None


class SavedCard(BaseModel):
    """Reference to a stored payment instrument. Raw card numbers are never persisted."""

    model_config = ConfigDict(frozen=True)

    last4: str = Field(pattern=r"^\d{4}$")
    expiry: str = Field(pattern=r"^(0[1-9]|1[0-2])/\d{2}$")


class SubscriptionPayment(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    paid_on: date
    amount: Decimal
    payment_method: str | None = None


class Company(Record):
    """A tenant. Tenant-scoped records point at it through ``tenant_id``."""

    name: str
    tax_id: str = ""
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    plan: str | None = None
    subscription_status: SubscriptionStatus = "Active"
    subscription_due_date: date
    subscription_value: Decimal = Decimal("0")
    currency: Currency = "BRL"
    billing_cycle: BillingCycle = "monthly"
    payment_history: tuple[SubscriptionPayment, ...] = ()
    saved_card: SavedCard | None = None


class CompanyDraft(RecordDraft):
    name: str = Field(min_length=1)
    tax_id: str = ""
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    plan: str | None = None
    subscription_status: SubscriptionStatus = "Active"
    subscription_due_date: date
    subscription_value: Decimal = Field(default=Decimal("0"), ge=0)
    currency: Currency = "BRL"
    billing_cycle: BillingCycle = "monthly"
