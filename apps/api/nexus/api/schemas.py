from __future__ import annotations

from typing import Any

from pydantic import BaseModel, EmailStr, Field

from nexus.records import SavedCard
from nexus.records.accounts import BillingCycle, SubscriptionStatus
from nexus.records.projects import PaymentStatus


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict[str, Any]


class PaySubscriptionRequest(BaseModel):
    card: SavedCard | None = None


class ChangePlanRequest(BaseModel):
    plan: str = Field(min_length=1)
    billing_cycle: BillingCycle | None = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class TenantUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    tax_id: str | None = None
    contact_name: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None
    subscription_status: SubscriptionStatus | None = None
