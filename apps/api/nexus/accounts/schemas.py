from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from nexus.records import Company, User
from nexus.records.accounts import BillingCycle, SubscriptionStatus
from nexus.records.base import Currency


class RegistrationRequest(BaseModel):
    company_name: str = Field(min_length=1)
    tax_id: str = ""
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = ""
    password: str = Field(min_length=6)
    plan: str = "Starter"
    billing_cycle: BillingCycle = "monthly"


class LoginRequest(BaseModel):
    email: str
    password: str


class OnboardTenantRequest(BaseModel):
    name: str = Field(min_length=1)
    tax_id: str = ""
    plan: str | None = None
    subscription_value: Decimal = Field(default=Decimal("0"), ge=0)
    currency: Currency = "BRL"
    subscription_status: SubscriptionStatus = "Active"
    billing_cycle: BillingCycle = "monthly"
    admin_name: str = Field(min_length=1)
    admin_email: EmailStr
    admin_phone: str = ""


class MemberCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    role: Literal["SuperAdmin", "Admin", "Member"] = "Member"
    phone: str | None = None
    tax_id: str | None = None
    password: str | None = Field(default=None, min_length=6)


class CreatedMember(BaseModel):
    """A new user plus the generated password, which is shown exactly once."""

    user: User
    temporary_password: str | None = None


class OnboardedTenant(BaseModel):
    company: Company
    admin: User
    temporary_password: str
