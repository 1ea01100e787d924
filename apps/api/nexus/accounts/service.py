from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import date, timedelta

from nexus.accounts.schemas import (
    CreatedMember,
    MemberCreate,
    OnboardedTenant,
    OnboardTenantRequest,
    RegistrationRequest,
)
from nexus.business.subscription.catalog import PLAN_CATALOG, PlanDefinition
from nexus.business.subscription.service import UnknownPlanError
from nexus.core.auth import hash_password, verify_password
from nexus.core.periods import add_months
from nexus.platform.tenancy.coordinator import MutationCoordinator
from nexus.platform.tenancy.errors import SuperAdminRequired, TenancyError
from nexus.platform.tenancy.identity import Actor, IdentityContext, resolve_identity
from nexus.records import Company, CompanyDraft, EntityKind, User, UserDraft


logger = logging.getLogger("nexus.tenancy")

REGISTRATION_ACTOR = "self-registration"
BILLING_CYCLE_DAYS = {"monthly": 30, "yearly": 365}


class EmailAlreadyRegistered(ValueError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Email '{email}' is already registered")


def generate_temporary_password() -> str:
    return secrets.token_urlsafe(9)


@dataclass(slots=True)
class AccountService:
    coordinator: MutationCoordinator
    catalog: dict[str, PlanDefinition] = field(default_factory=lambda: PLAN_CATALOG)

    def _ensure_email_free(self, email: str) -> None:
        if self.coordinator.store.find_user_by_email(email) is not None:
            raise EmailAlreadyRegistered(email)

    async def _create_first_user(self, ctx: IdentityContext, company: Company, draft: UserDraft) -> User:
        """Create the first user of a fresh tenant, removing the tenant again if that write fails."""
        try:
            return await self.coordinator.create(ctx, EntityKind.USERS, draft)
        except TenancyError:
            logger.warning("tenant_rolled_back", extra={"tenant_id": company.id, "actor_id": ctx.actor.id})
            await self.coordinator.delete_tenant(ctx, company.id)
            raise

    async def register(self, payload: RegistrationRequest, *, today: date) -> User:
        """Self-service signup: a new tenant on the chosen plan plus its first Admin."""
        self._ensure_email_free(payload.email)
        plan = self.catalog.get(payload.plan)
        if plan is None:
            raise UnknownPlanError(payload.plan)

        company = await self.coordinator.create_tenant(
            CompanyDraft(
                name=payload.company_name,
                tax_id=payload.tax_id,
                contact_name=payload.name,
                contact_email=payload.email,
                contact_phone=payload.phone,
                plan=plan.name,
                subscription_status="Active",
                subscription_due_date=today + timedelta(days=BILLING_CYCLE_DAYS[payload.billing_cycle]),
                subscription_value=plan.price_for(payload.billing_cycle),
                currency="BRL",
                billing_cycle=payload.billing_cycle,
            ),
            actor_id=REGISTRATION_ACTOR,
        )
        ctx = resolve_identity(Actor(id=REGISTRATION_ACTOR, tenant_id=company.id))
        user = await self._create_first_user(
            ctx,
            company,
            UserDraft(
                name=payload.name,
                email=payload.email,
                role="Admin",
                phone=payload.phone or None,
                tax_id=payload.tax_id or None,
                password_hash=hash_password(payload.password),
            ),
        )
        logger.info("tenant_registered", extra={"tenant_id": company.id, "plan": plan.name, "actor_id": user.id})
        return user

    def login(self, email: str, password: str) -> User | None:
        user = self.coordinator.store.find_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    async def onboard_tenant(self, ctx: IdentityContext, payload: OnboardTenantRequest, *, today: date) -> OnboardedTenant:
        if not ctx.has_global_view:
            raise SuperAdminRequired("onboard_tenant")
        if payload.plan is not None and payload.plan not in self.catalog:
            raise UnknownPlanError(payload.plan)
        self._ensure_email_free(payload.admin_email)

        company = await self.coordinator.create_tenant(
            CompanyDraft(
                name=payload.name,
                tax_id=payload.tax_id,
                contact_name=payload.admin_name,
                contact_email=payload.admin_email,
                contact_phone=payload.admin_phone,
                plan=payload.plan,
                subscription_status=payload.subscription_status,
                subscription_due_date=add_months(today, 1),
                subscription_value=payload.subscription_value,
                currency=payload.currency,
                billing_cycle=payload.billing_cycle,
            ),
            actor_id=ctx.actor.id,
        )
        temporary_password = generate_temporary_password()
        admin = await self._create_first_user(
            resolve_identity(ctx.actor, company),
            company,
            UserDraft(
                name=payload.admin_name,
                email=payload.admin_email,
                role="Admin",
                phone=payload.admin_phone or None,
                password_hash=hash_password(temporary_password),
            ),
        )
        return OnboardedTenant(company=company, admin=admin, temporary_password=temporary_password)

    async def add_member(self, ctx: IdentityContext, payload: MemberCreate) -> CreatedMember:
        if payload.role == "SuperAdmin" and not ctx.has_global_view:
            raise SuperAdminRequired("assign SuperAdmin role")
        self._ensure_email_free(payload.email)

        temporary_password = None if payload.password else generate_temporary_password()
        user = await self.coordinator.create(
            ctx,
            EntityKind.USERS,
            UserDraft(
                name=payload.name,
                email=payload.email,
                role=payload.role,
                phone=payload.phone,
                tax_id=payload.tax_id,
                password_hash=hash_password(payload.password or temporary_password),
            ),
        )
        return CreatedMember(user=user, temporary_password=temporary_password)

    async def update_member(self, ctx: IdentityContext, user: User) -> User:
        original = self.coordinator.store.get(EntityKind.USERS, user.id)
        if original is not None and user.email.lower() != original.email.lower():
            self._ensure_email_free(user.email)
        if (
            original is not None
            and user.role == "SuperAdmin"
            and original.role != "SuperAdmin"
            and not ctx.has_global_view
        ):
            raise SuperAdminRequired("assign SuperAdmin role")
        return await self.coordinator.update(ctx, user)

    async def ensure_platform_admin(self, email: str, password: str, *, today: date) -> User:
        """Create the operator tenant and its SuperAdmin on first start; later calls are no-ops."""
        existing = self.coordinator.store.find_user_by_email(email)
        if existing is not None:
            return existing

        company = await self.coordinator.create_tenant(
            CompanyDraft(
                name="Nexus Platform",
                contact_email=email,
                plan="Business",
                subscription_due_date=add_months(today, 12),
                billing_cycle="yearly",
            ),
            actor_id="bootstrap",
        )
        admin = await self._create_first_user(
            resolve_identity(Actor(id="bootstrap", tenant_id=company.id)),
            company,
            UserDraft(
                name="Platform Admin",
                email=email,
                role="SuperAdmin",
                password_hash=hash_password(password),
            ),
        )
        logger.info("platform_admin_created", extra={"tenant_id": company.id, "actor_id": admin.id})
        return admin
