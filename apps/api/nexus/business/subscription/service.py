from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from nexus.business.subscription.catalog import PLAN_CATALOG, PlanDefinition
from nexus.core.periods import add_months
from nexus.platform.tenancy.coordinator import MutationCoordinator
from nexus.platform.tenancy.errors import RecordNotFound, SuperAdminRequired
from nexus.platform.tenancy.identity import IdentityContext
from nexus.records import COMPANIES, Company, SavedCard, SubscriptionPayment, new_record_id


logger = logging.getLogger("nexus.tenancy")


class UnknownPlanError(ValueError):
    def __init__(self, plan_name: str) -> None:
        self.plan_name = plan_name
        super().__init__(f"Unknown plan '{plan_name}'")


def is_overdue(company: Company, today: date) -> bool:
    return company.subscription_due_date < today


@dataclass(slots=True)
class SubscriptionService:
    coordinator: MutationCoordinator
    catalog: dict[str, PlanDefinition] = field(default_factory=lambda: PLAN_CATALOG)

    def _tenant(self, tenant_id: str) -> Company:
        company = self.coordinator.store.get_company(tenant_id)
        if company is None:
            raise RecordNotFound(COMPANIES, tenant_id)
        return company

    async def pay_subscription(
        self,
        ctx: IdentityContext,
        tenant_id: str,
        card: SavedCard | None = None,
        *,
        today: date,
    ) -> Company:
        """Renew for one month, counted from the later of the current due date and today."""
        company = self._tenant(tenant_id)
        base = max(company.subscription_due_date, today)
        payment = SubscriptionPayment(
            id=new_record_id("subpay"),
            paid_on=today,
            amount=company.subscription_value,
            payment_method="card" if card is not None else None,
        )
        changes: dict = {
            "subscription_status": "Active",
            "subscription_due_date": add_months(base, 1),
            "payment_history": (payment, *company.payment_history),
        }
        if card is not None:
            changes["saved_card"] = card
        return await self.coordinator.update_tenant(ctx, company.model_copy(update=changes))

    async def record_subscription_payment(self, ctx: IdentityContext, tenant_id: str, *, today: date) -> Company:
        """Manual reconciliation by a SuperAdmin; the due date moves on from where it was."""
        if not ctx.has_global_view:
            raise SuperAdminRequired("record_subscription_payment")
        company = self._tenant(tenant_id)
        payment = SubscriptionPayment(
            id=new_record_id("subpay-admin"),
            paid_on=today,
            amount=company.subscription_value,
            payment_method="manual",
        )
        updated = company.model_copy(
            update={
                "subscription_status": "Active",
                "subscription_due_date": add_months(company.subscription_due_date, 1),
                "payment_history": (payment, *company.payment_history),
            }
        )
        return await self.coordinator.update_tenant(ctx, updated)

    async def change_plan(
        self,
        ctx: IdentityContext,
        tenant_id: str,
        plan_name: str,
        billing_cycle: str | None = None,
    ) -> Company:
        plan = self.catalog.get(plan_name)
        if plan is None:
            raise UnknownPlanError(plan_name)
        company = self._tenant(tenant_id)
        cycle = billing_cycle or company.billing_cycle
        # revalidated so an unsupported billing cycle is rejected
        updated = Company.model_validate(
            company.model_dump()
            | {"plan": plan.name, "billing_cycle": cycle, "subscription_value": plan.price_for(cycle)}
        )
        logger.info(
            "plan_changed",
            extra={"tenant_id": tenant_id, "plan": plan.name, "actor_id": ctx.actor.id},
        )
        return await self.coordinator.update_tenant(ctx, updated)
