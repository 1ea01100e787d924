from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from nexus.records.base import EntityKind, RecordDraft, TenantScopedRecord


class SaaSPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: Decimal = Field(ge=0)
    customer_count: int = Field(default=0, ge=0)


class SaaSProduct(TenantScopedRecord):
    kind = EntityKind.SAAS_PRODUCTS
    id_prefix = "saas"

    name: str
    plans: tuple[SaaSPlan, ...] = ()

    def monthly_recurring_revenue(self) -> Decimal:
        return sum((plan.price * plan.customer_count for plan in self.plans), Decimal("0"))


class SaaSProductDraft(RecordDraft):
    name: str = Field(min_length=1)
    plans: list[SaaSPlan] = Field(default_factory=list)
