from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class PlanDefinition(BaseModel):
    """Static catalog entry. ``None`` limits mean unlimited."""

    model_config = ConfigDict(frozen=True)

    name: str
    monthly_price: Decimal
    yearly_price: Decimal
    max_members: int | None
    max_leads: int | None
    max_projects: int | None
    messaging_automation: bool = False
    ai_lead_search: bool = False
    advanced_reporting: bool = False

    def price_for(self, billing_cycle: str) -> Decimal:
        return self.yearly_price if billing_cycle == "yearly" else self.monthly_price


STARTER = PlanDefinition(
    name="Starter",
    monthly_price=Decimal("97"),
    yearly_price=Decimal("970"),
    max_members=1,
    max_leads=50,
    max_projects=5,
)

PROFESSIONAL = PlanDefinition(
    name="Professional",
    monthly_price=Decimal("197"),
    yearly_price=Decimal("1970"),
    max_members=5,
    max_leads=None,
    max_projects=None,
    messaging_automation=True,
    ai_lead_search=True,
)

BUSINESS = PlanDefinition(
    name="Business",
    monthly_price=Decimal("497"),
    yearly_price=Decimal("4970"),
    max_members=None,
    max_leads=None,
    max_projects=None,
    messaging_automation=True,
    ai_lead_search=True,
    advanced_reporting=True,
)

# cheapest first; upsell messages rely on this order
PLAN_CATALOG: dict[str, PlanDefinition] = {plan.name: plan for plan in (STARTER, PROFESSIONAL, BUSINESS)}

DEFAULT_PLAN = STARTER.name


def get_plan(name: str | None, catalog: dict[str, PlanDefinition] = PLAN_CATALOG) -> PlanDefinition | None:
    return catalog.get(name or DEFAULT_PLAN)
