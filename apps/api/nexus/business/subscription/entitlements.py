from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from nexus.business.subscription.catalog import DEFAULT_PLAN, PLAN_CATALOG, PlanDefinition
from nexus.metrics import observe_entitlement_denied, observe_unknown_plan
from nexus.platform.tenancy.identity import IdentityContext
from nexus.platform.tenancy.scoping import scoped_count
from nexus.platform.tenancy.store import EntityStore
from nexus.records import EntityKind


logger = logging.getLogger("nexus.entitlements")


class FeatureKey(StrEnum):
    MEMBERS = "members"
    LEADS = "leads"
    PROJECTS = "projects"
    MESSAGING_AUTOMATION = "messaging_automation"
    AI_LEAD_SEARCH = "ai_lead_search"
    ADVANCED_REPORTING = "advanced_reporting"


# countable feature -> (collection counted, PlanDefinition limit attribute)
COUNTABLE_FEATURES: dict[FeatureKey, tuple[EntityKind, str]] = {
    FeatureKey.MEMBERS: (EntityKind.USERS, "max_members"),
    FeatureKey.LEADS: (EntityKind.LEADS, "max_leads"),
    FeatureKey.PROJECTS: (EntityKind.PROJECTS, "max_projects"),
}

FEATURE_NAMES: dict[FeatureKey, str] = {
    FeatureKey.MEMBERS: "Team members",
    FeatureKey.LEADS: "Leads",
    FeatureKey.PROJECTS: "Projects",
    FeatureKey.MESSAGING_AUTOMATION: "Messaging automation",
    FeatureKey.AI_LEAD_SEARCH: "AI lead search",
    FeatureKey.ADVANCED_REPORTING: "Advanced reporting",
}

# collection whose creation consumes a countable feature
FEATURE_FOR_COLLECTION: dict[EntityKind, FeatureKey] = {kind: feature for feature, (kind, _) in COUNTABLE_FEATURES.items()}


class EntitlementDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    feature: FeatureKey
    plan: str | None = None
    required_plan: str | None = None
    limit: int | None = None
    usage: int | None = None


def check_limit(
    feature: FeatureKey | str,
    ctx: IdentityContext,
    store: EntityStore,
    catalog: dict[str, PlanDefinition] = PLAN_CATALOG,
) -> EntitlementDecision:
    """Pre-flight check of ``feature`` against the active tenant's plan.

    Returns data only. It never raises and never blocks a mutation by itself;
    callers decide what to do with a denial.
    """

    feature = FeatureKey(feature)
    if ctx.has_global_view:
        return EntitlementDecision(allowed=True, feature=feature)

    company = store.get_company(ctx.active_tenant_id)
    plan_name = (company.plan if company is not None else None) or DEFAULT_PLAN
    plan = catalog.get(plan_name)
    if plan is None:
        observe_unknown_plan(plan=plan_name)
        logger.warning(
            "unknown_plan",
            extra={"plan": plan_name, "feature": feature.value, "tenant_id": ctx.active_tenant_id},
        )
        return EntitlementDecision(allowed=True, feature=feature, plan=plan_name)

    if feature in COUNTABLE_FEATURES:
        kind, limit_attr = COUNTABLE_FEATURES[feature]
        limit: int | None = getattr(plan, limit_attr)
        usage = scoped_count(store, kind, ctx)
        if limit is None or usage < limit:
            return EntitlementDecision(allowed=True, feature=feature, plan=plan.name, limit=limit, usage=usage)
        required = _cheapest_plan(catalog, lambda candidate: _exceeds(getattr(candidate, limit_attr), limit))
        reason = f"The {plan.name} plan allows up to {limit} {feature.value}."
        if required is not None:
            reason += f" Upgrade to {required} to add more."
        return _denied(feature, ctx, plan.name, reason, required_plan=required, limit=limit, usage=usage)

    if getattr(plan, feature.value):
        return EntitlementDecision(allowed=True, feature=feature, plan=plan.name)
    required = _cheapest_plan(catalog, lambda candidate: bool(getattr(candidate, feature.value)))
    reason = f"{FEATURE_NAMES[feature]} is not included in the {plan.name} plan."
    if required is not None:
        reason += f" It is available from the {required} plan."
    return _denied(feature, ctx, plan.name, reason, required_plan=required)


def _exceeds(candidate_limit: int | None, limit: int) -> bool:
    return candidate_limit is None or candidate_limit > limit


def _cheapest_plan(catalog: dict[str, PlanDefinition], predicate) -> str | None:
    for plan in sorted(catalog.values(), key=lambda item: item.monthly_price):
        if predicate(plan):
            return plan.name
    return None


def _denied(
    feature: FeatureKey,
    ctx: IdentityContext,
    plan_name: str,
    reason: str,
    *,
    required_plan: str | None,
    limit: int | None = None,
    usage: int | None = None,
) -> EntitlementDecision:
    observe_entitlement_denied(feature=feature.value, plan=plan_name)
    logger.info(
        "entitlement_denied",
        extra={
            "feature": feature.value,
            "plan": plan_name,
            "limit": limit,
            "usage": usage,
            "tenant_id": ctx.active_tenant_id,
            "actor_id": ctx.actor.id,
        },
    )
    return EntitlementDecision(
        allowed=False,
        reason=reason,
        feature=feature,
        plan=plan_name,
        required_plan=required_plan,
        limit=limit,
        usage=usage,
    )
