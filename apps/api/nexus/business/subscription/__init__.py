from nexus.business.subscription.catalog import DEFAULT_PLAN, PLAN_CATALOG, PlanDefinition, get_plan
from nexus.business.subscription.entitlements import (
    FEATURE_FOR_COLLECTION,
    EntitlementDecision,
    FeatureKey,
    check_limit,
)
from nexus.business.subscription.service import SubscriptionService, UnknownPlanError, is_overdue

__all__ = [
    "DEFAULT_PLAN",
    "PLAN_CATALOG",
    "PlanDefinition",
    "get_plan",
    "FeatureKey",
    "FEATURE_FOR_COLLECTION",
    "EntitlementDecision",
    "check_limit",
    "SubscriptionService",
    "UnknownPlanError",
    "is_overdue",
]
