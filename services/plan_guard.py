"""Plan entitlement enforcement helpers used across API handlers and workers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from core.plan_constants import PlanFeature, PlanTier
from services.limit_values import Count
from services.entitlement_evaluator import EntitlementDecision, evaluate_entitlement
from services.plan_catalog import FeatureLike, PlanCatalog, TierLike, coerce_plan_feature, coerce_plan_tier
from services.plan_labels import get_feature_label, get_plan_label
from services.plan_service import PlanContext


@dataclass(slots=True)
class PlanGuardError(RuntimeError):
    """Raised when the active plan does not satisfy a required entitlement."""

    code: str
    message: str
    feature: Optional[str] = None
    plan_tier: Optional[str] = None
    required_tier: Optional[str] = None
    upgrade_tier: Optional[str] = None
    limit: Optional[int] = None
    remaining: Optional[int] = None

    def __post_init__(self) -> None:
        RuntimeError.__init__(self, self.message)

    @property
    def quota_exhausted(self) -> bool:
        return self.code == "plan.quota_exceeded"

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.feature:
            detail["feature"] = self.feature
        if self.plan_tier:
            detail["planTier"] = self.plan_tier
        if self.required_tier:
            detail["requiredTier"] = self.required_tier
        if self.upgrade_tier:
            detail["upgradeTier"] = self.upgrade_tier
        if self.limit is not None:
            detail["limit"] = self.limit
            detail["remaining"] = self.remaining
        return detail


def _tier_of(plan: Union[PlanContext, TierLike]) -> PlanTier:
    if isinstance(plan, PlanContext):
        return plan.tier
    return coerce_plan_tier(plan)


def ensure_feature_access(
    plan: Union[PlanContext, TierLike],
    feature: FeatureLike,
    *,
    catalog: Optional[PlanCatalog] = None,
) -> EntitlementDecision:
    """Return the decision when the plan can use ``feature``; raise otherwise."""

    tier = _tier_of(plan)
    key: PlanFeature = coerce_plan_feature(feature)
    decision = evaluate_entitlement(tier, key, catalog=catalog)
    if decision.allowed:
        return decision
    required_label = get_plan_label(decision.required_tier)
    raise PlanGuardError(
        code="plan.upgrade_required",
        message=f"{get_feature_label(key)} is available on the {required_label} plan.",
        feature=key.value,
        plan_tier=tier.value,
        required_tier=decision.required_tier.value,
        upgrade_tier=decision.upgrade_tier.value if decision.upgrade_tier else None,
    )


def ensure_quota_available(
    plan: Union[PlanContext, TierLike],
    feature: FeatureLike,
    *,
    used: int,
    cost: int = 1,
    catalog: Optional[PlanCatalog] = None,
) -> EntitlementDecision:
    """Check a metered action against the limit and the external usage count."""

    tier = _tier_of(plan)
    key: PlanFeature = coerce_plan_feature(feature)
    decision = evaluate_entitlement(tier, key, current_usage=used, cost=cost, catalog=catalog)
    if decision.allowed:
        return decision

    plan_label = get_plan_label(tier)
    feature_label = get_feature_label(key)
    numeric = decision.limit.n if isinstance(decision.limit, Count) else None
    if numeric:
        code = "plan.quota_exceeded"
        message = f"You have used all {numeric} {feature_label} included in the {plan_label} plan."
    else:
        code = "plan.quota_unavailable"
        message = f"{feature_label} is not included in the {plan_label} plan."
    raise PlanGuardError(
        code=code,
        message=message,
        feature=key.value,
        plan_tier=tier.value,
        required_tier=decision.required_tier.value,
        upgrade_tier=decision.upgrade_tier.value if decision.upgrade_tier else None,
        limit=numeric,
        remaining=decision.remaining,
    )


__all__ = ["PlanGuardError", "ensure_feature_access", "ensure_quota_available"]
