"""Pure entitlement decisions evaluated against the plan catalog.

Every function accepts an optional ``catalog`` keyword; when omitted the
process-wide catalog from ``get_plan_catalog`` is used. Nothing here performs
I/O or mutates state, so the functions are safe to call from any thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.plan_constants import PlanFeature, PlanTier
from services.limit_values import (
    Count,
    LimitValue,
    Unbounded,
    grants_access,
    is_improvement,
)
from services.plan_catalog import (
    EntitlementConfigError,
    FeatureLike,
    PlanCatalog,
    TierLike,
    coerce_plan_feature,
    coerce_plan_tier,
    get_plan_catalog,
)

logger = logging.getLogger(__name__)

USAGE_WARNING_PERCENT = 80.0


class NoTierGrantsFeatureError(EntitlementConfigError):
    """Raised when no tier in the catalog grants a feature (a catalog defect)."""

    def __init__(self, feature: PlanFeature) -> None:
        self.feature = feature
        super().__init__(f"No plan tier grants feature {feature.value!r}")


@dataclass(frozen=True, slots=True)
class EntitlementDecision:
    """Structured answer for a (tier, feature[, usage]) question."""

    tier: PlanTier
    feature: PlanFeature
    allowed: bool
    limit: LimitValue
    required_tier: PlanTier
    upgrade_tier: Optional[PlanTier] = None
    used: Optional[int] = None
    remaining: Optional[int] = None

    @property
    def unlimited(self) -> bool:
        return isinstance(self.limit, Unbounded)


@dataclass(frozen=True, slots=True)
class QuotaUsage:
    """Usage meter figures for a metered feature."""

    used: int
    limit: Optional[int]
    percent_used: Optional[float]
    is_warning: bool
    is_at_limit: bool


def _resolve(catalog: Optional[PlanCatalog]) -> PlanCatalog:
    return catalog if catalog is not None else get_plan_catalog()


def can_access(tier: TierLike, feature: FeatureLike, *, catalog: Optional[PlanCatalog] = None) -> bool:
    """True when the tier can use the feature at all."""
    return grants_access(_resolve(catalog).limit_of(tier, feature))


def is_unlimited(tier: TierLike, feature: FeatureLike, *, catalog: Optional[PlanCatalog] = None) -> bool:
    return isinstance(_resolve(catalog).limit_of(tier, feature), Unbounded)


def numeric_limit(tier: TierLike, feature: FeatureLike, *, catalog: Optional[PlanCatalog] = None) -> Optional[int]:
    """Return the numeric ceiling, or ``None`` when no numeric ceiling applies.

    ``None`` covers both unbounded quotas and non-numeric features, so it must
    not be read as "unlimited access": ``Flag(False)`` also yields ``None``.
    """
    value = _resolve(catalog).limit_of(tier, feature)
    return value.n if isinstance(value, Count) else None


def minimum_tier_for(feature: FeatureLike, *, catalog: Optional[PlanCatalog] = None) -> PlanTier:
    """Return the lowest-ranked tier that grants the feature."""
    resolved = _resolve(catalog)
    key = coerce_plan_feature(feature)
    for tier in resolved.tiers:
        if grants_access(resolved.limit_of(tier, key)):
            return tier
    logger.error("Plan catalog defect: no tier grants %s.", key.value)
    raise NoTierGrantsFeatureError(key)


def next_tier_with_more(
    current_tier: TierLike,
    feature: FeatureLike,
    *,
    catalog: Optional[PlanCatalog] = None,
) -> Optional[PlanTier]:
    """Return the first higher tier that strictly improves the feature, else ``None``."""
    resolved = _resolve(catalog)
    key = coerce_plan_feature(feature)
    current = resolved.limit_of(current_tier, key)
    scale = resolved.level_scale(key)
    for tier in resolved.tiers_above(current_tier):
        if is_improvement(current, resolved.limit_of(tier, key), scale):
            return tier
    return None


def evaluate_entitlement(
    tier: TierLike,
    feature: FeatureLike,
    *,
    current_usage: Optional[int] = None,
    cost: int = 1,
    catalog: Optional[PlanCatalog] = None,
) -> EntitlementDecision:
    """Combine access, limit and upgrade answers into a single decision.

    ``current_usage`` comes from the external usage counter. It only matters for
    count-limited features, where the action is allowed while
    ``current_usage + cost`` stays within the limit.
    """
    if current_usage is not None and current_usage < 0:
        raise ValueError("current_usage cannot be negative")
    if cost < 1:
        raise ValueError("cost must be at least 1")

    resolved = _resolve(catalog)
    tier_key = coerce_plan_tier(tier)
    feature_key = coerce_plan_feature(feature)
    limit = resolved.limit_of(tier_key, feature_key)

    allowed = grants_access(limit)
    remaining: Optional[int] = None
    if isinstance(limit, Count):
        used = current_usage or 0
        remaining = max(limit.n - used, 0)
        if current_usage is not None and allowed:
            allowed = used + cost <= limit.n

    return EntitlementDecision(
        tier=tier_key,
        feature=feature_key,
        allowed=allowed,
        limit=limit,
        required_tier=minimum_tier_for(feature_key, catalog=resolved),
        upgrade_tier=next_tier_with_more(tier_key, feature_key, catalog=resolved),
        used=current_usage,
        remaining=remaining,
    )


def quota_usage(limit: Optional[int], used: int) -> QuotaUsage:
    """Summarise consumption against a numeric limit (``None`` = no numeric ceiling)."""
    if used < 0:
        raise ValueError("used cannot be negative")
    if limit is None:
        return QuotaUsage(used=used, limit=None, percent_used=None, is_warning=False, is_at_limit=False)
    if limit <= 0:
        return QuotaUsage(used=used, limit=limit, percent_used=100.0, is_warning=True, is_at_limit=True)
    percent = min(100.0, used / limit * 100)
    return QuotaUsage(
        used=used,
        limit=limit,
        percent_used=percent,
        is_warning=percent >= USAGE_WARNING_PERCENT,
        is_at_limit=percent >= 100.0,
    )


__all__ = [
    "EntitlementDecision",
    "NoTierGrantsFeatureError",
    "QuotaUsage",
    "USAGE_WARNING_PERCENT",
    "can_access",
    "evaluate_entitlement",
    "is_unlimited",
    "minimum_tier_for",
    "next_tier_with_more",
    "numeric_limit",
    "quota_usage",
]
