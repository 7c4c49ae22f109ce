"""Shared helpers for serialising entitlement decisions and the plan catalog."""

from __future__ import annotations

from typing import Optional, cast

from core.plan_constants import PlanFeature, PlanTier
from schemas.api.entitlements import (
    EntitlementDecisionResponse,
    LimitValueSchema,
    PlanCatalogResponse,
    PlanCatalogTierSchema,
    PlanPriceSchema,
    UpgradePromptResponse,
)
from schemas.api.entitlements import PlanTier as PlanTierLiteral
from services.entitlement_evaluator import (
    EntitlementDecision,
    can_access,
    minimum_tier_for,
    next_tier_with_more,
)
from services.limit_values import LimitValue, Unbounded, limit_kind, limit_to_raw
from services.plan_catalog import PlanCatalog, get_plan_catalog
from services.plan_labels import get_feature_label, get_feature_labels, get_plan_label
from services.plan_pricing import price_summary


def _tier_literal(tier: PlanTier) -> PlanTierLiteral:
    return cast(PlanTierLiteral, tier.value)


def serialize_limit(value: LimitValue) -> LimitValueSchema:
    return LimitValueSchema(
        kind=limit_kind(value),
        value=limit_to_raw(value),
        unlimited=isinstance(value, Unbounded),
    )


def serialize_price(tier: PlanTier, *, catalog: Optional[PlanCatalog] = None) -> PlanPriceSchema:
    return PlanPriceSchema(**price_summary(tier, catalog=catalog))


def serialize_decision(decision: EntitlementDecision) -> EntitlementDecisionResponse:
    """Convert an ``EntitlementDecision`` into the API response schema."""

    return EntitlementDecisionResponse(
        tier=_tier_literal(decision.tier),
        feature=decision.feature.value,
        featureLabel=get_feature_label(decision.feature),
        allowed=decision.allowed,
        limit=serialize_limit(decision.limit),
        requiredTier=_tier_literal(decision.required_tier),
        upgradeTier=_tier_literal(decision.upgrade_tier) if decision.upgrade_tier else None,
        used=decision.used,
        remaining=decision.remaining,
    )


def serialize_upgrade_prompt(
    tier: PlanTier,
    feature: PlanFeature,
    *,
    catalog: Optional[PlanCatalog] = None,
) -> UpgradePromptResponse:
    resolved = catalog if catalog is not None else get_plan_catalog()
    required = minimum_tier_for(feature, catalog=resolved)
    upgrade = next_tier_with_more(tier, feature, catalog=resolved)
    return UpgradePromptResponse(
        feature=feature.value,
        featureLabel=get_feature_label(feature),
        currentTier=_tier_literal(tier),
        hasAccess=can_access(tier, feature, catalog=resolved),
        requiredTier=_tier_literal(required),
        requiredTierLabel=get_plan_label(required),
        requiredTierPrice=serialize_price(required, catalog=resolved),
        upgradeTier=_tier_literal(upgrade) if upgrade else None,
        upgradeTierLabel=get_plan_label(upgrade) if upgrade else None,
        upgradeTierPrice=serialize_price(upgrade, catalog=resolved) if upgrade else None,
    )


def serialize_plan_catalog(catalog: Optional[PlanCatalog] = None) -> PlanCatalogResponse:
    resolved = catalog if catalog is not None else get_plan_catalog()
    tiers = [
        PlanCatalogTierSchema(
            tier=_tier_literal(tier),
            label=get_plan_label(tier),
            rank=resolved.tier_rank(tier),
            price=serialize_price(tier, catalog=resolved),
            limits={feature.value: serialize_limit(value) for feature, value in resolved.limits[tier].items()},
        )
        for tier in resolved.tiers
    ]
    return PlanCatalogResponse(
        tiers=tiers,
        featureLabels=get_feature_labels(),
        levels={feature.value: list(scale.levels) for feature, scale in resolved.level_scales.items()},
    )


__all__ = [
    "serialize_decision",
    "serialize_limit",
    "serialize_plan_catalog",
    "serialize_price",
    "serialize_upgrade_prompt",
]
