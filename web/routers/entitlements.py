"""Entitlement routes exposing access decisions, upgrade prompts and the plan catalog."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from core.plan_constants import PlanFeature, PlanTier
from schemas.api.entitlements import (
    EntitlementDecisionRequest,
    EntitlementDecisionResponse,
    PlanCatalogResponse,
    UpgradePromptResponse,
)
from services.entitlement_evaluator import evaluate_entitlement
from services.entitlement_serializers import (
    serialize_decision,
    serialize_plan_catalog,
    serialize_upgrade_prompt,
)
from services.plan_catalog import UnknownFeatureError, coerce_plan_feature
from services.plan_service import PlanContext
from web.deps import get_plan_context
from web.quota_guard import enforce_quota

router = APIRouter(prefix="/entitlements", tags=["Entitlements"])


def _feature_or_error(feature: str, *, status_code: int = status.HTTP_404_NOT_FOUND) -> PlanFeature:
    try:
        return coerce_plan_feature(feature)
    except UnknownFeatureError as exc:
        raise HTTPException(
            status_code=status_code,
            detail={"code": "entitlements.unknown_feature", "message": str(exc), "feature": feature},
        ) from exc


@router.get("/catalog", response_model=PlanCatalogResponse, summary="Return every tier with its prices and limits.")
def read_plan_catalog() -> PlanCatalogResponse:
    return serialize_plan_catalog()


@router.post(
    "/decide",
    response_model=EntitlementDecisionResponse,
    summary="Evaluate a tier/feature pair with an optional usage count.",
)
def decide_entitlement(payload: EntitlementDecisionRequest) -> EntitlementDecisionResponse:
    feature = _feature_or_error(payload.feature, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    decision = evaluate_entitlement(
        PlanTier(payload.tier),
        feature,
        current_usage=payload.currentUsage,
        cost=payload.cost,
    )
    return serialize_decision(decision)


@router.get(
    "/{feature}",
    response_model=EntitlementDecisionResponse,
    summary="Evaluate a feature for the current plan context.",
)
def read_entitlement(
    feature: str,
    usage: int | None = Query(default=None, ge=0, description="Current consumption from the usage counter."),
    plan: PlanContext = Depends(get_plan_context),
) -> EntitlementDecisionResponse:
    key = _feature_or_error(feature)
    return serialize_decision(evaluate_entitlement(plan.tier, key, current_usage=usage))


@router.get(
    "/{feature}/upgrade",
    response_model=UpgradePromptResponse,
    summary="Return the tiers to suggest in an upgrade prompt for a feature.",
)
def read_upgrade_prompt(
    feature: str,
    plan: PlanContext = Depends(get_plan_context),
) -> UpgradePromptResponse:
    key = _feature_or_error(feature)
    return serialize_upgrade_prompt(plan.tier, key)


@router.post(
    "/{feature}/authorize",
    response_model=EntitlementDecisionResponse,
    summary="Authorise a metered action against the plan quota.",
)
def authorize_metered_action(
    feature: str,
    used: int = Body(..., ge=0, embed=True, description="Current consumption from the usage counter."),
    cost: int = Body(default=1, ge=1, embed=True),
    plan: PlanContext = Depends(get_plan_context),
) -> EntitlementDecisionResponse:
    key = _feature_or_error(feature)
    decision = enforce_quota(key, plan=plan, used=used, cost=cost)
    return serialize_decision(decision)
