"""Helper utilities for plan-based quota enforcement in request handlers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from core.plan_constants import PlanFeature
from services.entitlement_evaluator import EntitlementDecision
from services.plan_guard import PlanGuardError, ensure_quota_available
from services.plan_service import PlanContext

logger = logging.getLogger(__name__)

_PROBLEM_TYPE = "https://docs.inboxarchive.app/errors/plan-quota"


def enforce_quota(
    feature: PlanFeature,
    *,
    plan: PlanContext,
    used: int,
    cost: int = 1,
) -> EntitlementDecision:
    """Check ``used`` (from the usage counter) against the plan and raise RFC7807 errors.

    403 when the plan does not include the feature, 429 when its quota is spent.
    """

    try:
        return ensure_quota_available(plan, feature, used=used, cost=cost)
    except PlanGuardError as exc:
        status_code = status.HTTP_429_TOO_MANY_REQUESTS if exc.quota_exhausted else status.HTTP_403_FORBIDDEN
        logger.info(
            "quota.blocked",
            extra={"feature": feature.value, "planTier": plan.tier.value, "used": used, "limit": exc.limit},
        )
        detail = {
            "type": _PROBLEM_TYPE,
            "title": exc.message,
            "status": status_code,
            "detail": exc.message,
            "quota": {
                "feature": feature.value,
                "used": used,
                "limit": exc.limit,
                "remaining": exc.remaining,
                "cost": cost,
            },
            **exc.to_detail(),
        }
        raise HTTPException(status_code=status_code, detail=detail) from exc
