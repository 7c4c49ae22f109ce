from __future__ import annotations

import pytest
from fastapi import HTTPException

from core.plan_constants import PlanFeature, PlanTier
from services.plan_guard import PlanGuardError, ensure_feature_access, ensure_quota_available
from services.plan_service import PlanContext
from web.deps import require_plan_feature


def _make_plan(tier: PlanTier = PlanTier.PRO) -> PlanContext:
    return PlanContext(tier=tier, base_tier=tier)


def test_ensure_feature_access_allows_when_granted() -> None:
    decision = ensure_feature_access(_make_plan(PlanTier.PRO), PlanFeature.CAMPAIGN_CALENDAR)
    assert decision.allowed is True


def test_ensure_feature_access_raises_naming_required_tier() -> None:
    with pytest.raises(PlanGuardError) as exc:
        ensure_feature_access(_make_plan(PlanTier.FREE), "analytics")
    detail = exc.value.to_detail()
    assert detail["code"] == "plan.upgrade_required"
    assert detail["feature"] == "analytics"
    assert detail["planTier"] == "free"
    assert detail["requiredTier"] == "starter"
    assert "Starter" in detail["message"]


def test_ensure_feature_access_accepts_plain_tier() -> None:
    assert ensure_feature_access("agency", "bulk_export").allowed is True


def test_ensure_quota_available_under_limit() -> None:
    decision = ensure_quota_available(PlanTier.STARTER, PlanFeature.COLLECTIONS, used=3)
    assert decision.remaining == 12


def test_ensure_quota_available_exhausted() -> None:
    with pytest.raises(PlanGuardError) as exc:
        ensure_quota_available(PlanTier.FREE, PlanFeature.COLLECTIONS, used=5)
    assert exc.value.code == "plan.quota_exceeded"
    assert exc.value.quota_exhausted is True
    detail = exc.value.to_detail()
    assert detail["limit"] == 5
    assert detail["remaining"] == 0
    assert detail["upgradeTier"] == "starter"


def test_ensure_quota_available_for_feature_outside_plan() -> None:
    with pytest.raises(PlanGuardError) as exc:
        ensure_quota_available(PlanTier.STARTER, PlanFeature.ALERTS, used=0)
    assert exc.value.code == "plan.quota_unavailable"
    assert exc.value.quota_exhausted is False
    assert exc.value.required_tier == "pro"


def test_ensure_quota_available_for_flag_feature() -> None:
    with pytest.raises(PlanGuardError) as exc:
        ensure_quota_available(PlanTier.PRO, PlanFeature.BULK_EXPORT, used=0)
    assert exc.value.code == "plan.quota_unavailable"
    assert exc.value.limit is None


def test_require_plan_feature_dependency_blocks_missing_feature() -> None:
    dependency = require_plan_feature(PlanFeature.DOWNLOADABLE_REPORTS)
    with pytest.raises(HTTPException) as exc:
        dependency(plan=_make_plan(PlanTier.PRO))
    assert exc.value.status_code == 403
    assert exc.value.detail["requiredTier"] == "agency"


def test_require_plan_feature_dependency_returns_plan() -> None:
    plan = _make_plan(PlanTier.AGENCY)
    dependency = require_plan_feature(PlanFeature.DOWNLOADABLE_REPORTS)
    assert dependency(plan=plan) is plan
