"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from core.plan_constants import PlanFeature
from services.plan_guard import PlanGuardError, ensure_feature_access
from services.plan_service import PlanContext, resolve_plan_context


def get_plan_context(request: Request) -> PlanContext:
    """Fetch the resolved plan context for the current request."""
    context = getattr(request.state, "plan_context", None)
    if context is None:
        context = resolve_plan_context(request.headers)
        request.state.plan_context = context
    return context


def require_plan_feature(feature: PlanFeature):
    """Dependency factory that ensures the active plan can use the feature."""

    def _dependency(plan: PlanContext = Depends(get_plan_context)) -> PlanContext:
        try:
            ensure_feature_access(plan, feature)
        except PlanGuardError as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.to_detail())
        return plan

    return _dependency
