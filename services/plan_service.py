"""Plan context resolution from identity-provider data (base tier plus trial)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from core.env import env_str
from core.plan_constants import PlanTier
from services.plan_catalog import get_plan_catalog

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PlanTrialState:
    """Trial window reported by the identity provider."""

    tier: Optional[PlanTier] = None
    ends_at: Optional[datetime] = None

    def is_active(self, *, at: Optional[datetime] = None) -> bool:
        if self.tier is None or self.ends_at is None:
            return False
        reference = at or datetime.now(timezone.utc)
        return reference < self.ends_at


@dataclass(slots=True)
class PlanContext:
    """Resolved plan metadata stored on the request."""

    tier: PlanTier
    base_tier: PlanTier
    trial_tier: Optional[PlanTier] = None
    trial_ends_at: Optional[datetime] = None
    trial_active: bool = False

    def trial_payload(self) -> Optional[Dict[str, Any]]:
        if self.trial_tier is None:
            return None
        return {
            "tier": self.trial_tier.value,
            "endsAt": self.trial_ends_at.isoformat() if self.trial_ends_at else None,
            "active": self.trial_active,
        }


def _parse_plan_tier(value: Optional[str], *, source: str) -> Optional[PlanTier]:
    if value is None:
        return None
    lowered = str(value).strip().lower()
    if not lowered:
        return None
    try:
        return PlanTier(lowered)
    except ValueError:
        logger.warning("Unrecognised plan tier %r from %s ignored.", value, source)
        return None


def _parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _default_plan_tier() -> PlanTier:
    return _parse_plan_tier(env_str("DEFAULT_PLAN_TIER", "free"), source="DEFAULT_PLAN_TIER") or PlanTier.FREE


def resolve_effective_tier(
    base_tier: PlanTier,
    trial: Optional[PlanTrialState],
    *,
    at: Optional[datetime] = None,
) -> PlanTier:
    """Apply an active trial; a trial never lowers the tier a user already pays for."""
    if trial is None or not trial.is_active(at=at) or trial.tier is None:
        return base_tier
    catalog = get_plan_catalog()
    if catalog.tier_rank(trial.tier) > catalog.tier_rank(base_tier):
        return trial.tier
    return base_tier


def build_plan_context(
    *,
    tier: Optional[str] = None,
    trial_tier: Optional[str] = None,
    trial_ends_at: Optional[str] = None,
    at: Optional[datetime] = None,
) -> PlanContext:
    base_tier = _parse_plan_tier(tier, source="x-plan-tier")
    if base_tier is None:
        # Unrecognised tiers map to free, never to DEFAULT_PLAN_TIER.
        base_tier = PlanTier.FREE if tier and tier.strip() else _default_plan_tier()

    trial = PlanTrialState(
        tier=_parse_plan_tier(trial_tier, source="x-plan-trial-tier"),
        ends_at=_parse_iso_datetime(trial_ends_at),
    )
    if trial_ends_at and trial.ends_at is None:
        logger.warning("Invalid x-plan-trial-ends-at header ignored: %s", trial_ends_at)

    effective = resolve_effective_tier(base_tier, trial, at=at)
    return PlanContext(
        tier=effective,
        base_tier=base_tier,
        trial_tier=trial.tier,
        trial_ends_at=trial.ends_at,
        trial_active=effective != base_tier,
    )


def resolve_plan_context(headers: Optional[Mapping[str, str]] = None) -> PlanContext:
    """Infer the current plan tier from identity-provider headers."""
    headers = headers or {}
    return build_plan_context(
        tier=headers.get("x-plan-tier"),
        trial_tier=headers.get("x-plan-trial-tier"),
        trial_ends_at=headers.get("x-plan-trial-ends-at"),
    )


__all__ = [
    "PlanContext",
    "PlanTrialState",
    "build_plan_context",
    "resolve_effective_tier",
    "resolve_plan_context",
]
