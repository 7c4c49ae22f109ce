"""Immutable plan catalog: per-tier limits for every feature plus tier pricing.

The catalog is built once per process (``get_plan_catalog``) and shared as a
read-only value. Changing entitlements means shipping a new catalog, either
by editing the defaults below or by pointing ``ENTITLEMENT_CATALOG_FILE`` at a
JSON document whose ``limits``/``prices``/``levels`` blocks are merged over
them. Every build is validated; a catalog that breaks an invariant is never
handed out.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from core.env import env_path
from core.logging import get_logger
from core.plan_constants import PLAN_HIERARCHY, PlanFeature, PlanTier
from services.limit_values import (
    KIND_LEVEL,
    NON_GRANTING_LEVELS,
    Level,
    LevelScale,
    LimitValue,
    grants_access,
    is_regression,
    limit_kind,
    limit_to_raw,
    parse_limit_value,
)

logger = get_logger(__name__)

TierLike = Union[PlanTier, str]
FeatureLike = Union[PlanFeature, str]


class EntitlementConfigError(RuntimeError):
    """Base class for programming or deployment defects in entitlement lookups."""


class UnknownTierError(EntitlementConfigError, LookupError):
    def __init__(self, tier: Any) -> None:
        self.tier = tier
        super().__init__(f"Unknown plan tier: {tier!r}")


class UnknownFeatureError(EntitlementConfigError, LookupError):
    def __init__(self, feature: Any) -> None:
        self.feature = feature
        super().__init__(f"Unknown plan feature: {feature!r}")


class CatalogConfigError(EntitlementConfigError):
    """Raised when a catalog definition violates one or more invariants."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = tuple(problems)
        summary = "; ".join(self.problems) if self.problems else "invalid plan catalog"
        super().__init__(f"Invalid plan catalog: {summary}")


@dataclass(frozen=True, slots=True)
class PlanPrice:
    monthly: int
    annual: int

    def to_dict(self) -> Dict[str, int]:
        return {"monthly": self.monthly, "annual": self.annual}


# Raw encoding: None = unbounded, bool = flag, int = count, str = level.
DEFAULT_PLAN_LIMITS: Dict[str, Dict[str, Any]] = {
    "free": {
        "archive_days": 30,
        "email_views_per_day": 20,
        "brand_pages_per_day": 5,
        "collections": 5,
        "emails_per_collection": 10,
        "html_exports_per_month": 0,
        "search_level": "basic",
        "analytics": "none",
        "campaign_calendar": False,
        "alerts": 0,
        "seats": 1,
        "template_editor": "view_only",
        "bulk_export": False,
        "downloadable_reports": False,
        "follows": 3,
        "bookmarks": 10,
    },
    "starter": {
        "archive_days": 180,
        "email_views_per_day": 75,
        "brand_pages_per_day": 25,
        "collections": 15,
        "emails_per_collection": 50,
        "html_exports_per_month": 3,
        "search_level": "advanced",
        "analytics": "basic",
        "campaign_calendar": False,
        "alerts": 0,
        "seats": 1,
        "template_editor": "limited",
        "bulk_export": False,
        "downloadable_reports": False,
        "follows": 10,
        "bookmarks": 50,
    },
    "pro": {
        "archive_days": None,
        "email_views_per_day": None,
        "brand_pages_per_day": None,
        "collections": None,
        "emails_per_collection": None,
        "html_exports_per_month": None,
        "search_level": "full",
        "analytics": "full",
        "campaign_calendar": True,
        "alerts": 5,
        "seats": 3,
        "template_editor": "unlimited",
        "bulk_export": False,
        "downloadable_reports": False,
        "follows": None,
        "bookmarks": None,
    },
    "agency": {
        "archive_days": None,
        "email_views_per_day": None,
        "brand_pages_per_day": None,
        "collections": None,
        "emails_per_collection": None,
        "html_exports_per_month": None,
        "search_level": "full",
        "analytics": "full",
        "campaign_calendar": True,
        "alerts": None,
        "seats": 10,
        "template_editor": "unlimited",
        "bulk_export": True,
        "downloadable_reports": True,
        "follows": None,
        "bookmarks": None,
    },
}

# INR
DEFAULT_PLAN_PRICES: Dict[str, Dict[str, int]] = {
    "free": {"monthly": 0, "annual": 0},
    "starter": {"monthly": 599, "annual": 5999},
    "pro": {"monthly": 1599, "annual": 15999},
    "agency": {"monthly": 3999, "annual": 39999},
}

DEFAULT_LEVEL_SCALES: Dict[str, List[str]] = {
    "search_level": ["basic", "advanced", "full"],
    "analytics": ["none", "basic", "full"],
    "template_editor": ["view_only", "limited", "unlimited"],
}

_TIER_RANKS: Mapping[PlanTier, int] = MappingProxyType({tier: index for index, tier in enumerate(PLAN_HIERARCHY)})


def coerce_plan_tier(value: TierLike) -> PlanTier:
    """Map a tier member or its string value onto ``PlanTier``; unknown values fail loudly."""
    if isinstance(value, PlanTier):
        return value
    try:
        return PlanTier(value)
    except ValueError:
        raise UnknownTierError(value) from None


def coerce_plan_feature(value: FeatureLike) -> PlanFeature:
    if isinstance(value, PlanFeature):
        return value
    try:
        return PlanFeature(value)
    except ValueError:
        raise UnknownFeatureError(value) from None


@dataclass(frozen=True)
class PlanCatalog:
    """Read-only (tier x feature) limit table, tier prices and level scales."""

    limits: Mapping[PlanTier, Mapping[PlanFeature, LimitValue]]
    prices: Mapping[PlanTier, PlanPrice]
    level_scales: Mapping[PlanFeature, LevelScale]
    tiers: tuple[PlanTier, ...] = field(default=tuple(PLAN_HIERARCHY))

    @classmethod
    def build(
        cls,
        limits: Mapping[PlanTier, Mapping[PlanFeature, LimitValue]],
        prices: Mapping[PlanTier, PlanPrice],
        level_scales: Mapping[PlanFeature, LevelScale],
    ) -> "PlanCatalog":
        """Freeze the supplied tables and validate them."""
        catalog = cls(
            limits=MappingProxyType({tier: MappingProxyType(dict(row)) for tier, row in limits.items()}),
            prices=MappingProxyType(dict(prices)),
            level_scales=MappingProxyType(dict(level_scales)),
        )
        validate_catalog(catalog)
        return catalog

    def tier_rank(self, tier: TierLike) -> int:
        return _TIER_RANKS[coerce_plan_tier(tier)]

    def limit_of(self, tier: TierLike, feature: FeatureLike) -> LimitValue:
        row = self.limits[coerce_plan_tier(tier)]
        return row[coerce_plan_feature(feature)]

    def price_of(self, tier: TierLike) -> PlanPrice:
        return self.prices[coerce_plan_tier(tier)]

    def level_scale(self, feature: FeatureLike) -> Optional[LevelScale]:
        return self.level_scales.get(coerce_plan_feature(feature))

    def tiers_above(self, tier: TierLike) -> tuple[PlanTier, ...]:
        return self.tiers[self.tier_rank(tier) + 1 :]

    def to_payload(self) -> Dict[str, Any]:
        """Export the catalog in its raw JSON form."""
        return {
            "tiers": [tier.value for tier in self.tiers],
            "limits": {
                tier.value: {feature.value: limit_to_raw(value) for feature, value in self.limits[tier].items()}
                for tier in self.tiers
            },
            "prices": {tier.value: self.prices[tier].to_dict() for tier in self.tiers},
            "levels": {feature.value: list(scale.levels) for feature, scale in self.level_scales.items()},
        }


def _check_totality(catalog: PlanCatalog, problems: List[str]) -> bool:
    complete = True
    for tier in catalog.tiers:
        row = catalog.limits.get(tier)
        if row is None:
            problems.append(f"tier {tier.value} has no limits")
            complete = False
            continue
        for feature in PlanFeature:
            if feature not in row:
                problems.append(f"{tier.value}.{feature.value} is missing")
                complete = False
    return complete


def _check_feature_column(catalog: PlanCatalog, feature: PlanFeature, problems: List[str]) -> None:
    column = [(tier, catalog.limits[tier][feature]) for tier in catalog.tiers]
    kinds = {limit_kind(value) for _, value in column}
    if len(kinds) > 1:
        problems.append(f"{feature.value} mixes limit kinds {sorted(kinds)}")
        return

    kind = kinds.pop()
    scale = catalog.level_scales.get(feature)
    if kind == KIND_LEVEL:
        if scale is None:
            problems.append(f"{feature.value} is level-based but has no level scale")
            return
        unknown = [value.name for _, value in column if isinstance(value, Level) and value.name not in scale]
        if unknown:
            problems.append(f"{feature.value} uses levels outside its scale: {unknown}")
            return
        sentinels = [rank for rank, name in enumerate(scale.levels) if name in NON_GRANTING_LEVELS]
        granting = [rank for rank, name in enumerate(scale.levels) if name not in NON_GRANTING_LEVELS]
        if sentinels and granting and max(sentinels) > min(granting):
            problems.append(f"{feature.value} ranks a non-granting level above a granting one: {list(scale.levels)}")
            return
    elif scale is not None:
        problems.append(f"{feature.value} declares a level scale but is not level-based")

    if not any(grants_access(value) for _, value in column):
        problems.append(f"no tier grants {feature.value}")

    for (lower_tier, lower), (upper_tier, upper) in zip(column, column[1:]):
        if is_regression(lower, upper, scale if kind == KIND_LEVEL else None):
            problems.append(
                f"{feature.value} regresses from {lower_tier.value} ({lower}) to {upper_tier.value} ({upper})"
            )
        elif grants_access(lower) and not grants_access(upper):
            problems.append(f"{feature.value} loses access from {lower_tier.value} to {upper_tier.value}")


def _check_prices(catalog: PlanCatalog, problems: List[str]) -> None:
    for tier in catalog.tiers:
        price = catalog.prices.get(tier)
        if price is None:
            problems.append(f"tier {tier.value} has no price")
            continue
        if price.monthly < 0 or price.annual < 0:
            problems.append(f"tier {tier.value} has a negative price")
    free_price = catalog.prices.get(PlanTier.FREE)
    if free_price is not None and (free_price.monthly or free_price.annual):
        problems.append("the free tier must be priced at zero")


def validate_catalog(catalog: PlanCatalog) -> None:
    """Raise ``CatalogConfigError`` listing every invariant the catalog breaks."""
    problems: List[str] = []
    if tuple(catalog.tiers) != tuple(PLAN_HIERARCHY):
        problems.append("catalog tiers must follow the plan hierarchy")
    if _check_totality(catalog, problems):
        for feature in PlanFeature:
            _check_feature_column(catalog, feature, problems)
    _check_prices(catalog, problems)
    if problems:
        raise CatalogConfigError(problems)


def _iter_mapping(payload: Mapping[str, Any], key: str) -> Iterable[tuple[str, Any]]:
    block = payload.get(key)
    if block is None:
        return ()
    if not isinstance(block, Mapping):
        raise CatalogConfigError([f"'{key}' must be an object"])
    return ((str(name), value) for name, value in block.items())


def _parse_price(tier: str, raw: Any) -> PlanPrice:
    if not isinstance(raw, Mapping):
        raise CatalogConfigError([f"price for {tier} must be an object"])
    amounts: Dict[str, int] = {}
    for key in ("monthly", "annual"):
        value = raw.get(key)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise CatalogConfigError([f"price for {tier}: {key} must be a whole number, got {value!r}"])
        amounts[key] = value
    return PlanPrice(**amounts)


def build_plan_catalog(payload: Optional[Mapping[str, Any]] = None) -> PlanCatalog:
    """Build a validated catalog from raw overrides merged over the defaults."""
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise CatalogConfigError(["catalog payload must be a JSON object"])

    raw_limits: Dict[str, Dict[str, Any]] = {tier: dict(row) for tier, row in DEFAULT_PLAN_LIMITS.items()}
    raw_prices: Dict[str, Any] = dict(DEFAULT_PLAN_PRICES)
    raw_levels: Dict[str, Any] = dict(DEFAULT_LEVEL_SCALES)

    for tier, row in _iter_mapping(payload, "limits"):
        coerce_plan_tier(tier)
        if not isinstance(row, Mapping):
            raise CatalogConfigError([f"limits for {tier} must be an object"])
        for feature, raw in row.items():
            coerce_plan_feature(str(feature))
            raw_limits[tier][str(feature)] = raw
    for tier, raw in _iter_mapping(payload, "prices"):
        coerce_plan_tier(tier)
        raw_prices[tier] = raw
    for feature, raw in _iter_mapping(payload, "levels"):
        coerce_plan_feature(feature)
        raw_levels[feature] = raw

    limits: Dict[PlanTier, Dict[PlanFeature, LimitValue]] = {}
    problems: List[str] = []
    for tier_name, row in raw_limits.items():
        tier = coerce_plan_tier(tier_name)
        parsed: Dict[PlanFeature, LimitValue] = {}
        for feature_name, raw in row.items():
            try:
                parsed[coerce_plan_feature(feature_name)] = parse_limit_value(raw)
            except (TypeError, ValueError) as exc:
                problems.append(f"{tier_name}.{feature_name}: {exc}")
        limits[tier] = parsed

    level_scales: Dict[PlanFeature, LevelScale] = {}
    for feature_name, raw in raw_levels.items():
        if raw is None:
            continue
        if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
            problems.append(f"level scale for {feature_name} must be a list")
            continue
        try:
            level_scales[coerce_plan_feature(feature_name)] = LevelScale.of(raw)
        except ValueError as exc:
            problems.append(f"level scale for {feature_name}: {exc}")

    if problems:
        raise CatalogConfigError(problems)

    prices = {coerce_plan_tier(tier): _parse_price(tier, raw) for tier, raw in raw_prices.items()}
    return PlanCatalog.build(limits, prices, level_scales)


def _load_catalog_payload() -> Optional[Mapping[str, Any]]:
    path = env_path("ENTITLEMENT_CATALOG_FILE")
    if path is None:
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to load plan catalog from %s: %s", path, exc)
        raise CatalogConfigError([f"cannot read {path}: {exc}"]) from exc
    logger.info("Plan catalog overrides loaded from %s", path)
    return payload


@lru_cache(maxsize=1)
def get_plan_catalog() -> PlanCatalog:
    """Return the process-wide catalog, building and validating it on first use."""
    catalog = build_plan_catalog(_load_catalog_payload())
    logger.debug("Plan catalog ready (%d tiers, %d features).", len(catalog.tiers), len(PlanFeature))
    return catalog


def clear_plan_catalog_cache() -> None:
    """Drop the memoised catalog (tests and admin tools only)."""
    get_plan_catalog.cache_clear()


__all__ = [
    "CatalogConfigError",
    "DEFAULT_LEVEL_SCALES",
    "DEFAULT_PLAN_LIMITS",
    "DEFAULT_PLAN_PRICES",
    "EntitlementConfigError",
    "PlanCatalog",
    "PlanPrice",
    "UnknownFeatureError",
    "UnknownTierError",
    "build_plan_catalog",
    "clear_plan_catalog_cache",
    "coerce_plan_feature",
    "coerce_plan_tier",
    "get_plan_catalog",
    "validate_catalog",
]
