"""Shared helpers for plan tier and feature display labels."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Dict, Union

from core.env import env_path
from core.plan_constants import PlanFeature, PlanTier

logger = logging.getLogger(__name__)

_PLAN_LABELS: Dict[str, str] = {
    "free": "Free",
    "starter": "Starter",
    "pro": "Pro",
    "agency": "Agency",
}

_DEFAULT_FEATURE_LABELS: Dict[str, str] = {
    "archive_days": "Email Archive Depth",
    "email_views_per_day": "Daily Email Views",
    "brand_pages_per_day": "Daily Brand Pages",
    "collections": "Collections",
    "emails_per_collection": "Emails per Collection",
    "html_exports_per_month": "Monthly HTML Exports",
    "search_level": "Search",
    "analytics": "Analytics",
    "campaign_calendar": "Campaign Calendar",
    "alerts": "Brand Alerts",
    "seats": "Team Seats",
    "template_editor": "Template Editor",
    "bulk_export": "Bulk Export",
    "downloadable_reports": "Downloadable Reports",
    "follows": "Brand Follows",
    "bookmarks": "Bookmarks",
}


@lru_cache(maxsize=1)
def _load_feature_labels() -> Dict[str, str]:
    labels = dict(_DEFAULT_FEATURE_LABELS)
    path = env_path("PLAN_FEATURE_LABELS_FILE")
    if path is None or not path.exists():
        return labels
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning(
            "Failed to load plan feature labels from %s: %s. Falling back to defaults.",
            path,
            exc,
        )
        return labels
    if isinstance(data, dict):
        labels.update({str(key): str(value) for key, value in data.items() if str(value).strip()})
    return labels


def clear_label_cache() -> None:
    _load_feature_labels.cache_clear()


def get_plan_label(tier: Union[PlanTier, str]) -> str:
    key = tier.value if isinstance(tier, PlanTier) else str(tier)
    return _PLAN_LABELS.get(key, key.title())


def get_feature_labels() -> Dict[str, str]:
    """Return a copy of the feature label mapping."""

    return dict(_load_feature_labels())


def get_feature_label(feature: Union[PlanFeature, str]) -> str:
    """Return the friendly label for a specific feature."""

    key = feature.value if isinstance(feature, PlanFeature) else str(feature)
    return _load_feature_labels().get(key, key)


__all__ = ["clear_label_cache", "get_feature_label", "get_feature_labels", "get_plan_label"]
