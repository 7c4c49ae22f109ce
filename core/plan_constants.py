"""Shared plan tier and feature constants used across services and routers."""

from __future__ import annotations

from enum import Enum
from typing import Sequence


class PlanTier(str, Enum):
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    AGENCY = "agency"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class PlanFeature(str, Enum):
    """Gate-able capabilities and quotas. Every tier carries a limit for each."""

    ARCHIVE_DAYS = "archive_days"
    EMAIL_VIEWS_PER_DAY = "email_views_per_day"
    BRAND_PAGES_PER_DAY = "brand_pages_per_day"
    COLLECTIONS = "collections"
    EMAILS_PER_COLLECTION = "emails_per_collection"
    HTML_EXPORTS_PER_MONTH = "html_exports_per_month"
    SEARCH_LEVEL = "search_level"
    ANALYTICS = "analytics"
    CAMPAIGN_CALENDAR = "campaign_calendar"
    ALERTS = "alerts"
    SEATS = "seats"
    TEMPLATE_EDITOR = "template_editor"
    BULK_EXPORT = "bulk_export"
    DOWNLOADABLE_REPORTS = "downloadable_reports"
    FOLLOWS = "follows"
    BOOKMARKS = "bookmarks"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


# Ascending order; index 0 is the lowest tier.
PLAN_HIERARCHY: Sequence[PlanTier] = (
    PlanTier.FREE,
    PlanTier.STARTER,
    PlanTier.PRO,
    PlanTier.AGENCY,
)

__all__ = [
    "PLAN_HIERARCHY",
    "PlanFeature",
    "PlanTier",
]
