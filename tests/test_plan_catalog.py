from __future__ import annotations

import itertools
import json
from pathlib import Path

import pytest

from core.plan_constants import PLAN_HIERARCHY, PlanFeature, PlanTier
from services.entitlement_evaluator import can_access
from services.limit_values import UNBOUNDED, Count, Flag, Level, is_regression, limit_kind
from services.plan_catalog import (
    CatalogConfigError,
    EntitlementConfigError,
    PlanCatalog,
    PlanPrice,
    UnknownFeatureError,
    UnknownTierError,
    build_plan_catalog,
    get_plan_catalog,
)

ALL_CELLS = list(itertools.product(PLAN_HIERARCHY, PlanFeature))


@pytest.mark.parametrize(("tier", "feature"), ALL_CELLS)
def test_limit_of_is_total(catalog: PlanCatalog, tier: PlanTier, feature: PlanFeature) -> None:
    assert catalog.limit_of(tier, feature) is not None
    assert catalog.limit_of(tier.value, feature.value) == catalog.limit_of(tier, feature)


@pytest.mark.parametrize("feature", list(PlanFeature))
def test_feature_columns_have_uniform_kind(catalog: PlanCatalog, feature: PlanFeature) -> None:
    kinds = {limit_kind(catalog.limit_of(tier, feature)) for tier in PLAN_HIERARCHY}
    assert len(kinds) == 1


@pytest.mark.parametrize("feature", list(PlanFeature))
def test_limits_never_regress_with_tier_rank(catalog: PlanCatalog, feature: PlanFeature) -> None:
    scale = catalog.level_scale(feature)
    for lower, upper in itertools.combinations(PLAN_HIERARCHY, 2):
        assert catalog.tier_rank(lower) < catalog.tier_rank(upper)
        assert not is_regression(catalog.limit_of(lower, feature), catalog.limit_of(upper, feature), scale)


def test_tier_rank_follows_hierarchy(catalog: PlanCatalog) -> None:
    assert [catalog.tier_rank(tier) for tier in PLAN_HIERARCHY] == [0, 1, 2, 3]
    assert catalog.tier_rank("agency") == 3


def test_unknown_tier_fails_loudly(catalog: PlanCatalog) -> None:
    with pytest.raises(UnknownTierError):
        catalog.tier_rank("enterprise")
    with pytest.raises(UnknownTierError):
        catalog.limit_of("platinum", PlanFeature.SEATS)
    with pytest.raises(UnknownTierError):
        catalog.price_of("Free")


def test_unknown_feature_fails_loudly(catalog: PlanCatalog) -> None:
    with pytest.raises(UnknownFeatureError) as exc:
        catalog.limit_of(PlanTier.PRO, "ai_generator")
    assert isinstance(exc.value, EntitlementConfigError)
    assert isinstance(exc.value, LookupError)


def test_prices(catalog: PlanCatalog) -> None:
    assert catalog.price_of(PlanTier.FREE) == PlanPrice(monthly=0, annual=0)
    assert catalog.price_of("starter").to_dict() == {"monthly": 599, "annual": 5999}
    assert catalog.price_of(PlanTier.PRO).monthly == 1599
    assert catalog.price_of(PlanTier.AGENCY).annual == 39999


def test_default_values_match_product_table(catalog: PlanCatalog) -> None:
    assert catalog.limit_of("free", "collections") == Count(5)
    assert catalog.limit_of("pro", "collections") == UNBOUNDED
    assert catalog.limit_of("starter", "analytics") == Level("basic")
    assert catalog.limit_of("agency", "bulk_export") == Flag(True)
    assert catalog.limit_of("pro", "alerts") == Count(5)
    assert catalog.limit_of("agency", "alerts") == UNBOUNDED


def test_catalog_tables_are_read_only(catalog: PlanCatalog) -> None:
    with pytest.raises(TypeError):
        catalog.limits[PlanTier.FREE][PlanFeature.SEATS] = Count(100)  # type: ignore[index]
    with pytest.raises(TypeError):
        catalog.prices[PlanTier.FREE] = PlanPrice(1, 1)  # type: ignore[index]


def test_get_plan_catalog_is_built_once() -> None:
    assert get_plan_catalog() is get_plan_catalog()


def test_to_payload_round_trips_through_builder(catalog: PlanCatalog) -> None:
    payload = catalog.to_payload()
    assert payload["tiers"] == ["free", "starter", "pro", "agency"]
    assert payload["limits"]["pro"]["archive_days"] is None
    rebuilt = build_plan_catalog(payload)
    assert rebuilt.to_payload() == payload


def test_override_merges_over_defaults() -> None:
    catalog = build_plan_catalog({"limits": {"starter": {"seats": 2}}, "prices": {"pro": {"monthly": 1999, "annual": 19999}}})
    assert catalog.limit_of("starter", "seats") == Count(2)
    assert catalog.limit_of("free", "seats") == Count(1)
    assert catalog.price_of("pro").monthly == 1999


def test_regressing_count_is_rejected() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog({"limits": {"pro": {"seats": 0}}})
    assert any("seats regresses from starter" in problem for problem in exc.value.problems)


def test_unbounded_followed_by_count_is_rejected() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog({"limits": {"agency": {"collections": 100}}})
    assert any("collections regresses from pro" in problem for problem in exc.value.problems)


def test_flag_turned_off_at_higher_tier_is_rejected() -> None:
    with pytest.raises(CatalogConfigError):
        build_plan_catalog({"limits": {"agency": {"campaign_calendar": False}}})


def test_level_regression_uses_declared_scale() -> None:
    with pytest.raises(CatalogConfigError):
        build_plan_catalog({"limits": {"agency": {"template_editor": "limited"}}})
    reordered = build_plan_catalog(
        {
            "limits": {"pro": {"search_level": "advanced"}},
            "levels": {"search_level": ["basic", "advanced", "full"]},
        }
    )
    assert reordered.limit_of("pro", "search_level") == Level("advanced")


def test_mixed_kinds_in_a_column_are_rejected() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog({"limits": {"agency": {"bulk_export": 1}}})
    assert any("bulk_export mixes limit kinds" in problem for problem in exc.value.problems)


def test_count_and_unbounded_may_share_a_column() -> None:
    catalog = build_plan_catalog({"limits": {"pro": {"seats": None}, "agency": {"seats": None}}})
    assert catalog.limit_of("pro", "seats") == UNBOUNDED


def test_level_outside_scale_is_rejected() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog({"limits": {"agency": {"analytics": "premium"}}})
    assert any("outside its scale" in problem for problem in exc.value.problems)


def test_level_feature_without_scale_is_rejected() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog({"levels": {"analytics": None}})
    assert any("analytics is level-based but has no level scale" in problem for problem in exc.value.problems)


def test_scale_on_non_level_feature_is_rejected() -> None:
    with pytest.raises(CatalogConfigError):
        build_plan_catalog({"levels": {"seats": ["one", "many"]}})


def test_free_tier_must_be_free() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog({"prices": {"free": {"monthly": 9, "annual": 0}}})
    assert "the free tier must be priced at zero" in exc.value.problems


def test_unknown_names_in_overrides_fail_loudly() -> None:
    with pytest.raises(UnknownTierError):
        build_plan_catalog({"limits": {"enterprise": {"seats": 50}}})
    with pytest.raises(UnknownFeatureError):
        build_plan_catalog({"limits": {"pro": {"ai_generator": True}}})


def test_invalid_raw_values_are_reported() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog({"limits": {"free": {"seats": -1, "follows": [3]}}})
    assert len(exc.value.problems) == 2


def test_missing_cells_are_reported() -> None:
    limits = {
        tier: {feature: Count(1) for feature in PlanFeature if feature is not PlanFeature.SEATS}
        for tier in PLAN_HIERARCHY
    }
    prices = {tier: PlanPrice(0, 0) for tier in PLAN_HIERARCHY}
    with pytest.raises(CatalogConfigError) as exc:
        PlanCatalog.build(limits, prices, {})
    assert "free.seats is missing" in exc.value.problems


def test_catalog_file_overrides_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"limits": {"agency": {"seats": 25}}}), encoding="utf-8")
    monkeypatch.setenv("ENTITLEMENT_CATALOG_FILE", str(path))

    assert get_plan_catalog().limit_of("agency", "seats") == Count(25)


def test_unreadable_catalog_file_fails_fast(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "catalog.json"
    path.write_text("{not json", encoding="utf-8")
    monkeypatch.setenv("ENTITLEMENT_CATALOG_FILE", str(path))

    with pytest.raises(CatalogConfigError):
        get_plan_catalog()


def test_missing_catalog_file_fails_fast(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENTITLEMENT_CATALOG_FILE", str(tmp_path / "absent.json"))

    with pytest.raises(CatalogConfigError):
        get_plan_catalog()


def test_scale_ranking_a_sentinel_above_granting_levels_is_rejected() -> None:
    with pytest.raises(CatalogConfigError) as exc:
        build_plan_catalog(
            {
                "limits": {"free": {"analytics": "basic"}, "starter": {"analytics": "none"}},
                "levels": {"analytics": ["basic", "none", "full"]},
            }
        )
    assert any("analytics ranks a non-granting level above a granting one" in problem for problem in exc.value.problems)


@pytest.mark.parametrize("feature", list(PlanFeature))
def test_access_never_turns_off_as_tiers_rise(catalog: PlanCatalog, feature: PlanFeature) -> None:
    granted = [can_access(tier, feature, catalog=catalog) for tier in PLAN_HIERARCHY]
    assert granted == sorted(granted)
    assert granted[-1] is True


@pytest.mark.parametrize(
    "price",
    [
        {"monthly": 599.9, "annual": 5999},
        {"monthly": True, "annual": 5999},
        {"monthly": "599", "annual": 5999},
        {"monthly": 599},
    ],
)
def test_malformed_prices_are_rejected(price: dict) -> None:
    with pytest.raises(CatalogConfigError):
        build_plan_catalog({"prices": {"starter": price}})


def test_integral_float_prices_are_accepted() -> None:
    catalog = build_plan_catalog({"prices": {"starter": {"monthly": 699.0, "annual": 6999}}})
    assert catalog.price_of("starter") == PlanPrice(monthly=699, annual=6999)


@pytest.mark.parametrize("payload", [[], 0, "", "pro"])
def test_non_object_payload_is_rejected(payload) -> None:
    with pytest.raises(CatalogConfigError):
        build_plan_catalog(payload)


def test_catalog_file_holding_a_list_fails_fast(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "catalog.json"
    path.write_text("[]", encoding="utf-8")
    monkeypatch.setenv("ENTITLEMENT_CATALOG_FILE", str(path))

    with pytest.raises(CatalogConfigError):
        get_plan_catalog()
