from __future__ import annotations

import os
from typing import Iterator

import pytest

os.environ.setdefault("LOG_LEVEL", "WARNING")

from services import plan_labels  # noqa: E402
from services.plan_catalog import PlanCatalog, clear_plan_catalog_cache, get_plan_catalog  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_plan_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Every test starts from the built-in catalog and labels."""

    for key in ("ENTITLEMENT_CATALOG_FILE", "PLAN_FEATURE_LABELS_FILE", "DEFAULT_PLAN_TIER"):
        monkeypatch.delenv(key, raising=False)
    clear_plan_catalog_cache()
    plan_labels.clear_label_cache()
    try:
        yield
    finally:
        clear_plan_catalog_cache()
        plan_labels.clear_label_cache()


@pytest.fixture()
def catalog() -> PlanCatalog:
    return get_plan_catalog()
