"""Pydantic schemas for entitlement decisions, upgrade prompts and the catalog."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

PlanTier = Literal["free", "starter", "pro", "agency"]
LimitKind = Literal["quota", "level", "flag"]


class LimitValueSchema(BaseModel):
    kind: LimitKind = Field(..., description="Limit column kind: quota, level or flag.")
    value: Optional[Union[bool, int, str]] = Field(
        default=None,
        description="Raw limit. Null means unlimited for quota features.",
    )
    unlimited: bool = Field(default=False, description="True when no ceiling applies.")


class EntitlementDecisionRequest(BaseModel):
    tier: PlanTier = Field(..., description="Plan tier reported by the identity provider.")
    feature: str = Field(..., description="Feature identifier to evaluate.")
    currentUsage: Optional[int] = Field(
        default=None,
        ge=0,
        description="Current consumption reported by the usage counter.",
    )
    cost: int = Field(default=1, ge=1, description="Units the pending action would consume.")


class EntitlementDecisionResponse(BaseModel):
    tier: PlanTier
    feature: str
    featureLabel: str
    allowed: bool
    limit: LimitValueSchema
    requiredTier: PlanTier
    upgradeTier: Optional[PlanTier] = None
    used: Optional[int] = None
    remaining: Optional[int] = None


class PlanPriceSchema(BaseModel):
    monthly: int = Field(..., ge=0)
    annual: int = Field(..., ge=0)
    monthlyLabel: str
    annualLabel: str


class UpgradePromptResponse(BaseModel):
    feature: str
    featureLabel: str
    currentTier: PlanTier
    hasAccess: bool
    requiredTier: PlanTier
    requiredTierLabel: str
    requiredTierPrice: PlanPriceSchema
    upgradeTier: Optional[PlanTier] = None
    upgradeTierLabel: Optional[str] = None
    upgradeTierPrice: Optional[PlanPriceSchema] = None


class PlanCatalogTierSchema(BaseModel):
    tier: PlanTier
    label: str
    rank: int = Field(..., ge=0)
    price: PlanPriceSchema
    limits: Dict[str, LimitValueSchema] = Field(default_factory=dict)


class PlanCatalogResponse(BaseModel):
    tiers: List[PlanCatalogTierSchema] = Field(default_factory=list)
    featureLabels: Dict[str, str] = Field(default_factory=dict)
    levels: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Per-feature level ordering, lowest first.",
    )
