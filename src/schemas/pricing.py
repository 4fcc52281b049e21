"""Pricing configuration document.

Plans and tiers are fixed fields named after their enum values, so a new
SovraIdPlan or PartnerTier without a matching field fails at import time
instead of falling back silently at lookup time.
"""

from __future__ import annotations

from pydantic import ConfigDict, Field, field_validator, model_validator

from src.models.enums import PartnerTier, SovraIdPlan
from src.schemas.common import ApiModel


class SovraGovTier(ApiModel):
    """One population band with its flat per-inhabitant price."""

    model_config = ConfigDict(frozen=True)

    max_population: int = Field(gt=0)
    price_per_inhabitant: float = Field(gt=0)


class SovraGovPricing(ApiModel):
    model_config = ConfigDict(frozen=True)

    tiers: list[SovraGovTier] = Field(min_length=1)

    @field_validator("tiers")
    @classmethod
    def validate_bands(cls, tiers: list[SovraGovTier]) -> list[SovraGovTier]:
        """Sort bands ascending and check each pair of neighbouring bands.

        Two bands may not end at the same population (they would overlap).
        A band applies its price to the whole population, so the first
        population of the next band must cost at least as much as the last
        population of the band below; otherwise a larger client would get
        a smaller annual price.
        """
        ordered = sorted(tiers, key=lambda t: t.max_population)
        for lower, upper in zip(ordered, ordered[1:]):
            if lower.max_population == upper.max_population:
                msg = f"Overlapping population tiers: two bands end at {upper.max_population}"
                raise ValueError(msg)
            edge = lower.max_population
            if upper.price_per_inhabitant * (edge + 1) < lower.price_per_inhabitant * edge:
                msg = (
                    f"Population tiers lower the annual price: {edge + 1} inhabitants at "
                    f"{upper.price_per_inhabitant} cost less than {edge} at {lower.price_per_inhabitant}"
                )
                raise ValueError(msg)
        return ordered


class SovraIdPlanPricing(ApiModel):
    model_config = ConfigDict(frozen=True)

    monthly_limit: int = Field(gt=0)
    monthly_price: float = Field(gt=0)


class SovraIdPricing(ApiModel):
    model_config = ConfigDict(frozen=True)

    essentials: SovraIdPlanPricing
    professional: SovraIdPlanPricing
    enterprise: SovraIdPlanPricing

    def for_plan(self, plan: SovraIdPlan) -> SovraIdPlanPricing:
        return getattr(self, plan.value)


class ServicesPricing(ApiModel):
    model_config = ConfigDict(frozen=True)

    wallet_implementation: float = Field(ge=0)
    integration_hourly_rate: float = Field(ge=0)


class TierDiscount(ApiModel):
    """Discount percentages for one partner tier."""

    model_config = ConfigDict(frozen=True)

    base: float = Field(ge=0, le=100)
    lead_bonus: float = Field(ge=0, le=100)

    @model_validator(mode="after")
    def validate_total(self) -> TierDiscount:
        if self.base + self.lead_bonus > 100:
            msg = "base + leadBonus cannot exceed 100%"
            raise ValueError(msg)
        return self


class DiscountsPricing(ApiModel):
    model_config = ConfigDict(frozen=True)

    bronze: TierDiscount
    silver: TierDiscount
    gold: TierDiscount
    platinum: TierDiscount

    def for_tier(self, tier: PartnerTier) -> TierDiscount:
        return getattr(self, tier.value)


class PricingConfig(ApiModel):
    """Complete pricing document. Treated as an immutable snapshot per calculation."""

    model_config = ConfigDict(frozen=True)

    sovra_gov: SovraGovPricing
    sovra_id: SovraIdPricing
    services: ServicesPricing
    discounts: DiscountsPricing


def _check_exhaustive() -> None:
    plan_fields = set(SovraIdPricing.model_fields)
    tier_fields = set(DiscountsPricing.model_fields)
    if plan_fields != {p.value for p in SovraIdPlan}:
        raise RuntimeError(f"SovraIdPricing fields {sorted(plan_fields)} do not match SovraIdPlan")
    if tier_fields != {t.value for t in PartnerTier}:
        raise RuntimeError(f"DiscountsPricing fields {sorted(tier_fields)} do not match PartnerTier")


_check_exhaustive()
