"""Pydantic schemas for quote calculation and persisted quotes.

The breakdown models are plain data; all arithmetic lives in
src.pricing.calculator.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import ConfigDict, Field

from src.models.enums import PartnerTier, SovraIdPlan
from src.schemas.common import ApiModel

# ---------------------------------------------------------------------------
# Calculator input
# ---------------------------------------------------------------------------


class QuoteParams(ApiModel):
    """Everything the calculator needs besides the pricing config.

    The calculator trusts these values; validation happens here at the boundary.
    """

    population: int = Field(gt=0, le=2_000_000_000)
    sovra_gov_included: bool = True
    sovra_id_included: bool = False
    sovra_id_plan: SovraIdPlan = SovraIdPlan.ESSENTIALS
    wallet_implementation: bool = False
    integration_hours: int = Field(default=0, ge=0)
    partner_tier: PartnerTier
    partner_generated_lead: bool = False


# ---------------------------------------------------------------------------
# Calculator output
# ---------------------------------------------------------------------------


class SovraGovLine(ApiModel):
    included: bool
    population_used: int
    price_per_inhabitant: float
    annual_price: float


class SovraIdLine(ApiModel):
    included: bool
    plan: SovraIdPlan
    monthly_limit: int
    monthly_price: float
    annual_price: float


class QuoteProducts(ApiModel):
    sovra_gov: SovraGovLine
    sovra_id: SovraIdLine


class QuoteServices(ApiModel):
    wallet_implementation: bool
    wallet_price: float
    integration_hours: int
    integration_price_per_hour: float
    integration_total: float


class QuoteDiscounts(ApiModel):
    partner_tier: PartnerTier
    partner_generated_lead: bool
    base_discount_percent: float
    lead_bonus_percent: float
    total_discount_percent: float
    discount_amount: float


class CalculatedQuote(ApiModel):
    """Fully itemized quote. Every total is reconstructable from the breakdown."""

    products: QuoteProducts
    services: QuoteServices
    discounts: QuoteDiscounts
    subtotal: float
    total_discount: float
    total: float


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class QuoteRequest(ApiModel):
    """Product selection for a deal. Tier and lead flag come from the session and the deal."""

    deal_id: uuid.UUID
    population: int | None = Field(default=None, gt=0, le=2_000_000_000)
    sovra_gov_included: bool = True
    sovra_id_included: bool = False
    sovra_id_plan: SovraIdPlan = SovraIdPlan.ESSENTIALS
    wallet_implementation: bool = False
    integration_hours: int = Field(default=0, ge=0, le=100_000)


class QuoteRead(ApiModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    partner_id: str
    version: int
    products: QuoteProducts
    services: QuoteServices
    discounts: QuoteDiscounts
    subtotal: float
    total_discount: float
    total: float
    currency: str = "USD"
    created_at: datetime | None = None
