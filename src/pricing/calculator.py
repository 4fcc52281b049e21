"""SovraGov / SovraID quote calculator.

Pure function of (params, config): no I/O, no mutation of arguments.
Money is float USD with no rounding inside the calculation; rounding is a
presentation concern (see src.pricing.formatters).

Steps:
  1. SovraGov: flat per-inhabitant price of the first band whose
     max_population covers the population, applied to the whole population
  2. SovraID: plan monthly price × 12
  3. Services: wallet implementation flag + integration hours × hourly rate
  4. Subtotal = sum of the four components
  5. Discount = tier base % (+ lead bonus % when the partner generated the lead)
  6. Total = subtotal − discount
"""

from __future__ import annotations

import logging

from src.models.enums import PartnerTier, SovraIdPlan
from src.schemas.pricing import PricingConfig
from src.schemas.quotes import (
    CalculatedQuote,
    QuoteDiscounts,
    QuoteParams,
    QuoteProducts,
    QuoteServices,
    SovraGovLine,
    SovraIdLine,
)

logger = logging.getLogger(__name__)


def get_sovra_gov_price_per_inhabitant(population: int, config: PricingConfig) -> float:
    """Return the unit price of the band that covers `population`.

    Populations above every band reuse the largest band's price.
    """
    tiers = sorted(config.sovra_gov.tiers, key=lambda t: t.max_population)
    for tier in tiers:
        if population <= tier.max_population:
            return tier.price_per_inhabitant

    largest = tiers[-1]
    logger.warning(
        "Population %d exceeds the largest pricing band (%d); using its price %.4f",
        population,
        largest.max_population,
        largest.price_per_inhabitant,
    )
    return largest.price_per_inhabitant


def calculate_sovra_gov_price(population: int, config: PricingConfig) -> tuple[float, float]:
    """Return (price_per_inhabitant, annual_price) for SovraGov."""
    price_per_inhabitant = get_sovra_gov_price_per_inhabitant(population, config)
    return price_per_inhabitant, population * price_per_inhabitant


def calculate_sovra_id_price(plan: SovraIdPlan, config: PricingConfig) -> tuple[int, float, float]:
    """Return (monthly_limit, monthly_price, annual_price) for a SovraID plan."""
    plan_config = config.sovra_id.for_plan(plan)
    return plan_config.monthly_limit, plan_config.monthly_price, plan_config.monthly_price * 12


def calculate_discounts(
    partner_tier: PartnerTier,
    partner_generated_lead: bool,
    config: PricingConfig,
) -> tuple[float, float, float]:
    """Return (base_percent, lead_bonus_percent, total_percent) for a tier."""
    tier_config = config.discounts.for_tier(partner_tier)
    base = tier_config.base
    lead_bonus = tier_config.lead_bonus if partner_generated_lead else 0.0
    return base, lead_bonus, base + lead_bonus


def calculate_quote(params: QuoteParams, config: PricingConfig) -> CalculatedQuote:
    """Price a product selection for a partner.

    Args:
        params: Validated selection (population > 0, known plan and tier).
        config: Pricing snapshot to price against.

    Returns:
        CalculatedQuote with per-product lines, services, discounts and totals.
    """
    price_per_inhabitant, sovra_gov_annual = calculate_sovra_gov_price(params.population, config)
    if not params.sovra_gov_included:
        sovra_gov_annual = 0.0

    monthly_limit, monthly_price, sovra_id_annual = calculate_sovra_id_price(params.sovra_id_plan, config)
    if not params.sovra_id_included:
        sovra_id_annual = 0.0

    wallet_price = config.services.wallet_implementation if params.wallet_implementation else 0.0
    integration_rate = config.services.integration_hourly_rate
    integration_total = params.integration_hours * integration_rate

    subtotal = sovra_gov_annual + sovra_id_annual + wallet_price + integration_total

    base, lead_bonus, total_percent = calculate_discounts(
        params.partner_tier, params.partner_generated_lead, config
    )
    discount_amount = subtotal * (total_percent / 100)

    return CalculatedQuote(
        products=QuoteProducts(
            sovra_gov=SovraGovLine(
                included=params.sovra_gov_included,
                population_used=params.population,
                price_per_inhabitant=price_per_inhabitant,
                annual_price=sovra_gov_annual,
            ),
            sovra_id=SovraIdLine(
                included=params.sovra_id_included,
                plan=params.sovra_id_plan,
                monthly_limit=monthly_limit,
                monthly_price=monthly_price,
                annual_price=sovra_id_annual,
            ),
        ),
        services=QuoteServices(
            wallet_implementation=params.wallet_implementation,
            wallet_price=wallet_price,
            integration_hours=params.integration_hours,
            integration_price_per_hour=integration_rate,
            integration_total=integration_total,
        ),
        discounts=QuoteDiscounts(
            partner_tier=params.partner_tier,
            partner_generated_lead=params.partner_generated_lead,
            base_discount_percent=base,
            lead_bonus_percent=lead_bonus,
            total_discount_percent=total_percent,
            discount_amount=discount_amount,
        ),
        subtotal=subtotal,
        total_discount=discount_amount,
        total=subtotal - discount_amount,
    )
