"""Tests for the SovraGov / SovraID quote calculator.

Tests cover:
- Population band lookup, boundaries and largest-band fallback
- SovraID plan pricing
- Services (wallet, integration hours)
- Tier discounts with and without the lead bonus
- Totals: subtotal is the sum of components, total = subtotal - discount
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from src.models.enums import PartnerTier, SovraIdPlan
from src.pricing.calculator import (
    calculate_discounts,
    calculate_quote,
    calculate_sovra_gov_price,
    calculate_sovra_id_price,
    get_sovra_gov_price_per_inhabitant,
)
from src.pricing.defaults import DEFAULT_PRICING_CONFIG
from src.schemas.pricing import PricingConfig
from src.schemas.quotes import QuoteParams


def _config(**overrides: Any) -> PricingConfig:
    """Default config with top-level sections replaced."""
    data = DEFAULT_PRICING_CONFIG.model_dump()
    data.update(overrides)
    return PricingConfig.model_validate(data)


def _ladder() -> PricingConfig:
    """Three bands whose annual price keeps rising across each edge."""
    return _config(sovra_gov={"tiers": [
        {"max_population": 100_000, "price_per_inhabitant": 0.20},
        {"max_population": 500_000, "price_per_inhabitant": 0.26},
        {"max_population": 1_000_000, "price_per_inhabitant": 0.30},
    ]})


def _params(**overrides: Any) -> QuoteParams:
    values: dict[str, Any] = {
        "population": 500_000,
        "partner_tier": PartnerTier.BRONZE,
    }
    values.update(overrides)
    return QuoteParams(**values)


class TestSovraGovBands:
    def test_single_band(self) -> None:
        """500K inhabitants in a 1M band at 0.13 → 65,000 per year."""
        config = _config(sovra_gov={"tiers": [{"max_population": 1_000_000, "price_per_inhabitant": 0.13}]})
        ppi, annual = calculate_sovra_gov_price(500_000, config)
        assert ppi == 0.13
        assert annual == pytest.approx(65_000)

    def test_first_band_that_covers(self) -> None:
        config = _ladder()
        assert get_sovra_gov_price_per_inhabitant(50_000, config) == 0.20
        assert get_sovra_gov_price_per_inhabitant(300_000, config) == 0.26

    def test_boundary_is_inclusive(self) -> None:
        config = _ladder()
        assert get_sovra_gov_price_per_inhabitant(100_000, config) == 0.20
        assert get_sovra_gov_price_per_inhabitant(100_001, config) == 0.26

    def test_unsorted_bands_are_sorted(self) -> None:
        config = _config(sovra_gov={"tiers": [
            {"max_population": 1_000_000, "price_per_inhabitant": 0.5},
            {"max_population": 100_000, "price_per_inhabitant": 0.2},
        ]})
        assert get_sovra_gov_price_per_inhabitant(80_000, config) == 0.2

    def test_above_largest_band_uses_its_price(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="src.pricing.calculator"):
            ppi = get_sovra_gov_price_per_inhabitant(50_000_000, DEFAULT_PRICING_CONFIG)
        assert ppi == 0.32
        assert "exceeds the largest pricing band" in caplog.text

    @pytest.mark.parametrize("config", [DEFAULT_PRICING_CONFIG, _ladder()], ids=["default", "ladder"])
    def test_annual_price_never_drops_across_band_edges(self, config: PricingConfig) -> None:
        populations = {1, 999, 50_000, 20_000_000}
        for tier in config.sovra_gov.tiers:
            edge = tier.max_population
            populations.update({edge - 1, edge, edge + 1, edge * 2})
        annual = [calculate_sovra_gov_price(p, config)[1] for p in sorted(populations)]
        assert all(a <= b for a, b in zip(annual, annual[1:]))

    def test_band_edge_with_price_drop_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="lower the annual price"):
            _config(sovra_gov={"tiers": [
                {"max_population": 100_000, "price_per_inhabitant": 0.50},
                {"max_population": 250_000, "price_per_inhabitant": 0.40},
            ]})


class TestSovraId:
    @pytest.mark.parametrize(
        ("plan", "limit", "monthly"),
        [
            (SovraIdPlan.ESSENTIALS, 10_000, 1_000),
            (SovraIdPlan.PROFESSIONAL, 30_000, 2_000),
            (SovraIdPlan.ENTERPRISE, 50_000, 3_000),
        ],
    )
    def test_plans(self, plan: SovraIdPlan, limit: int, monthly: float) -> None:
        assert calculate_sovra_id_price(plan, DEFAULT_PRICING_CONFIG) == (limit, monthly, monthly * 12)


class TestDiscounts:
    def test_lead_bonus_applies_only_to_partner_leads(self) -> None:
        assert calculate_discounts(PartnerTier.GOLD, True, DEFAULT_PRICING_CONFIG) == (25, 15, 40)
        assert calculate_discounts(PartnerTier.GOLD, False, DEFAULT_PRICING_CONFIG) == (25, 0, 25)

    def test_gold_with_lead_on_100k(self) -> None:
        """Gold {base 10, bonus 5}, partner lead, subtotal 100,000 → 15%, 15,000 off, 85,000."""
        config = _config(
            sovra_gov={"tiers": [{"max_population": 1_000_000, "price_per_inhabitant": 0.5}]},
            discounts={
                **DEFAULT_PRICING_CONFIG.discounts.model_dump(),
                "gold": {"base": 10, "lead_bonus": 5},
            },
        )
        quote = calculate_quote(
            _params(population=200_000, partner_tier=PartnerTier.GOLD, partner_generated_lead=True),
            config,
        )
        assert quote.subtotal == pytest.approx(100_000)
        assert quote.discounts.total_discount_percent == 15
        assert quote.total_discount == pytest.approx(15_000)
        assert quote.total == pytest.approx(85_000)


class TestCalculateQuote:
    def test_full_selection(self) -> None:
        quote = calculate_quote(
            _params(
                population=500_000,
                sovra_id_included=True,
                sovra_id_plan=SovraIdPlan.PROFESSIONAL,
                wallet_implementation=True,
                integration_hours=40,
                partner_tier=PartnerTier.SILVER,
            ),
            DEFAULT_PRICING_CONFIG,
        )
        assert quote.products.sovra_gov.annual_price == pytest.approx(160_000)
        assert quote.products.sovra_id.annual_price == 24_000
        assert quote.services.wallet_price == 5_000
        assert quote.services.integration_total == 6_000
        assert quote.subtotal == pytest.approx(195_000)
        assert quote.discounts.total_discount_percent == 20
        assert quote.total == pytest.approx(156_000)

    def test_excluded_products_cost_nothing(self) -> None:
        quote = calculate_quote(_params(sovra_gov_included=False), DEFAULT_PRICING_CONFIG)
        assert quote.products.sovra_gov.annual_price == 0
        assert quote.products.sovra_gov.price_per_inhabitant == 0.32
        assert quote.products.sovra_id.annual_price == 0
        assert quote.subtotal == 0
        assert quote.total == 0

    def test_subtotal_is_sum_of_components(self) -> None:
        quote = calculate_quote(
            _params(sovra_id_included=True, wallet_implementation=True, integration_hours=7),
            DEFAULT_PRICING_CONFIG,
        )
        components = (
            quote.products.sovra_gov.annual_price
            + quote.products.sovra_id.annual_price
            + quote.services.wallet_price
            + quote.services.integration_total
        )
        assert quote.subtotal == pytest.approx(components)
        assert quote.total == pytest.approx(quote.subtotal - quote.total_discount)
        assert quote.discounts.discount_amount == quote.total_discount

    @pytest.mark.parametrize("tier", list(PartnerTier))
    def test_total_never_exceeds_subtotal(self, tier: PartnerTier) -> None:
        quote = calculate_quote(
            _params(partner_tier=tier, partner_generated_lead=True, wallet_implementation=True),
            DEFAULT_PRICING_CONFIG,
        )
        assert 0 <= quote.total <= quote.subtotal

    def test_does_not_mutate_inputs(self) -> None:
        params = _params(integration_hours=3)
        before = (params.model_dump(), DEFAULT_PRICING_CONFIG.model_dump())
        calculate_quote(params, DEFAULT_PRICING_CONFIG)
        assert (params.model_dump(), DEFAULT_PRICING_CONFIG.model_dump()) == before

    def test_camel_case_on_the_wire(self) -> None:
        payload = calculate_quote(_params(), DEFAULT_PRICING_CONFIG).model_dump(by_alias=True)
        assert "totalDiscount" in payload
        assert "pricePerInhabitant" in payload["products"]["sovraGov"]
