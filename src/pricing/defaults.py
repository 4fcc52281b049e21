"""Built-in pricing used until a Sovra admin saves a configuration.

SovraGov ships with one band. Bands charge a flat price on the whole
population, so a cheaper band above a dearer one would make the price drop
at the band edge; admins adding bands must keep the annual price rising.
"""

from __future__ import annotations

from src.schemas.pricing import PricingConfig

DEFAULT_PRICING_CONFIG = PricingConfig.model_validate({
    "sovra_gov": {
        "tiers": [
            {"max_population": 10_000_000, "price_per_inhabitant": 0.32},
        ],
    },
    "sovra_id": {
        "essentials": {"monthly_limit": 10_000, "monthly_price": 1_000},
        "professional": {"monthly_limit": 30_000, "monthly_price": 2_000},
        "enterprise": {"monthly_limit": 50_000, "monthly_price": 3_000},
    },
    "services": {
        "wallet_implementation": 5_000,
        "integration_hourly_rate": 150,
    },
    "discounts": {
        "bronze": {"base": 5, "lead_bonus": 0},
        "silver": {"base": 20, "lead_bonus": 10},
        "gold": {"base": 25, "lead_bonus": 15},
        "platinum": {"base": 30, "lead_bonus": 20},
    },
})
