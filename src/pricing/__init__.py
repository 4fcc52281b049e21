"""Quote pricing: calculator, default configuration, display formatters."""

from src.pricing.calculator import (
    calculate_discounts,
    calculate_quote,
    calculate_sovra_gov_price,
    calculate_sovra_id_price,
    get_sovra_gov_price_per_inhabitant,
)
from src.pricing.defaults import DEFAULT_PRICING_CONFIG

__all__ = [
    "DEFAULT_PRICING_CONFIG",
    "calculate_discounts",
    "calculate_quote",
    "calculate_sovra_gov_price",
    "calculate_sovra_id_price",
    "get_sovra_gov_price_per_inhabitant",
]
