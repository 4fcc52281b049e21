"""Display helpers for quote amounts. Never used inside calculations."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def format_currency(value: float | int | None) -> str:
    """Format as USD with up to 2 decimals: 65000 -> "$65,000", 1234.5 -> "$1,234.5"."""
    if value is None:
        return "-"
    d = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if d < 0 else ""
    formatted = f"{abs(d):,.2f}".rstrip("0").rstrip(".")
    return f"{sign}${formatted}"


def _trim(value: float, places: int) -> str:
    return f"{value:.{places}f}".rstrip("0").rstrip(".")


def format_population(population: int) -> str:
    """Compact population: 1_000_000 -> "1M", 1_500_000 -> "1.5M", 1_234 -> "1.234K", 999 -> "999"."""
    if population >= 1_000_000:
        return _trim(population / 1_000_000, 3) + "M"
    if population >= 1_000:
        return _trim(population / 1_000, 3) + "K"
    return str(population)


def format_percent(value: float | None) -> str:
    """Format a percentage already on the 0–100 scale: 15 -> "15%", 12.5 -> "12.5%"."""
    if value is None:
        return "-"
    return _trim(value, 1) + "%"
