"""Partner rating: points and deal-quality factor fed by deal lifecycle events."""

from src.rating.calculator import (
    EVENT_POINTS,
    deal_quality_factor,
    is_poor_qualification,
    meddic_average,
    rating_event_for,
)

__all__ = [
    "EVENT_POINTS",
    "deal_quality_factor",
    "is_poor_qualification",
    "meddic_average",
    "rating_event_for",
]
