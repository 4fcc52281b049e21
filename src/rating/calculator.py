"""Partner rating rules driven by the deal lifecycle.

Pure functions, no I/O. Implements:
- Points per rating event (won +15, lost with poor qualification -10)
- MEDDIC qualification check
- Deal-quality factor (0-100) from a partner's deal history

Deal-quality factor:
  40% approval rate      (approved, won or lost over all deals)
  40% win rate           (won over closed deals)
  20% lead generation    (partner-generated leads over all deals)
  Partners without deals get the neutral 50.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Protocol

from src.models.enums import DealStatus, RatingEventType

EVENT_POINTS: dict[RatingEventType, int] = {
    RatingEventType.DEAL_CLOSED_WON: 15,
    RatingEventType.DEAL_CLOSED_LOST_POOR_QUALIFICATION: -10,
}

POOR_QUALIFICATION_THRESHOLD = 3.0
NEUTRAL_DEAL_QUALITY = 50.0

_APPROVED_OR_CLOSED = frozenset({DealStatus.APPROVED.value, DealStatus.WON.value, DealStatus.LOST.value})
_CLOSED = frozenset({DealStatus.WON.value, DealStatus.LOST.value})


class DealOutcome(Protocol):
    status: str
    partner_generated_lead: bool


def meddic_average(scores: Mapping[str, int | None]) -> float | None:
    """Average of the scored MEDDIC fields, or None when nothing is scored."""
    scored = [value for value in scores.values() if value is not None]
    if not scored:
        return None
    return sum(scored) / len(scored)


def is_poor_qualification(scores: Mapping[str, int | None]) -> bool:
    """A deal without scores counts as poorly qualified."""
    average = meddic_average(scores)
    return average is None or average < POOR_QUALIFICATION_THRESHOLD


def rating_event_for(status: DealStatus | str, meddic: Mapping[str, int | None]) -> RatingEventType | None:
    """Rating event recorded when a deal enters `status`, if any."""
    if status == DealStatus.WON:
        return RatingEventType.DEAL_CLOSED_WON
    if status == DealStatus.LOST and is_poor_qualification(meddic):
        return RatingEventType.DEAL_CLOSED_LOST_POOR_QUALIFICATION
    return None


def deal_quality_factor(deals: Iterable[DealOutcome]) -> float:
    """Deal-quality factor for a partner (0-100)."""
    history: Sequence[DealOutcome] = list(deals)
    if not history:
        return NEUTRAL_DEAL_QUALITY

    total = len(history)
    approved = sum(1 for d in history if d.status in _APPROVED_OR_CLOSED)
    closed = [d for d in history if d.status in _CLOSED]
    won = sum(1 for d in closed if d.status == DealStatus.WON.value)
    leads = sum(1 for d in history if d.partner_generated_lead)

    approval_rate = approved / total
    win_rate = won / len(closed) if closed else 0.0
    lead_rate = leads / total

    return approval_rate * 40 + win_rate * 40 + lead_rate * 20
