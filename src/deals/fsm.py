"""Deal lifecycle state machine.

Decides whether a status change is legal, who may perform it, and whether
a quote must exist first. It never persists anything and never raises for
bad input: unknown statuses and roles come back as denied decisions. The
caller applies an allowed change (status, status_changed_at) and emits the
post-transition events.
"""

from __future__ import annotations

import logging
from typing import Protocol

from src.deals.states import (
    QUOTE_REQUIRED_STATES,
    RATING_TRIGGER_STATES,
    SOVRA_REVIEWERS,
    TRANSITIONS,
)
from src.models.enums import DealStatus, UserRole
from src.schemas.deals import DenialReason, TransitionDecision

logger = logging.getLogger(__name__)


class HasStatus(Protocol):
    """Anything with a current deal status: the ORM Deal or a DealRead."""

    status: str


def _as_status(value: DealStatus | str) -> DealStatus | None:
    try:
        return DealStatus(value)
    except ValueError:
        return None


def _as_role(value: UserRole | str) -> UserRole | None:
    try:
        return UserRole(value)
    except ValueError:
        return None


def _label(value: DealStatus | str) -> str:
    return value.value if isinstance(value, DealStatus) else str(value)


def requires_quote(status: DealStatus | str) -> bool:
    """Check if entering a status requires at least one quote."""
    return _as_status(status) in QUOTE_REQUIRED_STATES


def triggers_rating(status: DealStatus | str) -> bool:
    """Check if entering a status should notify the rating subsystem."""
    return _as_status(status) in RATING_TRIGGER_STATES


def is_terminal(status: DealStatus | str) -> bool:
    """Check if a status has no outgoing transitions."""
    parsed = _as_status(status)
    return parsed is not None and not TRANSITIONS[parsed]


def evaluate_status_transition(
    current: DealStatus | str,
    target: DealStatus | str,
    actor_role: UserRole | str,
    has_quote: bool,
) -> TransitionDecision:
    """Decide a transition from a bare current status.

    Checks run in a fixed order: target/current validity, no-op, reachability,
    role authority, quote precondition.
    """
    target_status = _as_status(target)
    if target_status is None:
        return TransitionDecision.deny(
            DenialReason.INVALID_TRANSITION, f"Unknown deal status: {_label(target)}"
        )

    current_status = _as_status(current)
    if current_status is None:
        return TransitionDecision.deny(
            DenialReason.INVALID_TRANSITION, f"Deal has an unknown status: {_label(current)}"
        )

    if target_status == current_status:
        return TransitionDecision.deny(
            DenialReason.INVALID_TRANSITION, f"Deal is already {current_status.value}"
        )

    allowed_roles = TRANSITIONS[current_status].get(target_status)
    if allowed_roles is None:
        return TransitionDecision.deny(
            DenialReason.INVALID_TRANSITION,
            f"Cannot move a deal from {current_status.value} to {target_status.value}",
        )

    role = _as_role(actor_role)
    if role is None:
        return TransitionDecision.deny(DenialReason.FORBIDDEN, f"Unknown role: {_label(actor_role)}")

    if role not in allowed_roles:
        if allowed_roles == SOVRA_REVIEWERS:
            message = "Only Sovra admins can approve, reject or request more information on a deal"
        else:
            message = f"Only the partner that owns the deal can move it to {target_status.value}"
        return TransitionDecision.deny(DenialReason.FORBIDDEN, message)

    if target_status in QUOTE_REQUIRED_STATES and not has_quote:
        return TransitionDecision.deny(
            DenialReason.QUOTE_REQUIRED,
            f"A quote must be created before moving the deal to {target_status.value}",
        )

    return TransitionDecision.allow()


def evaluate_transition(
    deal: HasStatus,
    target: DealStatus | str,
    actor_role: UserRole | str,
    has_quote: bool,
) -> TransitionDecision:
    """Decide whether `actor_role` may move `deal` to `target`.

    Args:
        deal: The deal as currently stored (only its status is read).
        target: Requested status.
        actor_role: Role of the acting principal.
        has_quote: Whether at least one quote exists for the deal.

    Returns:
        An allowed decision, or a denied one carrying InvalidTransition,
        Forbidden or QuoteRequired and a user-facing message.
    """
    decision = evaluate_status_transition(deal.status, target, actor_role, has_quote)
    if not decision.allowed:
        logger.debug(
            "Transition denied: %s -> %s (role=%s, reason=%s)",
            _label(deal.status),
            _label(target),
            _label(actor_role),
            decision.reason.value if decision.reason else None,
        )
    return decision


def get_available_transitions(
    current: DealStatus | str,
    actor_role: UserRole | str,
) -> set[DealStatus]:
    """Targets the role could move a deal to, assuming the quote precondition is met.

    Built from evaluate_status_transition so the two can never disagree.
    """
    return {
        target
        for target in DealStatus
        if evaluate_status_transition(current, target, actor_role, has_quote=True).allowed
    }
