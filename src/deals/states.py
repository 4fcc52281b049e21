"""Deal status transition table.

Sovra admins own the approval stage; the partner that registered the deal
owns everything after approval. Every DealStatus must appear as a key;
terminal statuses map to an empty dict.
"""

from __future__ import annotations

from src.models.enums import DealStatus, UserRole

SOVRA_REVIEWERS: frozenset[UserRole] = frozenset({UserRole.SOVRA_ADMIN})
PARTNER_OWNERS: frozenset[UserRole] = frozenset({UserRole.ADMIN, UserRole.SALES})

# {current_status: {target_status: roles allowed to perform it}}
TRANSITIONS: dict[DealStatus, dict[DealStatus, frozenset[UserRole]]] = {
    DealStatus.PENDING_APPROVAL: {
        DealStatus.APPROVED: SOVRA_REVIEWERS,
        DealStatus.REJECTED: SOVRA_REVIEWERS,
        DealStatus.MORE_INFO: SOVRA_REVIEWERS,
    },
    DealStatus.MORE_INFO: {
        DealStatus.PENDING_APPROVAL: PARTNER_OWNERS,  # resubmission
        DealStatus.APPROVED: SOVRA_REVIEWERS,
        DealStatus.REJECTED: SOVRA_REVIEWERS,
    },
    DealStatus.APPROVED: {
        DealStatus.NEGOTIATION: PARTNER_OWNERS,
    },
    DealStatus.NEGOTIATION: {
        DealStatus.CONTRACTING: PARTNER_OWNERS,
        DealStatus.LOST: PARTNER_OWNERS,
    },
    DealStatus.CONTRACTING: {
        DealStatus.AWARDED: PARTNER_OWNERS,
        DealStatus.LOST: PARTNER_OWNERS,
    },
    DealStatus.AWARDED: {
        DealStatus.WON: PARTNER_OWNERS,
        DealStatus.LOST: PARTNER_OWNERS,
    },
    DealStatus.REJECTED: {},
    DealStatus.WON: {},
    DealStatus.LOST: {},
}

# Statuses that can only be entered once the deal has at least one quote
QUOTE_REQUIRED_STATES: frozenset[DealStatus] = frozenset({
    DealStatus.NEGOTIATION,
    DealStatus.CONTRACTING,
    DealStatus.AWARDED,
    DealStatus.WON,
    DealStatus.LOST,
})

# Entering one of these notifies the rating subsystem
RATING_TRIGGER_STATES: frozenset[DealStatus] = frozenset({
    DealStatus.APPROVED,
    DealStatus.WON,
    DealStatus.LOST,
})

# Deal fields (client, contact, description) are editable only before approval
EDITABLE_STATES: frozenset[DealStatus] = frozenset({
    DealStatus.PENDING_APPROVAL,
    DealStatus.MORE_INFO,
})

_missing = set(DealStatus) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"Transition table is missing statuses: {sorted(s.value for s in _missing)}")
