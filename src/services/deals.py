"""Deal persistence and lifecycle operations.

Loads deals, checks that the principal may touch them, asks the state
machine for a decision, applies allowed changes and emits post-transition
events once the change is committed. Status changes lock the deal row
(SELECT ... FOR UPDATE) and rely on the optimistic `row_version` so two
concurrent requests cannot both apply against a stale status or quote count.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.deals.fsm import evaluate_transition, get_available_transitions
from src.deals.states import EDITABLE_STATES
from src.errors import ConflictError, ForbiddenError, NotFoundError, TransitionDenied, ValidationError
from src.events.bus import emit
from src.models.deal import Deal
from src.models.enums import DealStatus, UserRole
from src.models.quote import Quote
from src.schemas.auth import Principal
from src.schemas.deals import MEDDIC_FIELDS, AvailableTransitions, DealCreate, DealUpdate, MeddicScores
from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

_STATUS_EVENTS: dict[DealStatus, EventType] = {
    DealStatus.APPROVED: EventType.DEAL_APPROVED,
    DealStatus.REJECTED: EventType.DEAL_REJECTED,
    DealStatus.MORE_INFO: EventType.DEAL_MORE_INFO_REQUESTED,
    DealStatus.WON: EventType.DEAL_WON,
    DealStatus.LOST: EventType.DEAL_LOST,
}

# Reviewer decisions that must explain themselves to the partner
_REASON_REQUIRED: frozenset[DealStatus] = frozenset({DealStatus.REJECTED, DealStatus.MORE_INFO})

_PARTNER_WRITERS: frozenset[str] = frozenset({UserRole.ADMIN.value, UserRole.SALES.value})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Loading & access ─────────────────────────────────────────────────


async def get_deal(db: AsyncSession, deal_id: uuid.UUID, *, for_update: bool = False) -> Deal | None:
    """Fetch a deal by ID, optionally locking the row for the rest of the transaction."""
    stmt = select(Deal).where(Deal.id == deal_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def check_access(principal: Principal, deal: Deal) -> None:
    """Sovra admins see every deal; partner users only their own partner's deals."""
    if principal.is_sovra_admin:
        return
    if principal.partner_id is None or deal.partner_id != principal.partner_id:
        raise ForbiddenError("Access denied")


def check_owner(principal: Principal, deal: Deal) -> None:
    """Partner-side writes: the deal's creator or a partner admin."""
    check_access(principal, deal)
    if principal.is_sovra_admin:
        return
    if deal.created_by != principal.user_id and not principal.is_partner_admin:
        raise ForbiddenError("Only the deal creator or a partner admin can change this deal")


async def require_deal(
    db: AsyncSession,
    deal_id: uuid.UUID,
    principal: Principal,
    *,
    for_update: bool = False,
) -> Deal:
    """Load a deal the principal may see.

    Args:
        db: Database session.
        deal_id: Deal to load.
        principal: The acting user, checked with `check_access`.
        for_update: Lock the row until the transaction ends.

    Returns:
        The Deal. NotFoundError if it does not exist, ForbiddenError if it
        belongs to another partner.
    """
    deal = await get_deal(db, deal_id, for_update=for_update)
    if deal is None:
        raise NotFoundError("Deal")
    check_access(principal, deal)
    return deal


async def has_quote(db: AsyncSession, deal_id: uuid.UUID) -> bool:
    """Whether at least one quote exists for the deal."""
    result = await db.execute(select(func.count(Quote.id)).where(Quote.deal_id == deal_id))
    return (result.scalar() or 0) > 0


async def list_deals(
    db: AsyncSession,
    principal: Principal,
    status: DealStatus | None = None,
    page: int = 1,
    per_page: int = 25,
) -> tuple[list[Deal], int]:
    """Newest-first page of deals visible to the principal, plus the total count."""
    conditions = []
    if not principal.is_sovra_admin:
        if principal.partner_id is None:
            raise ForbiddenError("Access denied")
        conditions.append(Deal.partner_id == principal.partner_id)
    if status is not None:
        conditions.append(Deal.status == status.value)

    total_result = await db.execute(select(func.count(Deal.id)).where(*conditions))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Deal)
        .where(*conditions)
        .order_by(Deal.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


# ── Writes ───────────────────────────────────────────────────────────


async def _commit(db: AsyncSession, deal_id: uuid.UUID) -> None:
    try:
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning("Concurrent modification of deal %s", deal_id)
        raise ConflictError("The deal was modified by someone else, reload and try again") from exc


def _event(event_type: EventType, deal: Deal, principal: Principal, data: dict[str, object]) -> SystemEvent:
    return SystemEvent(
        event_type=event_type,
        deal_id=deal.id,
        partner_id=deal.partner_id,
        actor_id=principal.user_id,
        actor_role=principal.role,
        data=data,
        source_module="services.deals",
    )


async def create_deal(db: AsyncSession, principal: Principal, data: DealCreate) -> Deal:
    """Register a new deal in pending_approval for the principal's partner."""
    if principal.role not in _PARTNER_WRITERS or principal.partner_id is None:
        raise ForbiddenError("Only partner admins and sales users can register deals")

    now = _utcnow()
    deal = Deal(
        id=uuid.uuid4(),
        partner_id=principal.partner_id,
        created_by=principal.user_id,
        client_name=data.client_name,
        country=data.country,
        government_level=data.government_level.value,
        population=data.population,
        contact_name=data.contact_name,
        contact_role=data.contact_role,
        contact_email=data.contact_email,
        contact_phone=data.contact_phone,
        description=data.description,
        partner_generated_lead=data.partner_generated_lead,
        status=DealStatus.PENDING_APPROVAL.value,
        status_changed_at=now,
        status_changed_by=principal.user_id,
        created_at=now,
        updated_at=now,
    )
    db.add(deal)
    await db.commit()

    logger.info("Deal %s registered by %s (partner=%s)", deal.id, principal.user_id, deal.partner_id)
    await emit(_event(EventType.DEAL_CREATED, deal, principal, {
        "client_name": deal.client_name,
        "population": deal.population,
        "partner_generated_lead": deal.partner_generated_lead,
    }))
    return deal


def _apply_field_changes(deal: Deal, changes: dict[str, object]) -> dict[str, dict[str, object]]:
    diff: dict[str, dict[str, object]] = {}
    for name, value in changes.items():
        if value is None and name != "contact_phone":
            raise ValidationError(f"{name} cannot be empty", fields={name: "required"})
        stored = value.value if hasattr(value, "value") else value
        old = getattr(deal, name)
        if old != stored:
            diff[name] = {"old": old, "new": stored}
            setattr(deal, name, stored)
    return diff


async def update_deal(
    db: AsyncSession,
    principal: Principal,
    deal_id: uuid.UUID,
    update: DealUpdate,
) -> Deal:
    """Apply field edits and/or a status change in one transaction.

    Field edits are only accepted while the deal is pending approval or
    awaiting more information, and only from its partner. A status change is
    decided by the state machine; denials raise TransitionDenied.
    """
    deal = await require_deal(db, deal_id, principal, for_update=True)

    field_changes = update.field_changes()
    diff: dict[str, dict[str, object]] = {}
    if field_changes:
        if principal.is_sovra_admin:
            raise ForbiddenError("Sovra admins cannot edit partner deal details")
        check_owner(principal, deal)
        if DealStatus(deal.status) not in EDITABLE_STATES:
            raise ValidationError("Deal details can only be edited before approval")
        diff = _apply_field_changes(deal, field_changes)

    previous_status = DealStatus(deal.status)
    target = update.status
    if target is not None:
        if not principal.is_sovra_admin:
            check_owner(principal, deal)
        decision = evaluate_transition(deal, target, principal.role, await has_quote(db, deal.id))
        if not decision.allowed:
            raise TransitionDenied(decision)
        if target in _REASON_REQUIRED and not (update.notes and update.notes.strip()):
            raise ValidationError("A reason is required to reject a deal or request more information")

        deal.status = target.value
        deal.status_changed_at = _utcnow()
        deal.status_changed_by = principal.user_id
        deal.status_notes = update.notes
        deal.rejection_reason = update.notes if target in _REASON_REQUIRED else None

    if not diff and target is None:
        return deal

    deal.updated_at = _utcnow()
    await _commit(db, deal.id)

    if diff:
        logger.info("Deal %s fields updated by %s: %s", deal.id, principal.user_id, sorted(diff))
        await emit(_event(EventType.DEAL_UPDATED, deal, principal, {"changes": diff}))

    if target is not None:
        logger.info(
            "Deal %s status %s -> %s by %s (%s)",
            deal.id,
            previous_status.value,
            target.value,
            principal.user_id,
            principal.role,
        )
        data: dict[str, object] = {
            "from_status": previous_status.value,
            "to_status": target.value,
            "notes": update.notes,
            "created_by": deal.created_by,
            "meddic": {name: getattr(deal, name) for name in MEDDIC_FIELDS},
        }
        await emit(_event(EventType.DEAL_STATUS_CHANGED, deal, principal, data))
        specific = _STATUS_EVENTS.get(target)
        if specific is not None:
            await emit(_event(specific, deal, principal, data))

    return deal


async def update_meddic(
    db: AsyncSession,
    principal: Principal,
    deal_id: uuid.UUID,
    scores: MeddicScores,
) -> Deal:
    """Merge the provided MEDDIC scores into the deal. Never affects its status."""
    deal = await require_deal(db, deal_id, principal, for_update=True)
    if principal.is_sovra_admin:
        raise ForbiddenError("MEDDIC scores are maintained by the partner")
    check_owner(principal, deal)

    provided = scores.model_dump(exclude_none=True)
    previous = {name: getattr(deal, name) for name in MEDDIC_FIELDS}
    for name, value in provided.items():
        setattr(deal, name, value)
    deal.updated_at = _utcnow()
    await _commit(db, deal.id)

    await emit(_event(EventType.DEAL_MEDDIC_UPDATED, deal, principal, {
        "previous": previous,
        "updated": provided,
    }))
    return deal


async def available_transitions(
    db: AsyncSession,
    principal: Principal,
    deal_id: uuid.UUID,
) -> AvailableTransitions:
    """Statuses the principal can move the deal to, for rendering choices."""
    deal = await require_deal(db, deal_id, principal)
    targets = get_available_transitions(deal.status, principal.role)
    if targets and not principal.is_sovra_admin:
        try:
            check_owner(principal, deal)
        except ForbiddenError:
            targets = set()
    return AvailableTransitions(
        status=DealStatus(deal.status),
        targets=sorted(targets, key=lambda s: list(DealStatus).index(s)),
        has_quote=await has_quote(db, deal.id),
    )
