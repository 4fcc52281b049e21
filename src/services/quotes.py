"""Quote creation and retrieval.

Quotes are computed server-side from the product selection, the deal, the
principal's partner tier and the current pricing config. They are never
edited: a changed selection is saved as the next version for the deal.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from src.events.bus import emit
from src.models.deal import Deal
from src.models.enums import DealStatus
from src.models.quote import Quote
from src.pricing.calculator import calculate_quote
from src.schemas.auth import Principal
from src.schemas.events import EventType, SystemEvent
from src.schemas.quotes import CalculatedQuote, QuoteParams, QuoteRequest
from src.services.deals import require_deal
from src.services.pricing import get_pricing_config

logger = logging.getLogger(__name__)


async def get_quote(db: AsyncSession, principal: Principal, quote_id: uuid.UUID) -> Quote:
    """Load one quote the principal may see.

    Args:
        db: Database session.
        principal: The acting user; partner users only see their partner's quotes.
        quote_id: Quote to load.

    Returns:
        The Quote. NotFoundError if it does not exist, ForbiddenError if it
        belongs to another partner.
    """
    result = await db.execute(select(Quote).where(Quote.id == quote_id))
    quote = result.scalar_one_or_none()
    if quote is None:
        raise NotFoundError("Quote")
    if not principal.is_sovra_admin and quote.partner_id != principal.partner_id:
        raise ForbiddenError("Access denied")
    return quote


async def list_quotes(db: AsyncSession, principal: Principal, limit: int = 50) -> list[Quote]:
    """Newest quotes across deals: the partner's own, or every partner's for a Sovra admin."""
    stmt = select(Quote).order_by(Quote.created_at.desc()).limit(limit)
    if not principal.is_sovra_admin:
        if principal.partner_id is None:
            raise ForbiddenError("Access denied")
        stmt = stmt.where(Quote.partner_id == principal.partner_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_quotes_for_deal(db: AsyncSession, principal: Principal, deal_id: uuid.UUID) -> list[Quote]:
    """All quotes of a deal, oldest version first."""
    await require_deal(db, deal_id, principal)
    result = await db.execute(
        select(Quote).where(Quote.deal_id == deal_id).order_by(Quote.version.asc())
    )
    return list(result.scalars().all())


async def next_quote_version(db: AsyncSession, deal_id: uuid.UUID) -> int:
    """Highest existing version + 1. Call with the deal row locked."""
    result = await db.execute(select(func.max(Quote.version)).where(Quote.deal_id == deal_id))
    return (result.scalar() or 0) + 1


def _build_params(principal: Principal, deal: Deal, request: QuoteRequest) -> QuoteParams:
    if principal.partner_tier is None:
        raise ValidationError("A partner tier is required to price a quote")
    return QuoteParams(
        population=request.population or deal.population,
        sovra_gov_included=request.sovra_gov_included,
        sovra_id_included=request.sovra_id_included,
        sovra_id_plan=request.sovra_id_plan,
        wallet_implementation=request.wallet_implementation,
        integration_hours=request.integration_hours,
        partner_tier=principal.partner_tier,
        partner_generated_lead=deal.partner_generated_lead,
    )


async def preview_quote(db: AsyncSession, principal: Principal, request: QuoteRequest) -> CalculatedQuote:
    """Price a selection for a deal without storing anything."""
    deal = await require_deal(db, request.deal_id, principal)
    params = _build_params(principal, deal, request)
    return calculate_quote(params, await get_pricing_config(db))


async def create_quote(db: AsyncSession, principal: Principal, request: QuoteRequest) -> Quote:
    """Compute and store the next quote version for an approved deal.

    The deal row stays locked until commit so concurrent requests for the
    same deal get consecutive versions.
    """
    if principal.is_sovra_admin or principal.partner_id is None:
        raise ForbiddenError("Only the partner that owns the deal can create quotes")

    deal = await require_deal(db, request.deal_id, principal, for_update=True)
    if deal.status != DealStatus.APPROVED.value:
        raise ValidationError("Can only create quotes for approved deals")

    params = _build_params(principal, deal, request)
    calculated = calculate_quote(params, await get_pricing_config(db))
    payload = calculated.model_dump(mode="json")

    now = datetime.now(timezone.utc)
    quote = Quote(
        id=uuid.uuid4(),
        deal_id=deal.id,
        partner_id=deal.partner_id,
        version=await next_quote_version(db, deal.id),
        products=payload["products"],
        services=payload["services"],
        discounts=payload["discounts"],
        subtotal=calculated.subtotal,
        total_discount=calculated.total_discount,
        total=calculated.total,
        currency="USD",
        created_at=now,
        updated_at=now,
    )
    db.add(quote)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Quote version collision for deal %s", deal.id)
        raise ConflictError("Another quote was saved for this deal at the same time, please retry") from exc

    logger.info(
        "Quote v%d created for deal %s by %s: total=%.2f",
        quote.version,
        deal.id,
        principal.user_id,
        quote.total,
    )
    await emit(SystemEvent(
        event_type=EventType.QUOTE_CREATED,
        deal_id=deal.id,
        partner_id=deal.partner_id,
        actor_id=principal.user_id,
        actor_role=principal.role,
        data={
            "quote_id": str(quote.id),
            "version": quote.version,
            "subtotal": quote.subtotal,
            "total_discount": quote.total_discount,
            "total": quote.total,
        },
        source_module="services.quotes",
    ))
    return quote
