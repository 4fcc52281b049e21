"""Rating subscriber: records rating points when deals are approved, won or lost.

Registered for DEAL_APPROVED, DEAL_WON and DEAL_LOST. Runs after the
transition has been committed, in its own DB session, so a failure here is
logged and never undoes the status change.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from src.db.engine import async_session_factory, redis_client
from src.events.bus import emit
from src.models.deal import Deal
from src.models.rating import RatingEvent
from src.rating.calculator import EVENT_POINTS, deal_quality_factor, rating_event_for
from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

RATING_EVENT_TYPES: list[EventType] = [
    EventType.DEAL_APPROVED,
    EventType.DEAL_WON,
    EventType.DEAL_LOST,
]

DEAL_QUALITY_TTL_SECONDS = 24 * 60 * 60


def deal_quality_key(partner_id: str) -> str:
    return f"partner:{partner_id}:rating:deal_quality"


async def rating_on_event(event: SystemEvent) -> None:
    """Record rating points for the deal in `event` and refresh the partner's cached factor."""
    if event.partner_id is None:
        return

    to_status = event.data.get("to_status")
    meddic = event.data.get("meddic") or {}
    rating_type = rating_event_for(to_status, meddic) if to_status else None

    try:
        async with async_session_factory() as db:
            if rating_type is not None:
                db.add(RatingEvent(
                    partner_id=event.partner_id,
                    user_id=event.data.get("created_by") or event.actor_id,
                    deal_id=event.deal_id,
                    event_type=rating_type.value,
                    points=EVENT_POINTS[rating_type],
                    details={"to_status": to_status, "meddic": meddic},
                ))

            result = await db.execute(
                select(Deal.status, Deal.partner_generated_lead).where(Deal.partner_id == event.partner_id)
            )
            factor = deal_quality_factor(result.all())
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to record rating for deal %s (partner=%s)",
            event.deal_id,
            event.partner_id,
        )
        return

    try:
        await redis_client.setex(deal_quality_key(event.partner_id), DEAL_QUALITY_TTL_SECONDS, f"{factor:.2f}")
    except Exception:
        logger.warning("Could not cache deal quality for partner %s", event.partner_id, exc_info=True)

    if rating_type is not None:
        logger.info(
            "Rating %s (%+d) recorded for partner %s on deal %s",
            rating_type.value,
            EVENT_POINTS[rating_type],
            event.partner_id,
            event.deal_id,
        )
        await emit(SystemEvent(
            event_type=EventType.RATING_RECORDED,
            deal_id=event.deal_id,
            partner_id=event.partner_id,
            actor_id="system",
            actor_role="system",
            data={
                "rating_event": rating_type.value,
                "points": EVENT_POINTS[rating_type],
                "deal_quality": factor,
            },
            source_module="rating.subscriber",
        ))
