"""Pricing configuration persistence.

Every save appends a revision; the newest revision is the current config.
Reads fall back to the built-in defaults until a Sovra admin saves one.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.errors import ForbiddenError
from src.events.bus import emit
from src.models.pricing import PricingConfigRevision
from src.pricing.defaults import DEFAULT_PRICING_CONFIG
from src.schemas.auth import Principal
from src.schemas.events import EventType, SystemEvent
from src.schemas.pricing import PricingConfig

logger = logging.getLogger(__name__)


def require_sovra_admin(principal: Principal) -> None:
    """Raise ForbiddenError unless the principal is a Sovra admin."""
    if not principal.is_sovra_admin:
        raise ForbiddenError("Only Sovra admins can manage pricing")


async def get_pricing_config(db: AsyncSession) -> PricingConfig:
    """Return the current pricing config as an immutable snapshot."""
    result = await db.execute(
        select(PricingConfigRevision).order_by(PricingConfigRevision.created_at.desc()).limit(1)
    )
    revision = result.scalar_one_or_none()
    if revision is None:
        return DEFAULT_PRICING_CONFIG
    return PricingConfig.model_validate(revision.document)


async def read_pricing_config(db: AsyncSession, principal: Principal) -> PricingConfig:
    """The current config as shown to a Sovra admin. Partners never read it directly."""
    require_sovra_admin(principal)
    return await get_pricing_config(db)


async def save_pricing_config(
    db: AsyncSession,
    principal: Principal,
    config: PricingConfig,
) -> PricingConfig:
    """Store a new pricing revision. The config is already validated by its schema."""
    require_sovra_admin(principal)

    revision = PricingConfigRevision(
        document=config.model_dump(mode="json"),
        updated_by=principal.user_id,
    )
    db.add(revision)
    await db.commit()

    logger.info(
        "Pricing config updated by %s (%d SovraGov tiers)",
        principal.user_id,
        len(config.sovra_gov.tiers),
    )
    await emit(SystemEvent(
        event_type=EventType.PRICING_UPDATED,
        actor_id=principal.user_id,
        actor_role=principal.role,
        data={"config": config.model_dump(mode="json")},
        source_module="services.pricing",
    ))
    return config
