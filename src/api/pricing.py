"""Pricing configuration endpoints, restricted to Sovra admins."""
# ruff: noqa: B008

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_principal, update_limited
from src.db.engine import get_session
from src.schemas.auth import Principal
from src.schemas.pricing import PricingConfig
from src.services import pricing as pricing_service

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.get("", response_model=PricingConfig)
async def get_pricing(
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_principal),
) -> PricingConfig:
    return await pricing_service.read_pricing_config(db, principal)


@router.put("", response_model=PricingConfig)
async def update_pricing(
    body: PricingConfig,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(update_limited),
) -> PricingConfig:
    """Replace the pricing config. The body is validated before it reaches the service."""
    return await pricing_service.save_pricing_config(db, principal, body)
