"""Deal registration, review and lifecycle endpoints."""
# ruff: noqa: B008

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import create_limited, get_principal, list_limited, update_limited
from src.db.engine import get_session
from src.models.enums import DealStatus
from src.schemas.auth import Principal
from src.schemas.deals import AvailableTransitions, DealCreate, DealPage, DealRead, DealUpdate, MeddicScores
from src.services import deals as deal_service

router = APIRouter(prefix="/deals", tags=["deals"])


@router.post("", response_model=DealRead, status_code=status.HTTP_201_CREATED)
async def create_deal(
    body: DealCreate,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(create_limited),
) -> DealRead:
    deal = await deal_service.create_deal(db, principal, body)
    return DealRead.from_model(deal)


@router.get("", response_model=DealPage)
async def list_deals(
    status_filter: DealStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=25, ge=1, le=100, alias="perPage"),
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(list_limited),
) -> DealPage:
    """Own partner's deals, or every deal for Sovra admins. Newest first."""
    deals, total = await deal_service.list_deals(db, principal, status_filter, page, per_page)
    return DealPage(
        items=[DealRead.from_model(d) for d in deals],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{deal_id}", response_model=DealRead)
async def get_deal(
    deal_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(list_limited),
) -> DealRead:
    deal = await deal_service.require_deal(db, deal_id, principal)
    return DealRead.from_model(deal)


@router.put("/{deal_id}", response_model=DealRead)
async def update_deal(
    deal_id: uuid.UUID,
    body: DealUpdate,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(update_limited),
) -> DealRead:
    """Edit deal details and/or move it to another status."""
    deal = await deal_service.update_deal(db, principal, deal_id, body)
    return DealRead.from_model(deal)


@router.get("/{deal_id}/transitions", response_model=AvailableTransitions)
async def get_transitions(
    deal_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_principal),
) -> AvailableTransitions:
    return await deal_service.available_transitions(db, principal, deal_id)


@router.put("/{deal_id}/meddic", response_model=DealRead)
async def update_meddic(
    deal_id: uuid.UUID,
    body: MeddicScores,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(update_limited),
) -> DealRead:
    deal = await deal_service.update_meddic(db, principal, deal_id, body)
    return DealRead.from_model(deal)
