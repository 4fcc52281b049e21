"""Quote endpoints: server-side pricing, versioned storage, previews."""
# ruff: noqa: B008

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import create_limited, get_principal, list_limited
from src.db.engine import get_session
from src.schemas.auth import Principal
from src.schemas.quotes import CalculatedQuote, QuoteRead, QuoteRequest
from src.services import quotes as quote_service

router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("", response_model=QuoteRead, status_code=status.HTTP_201_CREATED)
async def create_quote(
    body: QuoteRequest,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(create_limited),
) -> QuoteRead:
    """Price the selection against the current config and store it as the next version."""
    quote = await quote_service.create_quote(db, principal, body)
    return QuoteRead.model_validate(quote)


@router.post("/preview", response_model=CalculatedQuote)
async def preview_quote(
    body: QuoteRequest,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_principal),
) -> CalculatedQuote:
    return await quote_service.preview_quote(db, principal, body)


@router.get("", response_model=list[QuoteRead])
async def list_quotes(
    deal_id: uuid.UUID | None = Query(default=None, alias="dealId"),
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(list_limited),
) -> list[QuoteRead]:
    """Versions of one deal's quotes, or the newest quotes across the partner's deals."""
    if deal_id is None:
        quotes = await quote_service.list_quotes(db, principal)
    else:
        quotes = await quote_service.get_quotes_for_deal(db, principal, deal_id)
    return [QuoteRead.model_validate(q) for q in quotes]


@router.get("/{quote_id}", response_model=QuoteRead)
async def get_quote(
    quote_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    principal: Principal = Depends(list_limited),
) -> QuoteRead:
    quote = await quote_service.get_quote(db, principal, quote_id)
    return QuoteRead.model_validate(quote)
