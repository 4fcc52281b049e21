"""Immutable, versioned pricing snapshots, one per quote version of a deal."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.deal import Deal


class Quote(TimestampMixin, Base):
    """Priced breakdown of a deal. Rows are insert-only; corrections are new versions."""

    __tablename__ = "quotes"
    __table_args__ = (UniqueConstraint("deal_id", "version", name="uq_quotes_deal_version"),)

    # Foreign keys
    deal_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("deals.id"), nullable=False, index=True
    )
    partner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Breakdown as JSONB in the QuoteProducts, QuoteServices and QuoteDiscounts shapes
    products: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    services: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    discounts: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)

    # Totals (USD)
    subtotal: Mapped[float] = mapped_column(Float, nullable=False)
    total_discount: Mapped[float] = mapped_column(Float, nullable=False)
    total: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Relationships
    deal: Mapped[Deal] = relationship("Deal", back_populates="quotes")

    def __repr__(self) -> str:
        return f"<Quote deal_id={self.deal_id} version={self.version} total={self.total}>"
