"""Append-only history of the pricing document."""

from __future__ import annotations

from typing import Any

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class PricingConfigRevision(TimestampMixin, Base):
    """One saved revision of the pricing configuration. The newest row is current."""

    __tablename__ = "pricing_configs"

    document: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(100), comment="Sovra admin user ID")

    def __repr__(self) -> str:
        return f"<PricingConfigRevision id={self.id} created_at={self.created_at}>"
