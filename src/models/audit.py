"""Append-only audit trail: one row per SystemEvent the portal emits."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class AuditLog(TimestampMixin, Base):
    __tablename__ = "audit_log"

    event_type: Mapped[str] = mapped_column(String(100), index=True, nullable=False)

    # Pricing and system events carry no deal; system events carry no actor
    deal_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)
    partner_id: Mapped[str | None] = mapped_column(String(100), index=True)
    actor_id: Mapped[str | None] = mapped_column(String(100), comment="User ID or 'system'")
    actor_role: Mapped[str | None] = mapped_column(String(50), comment="sovra_admin, admin, sales, system")

    # Event id, timestamp, source module and payload as emitted
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<AuditLog {self.event_type} deal={self.deal_id} actor={self.actor_id}>"
