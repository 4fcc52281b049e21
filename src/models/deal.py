"""A government sales opportunity registered by a partner.

Deals are never deleted: terminal statuses (won, lost, rejected) keep the
row for audit. `row_version` is an optimistic lock counter so two
concurrent status changes cannot both commit against a stale read.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import DealStatus

if TYPE_CHECKING:
    from src.models.quote import Quote


class Deal(TimestampMixin, Base):
    """A partner-registered opportunity and its lifecycle status."""

    __tablename__ = "deals"

    # Ownership; partner_id is immutable after creation
    partner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    # Client
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    government_level: Mapped[str] = mapped_column(String(20), nullable=False)
    population: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Contact
    contact_name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_role: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(20))

    # Opportunity
    description: Mapped[str] = mapped_column(Text, nullable=False)
    partner_generated_lead: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=DealStatus.PENDING_APPROVAL.value, index=True
    )
    status_changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status_changed_by: Mapped[str | None] = mapped_column(String(100))
    status_notes: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text, comment="Also holds the info-request message")

    # MEDDIC qualification (1–5, null until scored)
    metrics: Mapped[int | None] = mapped_column(SmallInteger)
    economic_buyer: Mapped[int | None] = mapped_column(SmallInteger)
    decision_criteria: Mapped[int | None] = mapped_column(SmallInteger)
    decision_process: Mapped[int | None] = mapped_column(SmallInteger)
    identify_pain: Mapped[int | None] = mapped_column(SmallInteger)
    champion: Mapped[int | None] = mapped_column(SmallInteger)

    row_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Relationships
    quotes: Mapped[list[Quote]] = relationship(
        "Quote", back_populates="deal", order_by="Quote.version", lazy="raise"
    )

    __mapper_args__ = {"version_id_col": row_version}

    def __repr__(self) -> str:
        return f"<Deal id={self.id} partner={self.partner_id} status={self.status}>"
