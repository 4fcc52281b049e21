"""SQLAlchemy ORM models for the partners portal.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.audit import AuditLog
from src.models.base import Base
from src.models.deal import Deal
from src.models.enums import (
    DealStatus,
    GovernmentLevel,
    PartnerTier,
    RatingEventType,
    SovraIdPlan,
    UserRole,
)
from src.models.pricing import PricingConfigRevision
from src.models.quote import Quote
from src.models.rating import RatingEvent

__all__ = [
    # Base
    "Base",
    # Models
    "Deal",
    "Quote",
    "PricingConfigRevision",
    "AuditLog",
    "RatingEvent",
    # Enums
    "DealStatus",
    "GovernmentLevel",
    "UserRole",
    "PartnerTier",
    "SovraIdPlan",
    "RatingEventType",
]
