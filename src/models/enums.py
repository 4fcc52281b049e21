"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization and PostgreSQL storage.
"""

from __future__ import annotations

from enum import Enum


class DealStatus(str, Enum):
    """Lifecycle status of a registered deal."""

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    MORE_INFO = "more_info"
    NEGOTIATION = "negotiation"
    CONTRACTING = "contracting"
    AWARDED = "awarded"
    WON = "won"
    LOST = "lost"


class GovernmentLevel(str, Enum):
    """Administrative level of the prospective government client."""

    MUNICIPALITY = "municipality"
    PROVINCE = "province"
    NATION = "nation"


class UserRole(str, Enum):
    """Role of the acting principal.

    SOVRA_ADMIN is Sovra-side; the others belong to a partner organization.
    """

    SOVRA_ADMIN = "sovra_admin"
    ADMIN = "admin"
    SALES = "sales"
    VIEWER = "viewer"


class PartnerTier(str, Enum):
    """Partner tier: determines the base discount."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class SovraIdPlan(str, Enum):
    """SovraID subscription plan."""

    ESSENTIALS = "essentials"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class RatingEventType(str, Enum):
    """Rating events raised by the deal lifecycle."""

    DEAL_CLOSED_WON = "DEAL_CLOSED_WON"
    DEAL_CLOSED_LOST_POOR_QUALIFICATION = "DEAL_CLOSED_LOST_POOR_QUALIFICATION"
