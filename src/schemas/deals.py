"""Pydantic schemas for deals and state-machine decisions."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import ConfigDict, Field, field_validator

from src.models.enums import DealStatus, GovernmentLevel
from src.schemas.common import ApiModel

if TYPE_CHECKING:
    from src.models.deal import Deal

_CLIENT_NAME_PATTERN = r"^[a-zA-Z0-9\s\-.,áéíóúñÁÉÍÓÚÑüÜ]+$"
_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_PHONE_PATTERN = r"^[+]?[0-9\s\-()]{7,20}$"

MEDDIC_FIELDS = (
    "metrics",
    "economic_buyer",
    "decision_criteria",
    "decision_process",
    "identify_pain",
    "champion",
)


# ---------------------------------------------------------------------------
# State machine decisions
# ---------------------------------------------------------------------------


class DenialReason(str, Enum):
    """Why the state machine refused a transition."""

    INVALID_TRANSITION = "InvalidTransition"
    FORBIDDEN = "Forbidden"
    QUOTE_REQUIRED = "QuoteRequired"


class TransitionDecision(ApiModel):
    """Allowed, or denied with a reason and a message shown verbatim to the user."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: DenialReason | None = None
    message: str | None = None

    @classmethod
    def allow(cls) -> TransitionDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason, message: str) -> TransitionDecision:
        return cls(allowed=False, reason=reason, message=message)


class AvailableTransitions(ApiModel):
    status: DealStatus
    targets: list[DealStatus]
    has_quote: bool


# ---------------------------------------------------------------------------
# Deal payloads
# ---------------------------------------------------------------------------


class MeddicScores(ApiModel):
    """MEDDIC qualification scores (1–5). Unscored fields are None."""

    metrics: int | None = Field(default=None, ge=1, le=5)
    economic_buyer: int | None = Field(default=None, ge=1, le=5)
    decision_criteria: int | None = Field(default=None, ge=1, le=5)
    decision_process: int | None = Field(default=None, ge=1, le=5)
    identify_pain: int | None = Field(default=None, ge=1, le=5)
    champion: int | None = Field(default=None, ge=1, le=5)


class _DealFields(ApiModel):
    @field_validator("contact_email", check_fields=False)
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v

    @field_validator("contact_phone", mode="before", check_fields=False)
    @classmethod
    def blank_phone(cls, v: str | None) -> str | None:
        return v or None


class DealCreate(_DealFields):
    """Deal registration form."""

    client_name: str = Field(min_length=1, max_length=200, pattern=_CLIENT_NAME_PATTERN)
    country: str = Field(min_length=1, max_length=100)
    government_level: GovernmentLevel
    population: int = Field(ge=1, le=2_000_000_000)
    contact_name: str = Field(min_length=1, max_length=200)
    contact_role: str = Field(min_length=1, max_length=200)
    contact_email: str = Field(max_length=255, pattern=_EMAIL_PATTERN)
    contact_phone: str | None = Field(default=None, pattern=_PHONE_PATTERN)
    description: str = Field(min_length=10, max_length=5000)
    partner_generated_lead: bool


class DealUpdate(_DealFields):
    """Partial update: editable fields and/or a status change.

    `notes` accompanies a status change; for `rejected` and `more_info` it is
    the reason/message shown to the partner and is required.
    """

    client_name: str | None = Field(default=None, min_length=1, max_length=200, pattern=_CLIENT_NAME_PATTERN)
    country: str | None = Field(default=None, min_length=1, max_length=100)
    government_level: GovernmentLevel | None = None
    population: int | None = Field(default=None, ge=1, le=2_000_000_000)
    contact_name: str | None = Field(default=None, min_length=1, max_length=200)
    contact_role: str | None = Field(default=None, min_length=1, max_length=200)
    contact_email: str | None = Field(default=None, max_length=255, pattern=_EMAIL_PATTERN)
    contact_phone: str | None = Field(default=None, pattern=_PHONE_PATTERN)
    description: str | None = Field(default=None, min_length=10, max_length=5000)
    partner_generated_lead: bool | None = None

    status: DealStatus | None = None
    notes: str | None = Field(default=None, max_length=5000)

    def field_changes(self) -> dict[str, object]:
        """Editable fields that were explicitly set in the request."""
        return self.model_dump(exclude_unset=True, exclude={"status", "notes"})


class DealRead(ApiModel):
    id: uuid.UUID
    partner_id: str
    created_by: str
    client_name: str
    country: str
    government_level: GovernmentLevel
    population: int
    contact_name: str
    contact_role: str
    contact_email: str
    contact_phone: str | None = None
    description: str
    partner_generated_lead: bool
    status: DealStatus
    status_changed_at: datetime
    status_changed_by: str | None = None
    status_notes: str | None = None
    rejection_reason: str | None = None
    meddic: MeddicScores
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, deal: Deal) -> DealRead:
        meddic = MeddicScores(**{name: getattr(deal, name) for name in MEDDIC_FIELDS})
        return cls(
            id=deal.id,
            partner_id=deal.partner_id,
            created_by=deal.created_by,
            client_name=deal.client_name,
            country=deal.country,
            government_level=deal.government_level,
            population=deal.population,
            contact_name=deal.contact_name,
            contact_role=deal.contact_role,
            contact_email=deal.contact_email,
            contact_phone=deal.contact_phone,
            description=deal.description,
            partner_generated_lead=deal.partner_generated_lead,
            status=deal.status,
            status_changed_at=deal.status_changed_at,
            status_changed_by=deal.status_changed_by,
            status_notes=deal.status_notes,
            rejection_reason=deal.rejection_reason,
            meddic=meddic,
            created_at=deal.created_at,
            updated_at=deal.updated_at,
        )


class DealPage(ApiModel):
    items: list[DealRead]
    total: int
    page: int
    per_page: int
