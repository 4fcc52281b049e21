"""Events emitted after a committed change.

The audit subscriber stores all of them; the rating subscriber reacts to
approvals and closed deals.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventType(str, Enum):
    DEAL_CREATED = "deal.created"
    DEAL_UPDATED = "deal.updated"
    DEAL_STATUS_CHANGED = "deal.status_changed"
    DEAL_APPROVED = "deal.approved"
    DEAL_REJECTED = "deal.rejected"
    DEAL_MORE_INFO_REQUESTED = "deal.more_info_requested"
    DEAL_WON = "deal.won"
    DEAL_LOST = "deal.lost"
    DEAL_MEDDIC_UPDATED = "deal.meddic_updated"

    QUOTE_CREATED = "quote.created"
    PRICING_UPDATED = "pricing.updated"

    RATING_RECORDED = "rating.recorded"

    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class SystemEvent(BaseModel):
    """A frozen record of something that happened.

    `deal_id` is unset for pricing and system events, `actor_*` for events
    the portal raises itself. Anything event-specific goes in `data`.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=_utcnow)

    deal_id: uuid.UUID | None = None
    partner_id: str | None = None
    actor_id: str | None = None
    actor_role: str | None = None

    data: dict[str, Any] = Field(default_factory=dict)
    source_module: str | None = None
