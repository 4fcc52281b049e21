"""Audit trail subscriber.

Subscribed to every event type. Each event becomes one `audit_log` row,
written in its own session after the emitting request has committed.
"""

from __future__ import annotations

import logging

from src.db.engine import async_session_factory
from src.models.audit import AuditLog
from src.schemas.events import SystemEvent

logger = logging.getLogger(__name__)

_PAYLOAD_FIELDS = {"id", "timestamp", "data", "source_module"}


def audit_entry(event: SystemEvent) -> AuditLog:
    """Map an event onto an audit row; id, timestamp, payload and source go in `data`."""
    return AuditLog(
        event_type=event.event_type.value,
        deal_id=event.deal_id,
        partner_id=event.partner_id,
        actor_id=event.actor_id,
        actor_role=event.actor_role,
        data=event.model_dump(mode="json", include=_PAYLOAD_FIELDS),
    )


async def audit_on_event(event: SystemEvent) -> None:
    """Persist one event to `audit_log` in its own session. Failures are logged, never raised."""
    entry = audit_entry(event)
    try:
        async with async_session_factory() as session:
            session.add(entry)
            await session.commit()
    except Exception:
        logger.exception("Audit write failed for %s (deal=%s)", event.event_type.value, event.deal_id)
