"""Session-cookie identity.

The portal's login flow stores a JSON session under `session:{id}` in
Redis and sets the id in the `partner_session` cookie. This module turns
that cookie back into a Principal; it never creates sessions.
"""

from __future__ import annotations

import json
import logging

import redis.asyncio as aioredis
from pydantic import ValidationError as PydanticValidationError

from src.errors import UnauthorizedError
from src.schemas.auth import Principal

logger = logging.getLogger(__name__)


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


async def load_principal(redis: aioredis.Redis, session_id: str | None) -> Principal:
    """Resolve a session id to the acting principal.

    Raises:
        UnauthorizedError: No cookie, unknown or expired session, or a
            session payload that cannot be parsed.
    """
    if not session_id:
        raise UnauthorizedError("Not authenticated")

    raw = await redis.get(session_key(session_id))
    if raw is None:
        raise UnauthorizedError("Session expired or invalid")

    try:
        return Principal.model_validate(json.loads(raw))
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        logger.warning("Malformed session payload for %s...", session_id[:8])
        raise UnauthorizedError("Session expired or invalid") from exc
