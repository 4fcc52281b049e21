"""FastAPI dependencies shared by the portal routers."""
# ruff: noqa: B008

from __future__ import annotations

from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from fastapi import Depends, Request

from src.config import settings
from src.db.engine import get_redis
from src.errors import RateLimitedError
from src.schemas.auth import Principal
from src.security.auth import load_principal
from src.security.rate_limiter import rate_key, rate_limiter


async def get_principal(
    request: Request,
    redis: aioredis.Redis = Depends(get_redis),
) -> Principal:
    """Resolve the session cookie to the acting principal, or 401."""
    session_id = request.cookies.get(settings.security.session_cookie_name)
    return await load_principal(redis, session_id)


def rate_limit(action: str, limit: int) -> Callable[..., Awaitable[Principal]]:
    """Build a dependency that counts the request against the user's `action` window.

    Resolves to the principal so routes can depend on it instead of get_principal.
    """

    async def _check(principal: Principal = Depends(get_principal)) -> Principal:
        allowed, retry_after = await rate_limiter.check(
            rate_key(principal.user_id, action),
            limit=limit,
            window=settings.rate_limit.rate_limit_window,
        )
        if not allowed:
            raise RateLimitedError(retry_after)
        return principal

    return _check


list_limited = rate_limit("list", settings.rate_limit.rate_limit_list)
create_limited = rate_limit("create", settings.rate_limit.rate_limit_create)
update_limited = rate_limit("update", settings.rate_limit.rate_limit_update)
