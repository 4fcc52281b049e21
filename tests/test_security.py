"""Tests for session identity and the Redis rate limiter."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.errors import UnauthorizedError
from src.models.enums import PartnerTier
from src.security.auth import load_principal, session_key
from src.security.rate_limiter import RateLimiter, rate_key


def _redis_with(value: str | None) -> AsyncMock:
    redis = AsyncMock()
    redis.get.return_value = value
    return redis


class TestLoadPrincipal:
    @pytest.mark.asyncio()
    async def test_valid_session(self):
        redis = _redis_with(json.dumps({
            "userId": "user-1",
            "partnerId": "partner-1",
            "role": "sales",
            "partnerTier": "gold",
        }))
        principal = await load_principal(redis, "abc123")
        redis.get.assert_awaited_once_with(session_key("abc123"))
        assert principal.user_id == "user-1"
        assert principal.partner_id == "partner-1"
        assert principal.partner_tier == PartnerTier.GOLD
        assert not principal.is_sovra_admin

    @pytest.mark.asyncio()
    async def test_sovra_admin_without_partner(self):
        redis = _redis_with(json.dumps({"userId": "ops-1", "role": "sovra_admin"}))
        principal = await load_principal(redis, "abc123")
        assert principal.is_sovra_admin
        assert principal.partner_id is None

    @pytest.mark.asyncio()
    async def test_missing_cookie(self):
        with pytest.raises(UnauthorizedError):
            await load_principal(_redis_with(None), None)

    @pytest.mark.asyncio()
    async def test_unknown_session(self):
        with pytest.raises(UnauthorizedError, match="expired or invalid"):
            await load_principal(_redis_with(None), "gone")

    @pytest.mark.asyncio()
    async def test_malformed_payload(self):
        with pytest.raises(UnauthorizedError):
            await load_principal(_redis_with("{not json"), "abc123")

    @pytest.mark.asyncio()
    async def test_payload_without_role(self):
        with pytest.raises(UnauthorizedError):
            await load_principal(_redis_with(json.dumps({"userId": "user-1"})), "abc123")


def _redis_pipeline(count: int = 1, ttl: int = 60, error: Exception | None = None):
    """Redis mock whose MULTI pipeline returns [count, expire_set, ttl]."""
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True, ttl], side_effect=error)
    redis = MagicMock()
    redis.pipeline.return_value.__aenter__.return_value = pipe
    redis.pipeline.return_value.__aexit__.return_value = False
    return redis, pipe


class TestRateLimiter:
    @pytest.mark.asyncio()
    async def test_counts_and_sets_window(self):
        redis, pipe = _redis_pipeline(count=1)
        allowed, retry_after = await RateLimiter(redis).check("rate:u:create", limit=10, window=60)
        assert (allowed, retry_after) == (True, 0)
        redis.pipeline.assert_called_once_with(transaction=True)
        pipe.incr.assert_called_once_with("rate:u:create")
        pipe.expire.assert_called_once_with("rate:u:create", 60, nx=True)

    @pytest.mark.asyncio()
    async def test_at_limit_is_allowed(self):
        redis, _ = _redis_pipeline(count=10)
        allowed, _ = await RateLimiter(redis).check("k", limit=10, window=60)
        assert allowed

    @pytest.mark.asyncio()
    async def test_over_limit(self):
        redis, _ = _redis_pipeline(count=11, ttl=42)
        assert await RateLimiter(redis).check("k", limit=10, window=60) == (False, 42)

    @pytest.mark.asyncio()
    async def test_retry_after_at_least_one_second(self):
        redis, _ = _redis_pipeline(count=11, ttl=0)
        assert await RateLimiter(redis).check("k", limit=10, window=60) == (False, 1)

    @pytest.mark.asyncio()
    async def test_fails_open(self):
        redis, _ = _redis_pipeline(error=ConnectionError("redis down"))
        assert await RateLimiter(redis).check("k", limit=1, window=60) == (True, 0)

    def test_key_format(self):
        assert rate_key("user-1", "update") == "rate:user-1:update"
