"""Send-code throttling backed by Redis.

Two primitives over a TTL key-value store:
- check_rate_limit: fixed-window counter, key ``{key}:{floor(now/window)}``,
  TTL of two windows so stale buckets expire on their own.
- check_cooldown: minimum spacing between allowed calls, key
  ``cooldown:{key}`` holding the last allowed timestamp.

The window counter is advanced with INCR, so concurrent requests never
lose an increment. Denied requests also advance the counter; once a
bucket is over its limit it stays over until the window rolls.

Throttling is only active when REDIS_URL is configured. Without it the
store dependency yields None and every check is skipped (fail-open).
"""

import math
import time
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import redis.asyncio as aioredis
import structlog

from app.core.config import settings
from app.core.errors import RateLimitedError
from app.core.phone import mask_phone_number

logger = structlog.get_logger()

# Cooldown records outlive short cooldowns so the key is not evicted
# while a client is still retrying.
_MIN_COOLDOWN_TTL_SECONDS = 60


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a throttling check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window (None for cooldowns).
        retry_after: Seconds until a denied caller may retry (None if allowed).
    """

    allowed: bool
    remaining: int | None = None
    retry_after: int | None = None


async def get_rate_limit_store() -> AsyncGenerator[aioredis.Redis | None, None]:
    """Dependency that provides a request-scoped Redis client.

    Yields None when REDIS_URL is not configured. The client is closed
    on every exit path.
    """
    if not settings.rate_limiting_configured:
        yield None
        return

    client = aioredis.from_url(settings.redis_url, decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()


async def check_rate_limit(
    store: aioredis.Redis,
    key: str,
    max_requests: int,
    window_seconds: int,
) -> RateLimitResult:
    """Count a request against a fixed window.

    Args:
        store: Redis client.
        key: Scope and identifier, e.g. ``"ip:203.0.113.7"``.
        max_requests: Requests allowed per window.
        window_seconds: Window length.

    Returns:
        RateLimitResult with remaining quota, or retry_after when denied.
    """
    now = time.time()
    bucket = int(now // window_seconds)
    bucket_key = f"{key}:{bucket}"

    count = await store.incr(bucket_key)
    if count == 1:
        await store.expire(bucket_key, window_seconds * 2)

    if count > max_requests:
        retry_after = max(1, math.ceil(window_seconds - (now % window_seconds)))
        return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

    return RateLimitResult(allowed=True, remaining=max_requests - count)


async def check_cooldown(
    store: aioredis.Redis,
    key: str,
    cooldown_seconds: int,
) -> RateLimitResult:
    """Enforce a minimum interval between allowed requests.

    Args:
        store: Redis client.
        key: Identifier, e.g. a canonical phone number.
        cooldown_seconds: Minimum seconds between allowed requests.

    Returns:
        RateLimitResult, with retry_after when still cooling down.
    """
    now = time.time()
    cooldown_key = f"cooldown:{key}"

    last = await store.get(cooldown_key)
    if last is not None:
        elapsed = now - float(last)
        if elapsed < cooldown_seconds:
            retry_after = max(1, math.ceil(cooldown_seconds - elapsed))
            return RateLimitResult(allowed=False, retry_after=retry_after)

    await store.set(
        cooldown_key,
        str(now),
        ex=max(cooldown_seconds, _MIN_COOLDOWN_TTL_SECONDS),
    )
    return RateLimitResult(allowed=True)


def _format_wait(seconds: int) -> str:
    if seconds < 120:
        return f"{seconds} seconds"
    return f"{math.ceil(seconds / 60)} minutes"


async def enforce_send_code_limits(
    store: aioredis.Redis | None,
    *,
    client_ip: str,
    phone_number: str,
) -> None:
    """Apply the send-code checks in order: IP window, phone window, cooldown.

    The first failing check short-circuits. Later checks are not counted.

    Args:
        store: Redis client, or None when throttling is not configured.
        client_ip: Caller's address.
        phone_number: Canonical phone number.

    Raises:
        RateLimitedError: On the first failing check.
    """
    if store is None:
        return

    ip_result = await check_rate_limit(
        store,
        f"ip:{client_ip}",
        settings.send_code_ip_limit,
        settings.send_code_ip_window_seconds,
    )
    if not ip_result.allowed:
        retry_after = ip_result.retry_after or settings.send_code_ip_window_seconds
        logger.info(
            "send_code.ip_limited", client_ip=client_ip, retry_after=retry_after
        )
        raise RateLimitedError(
            f"Too many requests. Please try again in {_format_wait(retry_after)}.",
            retry_after=retry_after,
        )

    phone_result = await check_rate_limit(
        store,
        f"phone:{phone_number}",
        settings.send_code_phone_limit,
        settings.send_code_phone_window_seconds,
    )
    if not phone_result.allowed:
        retry_after = (
            phone_result.retry_after or settings.send_code_phone_window_seconds
        )
        logger.info(
            "send_code.phone_limited",
            phone=mask_phone_number(phone_number),
            retry_after=retry_after,
        )
        raise RateLimitedError(
            "Too many verification codes requested for this number. "
            f"Please try again in {_format_wait(retry_after)}.",
            retry_after=retry_after,
        )

    cooldown_result = await check_cooldown(
        store,
        phone_number,
        settings.send_code_cooldown_seconds,
    )
    if not cooldown_result.allowed:
        retry_after = (
            cooldown_result.retry_after or settings.send_code_cooldown_seconds
        )
        logger.info(
            "send_code.cooldown",
            phone=mask_phone_number(phone_number),
            retry_after=retry_after,
        )
        raise RateLimitedError(
            f"Please wait {_format_wait(retry_after)} before requesting another code.",
            retry_after=retry_after,
        )
