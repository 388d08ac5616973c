"""Tests for Redis-backed send-code throttling.

Uses the in-memory FakeRedis from conftest. Time is pinned by patching
time.time so window buckets and cooldowns are deterministic.
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.core.errors import RateLimitedError
from app.core.throttling import (
    check_cooldown,
    check_rate_limit,
    enforce_send_code_limits,
    get_rate_limit_store,
)
from tests.conftest import TEST_PHONE, FakeRedis

# Start of a 60-second and a 3600-second window
_T0 = 1_800_000_000.0


def _at(timestamp: float):
    return patch("time.time", return_value=timestamp)


class TestCheckRateLimit:
    async def test_allows_up_to_limit(self, fake_redis: FakeRedis):
        with _at(_T0):
            for expected_remaining in (2, 1, 0):
                result = await check_rate_limit(fake_redis, "ip:1.2.3.4", 3, 60)
                assert result.allowed is True
                assert result.remaining == expected_remaining

    async def test_denies_over_limit_with_retry_after(self, fake_redis: FakeRedis):
        with _at(_T0 + 15):
            for _ in range(3):
                await check_rate_limit(fake_redis, "ip:1.2.3.4", 3, 60)
            result = await check_rate_limit(fake_redis, "ip:1.2.3.4", 3, 60)

        assert result.allowed is False
        assert result.remaining == 0
        # 15 s into a 60 s window
        assert result.retry_after == 45

    async def test_denied_requests_still_count(self, fake_redis: FakeRedis):
        with _at(_T0):
            for _ in range(5):
                await check_rate_limit(fake_redis, "k", 3, 60)
        key = f"k:{int(_T0 // 60)}"
        assert fake_redis.values[key] == "5"

    async def test_new_window_resets_count(self, fake_redis: FakeRedis):
        with _at(_T0):
            for _ in range(4):
                await check_rate_limit(fake_redis, "k", 3, 60)
        with _at(_T0 + 60):
            result = await check_rate_limit(fake_redis, "k", 3, 60)
        assert result.allowed is True
        assert result.remaining == 2

    async def test_bucket_expires_after_two_windows(self, fake_redis: FakeRedis):
        with _at(_T0):
            await check_rate_limit(fake_redis, "k", 3, 60)
            assert await fake_redis.ttl(f"k:{int(_T0 // 60)}") == 120

    async def test_keys_are_independent(self, fake_redis: FakeRedis):
        with _at(_T0):
            for _ in range(3):
                await check_rate_limit(fake_redis, "ip:a", 3, 60)
            result = await check_rate_limit(fake_redis, "ip:b", 3, 60)
        assert result.allowed is True


class TestCheckCooldown:
    async def test_first_call_allowed(self, fake_redis: FakeRedis):
        with _at(_T0):
            result = await check_cooldown(fake_redis, TEST_PHONE, 30)
        assert result.allowed is True
        assert result.retry_after is None

    async def test_second_call_within_cooldown_denied(self, fake_redis: FakeRedis):
        with _at(_T0):
            await check_cooldown(fake_redis, TEST_PHONE, 30)
        with _at(_T0 + 10):
            result = await check_cooldown(fake_redis, TEST_PHONE, 30)
        assert result.allowed is False
        assert result.retry_after == 20

    async def test_allowed_after_cooldown(self, fake_redis: FakeRedis):
        with _at(_T0):
            await check_cooldown(fake_redis, TEST_PHONE, 30)
        with _at(_T0 + 30):
            result = await check_cooldown(fake_redis, TEST_PHONE, 30)
        assert result.allowed is True

    async def test_denied_call_does_not_extend_cooldown(self, fake_redis: FakeRedis):
        with _at(_T0):
            await check_cooldown(fake_redis, TEST_PHONE, 30)
        with _at(_T0 + 20):
            await check_cooldown(fake_redis, TEST_PHONE, 30)
        with _at(_T0 + 31):
            result = await check_cooldown(fake_redis, TEST_PHONE, 30)
        assert result.allowed is True

    async def test_record_kept_at_least_a_minute(self, fake_redis: FakeRedis):
        with _at(_T0):
            await check_cooldown(fake_redis, TEST_PHONE, 5)
            assert await fake_redis.ttl(f"cooldown:{TEST_PHONE}") == 60


class TestEnforceSendCodeLimits:
    async def test_no_store_skips_all_checks(self):
        for _ in range(50):
            await enforce_send_code_limits(
                None, client_ip="1.2.3.4", phone_number=TEST_PHONE
            )

    async def test_second_rapid_request_hits_cooldown(self, fake_redis: FakeRedis):
        with _at(_T0):
            await enforce_send_code_limits(
                fake_redis, client_ip="1.2.3.4", phone_number=TEST_PHONE
            )
        with _at(_T0 + 5), pytest.raises(RateLimitedError) as exc_info:
            await enforce_send_code_limits(
                fake_redis, client_ip="1.2.3.4", phone_number=TEST_PHONE
            )

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after == 25
        assert exc_info.value.message == (
            "Please wait 25 seconds before requesting another code."
        )

    async def test_eleventh_request_for_number_hits_phone_window(
        self, fake_redis: FakeRedis
    ):
        """Ten codes per number per hour, regardless of caller IP."""
        # Space requests past the cooldown and spread them across IPs
        for i in range(10):
            with _at(_T0 + i * 31):
                await enforce_send_code_limits(
                    fake_redis, client_ip=f"10.0.0.{i}", phone_number=TEST_PHONE
                )

        with _at(_T0 + 10 * 31), pytest.raises(RateLimitedError) as exc_info:
            await enforce_send_code_limits(
                fake_redis, client_ip="10.0.0.99", phone_number=TEST_PHONE
            )

        assert exc_info.value.message.startswith(
            "Too many verification codes requested for this number."
        )
        assert exc_info.value.retry_after == 3600 - 10 * 31
        assert "minutes" in exc_info.value.message

    async def test_eleventh_request_from_ip_hits_ip_window(
        self, fake_redis: FakeRedis
    ):
        with _at(_T0):
            for i in range(10):
                await enforce_send_code_limits(
                    fake_redis, client_ip="1.2.3.4", phone_number=f"+1555000{i:04d}"
                )
            with pytest.raises(RateLimitedError) as exc_info:
                await enforce_send_code_limits(
                    fake_redis, client_ip="1.2.3.4", phone_number="+15559999999"
                )

        assert exc_info.value.message == (
            "Too many requests. Please try again in 60 seconds."
        )

    async def test_ip_denial_short_circuits_later_checks(self, fake_redis: FakeRedis):
        with _at(_T0):
            for i in range(11):
                try:
                    await enforce_send_code_limits(
                        fake_redis,
                        client_ip="1.2.3.4",
                        phone_number=f"+1555000{i:04d}",
                    )
                except RateLimitedError:
                    pass

        phone_bucket = f"phone:+15550000010:{int(_T0 // 3600)}"
        assert phone_bucket not in fake_redis.values
        assert "cooldown:+15550000010" not in fake_redis.values


class TestGetRateLimitStore:
    async def test_yields_none_without_redis_url(self):
        with patch("app.core.throttling.settings") as mock_settings:
            mock_settings.rate_limiting_configured = False
            gen = get_rate_limit_store()
            assert await gen.__anext__() is None
            with pytest.raises(StopAsyncIteration):
                await gen.__anext__()

    async def test_closes_client_after_request(self):
        with (
            patch("app.core.throttling.settings") as mock_settings,
            patch("app.core.throttling.aioredis.from_url") as mock_from_url,
        ):
            mock_settings.rate_limiting_configured = True
            mock_settings.redis_url = "redis://localhost:6379/0"
            client = mock_from_url.return_value
            client.aclose = AsyncMock()

            gen = get_rate_limit_store()
            assert await gen.__anext__() is client
            with pytest.raises(StopAsyncIteration):
                await gen.__anext__()

        mock_from_url.assert_called_once_with(
            "redis://localhost:6379/0", decode_responses=True
        )
        client.aclose.assert_awaited_once()
