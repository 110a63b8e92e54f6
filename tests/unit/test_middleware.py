"""
Unit tests for API middleware helpers.
"""

import pytest

from coffeeworld.api.middleware.cors import get_cors_config
from coffeeworld.api.middleware.logging import LoggingConfig, redact_sensitive_data
from coffeeworld.api.middleware.rate_limit import InMemoryRateLimiter, RateLimitConfig


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


class TestInMemoryRateLimiter:

    @pytest.fixture
    def ticker(self):
        return FakeMonotonic()

    @pytest.mark.asyncio
    async def test_burst_then_throttle(self, ticker):
        limiter = InMemoryRateLimiter(RateLimitConfig(requests_per_minute=60, burst_size=3), clock=ticker)

        results = [await limiter.check("ip:1", "/api/v1/shops") for _ in range(4)]

        assert [allowed for allowed, _, _ in results] == [True, True, True, False]
        assert results[-1][2] > 0

    @pytest.mark.asyncio
    async def test_refill(self, ticker):
        limiter = InMemoryRateLimiter(RateLimitConfig(requests_per_minute=60, burst_size=1), clock=ticker)

        assert (await limiter.check("ip:1", "/api/v1/shops"))[0]
        assert not (await limiter.check("ip:1", "/api/v1/shops"))[0]

        ticker.value += 1.0
        assert (await limiter.check("ip:1", "/api/v1/shops"))[0]

    @pytest.mark.asyncio
    async def test_clients_are_independent(self, ticker):
        limiter = InMemoryRateLimiter(RateLimitConfig(burst_size=1), clock=ticker)

        assert (await limiter.check("ip:1", "/api/v1/shops"))[0]
        assert (await limiter.check("ip:2", "/api/v1/shops"))[0]

    def test_write_endpoints_have_own_limits(self):
        limiter = InMemoryRateLimiter(RateLimitConfig(requests_per_minute=60))

        assert limiter.limit_for("/api/v1/checkins", "POST") == 20
        assert limiter.limit_for("/api/v1/checkins", "GET") == 60
        assert limiter.limit_for("/api/v1/auth/worldcoin", "POST") == 10


class TestRedaction:

    def test_proof_material_redacted(self):
        body = {
            "payload": {"proof": "0xabc"},
            "locationId": "1",
            "nested": [{"nullifier_hash": "0xn", "keep": True}],
        }

        redacted = redact_sensitive_data(body, LoggingConfig().redacted_fields)

        assert redacted["payload"] == "[REDACTED]"
        assert redacted["locationId"] == "1"
        assert redacted["nested"] == [{"nullifier_hash": "[REDACTED]", "keep": True}]


class TestCorsConfig:

    def test_extra_origins_from_env(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example, https://b.example")

        config = get_cors_config("production")

        assert "https://a.example" in config.allowed_origins
        assert "https://b.example" in config.allowed_origins
        assert not config.allow_all_origins

    def test_base_config_not_mutated(self, monkeypatch):
        monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://c.example")
        get_cors_config("staging")
        monkeypatch.delenv("CORS_ALLOWED_ORIGINS")

        assert "https://c.example" not in get_cors_config("staging").allowed_origins
