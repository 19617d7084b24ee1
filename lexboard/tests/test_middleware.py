"""
Middleware Tests
================

Rate limiting and security headers. The limiter is pointed at an
unreachable Redis so it fails open; the 429 path uses a limiter that
refuses every request.
"""

import time

from fastapi.testclient import TestClient

from lexboard.api import create_app
from lexboard.middleware.rate_limit import RateLimitDecision, RateLimiter, RateLimitMiddleware

UNREACHABLE_REDIS = "redis://127.0.0.1:1/0"


class TestRateLimiter:
    def test_fails_open_without_redis(self):
        limiter = RateLimiter(UNREACHABLE_REDIS)
        decision = limiter.hit("lexboard:ratelimit:1.2.3.4", limit=5)
        assert decision.allowed
        assert decision.remaining == 5
        # Still open on the next call, without another connection attempt
        assert limiter.hit("lexboard:ratelimit:1.2.3.4", limit=5).allowed

    def test_middleware_returns_429(self, settings):
        class DenyAll(RateLimiter):
            def hit(self, key, limit):
                return RateLimitDecision(False, 0, int(time.time()) + 30)

        app = create_app(settings)
        app.add_middleware(RateLimitMiddleware, limit=1, limiter=DenyAll(UNREACHABLE_REDIS))
        with TestClient(app) as client:
            response = client.get("/cases")
            assert response.status_code == 429
            assert response.json()["error"]["code"] == "rate_limited"
            assert "Retry-After" in response.headers

            # Health checks are never limited
            assert client.get("/health").status_code == 200


class TestSecurityHeaders:
    def test_headers_on_api_responses(self, client):
        response = client.get("/health")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        assert "Content-Security-Policy" in response.headers
        assert "Strict-Transport-Security" not in response.headers

    def test_hsts_behind_https_proxy(self, client):
        response = client.get("/health", headers={"X-Forwarded-Proto": "https"})
        assert response.headers["Strict-Transport-Security"].startswith("max-age=")

