"""Tests for the HTTP rate limiting layer (identifier derivation, 429
rendering, IP + user enforcement and the route dependencies)."""

import json
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from crm_api.adapters.rate_limit.in_memory import InMemoryRateLimiter
from crm_api.core.config import settings
from crm_api.core.errors import RateLimitAppError
from crm_api.core.rate_limit import (
    apply_rate_limit,
    build_rate_limit_headers,
    enhanced_rate_limit,
    get_client_identifier,
)

START = 1_700_000_000.0
RESET_ISO = "2023-11-14T22:14:20.000Z"  # START + 60s


def _request(headers: dict[str, str] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    return Request(scope)


def _body(response) -> dict:
    return json.loads(response.body)


class TestClientIdentifier:
    def test_prefers_cloudflare_header(self) -> None:
        request = _request(
            {"cf-connecting-ip": "1.1.1.1", "x-real-ip": "2.2.2.2", "x-forwarded-for": "3.3.3.3"}
        )
        assert get_client_identifier(request) == "1.1.1.1"

    def test_uses_real_ip_next(self) -> None:
        request = _request({"x-real-ip": "2.2.2.2", "x-forwarded-for": "3.3.3.3"})
        assert get_client_identifier(request) == "2.2.2.2"

    def test_uses_first_forwarded_hop(self) -> None:
        request = _request({"x-forwarded-for": " 3.3.3.3 , 10.0.0.1"})
        assert get_client_identifier(request) == "3.3.3.3"

    def test_falls_back_to_anonymous(self) -> None:
        assert get_client_identifier(_request()) == "anonymous"


class TestApplyRateLimit:
    def test_allows_under_limit(self, rate_limiter: InMemoryRateLimiter) -> None:
        assert apply_rate_limit(_request({"x-real-ip": "9.9.9.9"}), rate_limiter, "upload") is None

    def test_denial_renders_429(self, rate_limiter: InMemoryRateLimiter) -> None:
        request = _request({"x-real-ip": "9.9.9.9"})
        for _ in range(5):
            assert apply_rate_limit(request, rate_limiter, "upload") is None

        response = apply_rate_limit(request, rate_limiter, "upload")

        assert response is not None
        assert response.status_code == 429
        assert _body(response) == {
            "error": "Rate limit exceeded",
            "message": f"Too many requests. Try again at {RESET_ISO}",
            "data": None,
        }
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"] == str(int(START + 60))

    def test_custom_identifier(self, rate_limiter: InMemoryRateLimiter) -> None:
        request = _request({"x-real-ip": "9.9.9.9"})
        for _ in range(5):
            apply_rate_limit(request, rate_limiter, "upload", identifier="tenant-1")

        assert apply_rate_limit(request, rate_limiter, "upload", identifier="tenant-1") is not None
        assert apply_rate_limit(request, rate_limiter, "upload") is None

    def test_disabled_is_noop(
        self, rate_limiter: InMemoryRateLimiter, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)
        request = _request()
        for _ in range(10):
            assert apply_rate_limit(request, rate_limiter, "upload") is None
        assert rate_limiter.stats()["total_entries"] == 0


class TestEnhancedRateLimit:
    def test_allows_when_both_pass(self, rate_limiter: InMemoryRateLimiter) -> None:
        request = _request({"x-real-ip": "9.9.9.9"})
        assert enhanced_rate_limit(request, rate_limiter, "create", user_id="u1") is None
        assert rate_limiter.peek("ip:9.9.9.9", "create").remaining == 9
        assert rate_limiter.peek("user:u1", "create").remaining == 9

    def test_ip_denial_keeps_generic_label(self, rate_limiter: InMemoryRateLimiter) -> None:
        request = _request({"x-real-ip": "9.9.9.9"})
        for n in range(10):
            assert enhanced_rate_limit(request, rate_limiter, "create", user_id=f"u{n}") is None

        response = enhanced_rate_limit(request, rate_limiter, "create", user_id="fresh-user")

        assert response is not None
        assert response.status_code == 429
        assert _body(response)["error"] == "Rate limit exceeded"
        # The user check never ran
        assert rate_limiter.peek("user:fresh-user", "create").remaining == 10

    def test_user_denial_is_relabelled(self, rate_limiter: InMemoryRateLimiter) -> None:
        for n in range(10):
            request = _request({"x-real-ip": f"10.0.0.{n}"})
            assert enhanced_rate_limit(request, rate_limiter, "create", user_id="u1") is None

        response = enhanced_rate_limit(
            _request({"x-real-ip": "10.0.0.99"}), rate_limiter, "create", user_id="u1"
        )

        assert response is not None
        assert response.status_code == 429
        assert _body(response) == {
            "error": "User rate limit exceeded",
            "message": "You have made too many requests. Please try again later.",
            "data": None,
        }
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_without_user_only_ip_is_checked(self, rate_limiter: InMemoryRateLimiter) -> None:
        assert enhanced_rate_limit(_request(), rate_limiter, "create") is None
        assert rate_limiter.stats()["total_entries"] == 1

    def test_denial_without_quota_snapshot_propagates(
        self, rate_limiter: InMemoryRateLimiter
    ) -> None:
        error = RateLimitAppError(code="rate_limit_exceeded", message="Too many requests")

        with patch("crm_api.core.rate_limit.enforce_rate_limit", side_effect=error):
            with pytest.raises(RateLimitAppError):
                enhanced_rate_limit(_request(), rate_limiter, "create", user_id="u1")


def test_headers_round_reset_up(rate_limiter: InMemoryRateLimiter, clock: Mock) -> None:
    clock.return_value = START + 0.25
    result = rate_limiter.check("x", "api")

    headers = build_rate_limit_headers(result)

    assert headers == {
        "X-RateLimit-Limit": "60",
        "X-RateLimit-Remaining": "59",
        "X-RateLimit-Reset": str(int(START) + 61),
    }


class TestRouteDependencies:
    def test_successful_response_carries_quota_headers(
        self, client: TestClient, auth_headers
    ) -> None:
        response = client.get("/v1/contacts", headers=auth_headers())

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "100"
        assert response.headers["X-RateLimit-Remaining"] == "99"

    def test_create_tier_denies_eleventh_request(self, client: TestClient, auth_headers) -> None:
        payload = {"contact_type": "person", "first_name": "Ada"}
        for _ in range(10):
            assert client.post("/v1/contacts", json=payload, headers=auth_headers()).status_code == 201

        response = client.post("/v1/contacts", json=payload, headers=auth_headers())

        assert response.status_code == 429
        assert response.json() == {
            "error": "Rate limit exceeded",
            "message": f"Too many requests. Try again at {RESET_ISO}",
            "data": None,
        }
        assert response.headers["Retry-After"] == "60"

    def test_user_limit_applies_across_addresses(self, client: TestClient, auth_headers) -> None:
        payload = {"contact_type": "company", "company_name": "Initech"}
        for n in range(10):
            headers = auth_headers(**{"X-Forwarded-For": f"10.1.0.{n}"})
            assert client.post("/v1/contacts", json=payload, headers=headers).status_code == 201

        response = client.post(
            "/v1/contacts",
            json=payload,
            headers=auth_headers(**{"X-Forwarded-For": "10.1.0.200"}),
        )

        assert response.status_code == 429
        assert response.json()["error"] == "User rate limit exceeded"

    def test_window_rolls_over(self, client: TestClient, auth_headers, clock: Mock) -> None:
        payload = {"first_name": "Ada"}
        for _ in range(10):
            client.post("/v1/contacts", json=payload, headers=auth_headers())
        assert client.post("/v1/contacts", json=payload, headers=auth_headers()).status_code == 429

        clock.return_value = START + 60.001
        response = client.post("/v1/contacts", json=payload, headers=auth_headers())

        assert response.status_code == 201
        assert response.headers["X-RateLimit-Remaining"] == "9"

    def test_unauthenticated_request_does_not_consume_user_quota(
        self, client: TestClient, rate_limiter: InMemoryRateLimiter
    ) -> None:
        response = client.post("/v1/contacts", json={"first_name": "Ada"})

        assert response.status_code == 401
        assert rate_limiter.stats()["total_entries"] == 0
