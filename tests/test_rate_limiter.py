"""Unit tests for the in-memory tiered rate limiter."""

import threading
from unittest.mock import Mock, patch

import pytest

from crm_api.adapters.rate_limit.base import RATE_LIMITS, RateLimitPolicy, get_policy
from crm_api.adapters.rate_limit.in_memory import InMemoryRateLimiter
from crm_api.utils.ttl_cache import BoundedTTLCache

START = 1_700_000_000.0


@pytest.fixture
def clock() -> Mock:
    return Mock(return_value=START)


@pytest.fixture
def limiter(clock: Mock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(cache=BoundedTTLCache(clock=clock), clock=clock)


def test_policy_table_matches_published_limits() -> None:
    expected = {
        "api": (60_000, 60),
        "auth": (900_000, 5),
        "create": (60_000, 10),
        "search": (60_000, 100),
        "admin": (60_000, 30),
        "upload": (60_000, 5),
    }
    assert {name: (p.window_ms, p.max_requests) for name, p in RATE_LIMITS.items()} == expected


def test_unknown_tier_falls_back_to_api() -> None:
    assert get_policy("does-not-exist") is RATE_LIMITS["api"]


@pytest.mark.parametrize("kwargs", [{"window_ms": 0, "max_requests": 1}, {"window_ms": 1, "max_requests": 0}])
def test_policy_rejects_non_positive_values(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitPolicy(name="x", **kwargs)


def test_first_request_opens_window(limiter: InMemoryRateLimiter) -> None:
    result = limiter.check("1.2.3.4", "api")

    assert result.allowed is True
    assert result.limit == 60
    assert result.remaining == 59
    assert result.reset_time == START + 60
    assert result.retry_after_seconds is None


def test_create_tier_allows_ten_then_denies(limiter: InMemoryRateLimiter, clock: Mock) -> None:
    remaining = [limiter.check("1.2.3.4", "create").remaining for _ in range(10)]
    assert remaining == list(range(9, -1, -1))

    denied = limiter.check("1.2.3.4", "create")
    assert denied.allowed is False
    assert denied.remaining == 0
    assert denied.retry_after_seconds == 60

    clock.return_value = START + 60.001
    fresh = limiter.check("1.2.3.4", "create")
    assert fresh.allowed is True
    assert fresh.remaining == 9


def test_denied_request_does_not_extend_window(limiter: InMemoryRateLimiter, clock: Mock) -> None:
    for _ in range(5):
        limiter.check("ip", "upload")

    clock.return_value = START + 30
    denied = limiter.check("ip", "upload")
    assert denied.allowed is False
    assert denied.reset_time == START + 60
    assert denied.retry_after_seconds == 30


def test_window_boundary_starts_new_window(limiter: InMemoryRateLimiter, clock: Mock) -> None:
    for _ in range(5):
        limiter.check("ip", "upload")
    assert limiter.check("ip", "upload").allowed is False

    clock.return_value = START + 60
    result = limiter.check("ip", "upload")
    assert result.allowed is True
    assert result.reset_time == START + 120


def test_tiers_are_counted_separately(limiter: InMemoryRateLimiter) -> None:
    for _ in range(5):
        limiter.check("ip", "upload")
    assert limiter.check("ip", "upload").allowed is False

    assert limiter.check("ip", "api").remaining == 59


def test_identifiers_are_counted_separately(limiter: InMemoryRateLimiter) -> None:
    for _ in range(5):
        limiter.check("ip:a", "auth")
    assert limiter.check("ip:a", "auth").allowed is False
    assert limiter.check("ip:b", "auth").allowed is True


def test_peek_does_not_consume(limiter: InMemoryRateLimiter) -> None:
    limiter.check("ip", "create")

    first = limiter.peek("ip", "create")
    second = limiter.peek("ip", "create")

    assert first.remaining == 9
    assert second.remaining == 9
    assert limiter.check("ip", "create").remaining == 8


def test_peek_unknown_identifier_reports_full_quota(limiter: InMemoryRateLimiter) -> None:
    result = limiter.peek("never-seen", "search")

    assert result.allowed is True
    assert result.remaining == 100
    assert limiter.stats()["total_entries"] == 0


def test_reset_forgets_identifier(limiter: InMemoryRateLimiter) -> None:
    for _ in range(5):
        limiter.check("ip", "upload")
    limiter.check("ip", "api")

    limiter.reset("ip", "upload")
    assert limiter.peek("ip", "upload").remaining == 5
    assert limiter.peek("ip", "api").remaining == 59

    limiter.reset("ip")
    assert limiter.peek("ip", "api").remaining == 60


def test_reset_resolves_unknown_tier_to_api(limiter: InMemoryRateLimiter) -> None:
    limiter.check("ip:x", "bogus")
    assert limiter.peek("ip:x", "api").remaining == 59

    limiter.reset("ip:x", "bogus")

    assert limiter.peek("ip:x", "api").remaining == 60


def test_clear_and_stats(limiter: InMemoryRateLimiter) -> None:
    limiter.check("a")
    limiter.check("b")
    assert limiter.stats() == {"total_entries": 2, "max_size": 10000}

    limiter.clear()
    assert limiter.stats()["total_entries"] == 0


def test_storage_error_fails_open(clock: Mock) -> None:
    cache = Mock(spec=BoundedTTLCache)
    cache.lock = threading.RLock()
    cache.get.side_effect = RuntimeError("boom")
    limiter = InMemoryRateLimiter(cache=cache, clock=clock)

    result = limiter.check("ip", "create")

    assert result.allowed is True
    assert result.remaining == 10
    assert result.reset_time == START + 60


def test_evicted_record_starts_over(clock: Mock) -> None:
    limiter = InMemoryRateLimiter(cache=BoundedTTLCache(max_entries=1, clock=clock), clock=clock)
    limiter.check("a", "create")
    limiter.check("a", "create")
    limiter.check("b", "create")

    assert limiter.check("a", "create").remaining == 9


def test_concurrent_checks_never_exceed_limit(limiter: InMemoryRateLimiter) -> None:
    allowed: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(10):
            result = limiter.check("shared", "admin")
            with lock:
                allowed.append(result.allowed)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert allowed.count(True) == 30
    assert allowed.count(False) == 50


def test_requires_api_tier() -> None:
    with pytest.raises(ValueError):
        InMemoryRateLimiter(policies={"create": RATE_LIMITS["create"]})


def test_check_on_full_cache_does_not_scan_entries(clock: Mock) -> None:
    cache: BoundedTTLCache = BoundedTTLCache(max_entries=1000, clock=clock)
    limiter = InMemoryRateLimiter(cache=cache, clock=clock)
    for i in range(1000):
        limiter.check(f"ip:{i}")

    with patch.object(cache, "_is_expired", wraps=cache._is_expired) as is_expired:
        result = limiter.check("ip:new")

    assert result.allowed is True
    assert is_expired.call_count <= 2
