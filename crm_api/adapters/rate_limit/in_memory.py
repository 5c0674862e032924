"""In-memory fixed-window rate limiter with named tiers.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the check-and-increment runs under the cache lock.
- Fails open: a storage error admits the request instead of blocking it.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Mapping

from crm_api.adapters.rate_limit.base import (
    DEFAULT_TIER,
    RATE_LIMITS,
    AbstractRateLimiter,
    RateLimitPolicy,
    RateLimitRecord,
    RateLimitResult,
    get_policy,
)
from crm_api.utils.ttl_cache import BoundedTTLCache

logger = logging.getLogger(__name__)


class InMemoryRateLimiter(AbstractRateLimiter):
    """Fixed-window counter per ``(tier, identifier)``.

    A window opens on the first request for an identifier and lasts
    ``window_ms``; a request arriving at or after ``reset_time`` opens a new
    one. Records live in a bounded TTL cache, so an evicted identifier simply
    starts over with a fresh window.
    """

    def __init__(
        self,
        *,
        cache: BoundedTTLCache[RateLimitRecord] | None = None,
        policies: Mapping[str, RateLimitPolicy] = RATE_LIMITS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            cache: Record store; a 10000-entry, one-hour cache by default.
            policies: Tier table; must contain the ``api`` tier.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If the policy table has no ``api`` tier.
        """
        if DEFAULT_TIER not in policies:
            raise ValueError(f"policies must define the '{DEFAULT_TIER}' tier")

        self._clock = clock
        self._policies = policies
        self._cache = cache if cache is not None else BoundedTTLCache(clock=clock)

    @property
    def cache(self) -> BoundedTTLCache[RateLimitRecord]:
        return self._cache

    @staticmethod
    def _key(identifier: str, tier: str) -> str:
        return f"{tier}:{identifier}"

    def check(self, identifier: str, tier: str = DEFAULT_TIER) -> RateLimitResult:
        """Consume rate limit budget for the provided identifier.

        Args:
            identifier: Key the decision is scoped to (``ip:...``, ``user:...``).
            tier: Policy name; unknown names use the ``api`` tier.

        Returns:
            RateLimitResult with allowance decision and metadata.
        """
        policy = get_policy(tier, self._policies)
        now = self._clock()

        try:
            with self._cache.lock:
                return self._check_locked(identifier, policy, now)
        except Exception as exc:
            logger.error(
                "rate_limit.storage_error",
                extra={"tier": policy.name, "error_type": type(exc).__name__},
            )
            return RateLimitResult(
                allowed=True,
                limit=policy.max_requests,
                remaining=policy.max_requests,
                reset_time=now + policy.window_seconds,
                tier=policy.name,
            )

    def _check_locked(
        self, identifier: str, policy: RateLimitPolicy, now: float
    ) -> RateLimitResult:
        key = self._key(identifier, policy.name)
        record = self._cache.get(key)

        if record is None or now >= record.reset_time:
            record = RateLimitRecord(
                identifier=identifier,
                count=1,
                reset_time=now + policy.window_seconds,
            )
            self._cache.set(key, record)
            return self._build_result(policy, record, allowed=True, now=now)

        allowed = record.count < policy.max_requests
        if allowed:
            record.count += 1
            self._cache.set(key, record)

        return self._build_result(policy, record, allowed=allowed, now=now)

    def peek(self, identifier: str, tier: str = DEFAULT_TIER) -> RateLimitResult:
        """Report remaining quota without consuming a request or touching LRU order."""
        policy = get_policy(tier, self._policies)
        now = self._clock()

        try:
            record = self._cache.peek(self._key(identifier, policy.name))
        except Exception as exc:
            logger.error(
                "rate_limit.storage_error",
                extra={"tier": policy.name, "error_type": type(exc).__name__},
            )
            record = None

        if record is None or now >= record.reset_time:
            return RateLimitResult(
                allowed=True,
                limit=policy.max_requests,
                remaining=policy.max_requests,
                reset_time=now + policy.window_seconds,
                tier=policy.name,
            )

        return self._build_result(
            policy, record, allowed=record.count < policy.max_requests, now=now
        )

    def reset(self, identifier: str, tier: str | None = None) -> None:
        """Forget one tier (unknown names resolve to ``api``) or every tier."""
        tiers = [get_policy(tier, self._policies).name] if tier else list(self._policies)
        for name in tiers:
            self._cache.delete(self._key(identifier, name))

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> dict[str, int]:
        return {
            "total_entries": self._cache.size(),
            "max_size": self._cache.max_entries,
        }

    @staticmethod
    def _build_result(
        policy: RateLimitPolicy,
        record: RateLimitRecord,
        *,
        allowed: bool,
        now: float,
    ) -> RateLimitResult:
        retry_after = None
        if not allowed:
            retry_after = max(0, int(math.ceil(record.reset_time - now)))
        return RateLimitResult(
            allowed=allowed,
            limit=policy.max_requests,
            remaining=max(0, policy.max_requests - record.count),
            reset_time=record.reset_time,
            retry_after_seconds=retry_after,
            tier=policy.name,
        )
