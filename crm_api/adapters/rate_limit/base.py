"""Rate limiter interfaces and the tier policy table.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

DEFAULT_TIER = "api"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Configuration for one named tier.

    Attributes:
        name: Tier identifier (e.g. ``api``, ``create``).
        window_ms: Fixed window length in milliseconds.
        max_requests: Requests admitted per window.
    """

    name: str
    window_ms: int
    max_requests: int

    def __post_init__(self) -> None:
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000


def _policies(*policies: RateLimitPolicy) -> Mapping[str, RateLimitPolicy]:
    return MappingProxyType({p.name: p for p in policies})


RATE_LIMITS: Mapping[str, RateLimitPolicy] = _policies(
    RateLimitPolicy("api", window_ms=60_000, max_requests=60),
    RateLimitPolicy("auth", window_ms=15 * 60_000, max_requests=5),
    RateLimitPolicy("create", window_ms=60_000, max_requests=10),
    RateLimitPolicy("search", window_ms=60_000, max_requests=100),
    RateLimitPolicy("admin", window_ms=60_000, max_requests=30),
    RateLimitPolicy("upload", window_ms=60_000, max_requests=5),
)


def get_policy(
    tier: str | None,
    policies: Mapping[str, RateLimitPolicy] = RATE_LIMITS,
) -> RateLimitPolicy:
    """Look up a tier, falling back to the ``api`` tier when unknown."""
    if tier and tier in policies:
        return policies[tier]
    return policies[DEFAULT_TIER]


@dataclass
class RateLimitRecord:
    """One identifier's current admission window.

    Valid only while ``now < reset_time``; an expired record is replaced,
    never reused.
    """

    identifier: str
    count: int
    reset_time: float


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_time: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        tier: Name of the tier the decision was made under.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_time: float
    retry_after_seconds: int | None = None
    tier: str = DEFAULT_TIER


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, identifier: str, tier: str = DEFAULT_TIER) -> RateLimitResult:
        """Consume one request of budget for ``identifier`` under ``tier``.

        Never raises; storage failures are reported as allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def peek(self, identifier: str, tier: str = DEFAULT_TIER) -> RateLimitResult:
        """Report current quota without consuming a request."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, identifier: str, tier: str | None = None) -> None:
        """Forget the window for one tier, or for every tier when omitted."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Drop every record."""
        raise NotImplementedError
