"""Rate limiting for HTTP routes.

This module wires the rate limiting adapter into the HTTP layer.

Two entry points mirror how routes use it:
- single-factor: one identifier (client IP by default) under one tier
- enhanced: an ``ip:<addr>`` check, then a ``user:<id>`` check under the
  same tier; both must pass

``apply_rate_limit`` / ``enhanced_rate_limit`` return ``None`` to continue
or a ready 429 response. The ``RateLimit`` / ``UserRateLimit`` dependency
objects raise ``RateLimitAppError`` instead (rendered by the global handler)
and attach quota headers to successful responses.
"""

import hashlib
import logging
import math
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, Request, Response, status
from fastapi.responses import JSONResponse

from crm_api.adapters.identity.base import AuthUser
from crm_api.adapters.rate_limit.base import DEFAULT_TIER, AbstractRateLimiter, RateLimitResult
from crm_api.api.deps import get_rate_limiter
from crm_api.core.auth import get_current_user
from crm_api.core.config import settings
from crm_api.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"
RATE_LIMIT_ERROR = "Rate limit exceeded"
USER_RATE_LIMIT_ERROR = "User rate limit exceeded"
USER_RATE_LIMIT_MESSAGE = "You have made too many requests. Please try again later."


def get_client_identifier(request: Request) -> str:
    """Best-effort client address behind proxies and load balancers.

    Priority: ``cf-connecting-ip`` > ``x-real-ip`` > first hop of
    ``x-forwarded-for`` > ``"anonymous"``.
    """
    headers = request.headers
    cf_connecting = headers.get("cf-connecting-ip", "").strip()
    if cf_connecting:
        return cf_connecting
    real_ip = headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    forwarded_first = headers.get("x-forwarded-for", "").split(",")[0].strip()
    return forwarded_first or ANONYMOUS


def _hash_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing addresses or ids."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _iso_utc(epoch_seconds: float) -> str:
    moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(math.ceil(result.reset_time)),
    }


def build_rate_limit_response(
    result: RateLimitResult,
    *,
    error: str = RATE_LIMIT_ERROR,
    message: str | None = None,
) -> JSONResponse:
    """Render the 429 denial: body ``{error, message, data: null}`` plus headers."""
    retry_after = result.retry_after_seconds
    if retry_after is None:
        retry_after = 0
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": error,
            "message": message or f"Too many requests. Try again at {_iso_utc(result.reset_time)}",
            "data": None,
        },
        headers={"Retry-After": str(retry_after), **build_rate_limit_headers(result)},
    )


def _check(limiter: AbstractRateLimiter, identifier: str, tier: str) -> RateLimitResult:
    result = limiter.check(identifier, tier)
    key_type = identifier.split(":", 1)[0] if ":" in identifier else "raw"
    log_fields = {
        "tier": result.tier,
        "key_type": key_type,
        "key_hash": _hash_key(identifier),
        "limit": result.limit,
        "remaining": result.remaining,
    }
    if result.allowed:
        logger.debug("rate_limit.allowed", extra=log_fields)
    else:
        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": result.retry_after_seconds},
        )
    return result


def _denied(
    result: RateLimitResult, *, error: str = RATE_LIMIT_ERROR, message: str | None = None
) -> RateLimitAppError:
    return RateLimitAppError(
        code="rate_limit_exceeded" if error == RATE_LIMIT_ERROR else "user_rate_limit_exceeded",
        message=message or f"Too many requests. Try again at {_iso_utc(result.reset_time)}",
        details={"tier": result.tier, "retry_after": float(result.retry_after_seconds or 0)},
        error=error,
        result=result,
    )


def enforce_rate_limit(
    request: Request,
    limiter: AbstractRateLimiter,
    tier: str = DEFAULT_TIER,
    *,
    user_id: str | None = None,
) -> RateLimitResult | None:
    """Run the IP check and, with a user id, the user check.

    Returns:
        The allowed result with the fewest remaining requests (for headers),
        or None when rate limiting is disabled.

    Raises:
        RateLimitAppError: When either check denies; a user-level denial
            carries the user-specific label and message.
    """
    if not settings.app.rate_limit_enabled:
        return None

    ip_result = _check(limiter, f"ip:{get_client_identifier(request)}", tier)
    if not ip_result.allowed:
        raise _denied(ip_result)

    if not user_id:
        return ip_result

    user_result = _check(limiter, f"user:{user_id}", tier)
    if not user_result.allowed:
        raise _denied(user_result, error=USER_RATE_LIMIT_ERROR, message=USER_RATE_LIMIT_MESSAGE)

    return min(ip_result, user_result, key=lambda r: r.remaining)


def apply_rate_limit(
    request: Request,
    limiter: AbstractRateLimiter,
    tier: str = DEFAULT_TIER,
    identifier: str | None = None,
) -> JSONResponse | None:
    """Single-factor check.

    Args:
        request: Incoming request (used to derive the client identifier).
        limiter: Limiter to consult.
        tier: Policy name.
        identifier: Custom key; defaults to the client identifier.

    Returns:
        None when allowed, otherwise the 429 response.
    """
    if not settings.app.rate_limit_enabled:
        return None

    result = _check(limiter, identifier or get_client_identifier(request), tier)
    if result.allowed:
        return None
    return build_rate_limit_response(result)


def enhanced_rate_limit(
    request: Request,
    limiter: AbstractRateLimiter,
    tier: str = DEFAULT_TIER,
    user_id: str | None = None,
) -> JSONResponse | None:
    """IP check then user check; None only when both allow."""
    try:
        enforce_rate_limit(request, limiter, tier, user_id=user_id)
    except RateLimitAppError as exc:
        if exc.result is None:
            raise
        return build_rate_limit_response(exc.result, error=exc.error, message=exc.message)
    return None


def attach_rate_limit_headers(response: Response, result: RateLimitResult | None) -> None:
    if result is None or not settings.app.rate_limit_include_headers:
        return
    response.headers.update(build_rate_limit_headers(result))


class RateLimit:
    """Route dependency enforcing one tier per client IP.

    Usage:
        @router.get("/contacts", dependencies=[Depends(RateLimit("search"))])
    """

    def __init__(self, tier: str = DEFAULT_TIER) -> None:
        self.tier = tier

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"{type(self).__name__}(tier={self.tier!r})"

    async def __call__(
        self,
        request: Request,
        response: Response,
        limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        result = enforce_rate_limit(request, limiter, self.tier)
        attach_rate_limit_headers(response, result)


class UserRateLimit(RateLimit):
    """Route dependency enforcing one tier per client IP and per user.

    Resolves the caller first, so an unauthenticated request is rejected
    with 401 before it consumes any quota.
    """

    async def __call__(  # type: ignore[override]
        self,
        request: Request,
        response: Response,
        user: Annotated[AuthUser, Depends(get_current_user)],
        limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        result = enforce_rate_limit(request, limiter, self.tier, user_id=user.id)
        attach_rate_limit_headers(response, result)
