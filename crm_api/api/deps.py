"""FastAPI dependency providers.

Components are created once in the application lifespan and stored on
``app.state``; these helpers hand them to routes and guards.
"""

from __future__ import annotations

from typing import cast

from fastapi import Request

from crm_api.adapters.identity.base import AbstractIdentityProvider
from crm_api.adapters.rate_limit.base import AbstractRateLimiter
from crm_api.adapters.store.base import AbstractDataStore


def get_identity_provider(request: Request) -> AbstractIdentityProvider:
    return cast(AbstractIdentityProvider, request.app.state.identity_provider)


def get_data_store(request: Request) -> AbstractDataStore:
    return cast(AbstractDataStore, request.app.state.data_store)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Retrieve the process-wide limiter from app state.

    Initialized during lifespan startup.
    """
    return cast(AbstractRateLimiter, request.app.state.rate_limiter)
