"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the process-wide components: identity provider, data store and rate
limiter are created in the lifespan and stored on ``app.state``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm_api.adapters.factory import create_data_store, create_identity_provider
from crm_api.adapters.identity.base import AbstractIdentityProvider
from crm_api.adapters.rate_limit.base import AbstractRateLimiter
from crm_api.adapters.rate_limit.in_memory import InMemoryRateLimiter
from crm_api.adapters.store.base import AbstractDataStore
from crm_api.api.routes import (
    activities_router,
    admin_router,
    contacts_router,
    gbp_profiles_router,
    health_router,
    organization_router,
    properties_router,
)
from crm_api.core.config import settings
from crm_api.core.exception_handlers import setup_exception_handlers
from crm_api.core.logging import configure_logging
from crm_api.core.middleware import request_context_middleware
from crm_api.core.openapi import apply_openapi_customizations
from crm_api.utils.ttl_cache import BoundedTTLCache

logger = logging.getLogger(__name__)


def build_rate_limiter() -> InMemoryRateLimiter:
    """Limiter over a cache sized from ``APP_RATE_LIMIT_CACHE_*`` settings."""
    cache: BoundedTTLCache = BoundedTTLCache(
        max_entries=settings.app.rate_limit_cache_max_entries,
        ttl_seconds=settings.app.rate_limit_cache_ttl_seconds,
    )
    return InMemoryRateLimiter(cache=cache)


def create_app(
    *,
    identity_provider: AbstractIdentityProvider | None = None,
    data_store: AbstractDataStore | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Components passed in are used as-is (tests inject in-memory ones);
    missing ones are built from settings at startup.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            # Only missing components are built; every one is closed at shutdown.
            store = data_store if data_store is not None else create_data_store(settings.db)
            stack.push_async_callback(store.aclose)
            identity = identity_provider
            if identity is None:
                identity = create_identity_provider(settings.db, store=store)
            stack.push_async_callback(identity.aclose)
            limiter = rate_limiter if rate_limiter is not None else build_rate_limiter()
            stack.callback(limiter.clear)

            app.state.identity_provider = identity
            app.state.data_store = store
            app.state.rate_limiter = limiter
            logger.info(
                "app.startup",
                extra={"db_provider": settings.db.provider, "app_env": settings.app_env},
            )
            yield
        logger.info("app.shutdown")

    app = FastAPI(
        title="CRM API",
        description=(
            "Multi-tenant CRM API: contacts, properties and activities scoped "
            "to the caller's organization, Google Business Profile connections, "
            "an organization profile, and super-admin tooling. Requires a "
            "bearer token and enforces tiered rate limits per IP and per user."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            settings.log.request_id_header,
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )
    app.middleware("http")(request_context_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    for router in (
        contacts_router,
        properties_router,
        activities_router,
        gbp_profiles_router,
        organization_router,
        admin_router,
    ):
        app.include_router(router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
