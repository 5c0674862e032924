"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It ensures that the TESTING environment variable is set to prevent
loading the .env file during tests, and that the in-memory backends are
used instead of the hosted database.
"""

import os

# CRITICAL: Set this before any imports that might load settings
# This prevents Pydantic from loading the .env file in tests
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("DB_PROVIDER", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Iterator
from unittest.mock import Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from crm_api.adapters.identity.in_memory import InMemoryIdentityProvider
from crm_api.adapters.rate_limit.in_memory import InMemoryRateLimiter
from crm_api.adapters.store.in_memory import InMemoryDataStore
from crm_api.core.app_factory import create_app
from crm_api.utils.ttl_cache import BoundedTTLCache

ORG_A = "org-a"
ORG_B = "org-b"

TOKENS = {
    "alice": "token-alice",  # member of org A
    "bob": "token-bob",  # member of org B
    "orphan": "token-orphan",  # no organization
    "admin": "token-admin",  # super admin, member of org A
}


@pytest.fixture
def clock() -> Mock:
    """Deterministic clock (UNIX seconds) shared by limiter and cache."""
    return Mock(return_value=1_700_000_000.0)


@pytest.fixture
def store() -> InMemoryDataStore:
    data = InMemoryDataStore()
    data.seed(
        "organizations",
        {"id": ORG_A, "name": "Acme Realty", "email": "hello@acme.test", "phone": "555-0100"},
    )
    data.seed(
        "organizations",
        {"id": ORG_B, "name": "Borealis Homes", "email": "info@borealis.test", "phone": "555-0200"},
    )
    return data


@pytest.fixture
def identity(store: InMemoryDataStore) -> InMemoryIdentityProvider:
    provider = InMemoryIdentityProvider(store)
    provider.add_user(TOKENS["alice"], "user-alice", email="alice@acme.test", organization_id=ORG_A)
    provider.add_user(TOKENS["bob"], "user-bob", email="bob@borealis.test", organization_id=ORG_B)
    provider.add_user(TOKENS["orphan"], "user-orphan", email="orphan@nowhere.test")
    provider.add_user(
        TOKENS["admin"],
        "user-admin",
        email="admin@acme.test",
        organization_id=ORG_A,
        is_super_admin=True,
    )
    return provider


@pytest.fixture
def rate_limiter(clock: Mock) -> InMemoryRateLimiter:
    return InMemoryRateLimiter(cache=BoundedTTLCache(clock=clock), clock=clock)


@pytest.fixture
def app(
    identity: InMemoryIdentityProvider,
    store: InMemoryDataStore,
    rate_limiter: InMemoryRateLimiter,
) -> FastAPI:
    return create_app(identity_provider=identity, data_store=store, rate_limiter=rate_limiter)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Build an Authorization header for one of the seeded users."""

    def _headers(user: str = "alice", **extra: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {TOKENS[user]}", **extra}

    return _headers
