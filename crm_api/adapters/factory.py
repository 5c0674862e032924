"""Factory for the identity provider and data store."""

from __future__ import annotations

from crm_api.adapters.identity.base import AbstractIdentityProvider
from crm_api.adapters.identity.in_memory import InMemoryIdentityProvider
from crm_api.adapters.identity.supabase import SupabaseIdentityProvider
from crm_api.adapters.store.base import AbstractDataStore
from crm_api.adapters.store.in_memory import InMemoryDataStore
from crm_api.adapters.store.supabase import SupabaseDataStore
from crm_api.core.config import DatabaseSettings, settings
from crm_api.core.errors import ValidationAppError

SUPPORTED_PROVIDERS = ("memory", "supabase")


def _resolve_provider(cfg: DatabaseSettings) -> str:
    provider = cfg.provider.lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ValidationAppError(
            code="db_unknown_provider",
            message=f"Unknown DB provider: '{provider}'. Supported providers: memory, supabase",
        )
    if provider == "supabase":
        missing = [
            name
            for name, value in (
                ("DB_URL", cfg.url),
                ("DB_ANON_KEY", cfg.anon_key),
                ("DB_SERVICE_ROLE_KEY", cfg.service_role_key),
            )
            if not value
        ]
        if missing:
            raise ValidationAppError(
                code="db_missing_settings",
                message=f"Supabase provider requires {', '.join(missing)}",
            )
    return provider


def create_data_store(db_settings: DatabaseSettings | None = None) -> AbstractDataStore:
    """Instantiate the data store named by ``DB_PROVIDER``.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    cfg = db_settings or settings.db
    if _resolve_provider(cfg) == "memory":
        return InMemoryDataStore()
    return SupabaseDataStore(
        url=cfg.url,  # type: ignore[arg-type]
        service_role_key=cfg.service_role_key,  # type: ignore[arg-type]
        timeout_seconds=cfg.timeout_seconds,
    )


def create_identity_provider(
    db_settings: DatabaseSettings | None = None,
    *,
    store: AbstractDataStore | None = None,
) -> AbstractIdentityProvider:
    """Instantiate the identity provider named by ``DB_PROVIDER``.

    The in-memory provider reads user profiles from ``store`` when it is an
    in-memory store, and from a private one otherwise.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    cfg = db_settings or settings.db
    if _resolve_provider(cfg) == "memory":
        return InMemoryIdentityProvider(store if isinstance(store, InMemoryDataStore) else None)
    return SupabaseIdentityProvider(
        url=cfg.url,  # type: ignore[arg-type]
        anon_key=cfg.anon_key,  # type: ignore[arg-type]
        service_role_key=cfg.service_role_key,  # type: ignore[arg-type]
        timeout_seconds=cfg.timeout_seconds,
    )


def create_backends(
    db_settings: DatabaseSettings | None = None,
) -> tuple[AbstractIdentityProvider, AbstractDataStore]:
    """Instantiate a matching identity provider and data store pair.

    Reads configuration from ``settings.db`` unless explicit settings are given.

    Returns:
        Tuple of (identity provider, data store).

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    store = create_data_store(db_settings)
    return create_identity_provider(db_settings, store=store), store
