"""Supabase identity provider.

Bearer tokens are verified against GoTrue (``/auth/v1/user``) with the anon
key; the organization and super-admin flag come from the ``users`` table,
read with the service-role key.
"""

from __future__ import annotations

import logging

import httpx

from crm_api.adapters.identity.base import AbstractIdentityProvider, AuthUser
from crm_api.adapters.postgrest import PostgrestClient, eq

logger = logging.getLogger(__name__)


class SupabaseIdentityProvider(AbstractIdentityProvider):
    """Identity provider backed by Supabase Auth."""

    def __init__(
        self,
        *,
        url: str,
        anon_key: str,
        service_role_key: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._auth_url = url.rstrip("/") + "/auth/v1/user"
        self._anon_key = anon_key
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._rest = PostgrestClient(
            url,
            service_role_key,
            timeout_seconds=timeout_seconds,
            client=self._client,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_user(self, token: str) -> AuthUser | None:
        response = await self._client.get(
            self._auth_url,
            headers={"apikey": self._anon_key, "Authorization": f"Bearer {token}"},
        )
        if response.status_code in (401, 403, 404):
            logger.info("auth.token_rejected", extra={"status": response.status_code})
            return None
        response.raise_for_status()

        body = response.json()
        user_id = body.get("id") if isinstance(body, dict) else None
        if not user_id:
            return None
        return AuthUser(id=str(user_id), email=body.get("email"))

    async def _user_field(self, user_id: str, column: str):
        rows, _ = await self._rest.select(
            "users", {"select": column, "id": eq(user_id)}, limit=1
        )
        return rows[0].get(column) if rows else None

    async def get_user_organization(self, user_id: str) -> str | None:
        organization_id = await self._user_field(user_id, "organization_id")
        return str(organization_id) if organization_id else None

    async def is_system_admin(self, user_id: str) -> bool:
        return await self._user_field(user_id, "is_super_admin") is True
