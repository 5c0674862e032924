"""In-memory identity provider for local development and tests.

Tokens map to user ids; profile data (organization, super-admin flag) is
read from the ``users`` table of an :class:`InMemoryDataStore`, the same
way the hosted provider reads it from the database.
"""

from __future__ import annotations

from crm_api.adapters.identity.base import AbstractIdentityProvider, AuthUser
from crm_api.adapters.store.in_memory import InMemoryDataStore


class InMemoryIdentityProvider(AbstractIdentityProvider):
    """Token table kept in a dict.

    Example:
        >>> store = InMemoryDataStore()
        >>> provider = InMemoryIdentityProvider(store)
        >>> provider.add_user("token-1", "user-1", organization_id="org-1")
        AuthUser(id='user-1', email=None)
    """

    def __init__(self, store: InMemoryDataStore | None = None) -> None:
        self._store = store if store is not None else InMemoryDataStore()
        self._tokens: dict[str, str] = {}

    def add_user(
        self,
        token: str,
        user_id: str,
        *,
        email: str | None = None,
        organization_id: str | None = None,
        is_super_admin: bool = False,
        full_name: str | None = None,
    ) -> AuthUser:
        self._tokens[token] = user_id
        self._store.seed(
            "users",
            {
                "id": user_id,
                "email": email,
                "full_name": full_name,
                "role": "user",
                "organization_id": organization_id,
                "is_super_admin": is_super_admin,
            },
        )
        return AuthUser(id=user_id, email=email)

    def revoke(self, token: str) -> None:
        self._tokens.pop(token, None)

    async def get_user(self, token: str) -> AuthUser | None:
        user_id = self._tokens.get(token)
        if user_id is None:
            return None
        row = self._store.get_user_row(user_id)
        if row is None:
            return None
        return AuthUser(id=user_id, email=row.get("email"))

    async def get_user_organization(self, user_id: str) -> str | None:
        row = self._store.get_user_row(user_id)
        return row.get("organization_id") if row else None

    async def is_system_admin(self, user_id: str) -> bool:
        row = self._store.get_user_row(user_id)
        return bool(row) and row.get("is_super_admin") is True
