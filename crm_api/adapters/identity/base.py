"""Identity provider interface.

Token verification and the user -> organization lookup live in the managed
auth service; the HTTP layer only depends on this contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class AuthUser:
    """Verified identity returned by the provider."""

    id: str
    email: str | None = None


class AbstractIdentityProvider(ABC):
    """Interface for resolving callers and their tenant."""

    @abstractmethod
    async def get_user(self, token: str) -> AuthUser | None:
        """Verify a bearer token.

        Returns:
            The user, or None when the token is unknown, expired or revoked.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_user_organization(self, user_id: str) -> str | None:
        """Return the organization id the user belongs to, if any."""
        raise NotImplementedError

    @abstractmethod
    async def is_system_admin(self, user_id: str) -> bool:
        """Whether the user holds super-admin access across tenants."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        return None
