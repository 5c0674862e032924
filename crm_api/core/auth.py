"""Bearer authentication and tenant resolution.

Guards are FastAPI dependencies layered on each other:

- ``get_current_user``: verifies the ``Authorization: Bearer <token>``
  credential with the identity provider (401 otherwise)
- ``require_auth``: resolves the caller's organization (400 when none) and
  returns an ``AuthContext`` whose data handle is bound to that tenant
- ``require_system_admin``: additionally requires super-admin access (403)

Unexpected failures while resolving identity are logged and reported as a
generic 500 so that provider internals never reach the client. In every
failure case the route handler is not invoked.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from crm_api.adapters.identity.base import AbstractIdentityProvider, AuthUser
from crm_api.adapters.store.base import AbstractDataStore, ScopedDataAccess
from crm_api.api.deps import get_data_store, get_identity_provider
from crm_api.core.errors import (
    AppError,
    AuthenticationAppError,
    ForbiddenAppError,
    MissingOrganizationAppError,
    internal_error,
)
from crm_api.core.logging import bind_tenant

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized"
NO_ORGANIZATION_MESSAGE = "No organization found"
SUPER_ADMIN_REQUIRED_MESSAGE = "Unauthorized: Super admin access required"


@dataclass(frozen=True)
class AuthContext:
    """What a protected handler receives.

    Attributes:
        user: Verified caller.
        organization_id: Tenant resolved from the identity store, never from
            client input.
        data: Data handle scoped to ``organization_id``.
    """

    user: AuthUser
    organization_id: str
    data: ScopedDataAccess


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization`` header value.

    Examples:
        >>> extract_bearer_token("Bearer abc")
        'abc'
        >>> extract_bearer_token("Basic abc") is None
        True
        >>> extract_bearer_token(None) is None
        True
    """
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = token.strip()
    return token or None


def _token_hash(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def _unauthorized(reason: str) -> AuthenticationAppError:
    logger.warning("auth.unauthorized", extra={"reason": reason})
    return AuthenticationAppError(code="unauthorized", message=UNAUTHORIZED_MESSAGE)


async def get_current_user(
    request: Request,
    identity: Annotated[AbstractIdentityProvider, Depends(get_identity_provider)],
) -> AuthUser:
    """Verify the bearer credential.

    Raises:
        AuthenticationAppError: Missing, malformed or rejected token.
        InternalAppError: The identity provider failed unexpectedly.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise _unauthorized("missing_bearer_token")

    try:
        user = await identity.get_user(token)
    except AppError:
        raise
    except Exception as exc:
        logger.error(
            "auth.middleware_error",
            extra={"stage": "get_user", "error_type": type(exc).__name__},
        )
        raise internal_error() from exc

    if user is None:
        logger.info("auth.token_rejected", extra={"token_hash": _token_hash(token)})
        raise _unauthorized("invalid_token")

    bind_tenant(None, user.id)
    return user


async def require_auth(
    user: Annotated[AuthUser, Depends(get_current_user)],
    identity: Annotated[AbstractIdentityProvider, Depends(get_identity_provider)],
    store: Annotated[AbstractDataStore, Depends(get_data_store)],
) -> AuthContext:
    """Resolve the caller's tenant and hand out a scoped data handle.

    Usage:
        @router.get("/contacts")
        async def list_contacts(auth: Annotated[AuthContext, Depends(require_auth)]):
            page = await auth.data.list("contacts", query)

    Raises:
        MissingOrganizationAppError: The user belongs to no organization.
        InternalAppError: The organization lookup failed unexpectedly.
    """
    try:
        organization_id = await identity.get_user_organization(user.id)
    except AppError:
        raise
    except Exception as exc:
        logger.error(
            "auth.middleware_error",
            extra={"stage": "get_user_organization", "error_type": type(exc).__name__},
        )
        raise internal_error() from exc

    if not organization_id:
        logger.warning("auth.no_organization")
        raise MissingOrganizationAppError(
            code="no_organization", message=NO_ORGANIZATION_MESSAGE
        )

    bind_tenant(organization_id, user.id)
    logger.debug("auth.success")
    return AuthContext(
        user=user,
        organization_id=organization_id,
        data=store.scoped(organization_id, user_id=user.id),
    )


async def require_system_admin(
    user: Annotated[AuthUser, Depends(get_current_user)],
    identity: Annotated[AbstractIdentityProvider, Depends(get_identity_provider)],
) -> AuthUser:
    """Allow only super admins; tenant membership is not required."""
    try:
        is_admin = await identity.is_system_admin(user.id)
    except AppError:
        raise
    except Exception as exc:
        logger.error(
            "auth.middleware_error",
            extra={"stage": "is_system_admin", "error_type": type(exc).__name__},
        )
        raise internal_error() from exc

    if not is_admin:
        logger.warning("auth.forbidden", extra={"required_role": "super_admin"})
        raise ForbiddenAppError(code="forbidden", message=SUPER_ADMIN_REQUIRED_MESSAGE)
    return user
