"""Caller identity resolution for protected handlers.

Bearer tokens from the ``Authorization`` header are resolved through an
``AbstractIdentityProvider``. Handlers that merely bucket by user (checkout)
take the optional identity; handlers that need a user (``/me``) require it.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Depends, Header

from quest_api.adapters.identity.base import AbstractIdentityProvider, AuthenticatedUser
from quest_api.adapters.identity.static import StaticTokenIdentityProvider
from quest_api.core.config import settings
from quest_api.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

_provider: AbstractIdentityProvider | None = None


def get_identity_provider() -> AbstractIdentityProvider:
    """Return the process-wide identity provider built from ``AUTH_USERS``."""

    global _provider
    if _provider is None:
        _provider = StaticTokenIdentityProvider(settings.auth.users)
    return _provider


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of a ``Bearer`` authorization header.

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
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:16]


async def get_current_user(
    provider: Annotated[AbstractIdentityProvider, Depends(get_identity_provider)],
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser | None:
    """FastAPI dependency resolving the caller, or None for anonymous callers."""

    token = extract_bearer_token(authorization)
    if token is None:
        logger.debug("auth.anonymous")
        return None

    user = await provider.resolve(token)
    if user is None:
        logger.warning("auth.unknown_token", extra={"token_hash": _hash_token(token)})
        return None

    logger.info("auth.success", extra={"user_id": user.id})
    return user


async def require_user(
    user: Annotated[AuthenticatedUser | None, Depends(get_current_user)],
) -> AuthenticatedUser:
    """FastAPI dependency rejecting anonymous callers with 401.

    Raises:
        AuthenticationAppError: When no valid bearer token was supplied.
    """
    if user is None:
        raise AuthenticationAppError(code="unauthorized", message="Unauthorized")
    return user
