"""Identity adapters: resolve a bearer token to the calling user."""

from quest_api.adapters.identity.base import AbstractIdentityProvider, AuthenticatedUser
from quest_api.adapters.identity.static import StaticTokenIdentityProvider

__all__ = [
    "AbstractIdentityProvider",
    "AuthenticatedUser",
    "StaticTokenIdentityProvider",
]
