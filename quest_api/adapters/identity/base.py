"""Identity provider interface.

The request-protection layer never authenticates anyone itself; it only
buckets requests by the user id an identity provider hands back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class AuthenticatedUser:
    """The caller behind a valid token."""

    id: str
    email: str
    account_type: str = "student"
    full_name: str | None = None

    @property
    def is_teacher(self) -> bool:
        return self.account_type == "teacher"

    def to_public_dict(self) -> dict[str, Any]:
        return asdict(self)


class AbstractIdentityProvider(ABC):
    """Interface for identity providers."""

    @abstractmethod
    async def resolve(self, token: str) -> AuthenticatedUser | None:
        """Return the user owning ``token``, or None when it is unknown."""
        raise NotImplementedError
