"""Identity provider backed by a static token list from settings."""

from __future__ import annotations

import hmac
from typing import Iterable

from quest_api.adapters.identity.base import AbstractIdentityProvider, AuthenticatedUser
from quest_api.core.config import UserRecord


class StaticTokenIdentityProvider(AbstractIdentityProvider):
    """Resolve tokens configured through ``AUTH_USERS``."""

    def __init__(self, users: Iterable[UserRecord]) -> None:
        self._users: list[tuple[bytes, AuthenticatedUser]] = [
            (
                record.token.encode(),
                AuthenticatedUser(
                    id=record.id,
                    email=record.email,
                    account_type=record.account_type,
                    full_name=record.full_name,
                ),
            )
            for record in users
            if record.token
        ]

    async def resolve(self, token: str) -> AuthenticatedUser | None:
        candidate = token.encode()
        match: AuthenticatedUser | None = None
        # Compare against every entry so timing doesn't reveal the position.
        for known, user in self._users:
            if hmac.compare_digest(known, candidate):
                match = user
        return match
