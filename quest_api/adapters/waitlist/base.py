"""Waitlist repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class WaitlistEntry:
    first_name: str
    last_name: str
    email: str
    role: str
    organization: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AbstractWaitlistRepository(ABC):
    """Interface for waitlist storage."""

    @abstractmethod
    async def add(self, entry: WaitlistEntry) -> bool:
        """Store ``entry``.

        Returns:
            True when a new entry was created, False when the email was
            already on the list.
        """
        raise NotImplementedError

    @abstractmethod
    async def count(self) -> int:
        raise NotImplementedError
