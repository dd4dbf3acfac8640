"""In-memory waitlist repository (per-process)."""

from __future__ import annotations

import threading

from quest_api.adapters.waitlist.base import AbstractWaitlistRepository, WaitlistEntry


class InMemoryWaitlistRepository(AbstractWaitlistRepository):
    """Waitlist keyed by normalized email; the first signup wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, WaitlistEntry] = {}

    async def add(self, entry: WaitlistEntry) -> bool:
        with self._lock:
            if entry.email in self._entries:
                return False
            self._entries[entry.email] = entry
            return True

    async def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, email: str) -> WaitlistEntry | None:
        with self._lock:
            return self._entries.get(email)
