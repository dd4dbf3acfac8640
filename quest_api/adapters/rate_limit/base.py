"""Rate limiter interfaces.

Handlers depend on this abstraction (not the concrete implementation) so the
storage backend can be swapped later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class KeyNamespace(str, Enum):
    """Namespace tag prefixed to every rate limit key."""

    IP = "ip"
    USER = "user"


@dataclass(frozen=True)
class RateLimitKey:
    """Opaque limiter key; the namespace prefix keeps ip and user buckets apart."""

    namespace: KeyNamespace
    identifier: str

    def __str__(self) -> str:
        return f"{self.namespace.value}:{self.identifier}"


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a check-and-consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window for the binding scope.
        remaining: Requests still permitted in the current window (0 when blocked).
        reset_at: UNIX epoch milliseconds when the current window ends.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def retry_after_seconds(self, now_ms: float) -> int:
        """Whole seconds until ``reset_at``, rounded up and never negative."""
        return max(0, math.ceil((self.reset_at - now_ms) / 1000))

    @property
    def reset_at_iso(self) -> str:
        """``reset_at`` rendered as an ISO-8601 UTC timestamp with milliseconds."""
        moment = datetime.fromtimestamp(self.reset_at / 1000, tz=timezone.utc)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AbstractRateLimitStore(ABC):
    """Interface for rate limit stores."""

    @abstractmethod
    def check_and_consume(
        self,
        key: RateLimitKey | str,
        *,
        max_requests: int,
        window_ms: int,
    ) -> RateLimitDecision:
        """Admit or reject one request for ``key`` and record it when admitted.

        Args:
            key: Namespaced limiter key.
            max_requests: Ceiling admitted per window.
            window_ms: Fixed window length in milliseconds.

        Returns:
            RateLimitDecision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def now_ms(self) -> float:
        """Current time in epoch milliseconds, as seen by the store."""
        raise NotImplementedError
