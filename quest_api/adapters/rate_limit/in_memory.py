"""In-memory fixed-window rate limit store.

Notes:
- Per-process only: running multiple workers or instances multiplies the
  effective limit (``max_requests * instance_count``).
- Thread-safe: the read-check-increment sequence runs under one lock.
- Stale records are swept inline, a bounded number per call.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from itertools import islice
from typing import Callable

from quest_api.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    RateLimitDecision,
    RateLimitKey,
)

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    count: int
    window_start: int
    window_ms: int

    @property
    def window_end(self) -> int:
        return self.window_start + self.window_ms


class InMemoryFixedWindowRateLimiter(AbstractRateLimitStore):
    """Rate limit store using a fixed time window per key.

    A window opens on the first request for a key and lasts ``window_ms``.
    Requests inside the window are admitted until ``max_requests`` is reached;
    later ones are rejected without being counted. The first request after the
    window ends replaces the record and opens a new window.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        retention_ms: int = 60_000,
        sweep_batch_size: int = 100,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            retention_ms: Records whose window started longer ago than this
                (and whose own window has ended) are eligible for eviction.
            sweep_batch_size: Maximum records examined by one inline sweep.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If retention_ms or sweep_batch_size are invalid.
        """
        if retention_ms < 1:
            raise ValueError("retention_ms must be >= 1")
        if sweep_batch_size < 1:
            raise ValueError("sweep_batch_size must be >= 1")

        self._retention_ms = retention_ms
        self._sweep_batch_size = sweep_batch_size
        self._clock = clock
        self._lock = threading.RLock()
        # Ordered by window_start: new and replaced records go to the end.
        self._records: OrderedDict[str, RateLimitRecord] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def now_ms(self) -> float:
        return self._clock() * 1000

    def get_record(self, key: RateLimitKey | str) -> RateLimitRecord | None:
        """Return a copy of the record stored for ``key``, if any."""
        with self._lock:
            record = self._records.get(str(key))
            if record is None:
                return None
            return RateLimitRecord(record.count, record.window_start, record.window_ms)

    def clear(self) -> None:
        """Drop every record."""
        with self._lock:
            self._records.clear()

    def check_and_consume(
        self,
        key: RateLimitKey | str,
        *,
        max_requests: int,
        window_ms: int,
    ) -> RateLimitDecision:
        """Admit or reject one request for ``key``.

        Args:
            key: Namespaced limiter key.
            max_requests: Ceiling admitted per window.
            window_ms: Fixed window length in milliseconds.

        Returns:
            RateLimitDecision with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or limits are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")
        store_key = str(key)
        if not store_key:
            raise ValueError("key must be a non-empty string")

        # Whole milliseconds, so reset_at equals the window end exactly.
        now = int(self.now_ms())

        with self._lock:
            self._sweep_locked(now)

            record = self._records.get(store_key)
            if record is None or now - record.window_start >= window_ms:
                record = RateLimitRecord(count=1, window_start=now, window_ms=window_ms)
                self._records.pop(store_key, None)
                self._records[store_key] = record
                return self._decision(True, max_requests, max_requests - 1, record)

            if record.count < max_requests:
                record.count += 1
                return self._decision(True, max_requests, max_requests - record.count, record)

            return self._decision(False, max_requests, 0, record)

    @staticmethod
    def _decision(
        allowed: bool,
        limit: int,
        remaining: int,
        record: RateLimitRecord,
    ) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            limit=limit,
            remaining=max(0, remaining),
            reset_at=int(record.window_end),
        )

    def _sweep_locked(self, now: int) -> None:
        """Evict stale records from the oldest end, examining a bounded batch."""
        horizon = now - self._retention_ms
        stale: list[str] = []
        for key, record in islice(self._records.items(), self._sweep_batch_size):
            if record.window_start > horizon:
                # Everything after this one started later still.
                break
            if now >= record.window_end:
                stale.append(key)

        for key in stale:
            del self._records[key]

        if stale:
            logger.debug(
                "rate_limit.swept",
                extra={"evicted": len(stale), "size": len(self._records)},
            )
