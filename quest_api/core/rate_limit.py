"""Rate limiting for protected handlers.

This module wires the rate limit store into the HTTP layer.

Design goals:
- Minimal coupling: handlers depend on ``RateLimiter`` and a few helpers only.
- Swap-friendly: the store can be replaced (e.g., Redis) behind
  ``AbstractRateLimitStore``.
- Two namespaces: ``ip`` for anonymous/public traffic and ``user`` for
  authenticated callers, combinable so a request must pass both gates.

Limits are enforced per process. Under horizontal scaling the effective global
limit is ``max_requests * instance_count``.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Annotated, Mapping, Union

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers

from quest_api.adapters.rate_limit.base import (
    AbstractRateLimitStore,
    KeyNamespace,
    RateLimitDecision,
    RateLimitKey,
)
from quest_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from quest_api.core.config import settings
from quest_api.core.errors import ThrottledError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_IP = "unknown"

HeaderSource = Union[Request, Headers, Mapping[str, str]]


@dataclass(frozen=True)
class RateLimitRule:
    """Ceiling and window applied to one namespace."""

    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


def configured_rule(max_requests: int) -> RateLimitRule:
    """Rule with the given ceiling and the configured window length."""
    return RateLimitRule(max_requests=max_requests, window_ms=settings.app.rate_limit_window_ms)


def default_ip_rule() -> RateLimitRule:
    return configured_rule(settings.app.rate_limit_ip_max_requests)


def default_user_rule() -> RateLimitRule:
    return configured_rule(settings.app.rate_limit_user_max_requests)


def _as_headers(source: HeaderSource) -> Headers:
    if isinstance(source, Request):
        return source.headers
    if isinstance(source, Headers):
        return source
    return Headers(headers=dict(source))


def resolve_client_ip(source: HeaderSource) -> str:
    """Resolve the caller's IP from proxy headers.

    Order: first entry of ``X-Forwarded-For``, then ``X-Real-IP``, then the
    ``"unknown"`` sentinel. Unresolvable callers therefore share one bucket.

    Args:
        source: Request or header mapping.

    Returns:
        str: Client IP address or ``"unknown"``.
    """

    headers = _as_headers(source)
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or UNKNOWN_CLIENT_IP


def merge_decisions(ip: RateLimitDecision, user: RateLimitDecision) -> RateLimitDecision:
    """Combine two namespace decisions into the stricter one.

    ``allowed`` requires both; ``remaining`` and ``reset_at`` report the more
    conservative values. ``limit`` follows the scope with less headroom.
    """

    if ip.remaining != user.remaining:
        binding = ip if ip.remaining < user.remaining else user
    else:
        binding = ip if ip.limit <= user.limit else user

    return RateLimitDecision(
        allowed=ip.allowed and user.allowed,
        limit=binding.limit,
        remaining=min(ip.remaining, user.remaining),
        reset_at=max(ip.reset_at, user.reset_at),
    )


def _hash_limiter_key(key: RateLimitKey) -> str:
    """Hash the rate limit key for logging without exposing identifiers."""
    return hashlib.sha256(str(key).encode()).hexdigest()[:16]


class RateLimiter:
    """Namespaced admit-or-reject decisions on top of a rate limit store."""

    def __init__(self, store: AbstractRateLimitStore) -> None:
        self.store = store

    def now_ms(self) -> float:
        return self.store.now_ms()

    def check(self, key: RateLimitKey, rule: RateLimitRule) -> RateLimitDecision:
        decision = self.store.check_and_consume(
            key,
            max_requests=rule.max_requests,
            window_ms=rule.window_ms,
        )
        log = logger.info if decision.allowed else logger.warning
        log(
            "rate_limit.allowed" if decision.allowed else "rate_limit.exceeded",
            extra={
                "key_type": key.namespace.value,
                "key_hash": _hash_limiter_key(key),
                "limit": decision.limit,
                "remaining": decision.remaining,
                "window_ms": rule.window_ms,
            },
        )
        return decision

    def by_ip(self, source: HeaderSource, rule: RateLimitRule | None = None) -> RateLimitDecision:
        """Check and consume one slot in the caller's IP bucket."""
        key = RateLimitKey(KeyNamespace.IP, resolve_client_ip(source))
        return self.check(key, rule or default_ip_rule())

    def by_user(self, user_id: str, rule: RateLimitRule | None = None) -> RateLimitDecision:
        """Check and consume one slot in the user's bucket."""
        key = RateLimitKey(KeyNamespace.USER, str(user_id))
        return self.check(key, rule or default_user_rule())

    def combined(
        self,
        source: HeaderSource,
        user_id: str | None,
        *,
        ip_rule: RateLimitRule | None = None,
        user_rule: RateLimitRule | None = None,
    ) -> RateLimitDecision:
        """Evaluate both namespaces and return the merged decision.

        Both checks always run, so each may consume a slot even when the
        other one rejects. Without a user id only the IP bucket applies.
        """

        ip_decision = self.by_ip(source, ip_rule)
        if user_id is None:
            return ip_decision
        user_decision = self.by_user(user_id, user_rule)
        return merge_decisions(ip_decision, user_decision)

    def raise_if_throttled(self, decision: RateLimitDecision) -> RateLimitDecision:
        """Raise ``ThrottledError`` for a rejected decision, else return it."""
        if not decision.allowed:
            raise ThrottledError(
                decision,
                retry_after=decision.retry_after_seconds(self.now_ms()),
            )
        return decision


_limiter: RateLimiter | None = None
_limiter_config: tuple[int, int] | None = None


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide rate limiter.

    The instance is cached in-module to preserve state across requests.
    If the store configuration changes (primarily in tests), it is rebuilt.

    Returns:
        RateLimiter: Limiter backed by the in-memory store.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.rate_limit_retention_ms,
        settings.app.rate_limit_sweep_batch_size,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = RateLimiter(
            InMemoryFixedWindowRateLimiter(
                retention_ms=settings.app.rate_limit_retention_ms,
                sweep_batch_size=settings.app.rate_limit_sweep_batch_size,
            )
        )
        _limiter_config = config

    return _limiter


def build_rate_limit_headers(decision: RateLimitDecision, retry_after: int) -> dict[str, str]:
    """Standard throttling headers for a decision."""
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": decision.reset_at_iso,
        "Retry-After": str(retry_after),
    }


def too_many_requests_response(
    decision: RateLimitDecision,
    retry_after: int,
    *,
    include_headers: bool = True,
) -> JSONResponse:
    """Render the 429 response handlers return when throttled.

    Args:
        decision: Rejected decision.
        retry_after: Whole seconds until ``decision.reset_at``.
        include_headers: Attach ``X-RateLimit-*`` and ``Retry-After``.

    Returns:
        JSONResponse: ``{"error", "retryAfter", "resetTime"}`` with status 429.
    """

    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "retryAfter": retry_after,
            "resetTime": decision.reset_at_iso,
        },
        headers=build_rate_limit_headers(decision, retry_after) if include_headers else None,
    )


def enforce_ip_rate_limit(
    limiter: RateLimiter,
    request: Request,
    rule: RateLimitRule | None = None,
) -> None:
    """Consume one slot from the caller's IP bucket or raise ``ThrottledError``."""
    if not settings.app.rate_limit_enabled:
        return
    limiter.raise_if_throttled(limiter.by_ip(request, rule))


def ip_rate_limit(max_requests_setting: str):
    """Build a FastAPI dependency limiting by IP with a ceiling read from settings.

    Args:
        max_requests_setting: Name of the ``AppSettings`` field holding the ceiling.

    Usage:
        @router.post("/waitlist", dependencies=[Depends(ip_rate_limit("waitlist_ip_max_requests"))])
    """

    async def dependency(
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        rule = configured_rule(getattr(settings.app, max_requests_setting))
        enforce_ip_rate_limit(limiter, request, rule)

    return dependency


def enforce_user_rate_limit(
    limiter: RateLimiter,
    user_id: str,
    rule: RateLimitRule | None = None,
) -> None:
    """Consume one slot from the user's bucket or raise ``ThrottledError``."""
    if not settings.app.rate_limit_enabled:
        return
    limiter.raise_if_throttled(limiter.by_user(user_id, rule))


def enforce_combined_rate_limit(
    limiter: RateLimiter,
    request: Request,
    user_id: str | None,
    *,
    ip_rule: RateLimitRule | None = None,
    user_rule: RateLimitRule | None = None,
) -> None:
    """Consume from both buckets and raise ``ThrottledError`` if either rejects."""
    if not settings.app.rate_limit_enabled:
        return
    decision = limiter.combined(request, user_id, ip_rule=ip_rule, user_rule=user_rule)
    limiter.raise_if_throttled(decision)
