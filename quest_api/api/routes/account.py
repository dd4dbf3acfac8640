from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from quest_api.adapters.identity.base import AuthenticatedUser
from quest_api.core.auth import require_user
from quest_api.core.config import settings
from quest_api.core.rate_limit import (
    RateLimiter,
    configured_rule,
    enforce_user_rate_limit,
    get_rate_limiter,
)
from quest_api.schemas.account import UserProfileResponse

router = APIRouter(tags=["Account"])


@router.get("/me", response_model=UserProfileResponse)
async def get_me(
    user: Annotated[AuthenticatedUser, Depends(require_user)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> UserProfileResponse:
    """Return the authenticated caller's profile, rate limited per user."""
    enforce_user_rate_limit(limiter, user.id, configured_rule(settings.app.me_user_max_requests))
    return UserProfileResponse(**user.to_public_dict())
