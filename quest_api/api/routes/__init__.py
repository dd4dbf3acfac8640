from __future__ import annotations

from quest_api.api.routes.account import router as account_router
from quest_api.api.routes.checkout import router as checkout_router
from quest_api.api.routes.health import router as health_router
from quest_api.api.routes.waitlist import router as waitlist_router

__all__ = ["account_router", "checkout_router", "health_router", "waitlist_router"]
