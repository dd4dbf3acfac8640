"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to testing and seeds the static identity provider before
any module reads settings.
"""

import json
import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault(
    "AUTH_USERS",
    json.dumps(
        [
            {
                "token": "teacher-token",
                "id": "u-teacher",
                "email": "teacher@example.com",
                "account_type": "teacher",
                "full_name": "Ada Teacher",
            },
            {
                "token": "student-token",
                "id": "u-student",
                "email": "student@example.com",
                "account_type": "student",
            },
        ]
    ),
)
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from quest_api.adapters.payments.base import AbstractPaymentGateway, CheckoutSession
from quest_api.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from quest_api.adapters.waitlist.in_memory import InMemoryWaitlistRepository
from quest_api.api import dependencies
from quest_api.core import auth, rate_limit
from quest_api.core.app_factory import create_app

TEACHER_HEADERS = {"Authorization": "Bearer teacher-token"}
STUDENT_HEADERS = {"Authorization": "Bearer student-token"}


class FakePaymentGateway(AbstractPaymentGateway):
    """Records checkout calls instead of reaching a provider."""

    def __init__(self, url: str = "https://checkout.stripe.test/session/cs_test_1") -> None:
        self.url = url
        self.calls: list[dict] = []

    async def create_subscription_checkout(self, *, user, price_id, success_url, cancel_url):
        self.calls.append(
            {
                "user_id": user.id,
                "price_id": price_id,
                "success_url": success_url,
                "cancel_url": cancel_url,
            }
        )
        return CheckoutSession(id="cs_test_1", url=self.url)


@pytest.fixture(autouse=True)
def reset_process_state():
    """Drop cached limiter, identity provider and repositories between tests."""
    rate_limit._limiter = None
    rate_limit._limiter_config = None
    auth._provider = None
    dependencies.get_waitlist_repository.cache_clear()
    dependencies.get_payment_gateway.cache_clear()
    yield
    rate_limit._limiter = None
    rate_limit._limiter_config = None
    auth._provider = None


@pytest.fixture
def clock() -> Mock:
    """Wall clock in seconds, frozen until a test moves it."""
    return Mock(return_value=1_700_000_000.0)


@pytest.fixture
def limiter(clock: Mock) -> rate_limit.RateLimiter:
    return rate_limit.RateLimiter(InMemoryFixedWindowRateLimiter(clock=clock))


@pytest.fixture
def waitlist_repository() -> InMemoryWaitlistRepository:
    return InMemoryWaitlistRepository()


@pytest.fixture
def payment_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def app(limiter, waitlist_repository, payment_gateway):
    application = create_app()
    application.dependency_overrides[rate_limit.get_rate_limiter] = lambda: limiter
    application.dependency_overrides[dependencies.get_waitlist_repository] = lambda: waitlist_repository
    application.dependency_overrides[dependencies.get_payment_gateway_provider] = lambda: (lambda: payment_gateway)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
