"""Tests for the premium checkout handler."""

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from conftest import STUDENT_HEADERS, TEACHER_HEADERS
from quest_api.adapters.payments.base import AbstractPaymentGateway
from quest_api.api import dependencies
from quest_api.core.errors import PaymentAppError

CHECKOUT_BODY = {
    "priceId": "price_premium_monthly",
    "successUrl": "https://quest.example.com/billing/success",
    "cancelUrl": "https://quest.example.com/billing/cancel",
}


def test_teacher_gets_checkout_url(client: TestClient, payment_gateway):
    resp = client.post("/v1/checkout", json=CHECKOUT_BODY, headers=TEACHER_HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {"url": payment_gateway.url}
    assert payment_gateway.calls == [
        {
            "user_id": "u-teacher",
            "price_id": "price_premium_monthly",
            "success_url": "https://quest.example.com/billing/success",
            "cancel_url": "https://quest.example.com/billing/cancel",
        }
    ]


def test_anonymous_caller_is_unauthorized(client: TestClient, payment_gateway):
    resp = client.post("/v1/checkout", json=CHECKOUT_BODY)

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"
    assert payment_gateway.calls == []


def test_unknown_token_is_unauthorized(client: TestClient):
    resp = client.post("/v1/checkout", json=CHECKOUT_BODY, headers={"Authorization": "Bearer forged"})

    assert resp.status_code == 401


def test_student_is_forbidden(client: TestClient, payment_gateway):
    resp = client.post("/v1/checkout", json=CHECKOUT_BODY, headers=STUDENT_HEADERS)

    assert resp.status_code == 403
    assert resp.json()["error"]["message"] == "Only teachers can subscribe to premium"
    assert payment_gateway.calls == []


@pytest.mark.parametrize(
    "override",
    [
        {"successUrl": "javascript:alert(1)"},
        {"cancelUrl": "ftp://quest.example.com/cancel"},
        {"priceId": ""},
        {"coupon": "FREE100"},
    ],
)
def test_invalid_body_is_rejected_before_provider_call(client: TestClient, payment_gateway, override):
    resp = client.post("/v1/checkout", json={**CHECKOUT_BODY, **override}, headers=TEACHER_HEADERS)

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_failed"
    assert payment_gateway.calls == []


def test_user_bucket_throttles_after_ten(client: TestClient, clock: Mock):
    headers = {**TEACHER_HEADERS, "X-Forwarded-For": "203.0.113.7"}

    statuses = [client.post("/v1/checkout", json=CHECKOUT_BODY, headers=headers).status_code for _ in range(11)]

    assert statuses == [200] * 10 + [429]


def test_user_bucket_follows_the_user_across_ips(client: TestClient):
    for i in range(10):
        client.post("/v1/checkout", json=CHECKOUT_BODY, headers={**TEACHER_HEADERS, "X-Forwarded-For": f"10.0.0.{i}"})

    resp = client.post("/v1/checkout", json=CHECKOUT_BODY, headers={**TEACHER_HEADERS, "X-Forwarded-For": "10.0.1.1"})

    assert resp.status_code == 429
    assert resp.headers["X-RateLimit-Limit"] == "10"


def test_combined_check_consumes_ip_slot_when_user_is_rejected(client: TestClient, limiter):
    headers = {**TEACHER_HEADERS, "X-Forwarded-For": "203.0.113.7"}

    for _ in range(12):
        client.post("/v1/checkout", json=CHECKOUT_BODY, headers=headers)

    assert limiter.store.get_record("ip:203.0.113.7").count == 12
    assert limiter.store.get_record("user:u-teacher").count == 10


def test_anonymous_callers_are_limited_per_ip(client: TestClient, limiter):
    headers = {"X-Forwarded-For": "203.0.113.7"}

    for _ in range(3):
        assert client.post("/v1/checkout", json=CHECKOUT_BODY, headers=headers).status_code == 401

    assert limiter.store.get_record("ip:203.0.113.7").count == 3
    assert len(limiter.store) == 1


@patch("quest_api.api.routes.checkout.settings")
def test_ip_bucket_throttles_shared_addresses(mock_settings, client: TestClient):
    mock_settings.app.checkout_ip_max_requests = 2
    mock_settings.app.checkout_user_max_requests = 10
    mock_settings.app.reject_unknown_fields = True
    headers = {"X-Forwarded-For": "203.0.113.7"}

    client.post("/v1/checkout", json=CHECKOUT_BODY, headers={**headers, **TEACHER_HEADERS})
    client.post("/v1/checkout", json=CHECKOUT_BODY, headers={**headers, **STUDENT_HEADERS})
    resp = client.post("/v1/checkout", json=CHECKOUT_BODY, headers={**headers, **TEACHER_HEADERS})

    assert resp.status_code == 429


def test_provider_failure_returns_502(client: TestClient, app):
    class FailingGateway(AbstractPaymentGateway):
        async def create_subscription_checkout(self, *, user, price_id, success_url, cancel_url):
            raise PaymentAppError(
                code="payment_provider_error",
                message="Payment provider error",
                details={"provider": "stripe", "http_status": 500},
            )

    app.dependency_overrides[dependencies.get_payment_gateway_provider] = lambda: FailingGateway

    resp = client.post("/v1/checkout", json=CHECKOUT_BODY, headers=TEACHER_HEADERS)

    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "payment_provider_error"
    assert "details" not in resp.json()["error"]


def test_unconfigured_provider_does_not_mask_role_check(client: TestClient, app):
    """Gateway construction is deferred until the checks before it pass."""
    app.dependency_overrides.pop(dependencies.get_payment_gateway_provider)

    resp = client.post("/v1/checkout", json=CHECKOUT_BODY, headers=STUDENT_HEADERS)

    assert resp.status_code == 403
