from datetime import datetime

import httpx
import pytest

from mflix.config import get_settings
from mflix.main import app
from mflix.services.payment_gateway import RazorpayGateway, get_payment_gateway
from mflix.services.subscriptions import add_months


@pytest.fixture
def gateway_calls():
    return []


@pytest.fixture
def gateway(gateway_calls):
    def handler(request):
        gateway_calls.append(request)
        return httpx.Response(200, json={"id": "order_123", "amount": 100, "currency": "INR"})

    gw = RazorpayGateway("rzp_test_key", "shh", "https://api.razorpay.test/v1", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_payment_gateway] = lambda: gw
    yield gw
    app.dependency_overrides.pop(get_payment_gateway, None)


@pytest.fixture
def skip_payment(monkeypatch):
    monkeypatch.setattr(get_settings(), "skip_payment", True)


def test_add_months_clamps_day():
    assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)
    assert add_months(datetime(2024, 11, 15), 2) == datetime(2025, 1, 15)
    assert add_months(datetime(2024, 2, 29), 12) == datetime(2025, 2, 28)


def test_signature_check(gateway):
    good = gateway.signature_for("order_1", "pay_1")
    assert gateway.verify_signature("order_1", "pay_1", good)
    assert not gateway.verify_signature("order_1", "pay_2", good)
    assert not RazorpayGateway("", "", "https://x").verify_signature("order_1", "pay_1", good)


def test_create_subscription_order(client, gateway, gateway_calls, make_user, auth_headers):
    user = make_user()
    res = client.post("/api/payment/create-subscription", json={"plan": "yearly"}, headers=auth_headers(user))
    assert res.status_code == 200
    assert res.json()["order"]["id"] == "order_123"
    assert res.json()["amount"] == get_settings().plan_price_yearly
    sent = gateway_calls[0]
    assert sent.url == httpx.URL("https://api.razorpay.test/v1/orders")
    assert sent.headers["authorization"].startswith("Basic ")


def test_create_subscription_rejects_unknown_plan(client, gateway, make_user, auth_headers):
    res = client.post("/api/payment/create-subscription", json={"plan": "weekly"}, headers=auth_headers(make_user()))
    assert res.status_code == 400


def test_create_subscription_unconfigured_gateway(client, make_user, auth_headers):
    # cleared with the other overrides by the client fixture
    app.dependency_overrides[get_payment_gateway] = lambda: RazorpayGateway("", "", "https://x")
    res = client.post("/api/payment/create-subscription", json={"plan": "monthly"}, headers=auth_headers(make_user()))
    assert res.status_code == 500


def test_verify_activates_subscription(client, db, gateway, make_user, auth_headers, make_content):
    user = make_user()
    signature = gateway.signature_for("order_123", "pay_9")
    res = client.post(
        "/api/payment/verify",
        json={"razorpay_order_id": "order_123", "razorpay_payment_id": "pay_9", "razorpay_signature": signature, "plan": "monthly"},
        headers=auth_headers(user),
    )
    assert res.status_code == 200
    assert res.json()["user"]["subscription"]["status"] == "active"
    db.refresh(user)
    assert user.subscription_plan == "monthly"
    assert user.subscription_end > user.subscription_start

    # The new subscription opens paid streams straight away
    paid = make_content(access="paid")
    assert client.get(f"/api/content/{paid.id}/stream", headers=auth_headers(user)).status_code == 200


def test_verify_rejects_bad_signature(client, gateway, make_user, auth_headers):
    res = client.post(
        "/api/payment/verify",
        json={"razorpay_order_id": "order_123", "razorpay_payment_id": "pay_9", "razorpay_signature": "0" * 64},
        headers=auth_headers(make_user()),
    )
    assert res.status_code == 400


def test_cancel_revokes_paid_access(client, make_user, auth_headers, make_content):
    user = make_user(status="active", plan="monthly")
    paid = make_content(access="paid")
    assert client.post("/api/payment/cancel", headers=auth_headers(user)).json()["user"]["subscription"]["status"] == "inactive"
    res = client.get(f"/api/content/{paid.id}/stream", headers=auth_headers(user))
    assert res.status_code == 403
    assert res.json()["detail"]["reason"] == "subscription_required"


def test_mock_activate_disabled_by_default(client, make_user, auth_headers):
    assert client.post("/api/payment/mock-activate", json={}, headers=auth_headers(make_user())).status_code == 403


def test_mock_activate_with_skip_payment(client, skip_payment, make_user, auth_headers):
    res = client.post("/api/payment/mock-activate", json={"plan": "yearly"}, headers=auth_headers(make_user()))
    assert res.status_code == 200
    assert res.json()["user"]["subscription"]["plan"] == "yearly"


def test_gateway_status_hides_secret(client, gateway):
    res = client.get("/api/payment/gateway-status")
    assert res.json() == {"key_id": "rzp_test_key", "configured": True}


@pytest.fixture
def failing_gateway():
    def handler(request):
        return httpx.Response(401, json={"error": {"description": "Authentication failed"}})

    gw = RazorpayGateway("rzp_test_key", "wrong", "https://api.razorpay.test/v1", transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_payment_gateway] = lambda: gw
    yield gw
    app.dependency_overrides.pop(get_payment_gateway, None)


def test_gateway_error_is_bad_gateway(client, failing_gateway, make_user, auth_headers):
    res = client.post("/api/payment/create-subscription", json={"plan": "monthly"}, headers=auth_headers(make_user()))
    assert res.status_code == 502


def test_gateway_error_gives_mock_order_when_skipping(client, failing_gateway, skip_payment, make_user, auth_headers):
    res = client.post("/api/payment/create-subscription", json={"plan": "monthly"}, headers=auth_headers(make_user()))
    assert res.status_code == 200
    assert res.json()["mock"] is True
    assert res.json()["order"]["id"].startswith("order_mock_")


def test_activation_and_cancel_are_emailed(client, gateway, mailer, smtp, make_user, auth_headers):
    user = make_user(email="payer@example.com")
    signature = gateway.signature_for("order_123", "pay_1")
    client.post(
        "/api/payment/verify",
        json={"razorpay_order_id": "order_123", "razorpay_payment_id": "pay_1", "razorpay_signature": signature, "plan": "yearly"},
        headers=auth_headers(user),
    )
    client.post("/api/payment/cancel", headers=auth_headers(user))
    assert [m["Subject"] for m in smtp.messages] == [
        "Subscription activated - mflix",
        "Subscription cancelled - mflix",
    ]
    assert all(m["To"] == "payer@example.com" for m in smtp.messages)
    assert "yearly subscription is now active" in smtp.messages[0].get_content()


def test_bad_signature_sends_no_email(client, gateway, mailer, smtp, make_user, auth_headers):
    client.post(
        "/api/payment/verify",
        json={"razorpay_order_id": "order_123", "razorpay_payment_id": "pay_1", "razorpay_signature": "bad"},
        headers=auth_headers(make_user()),
    )
    assert smtp.messages == []
