import pytest

from storefront.utils import security

URL = "/api/v1/notifications/order-confirmation"
BODY = {
    "orderId": "3f2a9c1e-7b4d-4e2a-9f0a-1c2d3e4f5a6b",
    "email": "buyer@example.com",
    "orderItems": [
        {"product_name": "Air Runner", "quantity": 1, "price": 1000.0, "size": "9", "color": "Black"},
        {"product_name": "Court Classic", "quantity": 1, "price": 500.0},
    ],
    "subtotal": 1500.0,
    "tax": 120.0,
    "shipping": 50.0,
    "total": 1770.0,
}


@pytest.fixture
def internal_token(monkeypatch):
    monkeypatch.setattr(security, "INTERNAL_API_TOKEN", "internal-test-token")
    return {"X-Internal-Token": "internal-test-token"}

def test_resend_confirmation(client, internal_token, resend_http):
    res = client.post(URL, json=BODY, headers=internal_token)

    assert res.status_code == 200
    assert res.json() == {"success": True, "data": {"id": "email_123"}}
    (sent,) = resend_http.sent
    assert sent["json"]["subject"] == "Order Confirmed - #3F2A9C1E"
    assert "₹1770.00" in sent["json"]["html"]

def test_requires_internal_token(client, internal_token, resend_http):
    assert client.post(URL, json=BODY).status_code == 401
    assert resend_http.sent == []

def test_disabled_without_configured_token(client, monkeypatch):
    monkeypatch.setattr(security, "INTERNAL_API_TOKEN", "")
    assert client.post(URL, json=BODY, headers={"X-Internal-Token": "x"}).status_code == 403

def test_missing_email(client, internal_token):
    res = client.post(URL, json={**BODY, "email": ""}, headers=internal_token)

    assert res.status_code == 400
    assert res.json()["code"] == "invalid_recipient"

def test_resend_rejection(client, internal_token, resend_http):
    resend_http.response.status_code = 403

    res = client.post(URL, json=BODY, headers=internal_token)

    assert res.status_code == 502
    assert res.json()["code"] == "delivery_failure"

def test_notifier_not_configured(client, app, internal_token):
    app.state.services.notifier = None

    res = client.post(URL, json=BODY, headers=internal_token)

    assert res.status_code == 503
