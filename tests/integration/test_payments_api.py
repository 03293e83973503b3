import json


def _event(event_type="checkout.session.completed", session_id="cs_test_123"):
    return json.dumps({"id": "evt_1", "type": event_type, "data": {"object": {"id": session_id}}})

def test_checkout_returns_stripe_url(client, stripe_client):
    res = client.post("/api/v1/payments/checkout", json={
        "items": [
            {"productId": "prod-1", "variantId": "var-1", "size": "9", "color": "Black", "quantity": 1, "price": 1},
            {"productId": "prod-2", "quantity": 2},
        ],
        "successUrl": "https://shop.test/checkout/success",
        "cancelUrl": "https://shop.test/cart",
        "customerEmail": "buyer@example.com",
    })

    assert res.status_code == 200
    assert res.json() == {"id": "cs_test_created_1", "url": "https://checkout.stripe.test/c/pay/cs_test_created_1"}
    (params,) = stripe_client.sessions.created
    # le prix envoyé par le client est ignoré
    assert params["line_items"][0]["price_data"]["unit_amount"] == 100000
    assert params["line_items"][1]["quantity"] == 2

def test_checkout_ignores_unknown_user_field(client, stripe_client):
    res = client.post("/api/v1/payments/checkout", json={
        "items": [{"productId": "prod-2", "quantity": 1}],
        "successUrl": "https://shop.test/checkout/success",
        "cancelUrl": "https://shop.test/cart",
        "userId": "user-1",
    })

    assert res.status_code == 200
    (params,) = stripe_client.sessions.created
    assert set(params["metadata"]) == {"cart"}

def test_checkout_invalid_cart(client, stripe_client):
    res = client.post("/api/v1/payments/checkout", json={
        "items": [], "successUrl": "https://s", "cancelUrl": "https://c",
    })

    assert res.status_code == 400
    assert res.json()["code"] == "invalid_request"
    assert stripe_client.sessions.created == []

def test_webhook_completed_settles_order(client, paid_session, db):
    res = client.post("/api/v1/payments/webhook", content=_event())

    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["alreadyProcessed"] is False
    assert body["orderId"] == db.rows("orders")[0]["id"]

def test_webhook_after_success_page_is_idempotent(client, paid_session, db, resend_http):
    verify = client.post("/api/v1/orders/verify", json={"sessionId": "cs_test_123"}).json()
    res = client.post("/api/v1/payments/webhook", content=_event())

    assert res.json() == {"status": "ok", "orderId": verify["orderId"], "alreadyProcessed": True}
    assert len(db.rows("orders")) == 1
    assert len(resend_http.sent) == 1

def test_webhook_ignores_other_events(client, db):
    res = client.post("/api/v1/payments/webhook", content=_event("payment_intent.created"))

    assert res.json() == {"status": "ignored"}
    assert db.calls == []

def test_webhook_pending_async_payment(client, stripe_client, session_factory, db):
    stripe_client.add_session(session_factory(payment_status="unpaid"))

    res = client.post("/api/v1/payments/webhook", content=_event())

    assert res.status_code == 200
    assert res.json() == {"status": "pending"}
    assert db.rows("orders") == []

def test_webhook_invalid_payload(client):
    res = client.post("/api/v1/payments/webhook", content=b"garbage")
    assert res.status_code == 400

def test_webhook_persistence_failure_lets_stripe_retry(client, paid_session, db):
    db.fail_on[("orders", "insert")] = RuntimeError("db down")

    res = client.post("/api/v1/payments/webhook", content=_event())

    assert res.status_code == 500
