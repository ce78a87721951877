from datetime import datetime, timezone

import pytest

from flow.core.config import settings
from flow.services.stripe_service import StripeService, plan_for_price_id


@pytest.fixture
def stripe_configured(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_pro_price_id", "price_pro")
    monkeypatch.setattr(settings, "stripe_team_price_id", "price_team")

    calls = {}

    def create_customer(email, name, user_id):
        calls["customer"] = (email, name, user_id)
        return {"id": "cus_123"}

    def create_subscription(customer_id, price_id, user_id):
        calls["subscription"] = (customer_id, price_id, user_id)
        return {
            "id": "sub_123",
            "status": "incomplete",
            "latest_invoice": {"payment_intent": {"client_secret": "pi_secret"}},
        }

    def create_payment_intent(amount_cents, customer_id, user_id):
        calls["payment_intent"] = (amount_cents, customer_id, user_id)
        return {"client_secret": "pi_once_secret"}

    monkeypatch.setattr(StripeService, "create_customer", create_customer)
    monkeypatch.setattr(StripeService, "create_subscription", create_subscription)
    monkeypatch.setattr(StripeService, "create_payment_intent", create_payment_intent)
    return calls


def _user(client) -> dict:
    return client.get("/api/auth/user").json()


def test_plan_for_price_id(stripe_configured):
    assert plan_for_price_id("price_team") == "team"
    assert plan_for_price_id("price_pro") == "pro"
    assert plan_for_price_id(None) == "pro"


def test_subscription_status_defaults_to_free(auth_client):
    response = auth_client.get("/api/subscription-status")

    assert response.status_code == 200
    assert response.json() == {"plan": "free", "status": "free", "isActive": False, "periodEnd": None}


def test_free_plan_needs_no_stripe(auth_client):
    response = auth_client.post("/api/create-subscription", json={"planId": "free"})

    assert response.status_code == 200
    assert response.json()["clientSecret"] is None


def test_unknown_plan(auth_client):
    assert auth_client.post("/api/create-subscription", json={"planId": "gold"}).status_code == 400


def test_paid_plan_without_stripe(auth_client, monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", None)

    assert auth_client.post("/api/create-subscription", json={"planId": "pro"}).status_code == 503


def test_create_subscription(auth_client, storage, stripe_configured):
    response = auth_client.post("/api/create-subscription", json={"planId": "pro"})

    assert response.status_code == 200
    assert response.json() == {"plan": "pro", "subscriptionId": "sub_123", "clientSecret": "pi_secret"}

    user = storage.get_user(_user(auth_client)["id"])
    assert user.stripe_customer_id == "cus_123"
    assert user.stripe_subscription_id == "sub_123"
    assert user.subscription_status == "incomplete"
    assert stripe_configured["customer"] == ("ada@example.com", "Ada Lovelace", user.id)
    assert stripe_configured["subscription"] == ("cus_123", "price_pro", user.id)


def test_payment_intent_reuses_customer(auth_client, storage, stripe_configured):
    storage.update_user(_user(auth_client)["id"], {"stripe_customer_id": "cus_existing"})

    response = auth_client.post("/api/create-payment-intent", json={"amount": 12.5})

    assert response.status_code == 200
    assert response.json() == {"clientSecret": "pi_once_secret"}
    assert "customer" not in stripe_configured
    assert stripe_configured["payment_intent"][:2] == (1250, "cus_existing")


def test_payment_methods_empty_without_customer(auth_client):
    assert auth_client.get("/api/payment-methods").json() == []


def test_webhook_requires_signature(client):
    assert client.post("/api/stripe/webhook", content=b"{}").status_code == 400


def test_webhook_rejects_bad_signature(client, monkeypatch):
    def reject(payload, signature):
        raise ValueError("No signatures found matching the expected signature")

    monkeypatch.setattr(StripeService, "construct_webhook_event", reject)

    response = client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "bad"})

    assert response.status_code == 400


def _send_event(client, monkeypatch, event: dict):
    monkeypatch.setattr(StripeService, "construct_webhook_event", lambda payload, signature: event)
    return client.post("/api/stripe/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=abc"})


def test_webhook_activates_plan(auth_client, storage, stripe_configured, monkeypatch):
    user_id = _user(auth_client)["id"]
    event = {
        "type": "customer.subscription.updated",
        "data": {
            "object": {
                "id": "sub_123",
                "customer": "cus_123",
                "status": "active",
                "metadata": {"flow_user_id": user_id},
                "items": {
                    "data": [{"price": {"id": "price_team"}, "current_period_end": 1775000000}]
                },
            }
        },
    }

    response = _send_event(auth_client, monkeypatch, event)

    assert response.json() == {"status": "success"}
    user = storage.get_user(user_id)
    assert user.subscription_status == "active"
    assert user.subscription_plan == "team"
    assert user.subscription_period_end == datetime.fromtimestamp(1775000000, tz=timezone.utc).replace(tzinfo=None)

    status = auth_client.get("/api/subscription-status").json()
    assert status["isActive"] is True
    assert status["plan"] == "team"


def test_webhook_deleted_subscription_falls_back_to_customer(auth_client, storage, monkeypatch):
    user_id = _user(auth_client)["id"]
    storage.update_user(
        user_id,
        {"stripe_customer_id": "cus_9", "subscription_status": "active", "subscription_plan": "pro"},
    )
    event = {
        "type": "customer.subscription.deleted",
        "data": {"object": {"id": "sub_9", "customer": "cus_9", "status": "active", "metadata": {}}},
    }

    assert _send_event(auth_client, monkeypatch, event).json() == {"status": "success"}

    user = storage.get_user(user_id)
    assert user.subscription_status == "canceled"
    assert user.subscription_plan == "free"


def test_webhook_for_unknown_customer_is_ignored(client, monkeypatch):
    event = {
        "type": "customer.subscription.created",
        "data": {"object": {"id": "sub_x", "customer": "cus_nobody", "status": "active"}},
    }

    assert _send_event(client, monkeypatch, event).json() == {"status": "ignored"}


@pytest.fixture
def saved_cards(monkeypatch, stripe_configured):
    """Two cards known to Stripe: one on cus_mine, one on somebody else's customer."""
    owners = {"pm_mine": "cus_mine", "pm_theirs": "cus_someone_else"}
    calls = {"attached": [], "detached": [], "default": []}

    def retrieve_payment_method(payment_method_id):
        if payment_method_id not in owners:
            return None
        return {"id": payment_method_id, "customer": owners[payment_method_id]}

    monkeypatch.setattr(StripeService, "retrieve_payment_method", retrieve_payment_method)
    monkeypatch.setattr(
        StripeService,
        "attach_payment_method",
        lambda payment_method_id, customer_id: calls["attached"].append((payment_method_id, customer_id)),
    )
    monkeypatch.setattr(
        StripeService,
        "detach_payment_method",
        lambda payment_method_id: calls["detached"].append(payment_method_id),
    )
    monkeypatch.setattr(
        StripeService,
        "set_default_payment_method",
        lambda customer_id, payment_method_id: calls["default"].append((customer_id, payment_method_id)),
    )
    return calls


def test_add_payment_method_creates_customer(auth_client, storage, saved_cards, stripe_configured):
    response = auth_client.post("/api/payment-methods", json={"paymentMethodId": "pm_new"})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert saved_cards["attached"] == [("pm_new", "cus_123")]
    assert storage.get_user(_user(auth_client)["id"]).stripe_customer_id == "cus_123"


def test_remove_own_payment_method(auth_client, storage, saved_cards):
    storage.update_user(_user(auth_client)["id"], {"stripe_customer_id": "cus_mine"})

    response = auth_client.delete("/api/payment-methods/pm_mine")

    assert response.status_code == 200
    assert saved_cards["detached"] == ["pm_mine"]


def test_cannot_remove_another_customers_payment_method(auth_client, storage, saved_cards):
    storage.update_user(_user(auth_client)["id"], {"stripe_customer_id": "cus_mine"})

    assert auth_client.delete("/api/payment-methods/pm_theirs").status_code == 404
    assert auth_client.delete("/api/payment-methods/pm_unknown").status_code == 404
    assert saved_cards["detached"] == []


def test_remove_payment_method_without_customer(auth_client, saved_cards):
    assert auth_client.delete("/api/payment-methods/pm_mine").status_code == 404
    assert saved_cards["detached"] == []


def test_set_default_payment_method(auth_client, storage, saved_cards):
    storage.update_user(_user(auth_client)["id"], {"stripe_customer_id": "cus_mine"})

    response = auth_client.patch("/api/payment-methods/pm_mine/default")

    assert response.status_code == 200
    assert saved_cards["default"] == [("cus_mine", "pm_mine")]


def test_cannot_default_another_customers_payment_method(auth_client, storage, saved_cards):
    storage.update_user(_user(auth_client)["id"], {"stripe_customer_id": "cus_mine"})

    assert auth_client.patch("/api/payment-methods/pm_theirs/default").status_code == 404
    assert saved_cards["default"] == []


def test_cancel_subscription_without_one(auth_client, stripe_configured):
    response = auth_client.post("/api/cancel-subscription")

    assert response.status_code == 404


def test_cancel_subscription(auth_client, storage, stripe_configured, monkeypatch):
    storage.update_user(
        _user(auth_client)["id"],
        {"stripe_customer_id": "cus_mine", "stripe_subscription_id": "sub_mine", "subscription_status": "active"},
    )
    cancelled = []
    monkeypatch.setattr(StripeService, "cancel_subscription", lambda subscription_id: cancelled.append(subscription_id))

    response = auth_client.post("/api/cancel-subscription")

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert cancelled == ["sub_mine"]
