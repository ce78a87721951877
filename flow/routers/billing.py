"""
Billing Router

Handles Stripe payment intents, subscriptions, saved payment methods and
webhooks.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Header, HTTPException, Request
from pydantic import Field

from flow.core.auth import CurrentUserId
from flow.core.config import settings
from flow.models.schemas import CamelModel, User
from flow.services.stripe_service import PLANS, StripeService, plan_for_price_id, plan_price_id
from flow.storage import Storage, StorageDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["billing"])

ACTIVE_STATUSES = ("active", "trialing")


# Request models
class PaymentIntentRequest(CamelModel):
    """One-off payment amount in USD."""
    amount: float = Field(..., gt=0)


class SubscriptionRequest(CamelModel):
    """Plan chosen on the subscribe page."""
    plan_id: str


class PaymentMethodRequest(CamelModel):
    """Payment method created client-side with Stripe Elements."""
    payment_method_id: str


def _require_stripe() -> None:
    if not settings.stripe_secret_key:
        raise HTTPException(status_code=503, detail="Stripe not configured")


def _require_user(storage: Storage, user_id: str) -> User:
    user = storage.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _ensure_customer(storage: Storage, user: User) -> str:
    """Stripe customer id of the user, creating the customer on first use."""
    if user.stripe_customer_id:
        return user.stripe_customer_id

    name = " ".join(part for part in (user.first_name, user.last_name) if part) or (user.email or user.id)
    customer = StripeService.create_customer(email=user.email, name=name, user_id=user.id)
    storage.update_user(user.id, {"stripe_customer_id": customer["id"]})
    logger.info("Created Stripe customer %s for user %s", customer["id"], user.id)
    return customer["id"]


def _require_own_payment_method(user: User, payment_method_id: str) -> None:
    """404 unless the payment method is saved on this user's Stripe customer."""
    if not user.stripe_customer_id:
        raise HTTPException(status_code=404, detail="No Stripe customer found")
    method = StripeService.retrieve_payment_method(payment_method_id)
    if method is None or method.get("customer") != user.stripe_customer_id:
        raise HTTPException(status_code=404, detail="Payment method not found")


def _subscription_client_secret(subscription) -> str | None:
    """Client secret of the first invoice, across Stripe API versions."""
    invoice = subscription.get("latest_invoice") or {}
    if isinstance(invoice, str):
        return None
    payment_intent = invoice.get("payment_intent")
    if payment_intent and not isinstance(payment_intent, str):
        return payment_intent.get("client_secret")
    confirmation = invoice.get("confirmation_secret")
    if confirmation:
        return confirmation.get("client_secret")
    return None


def _subscription_period_end(subscription) -> datetime | None:
    """Period end from the first subscription item, falling back to the old top-level field."""
    timestamp = None
    items = subscription.get("items")
    if items and items.get("data"):
        timestamp = items["data"][0].get("current_period_end")
    if not timestamp:
        timestamp = subscription.get("current_period_end")
    if not timestamp:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


def _subscription_price_id(subscription) -> str | None:
    items = subscription.get("items")
    if items and items.get("data"):
        return (items["data"][0].get("price") or {}).get("id")
    return None


@router.post("/create-payment-intent")
async def create_payment_intent(
    request: PaymentIntentRequest, user_id: CurrentUserId, storage: StorageDep
) -> dict:
    """Create a one-off payment and return its client secret."""
    _require_stripe()
    try:
        user = _require_user(storage, user_id)
        customer_id = _ensure_customer(storage, user)
        intent = StripeService.create_payment_intent(
            amount_cents=round(request.amount * 100), customer_id=customer_id, user_id=user_id
        )
        return {"clientSecret": intent["client_secret"]}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error creating payment intent: {str(e)}")


@router.post("/create-subscription")
async def create_subscription(
    request: SubscriptionRequest, user_id: CurrentUserId, storage: StorageDep
) -> dict:
    """
    Subscribe the user to a plan.

    The free plan needs no payment. Paid plans return the client secret the
    browser confirms; the webhook activates the plan once paid.
    """
    if request.plan_id not in PLANS:
        raise HTTPException(status_code=400, detail=f"Unknown plan: {request.plan_id}")

    user = _require_user(storage, user_id)

    if request.plan_id == "free":
        storage.update_user(user_id, {"subscription_plan": "free", "subscription_status": "free"})
        return {"plan": "free", "subscriptionId": None, "clientSecret": None}

    _require_stripe()
    price_id = plan_price_id(request.plan_id)
    if not price_id:
        raise HTTPException(status_code=503, detail=f"Plan {request.plan_id} is not available yet")

    try:
        customer_id = _ensure_customer(storage, user)
        subscription = StripeService.create_subscription(customer_id, price_id, user_id)

        storage.update_user(
            user_id,
            {
                "stripe_subscription_id": subscription["id"],
                "subscription_status": subscription["status"],
                "subscription_plan": request.plan_id,
            },
        )
        logger.info("Created subscription %s for user %s", subscription["id"], user_id)

        return {
            "plan": request.plan_id,
            "subscriptionId": subscription["id"],
            "clientSecret": _subscription_client_secret(subscription),
        }

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create subscription: {str(e)}")


@router.get("/subscription-status")
async def subscription_status(user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Get user's current subscription status."""
    user = _require_user(storage, user_id)
    return {
        "plan": user.subscription_plan,
        "status": user.subscription_status,
        "isActive": user.subscription_status in ACTIVE_STATUSES,
        "periodEnd": user.subscription_period_end.isoformat() if user.subscription_period_end else None,
    }


@router.post("/cancel-subscription")
async def cancel_subscription(user_id: CurrentUserId, storage: StorageDep) -> dict:
    """Cancel user's subscription (at period end)."""
    _require_stripe()
    user = _require_user(storage, user_id)
    if not user.stripe_subscription_id:
        raise HTTPException(status_code=404, detail="No active subscription found")

    try:
        StripeService.cancel_subscription(user.stripe_subscription_id)
        return {"status": "cancelled", "message": "Subscription will cancel at period end"}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to cancel subscription: {str(e)}")


@router.get("/payment-methods")
async def list_payment_methods(user_id: CurrentUserId, storage: StorageDep) -> list[dict]:
    """Saved cards; empty until the user has a Stripe customer."""
    user = _require_user(storage, user_id)
    if not user.stripe_customer_id:
        return []

    _require_stripe()
    try:
        return StripeService.list_payment_methods(user.stripe_customer_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch payment methods: {str(e)}")


@router.post("/payment-methods")
async def add_payment_method(
    request: PaymentMethodRequest, user_id: CurrentUserId, storage: StorageDep
) -> dict:
    """Save a payment method on the user's customer."""
    _require_stripe()
    try:
        customer_id = _ensure_customer(storage, _require_user(storage, user_id))
        StripeService.attach_payment_method(request.payment_method_id, customer_id)
        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to add payment method: {str(e)}")


@router.delete("/payment-methods/{payment_method_id}")
async def remove_payment_method(
    payment_method_id: str, user_id: CurrentUserId, storage: StorageDep
) -> dict:
    """Remove a saved payment method."""
    _require_stripe()
    user = _require_user(storage, user_id)

    try:
        _require_own_payment_method(user, payment_method_id)
        StripeService.detach_payment_method(payment_method_id)
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to remove payment method: {str(e)}")


@router.patch("/payment-methods/{payment_method_id}/default")
async def set_default_payment_method(
    payment_method_id: str, user_id: CurrentUserId, storage: StorageDep
) -> dict:
    """Use a saved payment method for future invoices."""
    _require_stripe()
    user = _require_user(storage, user_id)

    try:
        _require_own_payment_method(user, payment_method_id)
        StripeService.set_default_payment_method(user.stripe_customer_id, payment_method_id)
        return {"success": True}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to set default payment method: {str(e)}")


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    storage: StorageDep,
    stripe_signature: str = Header(None, alias="stripe-signature"),
) -> dict:
    """
    Handle Stripe webhook events.

    Events we handle:
    - customer.subscription.created
    - customer.subscription.updated
    - customer.subscription.deleted
    - invoice.payment_failed
    """
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    try:
        payload = await request.body()
        event = StripeService.construct_webhook_event(payload, stripe_signature)
    except Exception as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        raise HTTPException(status_code=400, detail=f"Webhook error: {str(e)}")

    logger.info("Stripe webhook received: %s", event["type"])

    if event["type"] in (
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
    ):
        subscription = event["data"]["object"]
        user_id = (subscription.get("metadata") or {}).get("flow_user_id")
        if not user_id:
            customer = storage.get_user_by_stripe_customer_id(subscription.get("customer") or "")
            user_id = customer.id if customer else None
        if not user_id:
            logger.warning("No flow_user_id in subscription %s metadata", subscription["id"])
            return {"status": "ignored"}

        status = subscription["status"]
        if event["type"] == "customer.subscription.deleted":
            status = "canceled"

        update = {
            "stripe_subscription_id": subscription["id"],
            "subscription_status": status,
            "subscription_plan": (
                plan_for_price_id(_subscription_price_id(subscription))
                if status in ACTIVE_STATUSES
                else "free"
            ),
        }
        period_end = _subscription_period_end(subscription)
        if period_end:
            update["subscription_period_end"] = period_end

        if storage.update_user(user_id, update) is None:
            logger.warning("Webhook for unknown user %s", user_id)
            return {"status": "ignored"}
        logger.info("Updated user %s subscription to %s", user_id, status)

    elif event["type"] == "invoice.payment_failed":
        logger.warning(
            "Payment failed for subscription %s", event["data"]["object"].get("subscription")
        )

    return {"status": "success"}
