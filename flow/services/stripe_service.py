"""
Stripe service for payments, subscriptions and saved payment methods.
"""

import stripe

from flow.core.config import settings

# Initialize Stripe with secret key
stripe.api_key = settings.stripe_secret_key

# Plans offered on the subscribe page. Prices in USD per month.
PLANS: dict[str, dict] = {
    "free": {"name": "Free", "price": 0},
    "pro": {"name": "Flow Pro", "price": 12},
    "team": {"name": "Flow Team", "price": 25},
}


def plan_price_id(plan_id: str) -> str | None:
    """Configured Stripe price id for a paid plan."""
    return {
        "pro": settings.stripe_pro_price_id,
        "team": settings.stripe_team_price_id,
    }.get(plan_id)


def plan_for_price_id(price_id: str | None) -> str:
    """Reverse lookup used by the webhook; unknown prices count as pro."""
    if price_id and price_id == settings.stripe_team_price_id:
        return "team"
    return "pro"


class StripeService:
    """Service for Stripe payment and subscription management."""

    @staticmethod
    def create_customer(email: str | None, name: str, user_id: str) -> stripe.Customer:
        """Create a Stripe customer."""
        return stripe.Customer.create(
            email=email,
            name=name,
            metadata={"flow_user_id": user_id},
        )

    @staticmethod
    def create_payment_intent(amount_cents: int, customer_id: str | None, user_id: str) -> stripe.PaymentIntent:
        """Create a one-off card payment in USD."""
        return stripe.PaymentIntent.create(
            amount=amount_cents,
            currency="usd",
            customer=customer_id,
            automatic_payment_methods={"enabled": True},
            metadata={"flow_user_id": user_id},
        )

    @staticmethod
    def create_subscription(customer_id: str, price_id: str, user_id: str) -> stripe.Subscription:
        """
        Create a subscription that waits for the first payment.

        The client confirms the expanded invoice payment intent with Stripe
        Elements; the webhook activates the plan once it is paid.
        """
        return stripe.Subscription.create(
            customer=customer_id,
            items=[{"price": price_id}],
            payment_behavior="default_incomplete",
            payment_settings={"save_default_payment_method": "on_subscription"},
            expand=["latest_invoice.payment_intent"],
            metadata={"flow_user_id": user_id},
        )

    @staticmethod
    def cancel_subscription(subscription_id: str) -> stripe.Subscription:
        """Cancel a subscription at the end of the current period."""
        return stripe.Subscription.modify(
            subscription_id,
            cancel_at_period_end=True,
        )

    @staticmethod
    def list_payment_methods(customer_id: str) -> list[dict]:
        """Saved cards of a customer, flagged with which one is the default."""
        customer = stripe.Customer.retrieve(customer_id)
        default_id = (customer.get("invoice_settings") or {}).get("default_payment_method")
        methods = stripe.PaymentMethod.list(customer=customer_id, type="card")

        result = []
        for method in methods.data:
            card = method.get("card") or {}
            result.append(
                {
                    "id": method["id"],
                    "type": method["type"],
                    "card": {
                        "brand": card.get("brand"),
                        "last4": card.get("last4"),
                        "exp_month": card.get("exp_month"),
                        "exp_year": card.get("exp_year"),
                    },
                    "isDefault": method["id"] == default_id,
                }
            )
        return result

    @staticmethod
    def retrieve_payment_method(payment_method_id: str) -> stripe.PaymentMethod | None:
        """Get a payment method by ID, or None when Stripe does not know it."""
        try:
            return stripe.PaymentMethod.retrieve(payment_method_id)
        except stripe.InvalidRequestError:
            return None

    @staticmethod
    def attach_payment_method(payment_method_id: str, customer_id: str) -> stripe.PaymentMethod:
        """Save a payment method on the customer."""
        return stripe.PaymentMethod.attach(payment_method_id, customer=customer_id)

    @staticmethod
    def detach_payment_method(payment_method_id: str) -> stripe.PaymentMethod:
        """Remove a saved payment method."""
        return stripe.PaymentMethod.detach(payment_method_id)

    @staticmethod
    def set_default_payment_method(customer_id: str, payment_method_id: str) -> stripe.Customer:
        """Use a saved payment method for future invoices."""
        return stripe.Customer.modify(
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )

    @staticmethod
    def construct_webhook_event(payload: bytes, sig_header: str):
        """Construct and verify webhook event from Stripe."""
        return stripe.Webhook.construct_event(
            payload, sig_header, settings.stripe_webhook_secret
        )
