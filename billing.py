"""
Payment provider boundary (Stripe Checkout) and the subscription webhook.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import stripe

import settings

logger = logging.getLogger(__name__)

# price in cents; a "pages" limit of -1 means unlimited
PLANS: Dict[str, Dict[str, Any]] = {
    "free": {"id": "free", "name": "Gratis", "price": 0, "price_id": None,
             "limits": {"pages": 1, "show_branding": True}},
    "starter": {"id": "starter", "name": "Starter", "price": 2990, "price_id": settings.STRIPE_STARTER_PRICE_ID,
                "limits": {"pages": 3, "show_branding": False}},
    "pro": {"id": "pro", "name": "Pro", "price": 9700, "price_id": settings.STRIPE_PRO_PRICE_ID,
            "limits": {"pages": -1, "show_branding": False}},
}


class PaymentError(Exception):
    pass


class WebhookSignatureError(PaymentError):
    pass


def plan_limits(plan_id: Optional[str]) -> Dict[str, Any]:
    return PLANS.get(plan_id or "free", PLANS["free"])["limits"]


def _configure() -> None:
    if not settings.STRIPE_SECRET_KEY:
        raise PaymentError("Payment provider is not configured")
    stripe.api_key = settings.STRIPE_SECRET_KEY


def _line_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    line_items = []
    for item in items:
        quantity = item.get("quantity", 1)
        if item.get("price_id"):
            line_items.append({"price": item["price_id"], "quantity": quantity})
            continue
        product_data: Dict[str, Any] = {"name": item["name"]}
        if item.get("image"):
            product_data["images"] = [item["image"]]
        price_data: Dict[str, Any] = {
            "currency": settings.CHECKOUT_CURRENCY,
            "unit_amount": int(round(item["price"] * 100)),
            "product_data": product_data,
        }
        if item.get("interval"):
            price_data["recurring"] = {"interval": item["interval"]}
        line_items.append({"price_data": price_data, "quantity": quantity})
    return line_items


def create_checkout_session(items: List[Dict[str, Any]], success_url: str, cancel_url: str,
                            customer_email: Optional[str] = None, mode: str = "payment",
                            metadata: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Create a checkout session and return its id and redirect url."""
    _configure()
    params: Dict[str, Any] = {
        "mode": mode,
        "line_items": _line_items(items),
        "success_url": success_url,
        "cancel_url": cancel_url,
        "locale": "pt-BR",
    }
    if customer_email:
        params["customer_email"] = customer_email
    if metadata:
        params["metadata"] = metadata
        if mode == "subscription":
            params["subscription_data"] = {"metadata": metadata}
    try:
        session = stripe.checkout.Session.create(**params)
    except stripe.StripeError as e:
        logger.error("Payment provider error creating checkout session: %s", e)
        raise PaymentError("Failed to create checkout session") from e
    logger.info("Created checkout session %s", session["id"])
    return {"id": session["id"], "url": session.get("url")}


def create_plan_checkout(plan_id: str, success_url: str, cancel_url: str,
                         customer_email: Optional[str] = None, user_id: Optional[str] = None) -> Dict[str, Any]:
    plan = PLANS.get(plan_id)
    if plan is None or plan["id"] == "free":
        raise PaymentError("Invalid plan for checkout")
    item = {"name": f"Plano {plan['name']}", "price": plan["price"] / 100.0, "quantity": 1,
            "price_id": plan["price_id"], "interval": "month"}
    metadata = {"planId": plan["id"]}
    if user_id:
        metadata["userId"] = user_id
    return create_checkout_session([item], success_url, cancel_url, customer_email,
                                   mode="subscription", metadata=metadata)


def get_checkout_session(session_id: str) -> Dict[str, Any]:
    _configure()
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        logger.error("Payment provider error retrieving session %s: %s", session_id, e)
        raise PaymentError("Failed to retrieve checkout session") from e
    details = session.get("customer_details") or {}
    return {
        "status": session.get("payment_status"),
        "customerEmail": details.get("email"),
        "amountTotal": session.get("amount_total"),
    }


# ============ Webhooks ============
def construct_event(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """Verify a webhook delivery and return the event it carries."""
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise PaymentError("Webhook not configured")
    try:
        return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
    except ValueError as e:
        logger.error("Invalid webhook payload: %s", e)
        raise WebhookSignatureError("Invalid payload") from e
    except stripe.SignatureVerificationError as e:
        logger.error("Invalid webhook signature: %s", e)
        raise WebhookSignatureError("Invalid signature") from e


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value else None


def handle_subscription_event(event: Dict[str, Any], repository) -> None:
    """Apply a subscription lifecycle event to the stored subscriptions."""
    event_type = event["type"]
    obj = event["data"]["object"]

    if event_type in ("customer.subscription.created", "customer.subscription.updated"):
        metadata = obj.get("metadata") or {}
        user_id, plan_id = metadata.get("userId"), metadata.get("planId")
        if not user_id or not plan_id:
            logger.error("Subscription %s has no userId/planId metadata", obj.get("id"))
            return
        repository.upsert_subscription(user_id, {
            "plan": plan_id,
            "status": obj.get("status"),
            "stripe_subscription_id": obj.get("id"),
            "stripe_customer_id": obj.get("customer"),
            "current_period_start": _timestamp(obj.get("current_period_start")),
            "current_period_end": _timestamp(obj.get("current_period_end")),
            "cancel_at_period_end": bool(obj.get("cancel_at_period_end")),
        })
        logger.info("Subscription %s for user %s is %s", obj.get("id"), user_id, obj.get("status"))
    elif event_type == "customer.subscription.deleted":
        repository.set_subscription_status(obj.get("id"), "canceled")
        logger.info("Subscription %s canceled", obj.get("id"))
    elif event_type == "invoice.payment_failed":
        if obj.get("subscription"):
            repository.set_subscription_status(obj["subscription"], "past_due")
    else:
        logger.info("Unhandled webhook event type: %s", event_type)
