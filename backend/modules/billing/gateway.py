"""
Stripe payment gateway adapter.

Implements IPaymentGateway. This is the only place that knows Stripe's
event names and payload layout; the rest of the billing module sees
normalized GatewayEvent objects.
"""

import json
import logging
from typing import Optional

import stripe

from .models import CheckoutSession, GatewayEvent, GatewayEventType, format_cents
from .exceptions import (
    BillingNotConfiguredError,
    InvalidSignatureError,
    MalformedEventError,
    PaymentGatewayError,
)

logger = logging.getLogger(__name__)

# Maximum age of a signed delivery before it is rejected as a replay.
WEBHOOK_TOLERANCE_SECONDS = 300

STRIPE_EVENT_TYPES: dict[str, GatewayEventType] = {
    "checkout.session.completed": GatewayEventType.PAYMENT_COMPLETED,
    "checkout.session.expired": GatewayEventType.SESSION_EXPIRED,
}


class StripeGateway:
    """Checkout session creation and webhook verification against Stripe."""

    def __init__(
        self,
        api_key: str,
        currency: str = "usd",
        product_name: str = "World Tracker Credits",
        tolerance: int = WEBHOOK_TOLERANCE_SECONDS,
    ):
        self._api_key = api_key
        self._currency = currency
        self._product_name = product_name
        self._tolerance = tolerance

    def create_checkout_session(
        self,
        amount_cents: int,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """Create a one-item card checkout for ``amount_cents``."""
        if not self._api_key:
            raise BillingNotConfiguredError("STRIPE_SECRET_KEY")

        try:
            session = stripe.checkout.Session.create(
                api_key=self._api_key,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price_data": {
                            "currency": self._currency,
                            "product_data": {
                                "name": self._product_name,
                                "description": f"{format_cents(amount_cents)} in API credits",
                            },
                            "unit_amount": amount_cents,
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata,
                client_reference_id=metadata.get("user_id"),
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {e}")
            raise PaymentGatewayError(
                "Failed to create checkout session",
                gateway_error=getattr(e, "code", None) or str(e),
            ) from e

        return CheckoutSession(session_id=session.id, url=session.url)

    def verify_and_parse_event(
        self,
        raw_body: bytes,
        signature_header: Optional[str],
        secret: str,
    ) -> GatewayEvent:
        """
        Check the Stripe-Signature header against the raw body, then parse it.

        The body is verified exactly as received. Parsing happens only
        after verification succeeds.
        """
        if not signature_header:
            raise InvalidSignatureError("Missing signature header")

        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedEventError("Payload is not UTF-8") from e

        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature_header,
                secret,
                self._tolerance,
            )
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError(str(e)) from e

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise MalformedEventError("Payload is not valid JSON") from e

        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            raise MalformedEventError("Event has no type")

        raw_type = data["type"]
        event_type = STRIPE_EVENT_TYPES.get(raw_type, GatewayEventType.OTHER)

        envelope = data.get("data")
        obj = envelope.get("object") if isinstance(envelope, dict) else None
        session_id = obj.get("id") if isinstance(obj, dict) else None

        if event_type != GatewayEventType.OTHER and not session_id:
            raise MalformedEventError(f"{raw_type} event has no session id")

        return GatewayEvent(
            id=data.get("id"),
            type=event_type,
            raw_type=raw_type,
            session_id=session_id,
        )
