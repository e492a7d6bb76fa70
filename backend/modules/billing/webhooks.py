"""
Webhook event processor.

Trust boundary between the payment gateway and the ledger. A delivery is
handled in this order:

1. Verify the signature over the raw body. On failure nothing is touched.
2. Classify the event. Unknown types are acknowledged and ignored.
3. Payment completed: flip the intent pending -> completed, and credit
   the account only if this delivery performed the flip.
4. Session expired: flip the intent pending -> failed. Balances are
   never touched on this path.

Everything that passes verification is acknowledged except storage
failures, which propagate so the gateway redelivers the event.
"""

import logging
from typing import Optional

from .interfaces import ICreditAccountStore, IPaymentGateway, IPurchaseIntentStore
from .models import GatewayEvent, GatewayEventType, WebhookOutcome, WebhookResult
from .exceptions import (
    AccountNotFoundError,
    BillingNotConfiguredError,
    BillingUnavailableError,
    InvalidSignatureError,
    PurchaseNotFoundError,
)

logger = logging.getLogger(__name__)


class WebhookProcessor:
    """Applies verified gateway events to purchase intents and balances."""

    def __init__(
        self,
        gateway: IPaymentGateway,
        purchases: IPurchaseIntentStore,
        accounts: ICreditAccountStore,
        webhook_secret: str,
    ):
        self._gateway = gateway
        self._purchases = purchases
        self._accounts = accounts
        self._webhook_secret = webhook_secret

    async def process(self, raw_body: bytes, signature_header: Optional[str]) -> WebhookResult:
        """
        Verify and apply one webhook delivery.

        Args:
            raw_body: Request body exactly as received
            signature_header: Value of the gateway's signature header

        Returns:
            WebhookResult describing what was done (always received=True)

        Raises:
            BillingNotConfiguredError: If no webhook secret is configured
            InvalidSignatureError: If the signature does not verify
            MalformedEventError: If the verified payload is not an event
            BillingUnavailableError: If storage fails mid-processing;
                the delivery must not be acknowledged
        """
        if not self._webhook_secret:
            logger.error("Webhook secret not configured - rejecting webhook")
            raise BillingNotConfiguredError("STRIPE_WEBHOOK_SECRET")

        try:
            event = self._gateway.verify_and_parse_event(
                raw_body,
                signature_header,
                self._webhook_secret,
            )
        except InvalidSignatureError as e:
            logger.warning(f"Webhook signature rejected: {e.details.get('reason', e.message)}")
            raise

        logger.info(f"Processing webhook: {event.raw_type} (ID: {event.id})")

        try:
            if event.type == GatewayEventType.PAYMENT_COMPLETED:
                return await self._handle_payment_completed(event)
            if event.type == GatewayEventType.SESSION_EXPIRED:
                return await self._handle_session_expired(event)
        except BillingUnavailableError:
            logger.error(
                f"Storage failure while applying {event.raw_type} for session "
                f"{event.session_id}; leaving unacknowledged for redelivery"
            )
            raise

        logger.info(f"Unhandled event type: {event.raw_type}")
        return self._result(event, WebhookOutcome.IGNORED)

    async def _handle_payment_completed(self, event: GatewayEvent) -> WebhookResult:
        try:
            transition = await self._purchases.mark_completed_if_pending(event.session_id)
        except PurchaseNotFoundError:
            logger.warning(
                f"Payment completed for unknown session {event.session_id}; "
                "acknowledging without crediting"
            )
            return self._result(event, WebhookOutcome.UNKNOWN_SESSION)

        intent = transition.intent
        if not transition.applied:
            logger.warning(
                f"Ignoring completion for session {event.session_id}: "
                f"purchase already {intent.status.value}"
            )
            return self._result(event, WebhookOutcome.DUPLICATE)

        # Crediting only after winning the transition keeps this at-most-once.
        try:
            new_balance = await self._accounts.credit(intent.user_id, intent.amount_cents)
        except AccountNotFoundError:
            # Redelivery cannot help: the intent is already completed.
            logger.error(
                f"Purchase for session {event.session_id} completed but user {intent.user_id} "
                f"has no credit account; {intent.amount_cents} cents need manual reconciliation"
            )
            return self._result(event, WebhookOutcome.UNCREDITED)
        logger.info(
            f"Added {intent.amount_cents} cents to user {intent.user_id} "
            f"for session {event.session_id} (balance now {new_balance})"
        )
        return self._result(event, WebhookOutcome.CREDITED)

    async def _handle_session_expired(self, event: GatewayEvent) -> WebhookResult:
        try:
            transition = await self._purchases.mark_failed_if_pending(event.session_id)
        except PurchaseNotFoundError:
            logger.warning(f"Session expired for unknown session {event.session_id}")
            return self._result(event, WebhookOutcome.UNKNOWN_SESSION)

        if not transition.applied:
            return self._result(event, WebhookOutcome.ALREADY_TERMINAL)

        logger.info(f"Marked purchase for session {event.session_id} as failed")
        return self._result(event, WebhookOutcome.MARKED_FAILED)

    @staticmethod
    def _result(event: GatewayEvent, outcome: WebhookOutcome) -> WebhookResult:
        return WebhookResult(
            event_type=event.raw_type,
            session_id=event.session_id,
            outcome=outcome,
        )
