"""
Billing service implementation.

Composes the credit account store, purchase intent store, usage ledger
and payment gateway behind IBillingService. Storage backends are
injected, so the same service runs over in-memory stores in tests and
Supabase in production (see api/dependencies.py).
"""

import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from shared.exceptions import ValidationError

from .interfaces import (
    ICreditAccountStore,
    IPaymentGateway,
    IPurchaseIntentStore,
    IUsageLedger,
)
from .models import (
    DEFAULT_PURCHASE_LIMIT,
    DEFAULT_USAGE_LIMIT,
    SIGNUP_BONUS_CENTS,
    TOP_UP_AMOUNT_CENTS,
    CheckoutSession,
    CostEstimate,
    CreditAccount,
    PurchaseIntent,
    UsageEntry,
    UsageStats,
    VerifiedPurchase,
    clamp_limit,
)
from .exceptions import (
    AccountNotFoundError,
    BillingNotConfiguredError,
    BillingUnavailableError,
    DuplicateSessionError,
    PurchaseAccessDeniedError,
    PurchaseNotFoundError,
)
from .accounts import CreditAccountStore
from .purchases import PurchaseIntentStore
from .ledger import UsageLedger
from .pricing import calculate_cost_cents, estimate_message_cost

logger = logging.getLogger(__name__)


class BillingService:
    """
    Credit ledger operations for one deployment.

    Defaults to in-memory stores when none are given.
    """

    def __init__(
        self,
        accounts: Optional[ICreditAccountStore] = None,
        purchases: Optional[IPurchaseIntentStore] = None,
        ledger: Optional[IUsageLedger] = None,
        gateway: Optional[IPaymentGateway] = None,
    ):
        self._accounts = accounts or CreditAccountStore()
        self._purchases = purchases or PurchaseIntentStore()
        self._ledger = ledger or UsageLedger()
        self._gateway = gateway

    # -------------------------------------------------------------------------
    # Balance
    # -------------------------------------------------------------------------

    async def ensure_account(self, user_id: str) -> CreditAccount:
        """Provision the account with the signup bonus on first use."""
        return await self._accounts.open_account(user_id, SIGNUP_BONUS_CENTS)

    async def get_balance(self, user_id: str) -> int:
        """Get a user's current balance in cents."""
        return await self._accounts.get_balance(user_id)

    async def check_sufficient_credits(self, user_id: str, required_cents: int) -> bool:
        """Non-reserving affordability check; unknown users cannot afford anything."""
        try:
            balance = await self._accounts.get_balance(user_id)
        except AccountNotFoundError:
            return False
        return balance >= required_cents

    # -------------------------------------------------------------------------
    # Usage
    # -------------------------------------------------------------------------

    async def charge_usage(
        self,
        user_id: str,
        amount_cents: int,
        endpoint: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
        reference_id: Optional[str] = None,
    ) -> UsageEntry:
        """
        Debit credits for a protected action, then record it.

        The debit comes first: if it raises InsufficientFundsError nothing
        is written to the ledger.
        """
        await self._accounts.debit(user_id, amount_cents)
        return await self._ledger.append(
            user_id,
            amount_cents,
            endpoint,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            reference_id=reference_id,
        )

    async def charge_for_tokens(
        self,
        user_id: str,
        endpoint: str,
        input_tokens: int,
        output_tokens: int,
        reference_id: Optional[str] = None,
    ) -> Optional[UsageEntry]:
        """
        Price a completed LLM call and charge for it.

        Returns None when the call rounds to zero cents.
        """
        cost_cents = calculate_cost_cents(input_tokens, output_tokens)
        if cost_cents == 0:
            return None
        return await self.charge_usage(
            user_id,
            cost_cents,
            endpoint,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            reference_id=reference_id,
        )

    def estimate_cost(self, message_length: int) -> CostEstimate:
        """Estimate the cost of sending a message of the given length."""
        estimated_cents, description = estimate_message_cost(message_length)
        return CostEstimate(estimated_cents=estimated_cents, description=description)

    async def get_usage_history(
        self,
        user_id: str,
        limit: int = DEFAULT_USAGE_LIMIT,
    ) -> list[UsageEntry]:
        """Most-recent-first usage entries."""
        return await self._ledger.list_for_user(
            user_id, clamp_limit(limit, DEFAULT_USAGE_LIMIT)
        )

    async def get_usage_stats(self, user_id: str) -> UsageStats:
        """Lifetime usage totals."""
        return await self._ledger.stats_for_user(user_id)

    # -------------------------------------------------------------------------
    # Purchases
    # -------------------------------------------------------------------------

    async def initiate_checkout(
        self,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """
        Start a top-up of TOP_UP_AMOUNT_CENTS.

        The gateway session is created first and the intent recorded
        second. If recording fails the gateway session is orphaned; it is
        logged for out-of-band reconciliation and not retried, since a
        retry would open a second gateway session.
        """
        if not success_url or not cancel_url:
            raise ValidationError(
                "successUrl and cancelUrl are required",
                code="MISSING_REDIRECT_URLS",
            )
        if self._gateway is None:
            raise BillingNotConfiguredError("STRIPE_SECRET_KEY")

        # The Stripe SDK is synchronous; keep it off the event loop.
        session = await run_in_threadpool(
            self._gateway.create_checkout_session,
            TOP_UP_AMOUNT_CENTS,
            success_url,
            cancel_url,
            metadata={
                "user_id": user_id,
                "credit_amount_cents": str(TOP_UP_AMOUNT_CENTS),
            },
        )

        try:
            await self._purchases.create_intent(
                user_id,
                TOP_UP_AMOUNT_CENTS,
                session.session_id,
            )
        except (BillingUnavailableError, DuplicateSessionError) as e:
            logger.error(
                f"Orphaned checkout session {session.session_id} for user {user_id}: "
                f"purchase intent not recorded ({e.code})"
            )
            raise

        logger.info(f"Checkout session created: {session.session_id} for user {user_id}")
        return session

    async def get_purchase_history(
        self,
        user_id: str,
        limit: int = DEFAULT_PURCHASE_LIMIT,
    ) -> list[PurchaseIntent]:
        """Most-recent-first purchases."""
        return await self._purchases.list_for_user(
            user_id, clamp_limit(limit, DEFAULT_PURCHASE_LIMIT)
        )

    async def verify_purchase(self, user_id: str, session_id: str) -> VerifiedPurchase:
        """
        Report a purchase's status to its owner.

        Clients poll this after returning from checkout, since the
        completion webhook may land after the redirect.
        """
        intent = await self._purchases.get_by_session(session_id)
        if intent is None:
            raise PurchaseNotFoundError(session_id)
        if intent.user_id != user_id:
            raise PurchaseAccessDeniedError(session_id, user_id)

        balance = await self._accounts.get_balance(user_id)
        return VerifiedPurchase(purchase=intent, balance_cents=balance)
