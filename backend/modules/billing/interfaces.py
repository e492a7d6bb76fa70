"""
Billing module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. Each storage protocol has an in-memory implementation
(for tests and local development) and a Supabase-backed one.
"""

from typing import Protocol, Optional, runtime_checkable

from .models import (
    CheckoutSession,
    CostEstimate,
    CreditAccount,
    GatewayEvent,
    PurchaseIntent,
    TransitionResult,
    UsageEntry,
    UsageStats,
    VerifiedPurchase,
)


@runtime_checkable
class ICreditAccountStore(Protocol):
    """
    Guarded access to credit balances.

    Every mutation is a single atomic read-modify-write at the storage
    layer. Implementations must never read a balance and write it back
    in two unguarded steps.
    """

    async def open_account(self, user_id: str, initial_cents: int) -> CreditAccount:
        """
        Create an account with an initial balance if none exists.

        Safe to call concurrently for the same user; exactly one account
        is created and later calls return it unchanged.

        Args:
            user_id: User to provision
            initial_cents: Starting balance for a new account

        Returns:
            The user's account (new or existing)
        """
        ...

    async def get_balance(self, user_id: str) -> int:
        """
        Read the current balance.

        Raises:
            AccountNotFoundError: If the user has no account
        """
        ...

    async def credit(self, user_id: str, amount_cents: int) -> int:
        """
        Atomically add to a balance.

        Args:
            user_id: Account owner
            amount_cents: Amount to add (must be > 0)

        Returns:
            The balance after the credit

        Raises:
            InvalidAmountError: If amount_cents <= 0
            AccountNotFoundError: If the user has no account
            BillingUnavailableError: If storage cannot be reached
        """
        ...

    async def debit(self, user_id: str, amount_cents: int) -> int:
        """
        Atomically subtract from a balance, only if it covers the amount.

        Args:
            user_id: Account owner
            amount_cents: Amount to remove (must be > 0)

        Returns:
            The balance after the debit

        Raises:
            InvalidAmountError: If amount_cents <= 0
            InsufficientFundsError: If the balance is below amount_cents;
                the balance is left unchanged
            AccountNotFoundError: If the user has no account
            BillingUnavailableError: If storage cannot be reached
        """
        ...


@runtime_checkable
class IPurchaseIntentStore(Protocol):
    """
    Durable purchase intents and their one-way state machine.

    pending -> completed and pending -> failed are the only transitions.
    The conditional transition itself is the idempotency gate for
    webhook delivery.
    """

    async def create_intent(
        self,
        user_id: str,
        amount_cents: int,
        gateway_session_id: str,
    ) -> PurchaseIntent:
        """
        Record a new PENDING intent.

        Raises:
            DuplicateSessionError: If gateway_session_id is already recorded
        """
        ...

    async def get_by_session(self, gateway_session_id: str) -> Optional[PurchaseIntent]:
        """Look up an intent by its gateway session id."""
        ...

    async def mark_completed_if_pending(self, gateway_session_id: str) -> TransitionResult:
        """
        Move an intent from PENDING to COMPLETED.

        Returns:
            TransitionResult with applied=True only if this call performed
            the transition; applied=False if it was already terminal

        Raises:
            PurchaseNotFoundError: If no intent has this session id
        """
        ...

    async def mark_failed_if_pending(self, gateway_session_id: str) -> TransitionResult:
        """
        Move an intent from PENDING to FAILED.

        Returns:
            TransitionResult; applied=False if it was already terminal

        Raises:
            PurchaseNotFoundError: If no intent has this session id
        """
        ...

    async def list_for_user(self, user_id: str, limit: int) -> list[PurchaseIntent]:
        """List a user's intents, most recent first."""
        ...


@runtime_checkable
class IUsageLedger(Protocol):
    """Append-only record of debits. Entries are never updated or deleted."""

    async def append(
        self,
        user_id: str,
        amount_cents: int,
        endpoint: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
        reference_id: Optional[str] = None,
    ) -> UsageEntry:
        """Record one debit and return the stored entry."""
        ...

    async def list_for_user(self, user_id: str, limit: int) -> list[UsageEntry]:
        """List a user's entries, most recent first."""
        ...

    async def stats_for_user(self, user_id: str) -> UsageStats:
        """Aggregate a user's entries over the account's lifetime."""
        ...


@runtime_checkable
class IPaymentGateway(Protocol):
    """
    Narrow contract to the external payment gateway.

    The ledger never sees gateway payload shapes; verification and
    parsing happen behind this adapter.
    """

    def create_checkout_session(
        self,
        amount_cents: int,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """
        Create a hosted checkout session for a one-shot payment.

        Raises:
            BillingNotConfiguredError: If gateway credentials are missing
            PaymentGatewayError: If the gateway rejects the request
        """
        ...

    def verify_and_parse_event(
        self,
        raw_body: bytes,
        signature_header: Optional[str],
        secret: str,
    ) -> GatewayEvent:
        """
        Authenticate a webhook delivery and normalize it.

        Verification runs over the exact bytes received.

        Raises:
            InvalidSignatureError: If the signature does not match
            MalformedEventError: If the signed payload is not a valid event
        """
        ...


@runtime_checkable
class IBillingService(Protocol):
    """
    Interface for billing and credit operations.

    This protocol defines the contract that the billing module exposes
    to routes and to any module that consumes credits.
    """

    async def ensure_account(self, user_id: str) -> CreditAccount:
        """Provision the user's account with the signup bonus if missing."""
        ...

    async def get_balance(self, user_id: str) -> int:
        """
        Get a user's current balance in cents.

        Raises:
            AccountNotFoundError: If the user has no account
        """
        ...

    async def check_sufficient_credits(self, user_id: str, required_cents: int) -> bool:
        """
        Check whether a user can afford an operation.

        Non-reserving: a later debit can still fail.
        """
        ...

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
        Debit credits for a protected action and record it in the ledger.

        Raises:
            InsufficientFundsError: If the balance cannot cover the amount
        """
        ...

    async def charge_for_tokens(
        self,
        user_id: str,
        endpoint: str,
        input_tokens: int,
        output_tokens: int,
        reference_id: Optional[str] = None,
    ) -> Optional[UsageEntry]:
        """Price an LLM call by token counts and charge it. None if it costs nothing."""
        ...

    def estimate_cost(self, message_length: int) -> CostEstimate:
        """Estimate the cost of a message before it is sent."""
        ...

    async def initiate_checkout(
        self,
        user_id: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        """
        Start a top-up of the fixed denomination.

        Creates the gateway session, then records a PENDING intent for it.
        """
        ...

    async def get_usage_history(self, user_id: str, limit: int = 50) -> list[UsageEntry]:
        """Most-recent-first usage entries, bounded by MAX_PAGE_SIZE."""
        ...

    async def get_usage_stats(self, user_id: str) -> UsageStats:
        """Lifetime totals for the user's usage entries."""
        ...

    async def get_purchase_history(self, user_id: str, limit: int = 20) -> list[PurchaseIntent]:
        """Most-recent-first purchases, bounded by MAX_PAGE_SIZE."""
        ...

    async def verify_purchase(self, user_id: str, session_id: str) -> VerifiedPurchase:
        """
        Report a purchase's status to its owner.

        Raises:
            PurchaseNotFoundError: If the session id is unknown
            PurchaseAccessDeniedError: If the purchase belongs to another user
        """
        ...
