"""
Billing module.

Prepaid credit ledger: balances, Stripe top-ups, webhook fulfillment and
usage accounting.

Public API:
- IBillingService: Interface for billing operations
- WebhookProcessor: Idempotent fulfillment of gateway events
- CreditAccount, PurchaseIntent, UsageEntry: Ledger records
- Billing exceptions: InsufficientFundsError, etc.
"""

from .interfaces import (
    IBillingService,
    ICreditAccountStore,
    IPaymentGateway,
    IPurchaseIntentStore,
    IUsageLedger,
)
from .models import (
    CreditAccount,
    PurchaseIntent,
    PurchaseStatus,
    UsageEntry,
    UsageStats,
    CheckoutSession,
    GatewayEvent,
    GatewayEventType,
    WebhookOutcome,
    WebhookResult,
    TOP_UP_AMOUNT_CENTS,
    SIGNUP_BONUS_CENTS,
    format_cents,
)
from .exceptions import (
    BillingError,
    InsufficientFundsError,
    InvalidAmountError,
    AccountNotFoundError,
    PurchaseNotFoundError,
    PurchaseAccessDeniedError,
    DuplicateSessionError,
    InvalidSignatureError,
    MalformedEventError,
    BillingNotConfiguredError,
    BillingUnavailableError,
    PaymentGatewayError,
)
from .service import BillingService
from .webhooks import WebhookProcessor

__all__ = [
    # Interfaces
    "IBillingService",
    "ICreditAccountStore",
    "IPaymentGateway",
    "IPurchaseIntentStore",
    "IUsageLedger",
    # Implementations
    "BillingService",
    "WebhookProcessor",
    # Models
    "CreditAccount",
    "PurchaseIntent",
    "PurchaseStatus",
    "UsageEntry",
    "UsageStats",
    "CheckoutSession",
    "GatewayEvent",
    "GatewayEventType",
    "WebhookOutcome",
    "WebhookResult",
    "TOP_UP_AMOUNT_CENTS",
    "SIGNUP_BONUS_CENTS",
    "format_cents",
    # Exceptions
    "BillingError",
    "InsufficientFundsError",
    "InvalidAmountError",
    "AccountNotFoundError",
    "PurchaseNotFoundError",
    "PurchaseAccessDeniedError",
    "DuplicateSessionError",
    "InvalidSignatureError",
    "MalformedEventError",
    "BillingNotConfiguredError",
    "BillingUnavailableError",
    "PaymentGatewayError",
]
