"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Billing storage is chosen by ``settings.billing_storage``: "supabase"
for production, "memory" for local development without a database.
"""

from typing import TYPE_CHECKING

from shared.config import get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.billing.interfaces import (
        IBillingService,
        ICreditAccountStore,
        IPaymentGateway,
        IPurchaseIntentStore,
        IUsageLedger,
    )
    from modules.billing.webhooks import WebhookProcessor


class ServiceContainer:
    """
    Container for all service instances.

    Services are created lazily on first access and cached as singletons
    within the container. The billing service and the webhook processor
    share the same store instances. Use reset() to clear all cached
    services for testing.
    """

    def __init__(self) -> None:
        self._accounts: "ICreditAccountStore | None" = None
        self._purchases: "IPurchaseIntentStore | None" = None
        self._ledger: "IUsageLedger | None" = None
        self._gateway: "IPaymentGateway | None" = None
        self._billing_service: "IBillingService | None" = None
        self._webhook_processor: "WebhookProcessor | None" = None

    def _build_stores(self) -> None:
        """Create the three billing stores for the configured backend."""
        settings = get_settings()

        if settings.billing_storage == "memory":
            from modules.billing.accounts import CreditAccountStore
            from modules.billing.purchases import PurchaseIntentStore
            from modules.billing.ledger import UsageLedger
            self._accounts = CreditAccountStore()
            self._purchases = PurchaseIntentStore()
            self._ledger = UsageLedger()
            return

        from modules.billing.accounts import SupabaseCreditAccountStore
        from modules.billing.purchases import SupabasePurchaseIntentStore
        from modules.billing.ledger import SupabaseUsageLedger
        from shared.database import get_supabase_client
        db = get_supabase_client()
        self._accounts = SupabaseCreditAccountStore(db)
        self._purchases = SupabasePurchaseIntentStore(db)
        self._ledger = SupabaseUsageLedger(db)

    @property
    def accounts(self) -> "ICreditAccountStore":
        """Get the credit account store."""
        if self._accounts is None:
            self._build_stores()
        return self._accounts

    @property
    def purchases(self) -> "IPurchaseIntentStore":
        """Get the purchase intent store."""
        if self._purchases is None:
            self._build_stores()
        return self._purchases

    @property
    def ledger(self) -> "IUsageLedger":
        """Get the usage ledger."""
        if self._ledger is None:
            self._build_stores()
        return self._ledger

    @property
    def gateway(self) -> "IPaymentGateway":
        """Get the payment gateway adapter."""
        if self._gateway is None:
            from modules.billing.gateway import StripeGateway
            settings = get_settings()
            self._gateway = StripeGateway(
                api_key=settings.stripe_secret_key,
                currency=settings.stripe_currency,
                product_name=settings.stripe_product_name,
            )
        return self._gateway

    @property
    def billing(self) -> "IBillingService":
        """Get the billing service instance."""
        if self._billing_service is None:
            from modules.billing.service import BillingService
            self._billing_service = BillingService(
                accounts=self.accounts,
                purchases=self.purchases,
                ledger=self.ledger,
                gateway=self.gateway,
            )
        return self._billing_service

    @property
    def webhooks(self) -> "WebhookProcessor":
        """Get the webhook processor instance."""
        if self._webhook_processor is None:
            from modules.billing.webhooks import WebhookProcessor
            self._webhook_processor = WebhookProcessor(
                gateway=self.gateway,
                purchases=self.purchases,
                accounts=self.accounts,
                webhook_secret=get_settings().stripe_webhook_secret,
            )
        return self._webhook_processor

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._accounts = None
        self._purchases = None
        self._ledger = None
        self._gateway = None
        self._billing_service = None
        self._webhook_processor = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_billing_service() -> "IBillingService":
    """FastAPI dependency for billing service."""
    return get_container().billing


def get_webhook_processor() -> "WebhookProcessor":
    """FastAPI dependency for the webhook processor."""
    return get_container().webhooks
