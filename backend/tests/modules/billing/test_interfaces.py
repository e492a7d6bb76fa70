"""Tests for billing module interfaces."""

from unittest.mock import MagicMock

import pytest

from modules.billing.interfaces import (
    IBillingService,
    ICreditAccountStore,
    IPaymentGateway,
    IPurchaseIntentStore,
    IUsageLedger,
)
from modules.billing.service import BillingService
from modules.billing.accounts import CreditAccountStore, SupabaseCreditAccountStore
from modules.billing.purchases import PurchaseIntentStore, SupabasePurchaseIntentStore
from modules.billing.ledger import UsageLedger, SupabaseUsageLedger
from modules.billing.gateway import StripeGateway


class TestIBillingService:
    def test_protocol_is_runtime_checkable(self):
        """Should be able to check if instance implements protocol."""
        service = BillingService()
        assert isinstance(service, IBillingService)

    def test_billing_service_implements_interface(self):
        """BillingService should implement all interface methods."""
        service = BillingService()

        for name in (
            "ensure_account",
            "get_balance",
            "check_sufficient_credits",
            "charge_usage",
            "charge_for_tokens",
            "estimate_cost",
            "initiate_checkout",
            "get_usage_history",
            "get_usage_stats",
            "get_purchase_history",
            "verify_purchase",
        ):
            assert callable(getattr(service, name))


class TestStoreProtocols:
    @pytest.mark.parametrize(
        "store, protocol",
        [
            (CreditAccountStore(), ICreditAccountStore),
            (SupabaseCreditAccountStore(MagicMock()), ICreditAccountStore),
            (PurchaseIntentStore(), IPurchaseIntentStore),
            (SupabasePurchaseIntentStore(MagicMock()), IPurchaseIntentStore),
            (UsageLedger(), IUsageLedger),
            (SupabaseUsageLedger(MagicMock()), IUsageLedger),
            (StripeGateway(api_key="sk_test"), IPaymentGateway),
        ],
    )
    def test_implementation_satisfies_protocol(self, store, protocol):
        assert isinstance(store, protocol)
