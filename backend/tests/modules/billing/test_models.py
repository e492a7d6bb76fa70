"""Tests for billing module models."""

import pytest
from pydantic import ValidationError

from modules.billing.models import (
    MAX_PAGE_SIZE,
    CreditAccount,
    PurchaseIntent,
    PurchaseStatus,
    UsageEntry,
    UsageStats,
    UsageStatsView,
    PurchaseView,
    BalanceResponse,
    CheckoutRequest,
    VerifySessionRequest,
    clamp_limit,
    format_cents,
)


class TestFormatCents:
    @pytest.mark.parametrize(
        "cents, expected",
        [
            (0, "$0.00"),
            (5, "$0.05"),
            (100, "$1.00"),
            (1050, "$10.50"),
            (123456, "$1234.56"),
            (-250, "-$2.50"),
        ],
    )
    def test_format(self, cents, expected):
        assert format_cents(cents) == expected


class TestClampLimit:
    def test_none_uses_default(self):
        assert clamp_limit(None, 50) == 50

    def test_non_positive_uses_default(self):
        assert clamp_limit(0, 20) == 20
        assert clamp_limit(-5, 20) == 20

    def test_caps_at_max(self):
        assert clamp_limit(1000, 50) == MAX_PAGE_SIZE

    def test_in_range_passes_through(self):
        assert clamp_limit(7, 50) == 7


class TestCreditAccount:
    def test_negative_balance_rejected(self):
        with pytest.raises(ValidationError):
            CreditAccount(user_id="user-1", balance_cents=-1)

    def test_frozen(self):
        account = CreditAccount(user_id="user-1", balance_cents=100)
        with pytest.raises(ValidationError):
            account.balance_cents = 0


class TestPurchaseIntent:
    def _intent(self, **overrides):
        data = {
            "id": "p-1",
            "user_id": "user-1",
            "amount_cents": 1000,
            "gateway_session_id": "cs_1",
        }
        data.update(overrides)
        return PurchaseIntent(**data)

    def test_defaults_to_pending(self):
        intent = self._intent()
        assert intent.status == PurchaseStatus.PENDING
        assert not intent.is_terminal

    @pytest.mark.parametrize("status", [PurchaseStatus.COMPLETED, PurchaseStatus.FAILED])
    def test_terminal_states(self, status):
        assert self._intent(status=status).is_terminal

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            self._intent(amount_cents=0)


class TestUsageEntry:
    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            UsageEntry(id="u-1", user_id="user-1", amount_cents=0, endpoint="chat")

    def test_token_defaults(self):
        entry = UsageEntry(id="u-1", user_id="user-1", amount_cents=3, endpoint="chat")
        assert entry.input_tokens == 0
        assert entry.output_tokens == 0
        assert entry.reference_id is None


class TestApiModels:
    def test_balance_response_is_camel_case(self):
        body = BalanceResponse(balance_cents=1050, display_balance="$10.50")
        assert body.model_dump(by_alias=True) == {
            "balanceCents": 1050,
            "displayBalance": "$10.50",
        }

    def test_checkout_request_accepts_camel_case(self):
        request = CheckoutRequest.model_validate({
            "successUrl": "https://app.example.com/ok",
            "cancelUrl": "https://app.example.com/cancel",
        })
        assert request.success_url == "https://app.example.com/ok"
        assert request.cancel_url == "https://app.example.com/cancel"

    def test_verify_session_request_id_optional(self):
        assert VerifySessionRequest.model_validate({}).session_id is None

    def test_stats_view_formats_total(self):
        view = UsageStatsView.from_stats(UsageStats(
            user_id="user-1",
            total_debited_cents=250,
            total_requests=2,
            total_input_tokens=1500,
            total_output_tokens=800,
        ))
        data = view.model_dump(by_alias=True)
        assert data["totalDebitedCents"] == 250
        assert data["totalCostDisplay"] == "$2.50"
        assert data["totalInputTokens"] == 1500

    def test_purchase_view_from_intent(self):
        intent = PurchaseIntent(
            id="p-1",
            user_id="user-1",
            amount_cents=1000,
            gateway_session_id="cs_1",
            status=PurchaseStatus.COMPLETED,
        )
        data = PurchaseView.from_intent(intent).model_dump(by_alias=True, mode="json")
        assert data["gatewaySessionId"] == "cs_1"
        assert data["status"] == "completed"
        assert data["displayAmount"] == "$10.00"
