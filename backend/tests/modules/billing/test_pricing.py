"""Tests for token pricing."""

import pytest

from modules.billing.pricing import (
    calculate_cost_cents,
    estimate_input_tokens,
    estimate_message_cost,
)


class TestCalculateCostCents:
    def test_zero_tokens_costs_nothing(self):
        assert calculate_cost_cents(0, 0) == 0

    def test_million_input_tokens(self):
        # $3.00 * 1.20 markup
        assert calculate_cost_cents(1_000_000, 0) == 360

    def test_million_output_tokens(self):
        # $15.00 * 1.20 markup
        assert calculate_cost_cents(0, 1_000_000) == 1800

    def test_small_call_rounds_up(self):
        # 1.26 cents
        assert calculate_cost_cents(1000, 500) == 2

    def test_single_token_costs_a_cent(self):
        assert calculate_cost_cents(1, 0) == 1

    def test_negative_tokens_rejected(self):
        with pytest.raises(ValueError):
            calculate_cost_cents(-1, 0)


class TestEstimates:
    def test_input_token_estimate_rounds_up(self):
        assert estimate_input_tokens(100) == 30
        assert estimate_input_tokens(1) == 1
        assert estimate_input_tokens(0) == 0

    def test_message_cost(self):
        cents, description = estimate_message_cost(100)
        assert cents == 4
        assert description == "Estimated cost: ~$0.040"

    def test_longer_messages_cost_at_least_as_much(self):
        short, _ = estimate_message_cost(10)
        long, _ = estimate_message_cost(100_000)
        assert long > short
