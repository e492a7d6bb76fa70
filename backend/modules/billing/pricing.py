"""
Token pricing for credit consumption.

Converts LLM token counts into the number of credit cents to debit.
Prices are per 1 million tokens (industry standard) and a fixed markup
is applied on top. Amounts are always rounded up to a whole cent.
"""

import math
from decimal import Decimal, ROUND_CEILING

INPUT_PRICE_PER_1M = Decimal("3.00")
OUTPUT_PRICE_PER_1M = Decimal("15.00")
MARKUP_MULTIPLIER = Decimal("1.20")

# Rough heuristics for pre-flight estimates
TOKENS_PER_CHARACTER = Decimal("0.3")
ESTIMATED_OUTPUT_TOKENS = 2000


def calculate_cost_cents(input_tokens: int, output_tokens: int) -> int:
    """
    Calculate the marked-up cost in cents for a token count.

    Args:
        input_tokens: Prompt tokens consumed
        output_tokens: Completion tokens produced

    Returns:
        Cost in whole cents, rounded up
    """
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError("Token counts cannot be negative")

    input_cost = (Decimal(input_tokens) / 1_000_000) * INPUT_PRICE_PER_1M
    output_cost = (Decimal(output_tokens) / 1_000_000) * OUTPUT_PRICE_PER_1M
    total_dollars = (input_cost + output_cost) * MARKUP_MULTIPLIER

    return int((total_dollars * 100).to_integral_value(rounding=ROUND_CEILING))


def estimate_input_tokens(message_length: int) -> int:
    """Estimate prompt tokens from a message's character count."""
    return math.ceil(Decimal(message_length) * TOKENS_PER_CHARACTER)


def estimate_message_cost(message_length: int) -> tuple[int, str]:
    """
    Estimate what sending a message of ``message_length`` characters costs.

    Assumes a typical response of ESTIMATED_OUTPUT_TOKENS.

    Returns:
        Tuple of (estimated_cents, human-readable description)
    """
    estimated_cents = calculate_cost_cents(
        estimate_input_tokens(message_length),
        ESTIMATED_OUTPUT_TOKENS,
    )
    dollars = Decimal(estimated_cents) / 100
    return estimated_cents, f"Estimated cost: ~${dollars:.3f}"
