"""
Error response models.

Standardized error bodies for failures the client is expected to act on.
"""

from pydantic import BaseModel


class InsufficientCreditsResponse(BaseModel):
    """Body of a 402 raised when a protected action cannot be afforded."""

    error: str
    code: str = "INSUFFICIENT_FUNDS"
    required: int
    available: int
    shortfall: int
