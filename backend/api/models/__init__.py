"""API models package."""

from .user import TokenPayload
from .errors import InsufficientCreditsResponse

__all__ = [
    "TokenPayload",
    "InsufficientCreditsResponse",
]
