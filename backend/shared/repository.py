"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and providing shared utilities for data operations.
"""

from datetime import datetime
from typing import TypeVar, Generic
from supabase import Client


T = TypeVar("T")


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a PostgREST timestamp (which may use a trailing 'Z')."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class PurchaseRepository(BaseRepository[PurchaseIntent]):
            def get_by_session(self, session_id: str) -> Optional[PurchaseIntent]:
                result = self._db.table("credit_purchases").select("*").eq(
                    "stripe_session_id", session_id
                ).execute()
                if not result.data:
                    return None
                return self._map_to_intent(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db
