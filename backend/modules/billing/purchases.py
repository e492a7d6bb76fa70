"""
Purchase intent storage and state machine.

    pending --(payment completed)--> completed
    pending --(session expired)----> failed

Nothing leaves ``completed`` or ``failed``. A transition is a single
"set status where status = 'pending'" update, and callers branch only on
whether that update changed anything. This is what makes repeated
webhook deliveries harmless.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from postgrest.exceptions import APIError

from shared.repository import BaseRepository, parse_timestamp
from .accounts import storage_errors, validate_amount
from .models import PurchaseIntent, PurchaseStatus, TransitionResult
from .exceptions import DuplicateSessionError, PurchaseNotFoundError

logger = logging.getLogger(__name__)

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


class PurchaseIntentStore:
    """In-memory purchase intents keyed by gateway session id."""

    def __init__(self) -> None:
        self._by_session: dict[str, PurchaseIntent] = {}
        self._lock = threading.Lock()

    async def create_intent(
        self,
        user_id: str,
        amount_cents: int,
        gateway_session_id: str,
    ) -> PurchaseIntent:
        """Record a new PENDING intent."""
        validate_amount(amount_cents)

        with self._lock:
            if gateway_session_id in self._by_session:
                raise DuplicateSessionError(gateway_session_id)
            intent = PurchaseIntent(
                id=str(uuid.uuid4()),
                user_id=user_id,
                amount_cents=amount_cents,
                gateway_session_id=gateway_session_id,
                status=PurchaseStatus.PENDING,
            )
            self._by_session[gateway_session_id] = intent
            return intent

    async def get_by_session(self, gateway_session_id: str) -> Optional[PurchaseIntent]:
        with self._lock:
            return self._by_session.get(gateway_session_id)

    async def mark_completed_if_pending(self, gateway_session_id: str) -> TransitionResult:
        return self._transition(gateway_session_id, PurchaseStatus.COMPLETED)

    async def mark_failed_if_pending(self, gateway_session_id: str) -> TransitionResult:
        return self._transition(gateway_session_id, PurchaseStatus.FAILED)

    async def list_for_user(self, user_id: str, limit: int) -> list[PurchaseIntent]:
        with self._lock:
            snapshot = list(self._by_session.values())
        # Dicts keep insertion order, so reversed() is newest first.
        intents = [i for i in reversed(snapshot) if i.user_id == user_id]
        return intents[:limit]

    def _transition(self, gateway_session_id: str, target: PurchaseStatus) -> TransitionResult:
        """Compare-and-set the status from PENDING to ``target``."""
        with self._lock:
            intent = self._by_session.get(gateway_session_id)
            if intent is None:
                raise PurchaseNotFoundError(gateway_session_id)
            if intent.status != PurchaseStatus.PENDING:
                return TransitionResult(applied=False, intent=intent)

            updated = intent.model_copy(
                update={"status": target, "updated_at": datetime.now(timezone.utc)}
            )
            self._by_session[gateway_session_id] = updated
            return TransitionResult(applied=True, intent=updated)


class SupabasePurchaseIntentStore(BaseRepository[PurchaseIntent]):
    """
    Purchase intents in the ``credit_purchases`` table.

    ``stripe_session_id`` carries a UNIQUE constraint; the database,
    not this class, enforces one intent per gateway session.
    """

    TABLE = "credit_purchases"

    async def create_intent(
        self,
        user_id: str,
        amount_cents: int,
        gateway_session_id: str,
    ) -> PurchaseIntent:
        """Record a new PENDING intent."""
        validate_amount(amount_cents)

        data = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "amount_cents": amount_cents,
            "stripe_session_id": gateway_session_id,
            "status": PurchaseStatus.PENDING.value,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        with storage_errors("create_intent"):
            try:
                result = self._db.table(self.TABLE).insert(data).execute()
            except APIError as e:
                if e.code == UNIQUE_VIOLATION:
                    raise DuplicateSessionError(gateway_session_id) from e
                raise

        return self._map_to_intent(result.data[0])

    async def get_by_session(self, gateway_session_id: str) -> Optional[PurchaseIntent]:
        with storage_errors("get_by_session"):
            result = self._db.table(self.TABLE).select("*").eq(
                "stripe_session_id", gateway_session_id
            ).execute()

        if not result.data:
            return None
        return self._map_to_intent(result.data[0])

    async def mark_completed_if_pending(self, gateway_session_id: str) -> TransitionResult:
        return await self._transition(gateway_session_id, PurchaseStatus.COMPLETED)

    async def mark_failed_if_pending(self, gateway_session_id: str) -> TransitionResult:
        return await self._transition(gateway_session_id, PurchaseStatus.FAILED)

    async def list_for_user(self, user_id: str, limit: int) -> list[PurchaseIntent]:
        with storage_errors("list_purchases"):
            result = self._db.table(self.TABLE).select("*").eq(
                "user_id", user_id
            ).order("created_at", desc=True).limit(limit).execute()

        return [self._map_to_intent(r) for r in result.data]

    async def _transition(
        self,
        gateway_session_id: str,
        target: PurchaseStatus,
    ) -> TransitionResult:
        """
        Conditional UPDATE guarded by ``status = 'pending'``.

        A returned row means this call won the transition. No row means
        either the intent is already terminal or it does not exist.
        """
        with storage_errors(f"mark_{target.value}"):
            result = self._db.table(self.TABLE).update({
                "status": target.value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }).eq(
                "stripe_session_id", gateway_session_id
            ).eq(
                "status", PurchaseStatus.PENDING.value
            ).execute()

        if result.data:
            return TransitionResult(applied=True, intent=self._map_to_intent(result.data[0]))

        intent = await self.get_by_session(gateway_session_id)
        if intent is None:
            raise PurchaseNotFoundError(gateway_session_id)
        return TransitionResult(applied=False, intent=intent)

    def _map_to_intent(self, data: dict[str, Any]) -> PurchaseIntent:
        """Map database row to PurchaseIntent model."""
        return PurchaseIntent(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            amount_cents=int(data["amount_cents"]),
            gateway_session_id=data["stripe_session_id"],
            status=PurchaseStatus(data["status"]),
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]) if data.get("updated_at") else None,
        )
