"""
Usage ledger.

Append-only history of debits. Entries are written once and never
updated or deleted; the Postgres table enforces this with a trigger.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from shared.repository import BaseRepository, parse_timestamp
from .accounts import storage_errors, validate_amount
from .models import UsageEntry, UsageStats


class UsageLedger:
    """In-memory usage ledger, newest entry first per user."""

    def __init__(self) -> None:
        self._entries: dict[str, list[UsageEntry]] = {}
        self._lock = threading.Lock()

    async def append(
        self,
        user_id: str,
        amount_cents: int,
        endpoint: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
        reference_id: Optional[str] = None,
    ) -> UsageEntry:
        """Record one debit."""
        validate_amount(amount_cents)

        entry = UsageEntry(
            id=str(uuid.uuid4()),
            user_id=user_id,
            amount_cents=amount_cents,
            endpoint=endpoint,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            reference_id=reference_id,
            created_at=datetime.now(timezone.utc),
        )

        with self._lock:
            if user_id not in self._entries:
                self._entries[user_id] = []
            self._entries[user_id].insert(0, entry)

        return entry

    async def list_for_user(self, user_id: str, limit: int) -> list[UsageEntry]:
        with self._lock:
            return list(self._entries.get(user_id, [])[:limit])

    async def stats_for_user(self, user_id: str) -> UsageStats:
        with self._lock:
            entries = list(self._entries.get(user_id, []))

        stats = UsageStats(user_id=user_id)
        for entry in entries:
            stats.total_requests += 1
            stats.total_debited_cents += entry.amount_cents
            stats.total_input_tokens += entry.input_tokens
            stats.total_output_tokens += entry.output_tokens
        return stats


class SupabaseUsageLedger(BaseRepository[UsageEntry]):
    """Usage ledger in the ``token_usage`` table."""

    TABLE = "token_usage"

    async def append(
        self,
        user_id: str,
        amount_cents: int,
        endpoint: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
        reference_id: Optional[str] = None,
    ) -> UsageEntry:
        """Insert one ledger row."""
        validate_amount(amount_cents)

        data = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "amount_cents": amount_cents,
            "endpoint": endpoint,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "reference_id": reference_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        with storage_errors("append_usage"):
            result = self._db.table(self.TABLE).insert(data).execute()

        return self._map_to_entry(result.data[0])

    async def list_for_user(self, user_id: str, limit: int) -> list[UsageEntry]:
        with storage_errors("list_usage"):
            result = self._db.table(self.TABLE).select("*").eq(
                "user_id", user_id
            ).order("created_at", desc=True).limit(limit).execute()

        return [self._map_to_entry(r) for r in result.data]

    async def stats_for_user(self, user_id: str) -> UsageStats:
        """Aggregate in the database with the ``get_usage_stats`` function."""
        with storage_errors("usage_stats"):
            result = self._db.rpc("get_usage_stats", {"p_user_id": user_id}).execute()

        row = result.data[0] if isinstance(result.data, list) and result.data else result.data
        if not row:
            return UsageStats(user_id=user_id)

        return UsageStats(
            user_id=user_id,
            total_debited_cents=int(row.get("total_debited_cents") or 0),
            total_requests=int(row.get("total_requests") or 0),
            total_input_tokens=int(row.get("total_input_tokens") or 0),
            total_output_tokens=int(row.get("total_output_tokens") or 0),
        )

    def _map_to_entry(self, data: dict[str, Any]) -> UsageEntry:
        """Map database row to UsageEntry model."""
        return UsageEntry(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            amount_cents=int(data["amount_cents"]),
            endpoint=data["endpoint"],
            input_tokens=data.get("input_tokens") or 0,
            output_tokens=data.get("output_tokens") or 0,
            reference_id=data.get("reference_id"),
            created_at=parse_timestamp(data["created_at"]),
        )
