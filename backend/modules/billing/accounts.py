"""
Credit account storage.

Both implementations keep ``balance_cents >= 0`` at all times: a debit is
a single conditional update that only succeeds when the balance covers it.

- CreditAccountStore: in-memory, guarded by a lock (tests, local dev)
- SupabaseCreditAccountStore: Postgres functions called through PostgREST
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

import httpx
from postgrest.exceptions import APIError

from shared.repository import BaseRepository, parse_timestamp
from .models import CreditAccount
from .exceptions import (
    AccountNotFoundError,
    BillingUnavailableError,
    InsufficientFundsError,
    InvalidAmountError,
)

logger = logging.getLogger(__name__)


def validate_amount(amount_cents: int) -> None:
    """Reject anything that is not a positive whole number of cents."""
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise InvalidAmountError(amount_cents, "Amount must be an integer number of cents")
    if amount_cents <= 0:
        raise InvalidAmountError(amount_cents, "Amount must be positive")


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise PostgREST and transport failures as BillingUnavailableError."""
    try:
        yield
    except APIError as e:
        logger.error(f"Storage error during {operation}: {e.message}")
        raise BillingUnavailableError(operation, e.message) from e
    except httpx.HTTPError as e:
        logger.error(f"Storage unreachable during {operation}: {e}")
        raise BillingUnavailableError(operation, str(e)) from e


class CreditAccountStore:
    """
    In-memory credit accounts.

    Each read-modify-write runs under one lock, so concurrent debits
    cannot both pass the sufficiency check against a stale balance.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, CreditAccount] = {}
        self._lock = threading.Lock()

    async def open_account(self, user_id: str, initial_cents: int) -> CreditAccount:
        """Create the account if missing; return the stored account."""
        if initial_cents < 0:
            raise InvalidAmountError(initial_cents, "Initial balance cannot be negative")

        with self._lock:
            account = self._accounts.get(user_id)
            if account is None:
                account = CreditAccount(user_id=user_id, balance_cents=initial_cents)
                self._accounts[user_id] = account
                logger.info(f"Opened credit account for user {user_id} with {initial_cents} cents")
            return account

    async def get_balance(self, user_id: str) -> int:
        """Read the current balance."""
        with self._lock:
            account = self._accounts.get(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return account.balance_cents

    async def credit(self, user_id: str, amount_cents: int) -> int:
        """Atomically add to a balance."""
        validate_amount(amount_cents)

        with self._lock:
            account = self._accounts.get(user_id)
            if account is None:
                raise AccountNotFoundError(user_id)
            new_balance = account.balance_cents + amount_cents
            self._accounts[user_id] = account.model_copy(
                update={
                    "balance_cents": new_balance,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            return new_balance

    async def debit(self, user_id: str, amount_cents: int) -> int:
        """Atomically subtract from a balance if it covers the amount."""
        validate_amount(amount_cents)

        with self._lock:
            account = self._accounts.get(user_id)
            if account is None:
                raise AccountNotFoundError(user_id)
            if account.balance_cents < amount_cents:
                raise InsufficientFundsError(
                    required=amount_cents,
                    available=account.balance_cents,
                    user_id=user_id,
                )
            new_balance = account.balance_cents - amount_cents
            self._accounts[user_id] = account.model_copy(
                update={
                    "balance_cents": new_balance,
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            return new_balance


class SupabaseCreditAccountStore(BaseRepository[CreditAccount]):
    """
    Credit accounts in the ``credit_accounts`` table.

    Mutations go through SQL functions (see migrations/001_billing.sql)
    that each execute one UPDATE ... RETURNING statement, so Postgres
    row locking makes them atomic across processes.
    """

    TABLE = "credit_accounts"

    async def open_account(self, user_id: str, initial_cents: int) -> CreditAccount:
        """Create the account if missing (INSERT ... ON CONFLICT DO NOTHING)."""
        if initial_cents < 0:
            raise InvalidAmountError(initial_cents, "Initial balance cannot be negative")

        with storage_errors("open_account"):
            result = self._db.rpc("ensure_credit_account", {
                "p_user_id": user_id,
                "p_initial_cents": initial_cents,
            }).execute()

        row = result.data[0] if isinstance(result.data, list) else result.data
        return self._map_to_account(row)

    async def get_balance(self, user_id: str) -> int:
        """Read the current balance."""
        with storage_errors("get_balance"):
            result = self._db.table(self.TABLE).select("balance_cents").eq(
                "user_id", user_id
            ).execute()

        if not result.data:
            raise AccountNotFoundError(user_id)
        return int(result.data[0]["balance_cents"])

    async def credit(self, user_id: str, amount_cents: int) -> int:
        """Atomically add to a balance."""
        validate_amount(amount_cents)

        with storage_errors("credit"):
            result = self._db.rpc("credit_account", {
                "p_user_id": user_id,
                "p_amount_cents": amount_cents,
            }).execute()

        if result.data is None:
            raise AccountNotFoundError(user_id)
        return int(result.data)

    async def debit(self, user_id: str, amount_cents: int) -> int:
        """
        Atomically subtract from a balance if it covers the amount.

        The SQL function returns NULL when its conditional update matched
        no row; a follow-up read tells a missing account apart from an
        insufficient balance.
        """
        validate_amount(amount_cents)

        with storage_errors("debit"):
            result = self._db.rpc("debit_account", {
                "p_user_id": user_id,
                "p_amount_cents": amount_cents,
            }).execute()

        if result.data is not None:
            return int(result.data)

        available = await self.get_balance(user_id)
        raise InsufficientFundsError(
            required=amount_cents,
            available=available,
            user_id=user_id,
        )

    def _map_to_account(self, data: dict[str, Any]) -> CreditAccount:
        """Map database row to CreditAccount model."""
        return CreditAccount(
            user_id=str(data["user_id"]),
            balance_cents=int(data["balance_cents"]),
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]) if data.get("updated_at") else None,
        )
