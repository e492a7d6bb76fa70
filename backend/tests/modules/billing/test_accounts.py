"""Tests for the in-memory credit account store."""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from modules.billing.accounts import CreditAccountStore, validate_amount
from modules.billing.exceptions import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
)


class TestValidateAmount:
    @pytest.mark.parametrize("amount", [0, -1, -1000])
    def test_non_positive_rejected(self, amount):
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    @pytest.mark.parametrize("amount", [1.5, "100", True, None])
    def test_non_integer_rejected(self, amount):
        with pytest.raises(InvalidAmountError):
            validate_amount(amount)

    def test_positive_integer_accepted(self):
        validate_amount(1)


class TestCreditAccountStore:
    @pytest.fixture
    def store(self):
        return CreditAccountStore()

    @pytest.mark.asyncio
    async def test_open_account(self, store):
        account = await store.open_account("user-1", 100)
        assert account.user_id == "user-1"
        assert account.balance_cents == 100
        assert await store.get_balance("user-1") == 100

    @pytest.mark.asyncio
    async def test_open_account_is_idempotent(self, store):
        await store.open_account("user-1", 100)
        await store.credit("user-1", 50)
        account = await store.open_account("user-1", 100)
        assert account.balance_cents == 150

    @pytest.mark.asyncio
    async def test_open_account_rejects_negative_start(self, store):
        with pytest.raises(InvalidAmountError):
            await store.open_account("user-1", -1)

    @pytest.mark.asyncio
    async def test_get_balance_unknown_user(self, store):
        with pytest.raises(AccountNotFoundError):
            await store.get_balance("nobody")

    @pytest.mark.asyncio
    async def test_credit(self, store):
        await store.open_account("user-1", 0)
        assert await store.credit("user-1", 1000) == 1000
        assert await store.get_balance("user-1") == 1000

    @pytest.mark.asyncio
    async def test_credit_unknown_user(self, store):
        with pytest.raises(AccountNotFoundError):
            await store.credit("nobody", 100)

    @pytest.mark.asyncio
    async def test_credit_rejects_zero(self, store):
        await store.open_account("user-1", 0)
        with pytest.raises(InvalidAmountError):
            await store.credit("user-1", 0)

    @pytest.mark.asyncio
    async def test_debit(self, store):
        await store.open_account("user-1", 500)
        assert await store.debit("user-1", 300) == 200

    @pytest.mark.asyncio
    async def test_debit_exact_balance(self, store):
        await store.open_account("user-1", 500)
        assert await store.debit("user-1", 500) == 0

    @pytest.mark.asyncio
    async def test_debit_insufficient_leaves_balance(self, store):
        await store.open_account("user-1", 150)
        with pytest.raises(InsufficientFundsError) as exc_info:
            await store.debit("user-1", 300)
        assert exc_info.value.required == 300
        assert exc_info.value.available == 150
        assert await store.get_balance("user-1") == 150

    @pytest.mark.asyncio
    async def test_debit_rejects_negative(self, store):
        await store.open_account("user-1", 500)
        with pytest.raises(InvalidAmountError):
            await store.debit("user-1", -5)
        assert await store.get_balance("user-1") == 500

    @pytest.mark.asyncio
    async def test_sequential_debits(self, store):
        """500 -> debit 300 -> 200 -> debit 300 refused -> debit 100 -> 100."""
        await store.open_account("user-1", 500)
        assert await store.debit("user-1", 300) == 200
        with pytest.raises(InsufficientFundsError):
            await store.debit("user-1", 300)
        assert await store.debit("user-1", 100) == 100


class TestConcurrentDebits:
    @pytest.mark.asyncio
    async def test_gathered_debits_never_overdraw(self):
        store = CreditAccountStore()
        await store.open_account("user-1", 1000)

        results = await asyncio.gather(
            *(store.debit("user-1", 300) for _ in range(10)),
            return_exceptions=True,
        )

        succeeded = [r for r in results if isinstance(r, int)]
        refused = [r for r in results if isinstance(r, InsufficientFundsError)]
        assert len(succeeded) == 3
        assert len(refused) == 7
        assert await store.get_balance("user-1") == 100

    def test_threaded_debits_never_overdraw(self):
        store = CreditAccountStore()
        asyncio.run(store.open_account("user-1", 1000))

        def debit_once() -> bool:
            try:
                asyncio.run(store.debit("user-1", 7))
                return True
            except InsufficientFundsError:
                return False

        with ThreadPoolExecutor(max_workers=16) as pool:
            outcomes = list(pool.map(lambda _: debit_once(), range(200)))

        # 1000 // 7 == 142 debits fit
        assert outcomes.count(True) == 142
        assert asyncio.run(store.get_balance("user-1")) == 1000 - 142 * 7

    def test_threaded_credits_are_not_lost(self):
        store = CreditAccountStore()
        asyncio.run(store.open_account("user-1", 0))

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(lambda _: asyncio.run(store.credit("user-1", 10)), range(100)))

        assert asyncio.run(store.get_balance("user-1")) == 1000
