"""
Credit gate for protected actions.

Blocks a request with 402 before any work is done when the caller's
balance cannot cover the action. The check does not reserve funds; the
action itself must still debit through BillingService.charge_usage.
"""

import logging

from fastapi import Depends, HTTPException, status

from shared.models import AuthenticatedUser
from modules.billing.exceptions import (
    AccountNotFoundError,
    BillingUnavailableError,
    InsufficientFundsError,
)
from modules.billing.interfaces import IBillingService
from modules.billing.models import format_cents

from .auth import get_current_user
from ..dependencies import get_billing_service
from ..models.errors import InsufficientCreditsResponse

logger = logging.getLogger(__name__)


def insufficient_credits(error: InsufficientFundsError) -> HTTPException:
    """Translate an InsufficientFundsError into the 402 response."""
    body = InsufficientCreditsResponse(
        error=(
            f"Insufficient credits: {format_cents(error.required)} required, "
            f"{format_cents(error.available)} available"
        ),
        code=error.code,
        required=error.required,
        available=error.available,
        shortfall=error.required - error.available,
    )
    return HTTPException(
        status_code=status.HTTP_402_PAYMENT_REQUIRED,
        detail=body.model_dump(),
    )


def require_credits(min_cents: int):
    """
    Dependency factory requiring a balance of at least ``min_cents``.

    Usage:
        @router.post("/track", dependencies=[Depends(require_credits(5))])
        async def track(...):
            ...
    """

    async def dependency(
        user: AuthenticatedUser = Depends(get_current_user),
        service: IBillingService = Depends(get_billing_service),
    ) -> AuthenticatedUser:
        try:
            balance = await service.get_balance(user.id)
        except AccountNotFoundError:
            balance = 0
        except BillingUnavailableError:
            raise HTTPException(status_code=503, detail="Billing temporarily unavailable")

        if balance < min_cents:
            logger.info(f"Blocked user {user.id}: balance {balance} < required {min_cents}")
            raise insufficient_credits(
                InsufficientFundsError(required=min_cents, available=balance, user_id=user.id)
            )
        return user

    return dependency
