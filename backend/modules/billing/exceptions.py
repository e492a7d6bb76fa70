"""
Billing module exceptions.

These exceptions are raised by the billing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import (
    TrackerError,
    NotFoundError,
    ValidationError,
    ConflictError,
    AuthorizationError,
    ConfigurationError,
    TransientError,
    ExternalServiceError,
)


class BillingError(TrackerError):
    """Base exception for billing-related errors."""

    pass


class InsufficientFundsError(BillingError):
    """
    Raised when a debit would take a balance below zero.

    The UI should handle this by blocking the action and prompting
    the user to buy more credits.
    """

    def __init__(
        self,
        required: int,
        available: int,
        user_id: Optional[str] = None,
    ):
        message = (
            f"Insufficient credits. Required: {required} cents, "
            f"available: {available} cents"
        )
        super().__init__(
            message,
            code="INSUFFICIENT_FUNDS",
            details={
                "required": required,
                "available": available,
                "shortfall": required - available,
            },
        )
        self.required = required
        self.available = available
        if user_id:
            self.details["user_id"] = user_id


class InvalidAmountError(ValidationError):
    """Raised when a credit or debit amount is not a positive integer."""

    def __init__(self, amount: int, reason: str):
        super().__init__(
            f"Invalid amount: {amount}. {reason}",
            code="INVALID_AMOUNT",
            details={"amount": amount, "reason": reason},
        )


class AccountNotFoundError(NotFoundError):
    """Raised when a user has no credit account."""

    def __init__(self, user_id: str):
        super().__init__(
            f"Credit account not found for user: {user_id}",
            code="ACCOUNT_NOT_FOUND",
            details={"user_id": user_id},
        )


class PurchaseNotFoundError(NotFoundError):
    """Raised when no purchase intent matches a gateway session id."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Purchase not found: {session_id}",
            code="PURCHASE_NOT_FOUND",
            details={"session_id": session_id},
        )


class PurchaseAccessDeniedError(AuthorizationError):
    """Raised when a user asks about a purchase that belongs to someone else."""

    def __init__(self, session_id: str, user_id: str):
        super().__init__(
            f"Access denied to purchase: {session_id}",
            code="PURCHASE_ACCESS_DENIED",
            details={"session_id": session_id, "user_id": user_id},
        )


class DuplicateSessionError(ConflictError):
    """Raised when a purchase intent already exists for a gateway session id."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Purchase already recorded for session: {session_id}",
            code="DUPLICATE_SESSION",
            details={"session_id": session_id},
        )


class InvalidSignatureError(BillingError):
    """Raised when webhook signature verification fails."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Webhook signature verification failed",
            code="INVALID_SIGNATURE",
            details={"reason": reason} if reason else {},
        )


class MalformedEventError(ValidationError):
    """Raised when a signed webhook payload cannot be parsed into an event."""

    def __init__(self, reason: str):
        super().__init__(
            f"Malformed webhook payload: {reason}",
            code="MALFORMED_EVENT",
            details={"reason": reason},
        )


class BillingNotConfiguredError(ConfigurationError):
    """Raised when Stripe credentials or the webhook secret are missing."""

    def __init__(self, setting: str):
        super().__init__(
            f"Billing is not configured: {setting} is not set",
            code="BILLING_NOT_CONFIGURED",
            details={"setting": setting},
        )


class BillingUnavailableError(TransientError):
    """
    Raised when billing storage cannot be reached.

    Webhook deliveries that hit this error are not acknowledged,
    so the gateway retries them.
    """

    def __init__(self, operation: str, reason: Optional[str] = None):
        super().__init__(
            f"Billing storage unavailable during {operation}",
            code="BILLING_UNAVAILABLE",
            details={"operation": operation, "reason": reason} if reason else {"operation": operation},
        )


class PaymentGatewayError(ExternalServiceError):
    """Raised when the payment gateway rejects or fails a request."""

    def __init__(self, message: str, gateway_error: Optional[str] = None):
        super().__init__(
            message,
            service="stripe",
            code="PAYMENT_GATEWAY_ERROR",
            details={"gateway_error": gateway_error} if gateway_error else {},
        )
