"""
Billing module data models.

These models define the data structures used by the billing module
and exposed to other modules through the interface.

All money is held as integer cents. Request/response models at the
bottom of this file serialize with camelCase keys for the web client.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Fixed top-up denomination sold per checkout ($10.00). Never client-supplied.
TOP_UP_AMOUNT_CENTS = 1000

# Balance a new account starts with ($1.00).
SIGNUP_BONUS_CENTS = 100

# Upper bound for any history page.
MAX_PAGE_SIZE = 100
DEFAULT_USAGE_LIMIT = 50
DEFAULT_PURCHASE_LIMIT = 20


def format_cents(cents: int) -> str:
    """Format an amount in cents for display, e.g. 1050 -> '$10.50'."""
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), 100)
    return f"{sign}${dollars}.{remainder:02d}"


def clamp_limit(limit: Optional[int], default: int) -> int:
    """Bound a requested page size to [1, MAX_PAGE_SIZE]."""
    if limit is None or limit < 1:
        return default
    return min(limit, MAX_PAGE_SIZE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Domain models
# =============================================================================


class PurchaseStatus(str, Enum):
    """Lifecycle of a purchase intent. Only PENDING may transition."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CreditAccount(BaseModel):
    """A user's prepaid credit balance. One per user."""

    user_id: str = Field(..., description="User ID")
    balance_cents: int = Field(..., ge=0, description="Current balance in cents")
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = Field(None)

    model_config = {"frozen": True}


class PurchaseIntent(BaseModel):
    """
    A locally recorded checkout, correlated with the gateway by session id.

    Created as PENDING when checkout starts; becomes COMPLETED or FAILED
    exactly once when the gateway reports the outcome.
    """

    id: str = Field(..., description="Purchase ID (UUID)")
    user_id: str = Field(..., description="Purchasing user")
    amount_cents: int = Field(..., gt=0, description="Credits bought, in cents")
    gateway_session_id: str = Field(..., description="Gateway checkout session ID")
    status: PurchaseStatus = Field(default=PurchaseStatus.PENDING)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: Optional[datetime] = Field(None)

    model_config = {"frozen": True}

    @property
    def is_terminal(self) -> bool:
        return self.status != PurchaseStatus.PENDING


class TransitionResult(BaseModel):
    """
    Outcome of a conditional status transition.

    ``applied`` is True only for the single call that moved the intent
    out of PENDING; every later call sees ``applied=False``.
    """

    applied: bool
    intent: PurchaseIntent


class UsageEntry(BaseModel):
    """An immutable debit recorded against a credit account."""

    id: str = Field(..., description="Entry ID (UUID)")
    user_id: str = Field(..., description="User ID")
    amount_cents: int = Field(..., gt=0, description="Amount debited, in cents")
    endpoint: str = Field(..., description="Action that consumed the credits")
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    reference_id: Optional[str] = Field(None, description="Optional related resource ID")
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = {"frozen": True}


class UsageStats(BaseModel):
    """Lifetime usage aggregate for one account."""

    user_id: str
    total_debited_cents: int = 0
    total_requests: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0


class GatewayEventType(str, Enum):
    """Normalized gateway event categories the ledger understands."""

    PAYMENT_COMPLETED = "payment_completed"
    SESSION_EXPIRED = "session_expired"
    OTHER = "other"


class GatewayEvent(BaseModel):
    """
    A verified gateway event, stripped of gateway-specific payload shape.

    ``raw_type`` keeps the gateway's own event name for logging.
    """

    id: Optional[str] = None
    type: GatewayEventType
    raw_type: str
    session_id: Optional[str] = None

    model_config = {"frozen": True}


class CheckoutSession(BaseModel):
    """A gateway checkout session the client should be redirected to."""

    session_id: str = Field(..., description="Gateway checkout session ID")
    url: str = Field(..., description="Checkout URL to redirect user to")


class WebhookOutcome(str, Enum):
    """What processing an acknowledged webhook event did to the ledger."""

    CREDITED = "credited"
    DUPLICATE = "duplicate"
    MARKED_FAILED = "marked_failed"
    ALREADY_TERMINAL = "already_terminal"
    UNKNOWN_SESSION = "unknown_session"
    UNCREDITED = "uncredited"
    IGNORED = "ignored"


class WebhookResult(BaseModel):
    """Result of processing one webhook delivery that passed verification."""

    received: bool = True
    event_type: str
    session_id: Optional[str] = None
    outcome: WebhookOutcome


class VerifiedPurchase(BaseModel):
    """A purchase as seen by its owner, together with the current balance."""

    purchase: PurchaseIntent
    balance_cents: int


# =============================================================================
# API request/response models
# =============================================================================


class CamelModel(BaseModel):
    """Base for HTTP payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BalanceResponse(CamelModel):
    balance_cents: int
    display_balance: str


class UsageEntryView(CamelModel):
    id: str
    amount_cents: int
    endpoint: str
    input_tokens: int
    output_tokens: int
    reference_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: UsageEntry) -> "UsageEntryView":
        return cls(
            id=entry.id,
            amount_cents=entry.amount_cents,
            endpoint=entry.endpoint,
            input_tokens=entry.input_tokens,
            output_tokens=entry.output_tokens,
            reference_id=entry.reference_id,
            created_at=entry.created_at,
        )


class UsageStatsView(CamelModel):
    total_debited_cents: int
    total_requests: int
    total_input_tokens: int
    total_output_tokens: int
    total_cost_display: str

    @classmethod
    def from_stats(cls, stats: UsageStats) -> "UsageStatsView":
        return cls(
            total_debited_cents=stats.total_debited_cents,
            total_requests=stats.total_requests,
            total_input_tokens=stats.total_input_tokens,
            total_output_tokens=stats.total_output_tokens,
            total_cost_display=format_cents(stats.total_debited_cents),
        )


class UsageResponse(CamelModel):
    history: list[UsageEntryView]
    stats: UsageStatsView


class CheckoutRequest(CamelModel):
    """Missing URLs are reported as 400 by the route, not as a schema error."""

    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class CheckoutResponse(CamelModel):
    session_id: str
    url: str


class WebhookAck(CamelModel):
    received: bool = True


class PurchaseView(CamelModel):
    id: str
    user_id: str
    amount_cents: int
    gateway_session_id: str
    status: PurchaseStatus
    created_at: datetime
    display_amount: str

    @classmethod
    def from_intent(cls, intent: PurchaseIntent) -> "PurchaseView":
        return cls(
            id=intent.id,
            user_id=intent.user_id,
            amount_cents=intent.amount_cents,
            gateway_session_id=intent.gateway_session_id,
            status=intent.status,
            created_at=intent.created_at,
            display_amount=format_cents(intent.amount_cents),
        )


class PurchaseListResponse(CamelModel):
    purchases: list[PurchaseView]


class VerifySessionRequest(CamelModel):
    session_id: Optional[str] = None


class VerifySessionResponse(CamelModel):
    purchase: PurchaseView
    balance_cents: int
    display_balance: str


class CostEstimate(CamelModel):
    """Pre-flight estimate of what a message will cost."""

    estimated_cents: int
    description: str
