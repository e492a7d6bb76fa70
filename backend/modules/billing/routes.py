"""
Billing API endpoints.

Balance and usage queries, credit top-up checkout, purchase verification
and the Stripe webhook receiver.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from api.middleware.auth import get_current_user
from api.dependencies import get_billing_service, get_webhook_processor
from shared.exceptions import ValidationError
from shared.models import AuthenticatedUser

from .interfaces import IBillingService
from .models import (
    DEFAULT_PURCHASE_LIMIT,
    DEFAULT_USAGE_LIMIT,
    BalanceResponse,
    CheckoutRequest,
    CheckoutResponse,
    CostEstimate,
    PurchaseListResponse,
    PurchaseView,
    UsageEntryView,
    UsageResponse,
    UsageStatsView,
    VerifySessionRequest,
    VerifySessionResponse,
    WebhookAck,
    format_cents,
)
from .exceptions import (
    BillingNotConfiguredError,
    BillingUnavailableError,
    DuplicateSessionError,
    InvalidSignatureError,
    MalformedEventError,
    PaymentGatewayError,
    PurchaseAccessDeniedError,
    PurchaseNotFoundError,
)
from .webhooks import WebhookProcessor

router = APIRouter()


async def get_billing_user(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
) -> AuthenticatedUser:
    """
    Authenticated user with a provisioned credit account.

    The first billing request a user makes opens their account with the
    signup bonus.
    """
    try:
        await service.ensure_account(user.id)
    except BillingUnavailableError:
        raise HTTPException(status_code=503, detail="Billing temporarily unavailable")
    return user


@router.get("/balance", response_model=BalanceResponse, response_model_by_alias=True)
async def get_balance(
    user: AuthenticatedUser = Depends(get_billing_user),
    service: IBillingService = Depends(get_billing_service),
) -> BalanceResponse:
    """Get the current user's credit balance."""
    try:
        balance = await service.get_balance(user.id)
    except BillingUnavailableError:
        raise HTTPException(status_code=503, detail="Billing temporarily unavailable")
    return BalanceResponse(balance_cents=balance, display_balance=format_cents(balance))


@router.get("/usage", response_model=UsageResponse, response_model_by_alias=True)
async def get_usage(
    limit: Optional[int] = Query(default=DEFAULT_USAGE_LIMIT, description="Max entries (1-100)"),
    user: AuthenticatedUser = Depends(get_billing_user),
    service: IBillingService = Depends(get_billing_service),
) -> UsageResponse:
    """
    Get usage history and lifetime totals.

    History is most recent first. Out-of-range limits are clamped rather
    than rejected.
    """
    try:
        history = await service.get_usage_history(user.id, limit)
        stats = await service.get_usage_stats(user.id)
    except BillingUnavailableError:
        raise HTTPException(status_code=503, detail="Billing temporarily unavailable")
    return UsageResponse(
        history=[UsageEntryView.from_entry(entry) for entry in history],
        stats=UsageStatsView.from_stats(stats),
    )


@router.post("/checkout", response_model=CheckoutResponse, response_model_by_alias=True)
async def create_checkout(
    request: Optional[CheckoutRequest] = None,
    user: AuthenticatedUser = Depends(get_billing_user),
    service: IBillingService = Depends(get_billing_service),
) -> CheckoutResponse:
    """
    Start a checkout for a fixed credit top-up.

    The amount is set server-side; the client only supplies where the
    gateway should send the user back to.
    """
    request = request or CheckoutRequest()
    try:
        session = await service.initiate_checkout(
            user.id,
            request.success_url or "",
            request.cancel_url or "",
        )
    except ValidationError:
        raise HTTPException(status_code=400, detail="successUrl and cancelUrl are required")
    except BillingNotConfiguredError:
        raise HTTPException(status_code=500, detail="Payment processing is not configured")
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=e.message)
    except DuplicateSessionError:
        raise HTTPException(status_code=409, detail="Checkout session already recorded")
    except BillingUnavailableError:
        raise HTTPException(status_code=503, detail="Billing temporarily unavailable")
    return CheckoutResponse(session_id=session.session_id, url=session.url)


@router.post("/webhook", response_model=WebhookAck, response_model_by_alias=True)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    processor: WebhookProcessor = Depends(get_webhook_processor),
) -> WebhookAck:
    """
    Receive Stripe events.

    No bearer auth: the signature over the raw body is the trust
    mechanism. A 503 is returned (not acknowledged) when storage is
    unavailable so that Stripe re-delivers the event.
    """
    payload = await request.body()
    try:
        await processor.process(payload, stripe_signature)
    except InvalidSignatureError:
        raise HTTPException(status_code=400, detail="Invalid signature")
    except MalformedEventError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except BillingNotConfiguredError:
        raise HTTPException(status_code=500, detail="Webhook secret not configured")
    except BillingUnavailableError:
        raise HTTPException(status_code=503, detail="Billing temporarily unavailable")
    return WebhookAck(received=True)


@router.get("/purchases", response_model=PurchaseListResponse, response_model_by_alias=True)
async def list_purchases(
    limit: Optional[int] = Query(default=DEFAULT_PURCHASE_LIMIT, description="Max purchases (1-100)"),
    user: AuthenticatedUser = Depends(get_billing_user),
    service: IBillingService = Depends(get_billing_service),
) -> PurchaseListResponse:
    """List the current user's credit purchases, most recent first."""
    try:
        purchases = await service.get_purchase_history(user.id, limit)
    except BillingUnavailableError:
        raise HTTPException(status_code=503, detail="Billing temporarily unavailable")
    return PurchaseListResponse(
        purchases=[PurchaseView.from_intent(intent) for intent in purchases]
    )


@router.post("/verify-session", response_model=VerifySessionResponse, response_model_by_alias=True)
async def verify_session(
    request: Optional[VerifySessionRequest] = None,
    user: AuthenticatedUser = Depends(get_billing_user),
    service: IBillingService = Depends(get_billing_service),
) -> VerifySessionResponse:
    """
    Check the status of a checkout after the user returns from Stripe.

    Reports the purchase whatever its status; a pending purchase means the
    webhook has not landed yet and the client should poll again.
    """
    if request is None or not request.session_id:
        raise HTTPException(status_code=400, detail="sessionId is required")

    try:
        verified = await service.verify_purchase(user.id, request.session_id)
    except PurchaseNotFoundError:
        raise HTTPException(status_code=404, detail="Purchase not found")
    except PurchaseAccessDeniedError:
        raise HTTPException(status_code=403, detail="Purchase belongs to another user")
    except BillingUnavailableError:
        raise HTTPException(status_code=503, detail="Billing temporarily unavailable")

    return VerifySessionResponse(
        purchase=PurchaseView.from_intent(verified.purchase),
        balance_cents=verified.balance_cents,
        display_balance=format_cents(verified.balance_cents),
    )


@router.get("/estimate", response_model=CostEstimate, response_model_by_alias=True)
async def estimate_cost(
    message_length: int = Query(..., ge=0, description="Message length in characters"),
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
) -> CostEstimate:
    """Estimate what sending a message of the given length will cost."""
    return service.estimate_cost(message_length)
