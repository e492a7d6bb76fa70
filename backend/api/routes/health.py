"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from shared.config import get_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    storage: str
    payments: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=get_settings().app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """
    Readiness check endpoint.

    Reports which billing storage backend is in use and whether Stripe
    credentials are present. "degraded" means the API is up but checkout
    or webhook handling will be refused.
    """
    settings = get_settings()
    payments_configured = bool(settings.stripe_secret_key and settings.stripe_webhook_secret)
    return ReadinessResponse(
        status="ready" if payments_configured else "degraded",
        storage=settings.billing_storage,
        payments="configured" if payments_configured else "not_configured",
    )
