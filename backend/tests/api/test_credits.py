"""Tests for the require_credits dependency."""

import asyncio

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from api.dependencies import get_billing_service
from api.middleware.auth import get_current_user
from api.middleware.credits import require_credits
from shared.models import AuthenticatedUser
from modules.billing.service import BillingService


@pytest.fixture
def service():
    return BillingService()


@pytest.fixture
def client(service):
    """A tiny app with one action that costs at least 50 cents."""
    app = FastAPI()

    @app.post("/track")
    async def track(user: AuthenticatedUser = Depends(require_credits(50))):
        return {"user_id": user.id}

    app.dependency_overrides[get_billing_service] = lambda: service
    app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(
        id="user-1",
        email="test@example.com",
    )
    return TestClient(app)


class TestRequireCredits:
    def test_allows_when_balance_covers(self, client, service):
        asyncio.run(service.ensure_account("user-1"))
        response = client.post("/track")
        assert response.status_code == 200
        assert response.json() == {"user_id": "user-1"}

    def test_blocks_with_reason_and_amounts(self, client, service):
        asyncio.run(service.ensure_account("user-1"))
        asyncio.run(service.charge_usage("user-1", 70, "chat"))

        response = client.post("/track")

        assert response.status_code == 402
        detail = response.json()["detail"]
        assert detail["code"] == "INSUFFICIENT_FUNDS"
        assert detail["required"] == 50
        assert detail["available"] == 30
        assert detail["shortfall"] == 20
        assert "$0.50" in detail["error"]

    def test_unprovisioned_user_has_nothing(self, client):
        response = client.post("/track")
        assert response.status_code == 402
        assert response.json()["detail"]["available"] == 0

    def test_check_does_not_debit(self, client, service):
        asyncio.run(service.ensure_account("user-1"))
        client.post("/track")
        client.post("/track")
        assert asyncio.run(service.get_balance("user-1")) == 100
