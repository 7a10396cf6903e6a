"""
Unit tests for billing API routes.

Tests API endpoints with mocked external providers.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from common.core.config import settings
from packages.billing.models.domain.enums import SubscriptionStatus


@pytest.fixture
def mock_payment_provider(monkeypatch):
    """Mock payment provider for route tests."""
    monkeypatch.setattr(settings, "stripe_price_starter_monthly", "price_starter_m")
    monkeypatch.setattr(settings, "stripe_price_pro_monthly", "price_pro_m")

    provider = AsyncMock()
    provider.is_configured = MagicMock(return_value=True)
    provider.create_customer = AsyncMock(return_value="cus_route123")
    provider.create_checkout_session = AsyncMock(
        return_value="https://checkout.stripe.com/test123"
    )
    provider.create_customer_portal_session = AsyncMock(
        return_value="https://billing.stripe.com/test123"
    )
    provider.set_cancel_at_period_end = AsyncMock(return_value=None)
    provider.cancel_subscription = AsyncMock(return_value=None)
    with patch(
        "packages.billing.services.subscription_service.get_payment_provider",
        return_value=provider,
    ):
        yield provider


@pytest.mark.asyncio
class TestBillingRoutes:
    """Tests for billing API routes."""

    async def test_get_subscription_without_row(self, client):
        """Test GET /api/v1/billing/subscription for a user on FREE."""
        response = await client.get("/api/v1/billing/subscription")

        assert response.status_code == 200
        data = response.json()
        assert data["current_tier"] == "FREE"
        assert data["status"] == SubscriptionStatus.NONE.value
        assert data["subscription"] is None
        assert len(data["pricing"]) == 4

    async def test_get_subscription_with_row(self, client, sample_subscription):
        response = await client.get("/api/v1/billing/subscription")

        assert response.status_code == 200
        data = response.json()
        assert data["current_tier"] == "STARTER"
        assert data["status"] == SubscriptionStatus.ACTIVE.value
        assert data["subscription"]["billing_interval"] == "monthly"

    async def test_create_checkout_session(self, client, mock_payment_provider):
        """Test POST /api/v1/billing/checkout."""
        response = await client.post(
            "/api/v1/billing/checkout",
            json={
                "tier": "STARTER",
                "interval": "monthly",
                "success_url": "https://app.example.com/success",
                "cancel_url": "https://app.example.com/cancel",
            },
        )

        assert response.status_code == 200
        assert response.json()["checkout_url"] == "https://checkout.stripe.com/test123"

    async def test_checkout_free_tier_rejected(self, client, mock_payment_provider):
        response = await client.post(
            "/api/v1/billing/checkout",
            json={
                "tier": "FREE",
                "success_url": "https://app.example.com/success",
                "cancel_url": "https://app.example.com/cancel",
            },
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid subscription tier"

    async def test_checkout_twice_rejected(
        self, client, sample_subscription, mock_payment_provider
    ):
        response = await client.post(
            "/api/v1/billing/checkout",
            json={
                "tier": "PROFESSIONAL",
                "success_url": "https://app.example.com/success",
                "cancel_url": "https://app.example.com/cancel",
            },
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "User already has an active subscription"

    async def test_checkout_invalid_tier_is_422(self, client, mock_payment_provider):
        response = await client.post(
            "/api/v1/billing/checkout",
            json={
                "tier": "PLATINUM",
                "success_url": "https://app.example.com/success",
                "cancel_url": "https://app.example.com/cancel",
            },
        )

        assert response.status_code == 422

    async def test_create_portal_session(
        self, client, sample_subscription, mock_payment_provider
    ):
        response = await client.post(
            "/api/v1/billing/portal",
            json={"return_url": "https://app.example.com/billing"},
        )

        assert response.status_code == 200
        assert response.json()["portal_url"] == "https://billing.stripe.com/test123"
        mock_payment_provider.create_customer_portal_session.assert_called_once_with(
            customer_id="cus_test123", return_url="https://app.example.com/billing"
        )

    async def test_cancel_subscription_at_period_end(
        self, client, sample_subscription, mock_payment_provider
    ):
        response = await client.post("/api/v1/billing/subscription/cancel", json={})

        assert response.status_code == 200
        data = response.json()
        assert data["cancel_at_period_end"] is True
        assert data["status"] == SubscriptionStatus.ACTIVE.value

    async def test_cancel_subscription_immediately(
        self, client, sample_subscription, mock_payment_provider
    ):
        response = await client.post(
            "/api/v1/billing/subscription/cancel", json={"immediately": True}
        )

        assert response.status_code == 200
        assert response.json()["status"] == SubscriptionStatus.CANCELLED.value

    async def test_update_to_free_schedules_cancellation(
        self, client, sample_subscription, mock_payment_provider
    ):
        response = await client.post(
            "/api/v1/billing/subscription/update", json={"tier": "FREE"}
        )

        assert response.status_code == 200
        assert response.json()["cancel_at_period_end"] is True

    async def test_update_without_subscription(self, client, mock_payment_provider):
        response = await client.post(
            "/api/v1/billing/subscription/update", json={"tier": "PROFESSIONAL"}
        )

        assert response.status_code == 404


@pytest.mark.asyncio
class TestPublicRoutes:
    async def test_get_plans_is_public(self, anonymous_client):
        response = await anonymous_client.get("/api/v1/billing/plans")

        assert response.status_code == 200
        plans = response.json()["plans"]
        assert [plan["tier"] for plan in plans] == [
            "FREE",
            "STARTER",
            "PROFESSIONAL",
            "ENTERPRISE",
        ]
        assert plans[3]["price"]["monthly"] == -1
        assert plans[3]["limits"]["specifications"] == -1
        assert plans[1]["purchasable"] is True
        assert plans[0]["purchasable"] is False

    async def test_billing_requires_authentication(self, anonymous_client):
        response = await anonymous_client.get("/api/v1/billing/subscription")

        assert response.status_code == 401

    async def test_health(self, anonymous_client):
        response = await anonymous_client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_healthz(self, anonymous_client):
        response = await anonymous_client.get("/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
