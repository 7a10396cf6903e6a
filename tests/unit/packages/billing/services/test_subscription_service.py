"""
Unit tests for SubscriptionService.

Tests business logic with mocked external providers.
Database interactions are NOT mocked.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi import HTTPException
from sqlalchemy import select

from common.core.config import settings
from common.core.exceptions import PaymentProviderError
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.domain.enums import (
    BillingInterval,
    SubscriptionStatus,
    SubscriptionTier,
)
from packages.billing.models.domain.stripe_webhooks import StripeSubscriptionData
from packages.billing.services.subscription_service import SubscriptionService


@pytest.fixture
def configured_prices(monkeypatch):
    monkeypatch.setattr(settings, "stripe_price_starter_monthly", "price_starter_m")
    monkeypatch.setattr(settings, "stripe_price_starter_yearly", "price_starter_y")
    monkeypatch.setattr(settings, "stripe_price_pro_monthly", "price_pro_m")
    monkeypatch.setattr(settings, "stripe_price_pro_yearly", "price_pro_y")


@pytest.fixture
def mock_payment_provider():
    """Create a mocked payment provider (Stripe)."""
    provider = AsyncMock()
    provider.is_configured = MagicMock(return_value=True)
    provider.create_customer = AsyncMock(return_value="cus_new123")
    provider.create_checkout_session = AsyncMock(
        return_value="https://checkout.stripe.com/mock"
    )
    provider.create_customer_portal_session = AsyncMock(
        return_value="https://billing.stripe.com/mock"
    )
    provider.retrieve_subscription = AsyncMock(
        return_value=StripeSubscriptionData.model_validate(
            {
                "id": "sub_test123",
                "status": "active",
                "items": {
                    "data": [
                        {
                            "id": "si_1",
                            "price": {"id": "price_starter_m", "recurring": {"interval": "month"}},
                        }
                    ]
                },
            }
        )
    )
    provider.change_subscription_price = AsyncMock(return_value=None)
    provider.set_cancel_at_period_end = AsyncMock(return_value=None)
    provider.cancel_subscription = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def subscription_service(configured_prices, mock_payment_provider):
    """Create SubscriptionService with mocked providers."""
    with patch(
        "packages.billing.services.subscription_service.get_payment_provider",
        return_value=mock_payment_provider,
    ):
        return SubscriptionService()


@patch("common.core.telemetry.tracer.start_as_current_span")
class TestCheckout:
    @pytest.mark.asyncio
    async def test_create_checkout_for_new_customer(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_user_entity,
    ):
        url = await subscription_service.create_checkout(
            user_id=sample_user_entity.id,
            tier=SubscriptionTier.STARTER,
            interval=BillingInterval.MONTHLY,
            success_url="https://app.example.com/ok",
            cancel_url="https://app.example.com/cancel",
        )

        assert url == "https://checkout.stripe.com/mock"
        mock_payment_provider.create_customer.assert_called_once_with(
            user_id=sample_user_entity.id,
            email="user@example.com",
            name="Test User",
        )
        call_args = mock_payment_provider.create_checkout_session.call_args
        assert call_args.kwargs["customer_id"] == "cus_new123"
        assert call_args.kwargs["price_id"] == "price_starter_m"
        assert call_args.kwargs["metadata"]["user_id"] == str(sample_user_entity.id)
        assert call_args.kwargs["metadata"]["tier"] == "STARTER"

    @pytest.mark.asyncio
    async def test_checkout_writes_nothing_locally(
        self, mock_start_span, subscription_service, test_db, sample_user_entity
    ):
        await subscription_service.create_checkout(
            user_id=sample_user_entity.id,
            tier=SubscriptionTier.PROFESSIONAL,
            interval=BillingInterval.YEARLY,
            success_url="https://app.example.com/ok",
            cancel_url="https://app.example.com/cancel",
        )

        result = await test_db.execute(select(SubscriptionEntity))
        assert result.scalars().all() == []

    @pytest.mark.asyncio
    async def test_checkout_reuses_existing_customer(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_user_entity,
        subscription_factory,
    ):
        await subscription_factory(
            sample_user_entity.id,
            SubscriptionTier.STARTER,
            status=SubscriptionStatus.CANCELLED,
            stripe_customer_id="cus_existing",
        )

        await subscription_service.create_checkout(
            user_id=sample_user_entity.id,
            tier=SubscriptionTier.STARTER,
            interval=BillingInterval.MONTHLY,
            success_url="https://app.example.com/ok",
            cancel_url="https://app.example.com/cancel",
        )

        mock_payment_provider.create_customer.assert_not_called()
        call_args = mock_payment_provider.create_checkout_session.call_args
        assert call_args.kwargs["customer_id"] == "cus_existing"

    @pytest.mark.asyncio
    async def test_checkout_rejects_active_subscription(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.create_checkout(
                user_id=sample_subscription.owner_user_id,
                tier=SubscriptionTier.PROFESSIONAL,
                interval=BillingInterval.MONTHLY,
                success_url="https://app.example.com/ok",
                cancel_url="https://app.example.com/cancel",
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "User already has an active subscription"

    @pytest.mark.asyncio
    async def test_checkout_rejects_free_tier(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_user_entity,
    ):
        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.create_checkout(
                user_id=sample_user_entity.id,
                tier=SubscriptionTier.FREE,
                interval=BillingInterval.MONTHLY,
                success_url="https://app.example.com/ok",
                cancel_url="https://app.example.com/cancel",
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Invalid subscription tier"
        mock_payment_provider.create_checkout_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_checkout_rejects_enterprise_without_price(
        self, mock_start_span, subscription_service, sample_user_entity
    ):
        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.create_checkout(
                user_id=sample_user_entity.id,
                tier=SubscriptionTier.ENTERPRISE,
                interval=BillingInterval.MONTHLY,
                success_url="https://app.example.com/ok",
                cancel_url="https://app.example.com/cancel",
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Price not configured for this tier"

    @pytest.mark.asyncio
    async def test_checkout_unknown_user(self, mock_start_span, subscription_service, test_db):
        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.create_checkout(
                user_id=999,
                tier=SubscriptionTier.STARTER,
                interval=BillingInterval.MONTHLY,
                success_url="https://app.example.com/ok",
                cancel_url="https://app.example.com/cancel",
            )

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_checkout_provider_failure_is_500(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_user_entity,
    ):
        mock_payment_provider.create_checkout_session.side_effect = PaymentProviderError(
            "card_declined"
        )

        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.create_checkout(
                user_id=sample_user_entity.id,
                tier=SubscriptionTier.STARTER,
                interval=BillingInterval.MONTHLY,
                success_url="https://app.example.com/ok",
                cancel_url="https://app.example.com/cancel",
            )

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Failed to create payment session"

    @pytest.mark.asyncio
    async def test_checkout_requires_configured_processor(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_user_entity,
    ):
        mock_payment_provider.is_configured.return_value = False

        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.create_checkout(
                user_id=sample_user_entity.id,
                tier=SubscriptionTier.STARTER,
                interval=BillingInterval.MONTHLY,
                success_url="https://app.example.com/ok",
                cancel_url="https://app.example.com/cancel",
            )

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Payment system not configured"


@patch("common.core.telemetry.tracer.start_as_current_span")
class TestPlanChanges:
    @pytest.mark.asyncio
    async def test_upgrade_changes_price_and_tier(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_subscription,
        notification_transport,
    ):
        updated = await subscription_service.update_subscription(
            sample_subscription.owner_user_id, SubscriptionTier.PROFESSIONAL
        )

        assert updated.tier == SubscriptionTier.PROFESSIONAL
        assert updated.billing_interval == BillingInterval.MONTHLY
        mock_payment_provider.change_subscription_price.assert_called_once()
        call_args = mock_payment_provider.change_subscription_price.call_args
        assert call_args.args[0] == "sub_test123"
        assert call_args.kwargs["price_id"] == "price_pro_m"

        message = notification_transport.deliver.call_args.args[0]
        assert message.title == "Subscription Updated"

    @pytest.mark.asyncio
    async def test_same_plan_is_rejected(
        self, mock_start_span, subscription_service, sample_subscription
    ):
        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.update_subscription(
                sample_subscription.owner_user_id, SubscriptionTier.STARTER
            )

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_downgrade_to_free_schedules_cancellation(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_subscription,
    ):
        updated = await subscription_service.update_subscription(
            sample_subscription.owner_user_id, SubscriptionTier.FREE
        )

        assert updated.cancel_at_period_end is True
        assert updated.status == SubscriptionStatus.ACTIVE
        assert updated.tier == SubscriptionTier.STARTER
        mock_payment_provider.set_cancel_at_period_end.assert_called_once_with(
            "sub_test123", True
        )
        mock_payment_provider.change_subscription_price.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_without_subscription(
        self, mock_start_span, subscription_service, sample_user_entity
    ):
        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.update_subscription(
                sample_user_entity.id, SubscriptionTier.PROFESSIONAL
            )

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_update_requires_active_status(
        self,
        mock_start_span,
        subscription_service,
        sample_user_entity,
        subscription_factory,
    ):
        await subscription_factory(
            sample_user_entity.id,
            SubscriptionTier.STARTER,
            status=SubscriptionStatus.PAST_DUE,
        )

        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.update_subscription(
                sample_user_entity.id, SubscriptionTier.PROFESSIONAL
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "No active subscription to update"

    @pytest.mark.asyncio
    async def test_cancel_at_period_end_is_idempotent(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_subscription,
        notification_transport,
    ):
        await subscription_service.cancel_subscription(sample_subscription.owner_user_id)
        await subscription_service.cancel_subscription(sample_subscription.owner_user_id)

        mock_payment_provider.set_cancel_at_period_end.assert_called_once()
        assert notification_transport.deliver.call_count == 1

    @pytest.mark.asyncio
    async def test_cancel_immediately(
        self,
        mock_start_span,
        subscription_service,
        mock_payment_provider,
        sample_subscription,
    ):
        updated = await subscription_service.cancel_subscription(
            sample_subscription.owner_user_id, immediately=True
        )

        assert updated.status == SubscriptionStatus.CANCELLED
        assert updated.cancelled_at is not None
        assert updated.effective_tier() == SubscriptionTier.FREE
        mock_payment_provider.cancel_subscription.assert_called_once_with("sub_test123")


@patch("common.core.telemetry.tracer.start_as_current_span")
class TestSubscriptionLookups:
    @pytest.mark.asyncio
    async def test_effective_tier_without_row_is_free(
        self, mock_start_span, subscription_service, sample_user_entity
    ):
        tier = await subscription_service.get_effective_tier(sample_user_entity.id)

        assert tier == SubscriptionTier.FREE

    @pytest.mark.asyncio
    async def test_get_by_owner_is_cached(
        self, mock_start_span, subscription_service, sample_subscription, memory_cache
    ):
        await subscription_service.get_by_owner(sample_subscription.owner_user_id)

        cached = await memory_cache.get(
            f"user:{sample_subscription.owner_user_id}:subscription"
        )
        assert cached["stripe_subscription_id"] == "sub_test123"

    @pytest.mark.asyncio
    async def test_details_for_user_without_subscription(
        self, mock_start_span, subscription_service, sample_user_entity
    ):
        details = await subscription_service.get_subscription_details(
            sample_user_entity.id
        )

        assert details.current_tier == SubscriptionTier.FREE
        assert details.status == SubscriptionStatus.NONE
        assert details.subscription is None
        assert [plan.tier for plan in details.pricing] == list(SubscriptionTier)
        assert [plan.current for plan in details.pricing] == [True, False, False, False]

    @pytest.mark.asyncio
    async def test_portal_requires_customer(
        self, mock_start_span, subscription_service, sample_user_entity
    ):
        with pytest.raises(HTTPException) as exc_info:
            await subscription_service.create_billing_portal_session(
                sample_user_entity.id, "https://app.example.com"
            )

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "No billing information found"
