import pytest
from pydantic import ValidationError

from packages.billing.models.domain.enums import (
    BillingInterval,
    SubscriptionStatus,
    SubscriptionTier,
)
from packages.billing.models.domain.subscription import (
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)
from packages.billing.repositories.subscription_repository import SubscriptionRepository


class TestSubscriptionRepository:
    @pytest.fixture
    async def repository(self):
        return SubscriptionRepository()

    async def test_get_by_owner(self, repository, sample_subscription):
        result = await repository.get_by_owner(sample_subscription.owner_user_id)

        assert result is not None
        assert result.id == sample_subscription.id
        assert result.tier == SubscriptionTier.STARTER
        assert result.status == SubscriptionStatus.ACTIVE

    async def test_get_by_owner_missing(self, repository, sample_user_entity):
        assert await repository.get_by_owner(sample_user_entity.id) is None

    async def test_get_by_processor_ids(self, repository, sample_subscription):
        by_subscription = await repository.get_by_stripe_subscription_id("sub_test123")
        by_customer = await repository.get_by_stripe_customer_id("cus_test123")

        assert by_subscription.id == sample_subscription.id
        assert by_customer.id == sample_subscription.id
        assert await repository.get_by_stripe_subscription_id("sub_missing") is None

    async def test_upsert_creates_row(self, repository, sample_user_entity):
        result = await repository.upsert_for_owner(
            sample_user_entity.id,
            SubscriptionCreateModel(
                owner_user_id=sample_user_entity.id,
                tier=SubscriptionTier.PROFESSIONAL,
                status=SubscriptionStatus.ACTIVE,
                billing_interval=BillingInterval.YEARLY,
                stripe_customer_id="cus_new",
                stripe_subscription_id="sub_new",
            ),
        )

        assert result.tier == SubscriptionTier.PROFESSIONAL
        assert result.billing_interval == BillingInterval.YEARLY
        assert result.owner_user_id == sample_user_entity.id

    async def test_upsert_reuses_cancelled_row(
        self, repository, sample_user_entity, subscription_factory
    ):
        cancelled = await subscription_factory(
            sample_user_entity.id,
            SubscriptionTier.STARTER,
            status=SubscriptionStatus.CANCELLED,
        )

        result = await repository.upsert_for_owner(
            sample_user_entity.id,
            SubscriptionCreateModel(
                owner_user_id=sample_user_entity.id,
                tier=SubscriptionTier.PROFESSIONAL,
                status=SubscriptionStatus.ACTIVE,
                stripe_subscription_id="sub_again",
            ),
        )

        assert result.id == cancelled.id
        assert result.status == SubscriptionStatus.ACTIVE
        assert result.tier == SubscriptionTier.PROFESSIONAL
        assert result.stripe_subscription_id == "sub_again"
        assert result.stripe_customer_id == cancelled.stripe_customer_id
        assert result.cancelled_at is None

    async def test_update_only_writes_set_fields(self, repository, sample_subscription):
        result = await repository.update(
            sample_subscription.id,
            SubscriptionUpdateModel(cancel_at_period_end=True),
        )

        assert result.cancel_at_period_end is True
        assert result.tier == SubscriptionTier.STARTER
        assert result.stripe_subscription_id == "sub_test123"

    def test_none_status_is_not_persistable(self):
        with pytest.raises(ValidationError):
            SubscriptionCreateModel(owner_user_id=1, status=SubscriptionStatus.NONE)
        with pytest.raises(ValidationError):
            SubscriptionUpdateModel(status=SubscriptionStatus.NONE)
