"""
Repository for subscription management.
"""

from typing import Optional
from sqlalchemy import select

from common.repositories.base import BaseRepository
from common.core.telemetry import trace_span
from packages.billing.models.database.subscription import SubscriptionEntity
from packages.billing.models.domain.subscription import (
    Subscription,
    SubscriptionCreateModel,
    SubscriptionUpdateModel,
)


class SubscriptionRepository(BaseRepository[SubscriptionEntity, Subscription]):
    """Repository for managing user subscriptions."""

    def __init__(self):
        super().__init__(SubscriptionEntity, Subscription)

    async def _get_one_by(self, *criteria) -> Optional[Subscription]:
        async with self._get_session() as session:
            result = await session.execute(select(SubscriptionEntity).where(*criteria))
            entity = result.scalars().first()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def get_by_owner(self, user_id: int) -> Optional[Subscription]:
        return await self._get_one_by(SubscriptionEntity.owner_user_id == user_id)

    @trace_span
    async def get_by_stripe_subscription_id(
        self, stripe_subscription_id: str
    ) -> Optional[Subscription]:
        return await self._get_one_by(
            SubscriptionEntity.stripe_subscription_id == stripe_subscription_id
        )

    @trace_span
    async def get_by_stripe_customer_id(
        self, stripe_customer_id: str
    ) -> Optional[Subscription]:
        return await self._get_one_by(
            SubscriptionEntity.stripe_customer_id == stripe_customer_id
        )

    @trace_span
    async def upsert_for_owner(
        self, user_id: int, create_model: SubscriptionCreateModel
    ) -> Subscription:
        """
        Create the owner's row, or overwrite it with the same values.

        Re-subscription reuses the existing row so each user keeps one
        subscription record for audit.
        """
        existing = await self.get_by_owner(user_id)
        if existing is None:
            return await self.create(create_model)

        fields = create_model.model_dump(exclude={"owner_user_id"}, exclude_none=True)
        # Reuse clears the cancellation stamp unless the new state carries one
        update_model = SubscriptionUpdateModel(**{"cancelled_at": None, **fields})
        return await self.update(existing.id, update_model)

