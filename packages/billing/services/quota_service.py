"""
Service for quota enforcement.

Resolves the actor's effective tier, aggregates period-to-date usage from the
ledger and compares it with the tier's limit. Denials are returned as values;
only infrastructure failures raise.
"""

from datetime import datetime
from typing import Optional

from common.core.telemetry import trace_span, log_span_event
from packages.billing.models.domain.enums import (
    ActorType,
    QuotaDimension,
    SubscriptionTier,
    UsageAction,
)
from packages.billing.models.domain.quota import (
    DIMENSION_ACTIONS,
    Quota,
    denial_reason,
    dimension_for,
    get_quota,
    is_unlimited,
    not_found_reason,
)
from packages.billing.models.domain.usage import ActorRef, QuotaDecision
from packages.billing.periods import current_period
from packages.billing.repositories.usage_repository import UsageLogRepository
from packages.billing.services.subscription_service import SubscriptionService
from packages.teams.models.domain.team import TeamWithMembers
from packages.teams.repositories.team_repository import TeamRepository
from packages.users.repositories.user_repository import UserRepository


def team_quota(tier: SubscriptionTier, team: TeamWithMembers) -> Quota:
    """Owner's tier quota with the team's specifications override applied."""
    quota = get_quota(tier)
    if team.usage_quota is not None:
        quota = quota.model_copy(update={"specifications": team.usage_quota})
    return quota


class QuotaService:
    """Service for quota enforcement."""

    def __init__(self):
        self.subscription_service = SubscriptionService()
        self.usage_repo = UsageLogRepository()
        self.user_repo = UserRepository()
        self.team_repo = TeamRepository()

    @trace_span
    async def check_quota(
        self, actor: ActorRef, action: UsageAction, now: Optional[datetime] = None
    ) -> QuotaDecision:
        """
        Decide whether `actor` may perform `action` now.

        Unlimited limits return before the ledger is touched, so an
        aggregation failure can never block an unlimited tier.
        """
        if actor.actor_type is ActorType.TEAM:
            decision = await self._check_team(actor, action, now)
        else:
            decision = await self._check_user(actor, action, now)

        if not decision.allowed:
            log_span_event(
                f"Quota denied for {actor.actor_type.value} {actor.actor_id}: {decision.reason}",
                {
                    "actor_type": actor.actor_type.value,
                    "actor_id": actor.actor_id,
                    "action": action.value,
                    "current_usage": decision.current_usage,
                    "limit": decision.limit,
                },
            )
        return decision

    @trace_span
    async def check_user_quota(
        self, user_id: int, action: UsageAction
    ) -> QuotaDecision:
        return await self.check_quota(ActorRef.user(user_id), action)

    @trace_span
    async def check_team_quota(
        self, team_id: int, action: UsageAction
    ) -> QuotaDecision:
        return await self.check_quota(ActorRef.team(team_id), action)

    async def _check_user(
        self, actor: ActorRef, action: UsageAction, now: Optional[datetime]
    ) -> QuotaDecision:
        subscription = await self.subscription_service.get_by_owner(actor.actor_id)
        # A subscription row implies the user exists
        if subscription is None and not await self.user_repo.exists(actor.actor_id):
            return QuotaDecision.deny(not_found_reason(ActorType.USER))

        dimension = dimension_for(action)
        # Membership is only meaningful with a team in context
        if dimension is None or dimension is QuotaDimension.TEAM_MEMBERS:
            return QuotaDecision.allow()

        tier = subscription.effective_tier() if subscription else SubscriptionTier.FREE
        limit = get_quota(tier).limit_for(dimension)
        if is_unlimited(limit):
            return QuotaDecision.allow()

        usage = await self._ledger_usage(actor, dimension, now)
        return self._decide(actor.actor_type, dimension, usage, limit)

    async def _check_team(
        self, actor: ActorRef, action: UsageAction, now: Optional[datetime]
    ) -> QuotaDecision:
        team = await self.team_repo.get_with_member_count(actor.actor_id)
        if team is None:
            return QuotaDecision.deny(not_found_reason(ActorType.TEAM))

        dimension = dimension_for(action)
        if dimension is None:
            return QuotaDecision.allow()

        tier = await self.subscription_service.get_effective_tier(team.owner_user_id)
        # Enterprise owners are unlimited regardless of the team override
        if tier is SubscriptionTier.ENTERPRISE:
            return QuotaDecision.allow()

        limit = team_quota(tier, team).limit_for(dimension)
        if is_unlimited(limit):
            return QuotaDecision.allow()

        if dimension is QuotaDimension.TEAM_MEMBERS:
            usage = team.member_count
        else:
            usage = await self._ledger_usage(actor, dimension, now)
        return self._decide(actor.actor_type, dimension, usage, limit)

    async def _ledger_usage(
        self, actor: ActorRef, dimension: QuotaDimension, now: Optional[datetime]
    ) -> int:
        period = current_period(now)
        return await self.usage_repo.count_actions(
            actor, DIMENSION_ACTIONS[dimension], period.start, period.end
        )

    @staticmethod
    def _decide(
        actor_type: ActorType, dimension: QuotaDimension, usage: int, limit: int
    ) -> QuotaDecision:
        if usage >= limit:
            return QuotaDecision.deny(
                denial_reason(actor_type, dimension),
                current_usage=usage,
                limit=limit,
                remaining=0,
            )
        return QuotaDecision(
            allowed=True, current_usage=usage, limit=limit, remaining=limit - usage
        )
