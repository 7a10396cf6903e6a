"""
Service for the usage ledger: recording metered actions and reporting on them.
"""

import math
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from common.core.telemetry import trace_span, get_logger
from common.db.context import readonly
from packages.billing.models.domain.enums import (
    ActorType,
    SubscriptionTier,
    UsageAction,
)
from packages.billing.models.domain.quota import Quota, get_quota, is_unlimited
from packages.billing.models.domain.usage import (
    ActorRef,
    UsageCounts,
    UsageLogEntryCreateModel,
    UsagePercentages,
    UsagePeriod,
    UsageStats,
    UsageSummary,
)
from packages.billing.periods import current_period
from packages.billing.repositories.usage_repository import UsageLogRepository
from packages.billing.services.quota_service import team_quota
from packages.billing.services.subscription_service import SubscriptionService
from packages.teams.repositories.team_repository import TeamRepository
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)

BYTES_PER_MB = 1024 * 1024


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def usage_percentage(used: int, limit: int) -> int:
    """Rounded percent of `limit` used; 0 for unlimited."""
    if is_unlimited(limit):
        return 0
    if limit <= 0:
        return 100
    return _round_half_up(used / limit * 100)


def resolve_period(
    start_date: Optional[datetime] = None, end_date: Optional[datetime] = None
) -> UsagePeriod:
    """Current month unless a custom reporting range is given."""
    month = current_period()
    return UsagePeriod(start=start_date or month.start, end=end_date or month.end)


class UsageService:
    """Service for usage recording and statistics."""

    def __init__(self):
        self.usage_repo = UsageLogRepository()
        self.user_repo = UserRepository()
        self.team_repo = TeamRepository()
        self.subscription_service = SubscriptionService()

    @trace_span
    async def record_usage(
        self,
        action: UsageAction,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        storage_bytes: Optional[int] = None,
    ) -> None:
        """
        Append a ledger entry; for spec_generated also bump the display
        counters on the user and team.

        Best-effort: failures are logged and swallowed so accounting never
        fails an operation that already succeeded.
        """
        try:
            entry = await self.usage_repo.create(
                UsageLogEntryCreateModel(
                    user_id=user_id,
                    team_id=team_id,
                    action=action,
                    event_metadata=metadata or {},
                    storage_bytes=storage_bytes,
                )
            )
        except Exception as e:
            logger.error(
                f"Failed to record usage {action.value}: {e}",
                extra={"action": action.value, "user_id": user_id, "team_id": team_id},
            )
            return

        logger.debug(
            f"Recorded usage entry {entry.id}",
            extra={"entry_id": entry.id, "action": action.value},
        )

        if action is not UsageAction.SPEC_GENERATED:
            return

        try:
            if user_id is not None:
                await self.user_repo.increment_generations_count(user_id)
            if team_id is not None:
                await self.team_repo.increment_usage_count(team_id)
        except Exception as e:
            # Counters are reconciled from the ledger by the maintenance worker
            logger.error(
                f"Failed to update usage counters: {e}",
                extra={"user_id": user_id, "team_id": team_id},
            )

    @trace_span
    @readonly
    async def get_user_stats(
        self,
        user_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> UsageStats:
        if not await self.user_repo.exists(user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )

        tier = await self.subscription_service.get_effective_tier(user_id)
        period = resolve_period(start_date, end_date)
        usage = await self._usage_for_period(ActorRef.user(user_id), period)
        return self._build_stats(ActorRef.user(user_id), tier, get_quota(tier), period, usage)

    @trace_span
    @readonly
    async def get_team_stats(
        self,
        team_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> UsageStats:
        team = await self.team_repo.get_with_member_count(team_id)
        if team is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Team not found"
            )

        tier = await self.subscription_service.get_effective_tier(team.owner_user_id)
        period = resolve_period(start_date, end_date)
        usage = await self._usage_for_period(ActorRef.team(team_id), period)
        usage.team_members = team.member_count
        return self._build_stats(
            ActorRef.team(team_id), tier, team_quota(tier, team), period, usage
        )

    @trace_span
    @readonly
    async def get_usage_summary(self) -> UsageSummary:
        """System-wide figures for the current month."""
        period = current_period()
        counts = await self.usage_repo.count_by_action(None, period.start, period.end)
        return UsageSummary(
            total_users=await self.user_repo.count(),
            active_users=await self.usage_repo.count_distinct_users(
                period.start, period.end
            ),
            total_specifications=counts[UsageAction.SPEC_GENERATED],
            total_ai_generations=counts[UsageAction.AI_GENERATION]
            + counts[UsageAction.VIEW_GENERATED],
            period=period,
        )

    async def _usage_for_period(self, actor: ActorRef, period: UsagePeriod) -> UsageCounts:
        counts = await self.usage_repo.count_by_action(actor, period.start, period.end)
        storage_bytes = await self.usage_repo.sum_storage_bytes(
            actor, period.start, period.end
        )
        return UsageCounts(
            specifications=counts[UsageAction.SPEC_GENERATED],
            ai_generations=counts[UsageAction.AI_GENERATION]
            + counts[UsageAction.VIEW_GENERATED],
            api_calls=counts[UsageAction.API_CALL],
            team_members=0,
            storage_mb=_round_half_up(storage_bytes / BYTES_PER_MB),
        )

    @staticmethod
    def _build_stats(
        actor: ActorRef,
        tier: SubscriptionTier,
        quota: Quota,
        period: UsagePeriod,
        usage: UsageCounts,
    ) -> UsageStats:
        return UsageStats(
            actor_type=actor.actor_type,
            actor_id=actor.actor_id,
            tier=tier.value,
            period=period,
            usage=usage,
            quota=quota.model_dump(),
            percentages=UsagePercentages(
                specifications=usage_percentage(usage.specifications, quota.specifications),
                ai_generations=usage_percentage(usage.ai_generations, quota.ai_generations),
                team_members=usage_percentage(usage.team_members, quota.team_members),
                storage=usage_percentage(usage.storage_mb, quota.storage_mb),
                api_calls=usage_percentage(usage.api_calls, quota.api_calls),
            ),
        )
