"""
Periodic upkeep of the usage ledger and the denormalized display counters.

The ledger is the source of truth; users.generations_count and
teams.usage_count are rebuilt from it here so drift from failed best-effort
increments never survives more than one maintenance pass.
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel

from common.core.config import settings
from common.core.telemetry import trace_span, get_logger
from common.db.context import transactional
from common.db.base import utcnow
from packages.billing.models.domain.enums import ActorType, UsageAction
from packages.billing.periods import current_period, month_start
from packages.billing.repositories.usage_repository import UsageLogRepository
from packages.teams.repositories.team_repository import TeamRepository
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)


class MaintenanceReport(BaseModel):
    users_reset: int = 0
    users_reconciled: int = 0
    teams_reconciled: int = 0
    logs_deleted: int = 0


class MaintenanceService:
    def __init__(self):
        self.usage_repo = UsageLogRepository()
        self.user_repo = UserRepository()
        self.team_repo = TeamRepository()

    @trace_span
    async def reset_monthly_counters(self, now: Optional[datetime] = None) -> int:
        """Zero user counters not yet reset this month."""
        reset = await self.user_repo.reset_generations_counts(month_start(now))
        if reset:
            logger.info(f"Reset generation counters for {reset} users")
        return reset

    @trace_span
    @transactional
    async def reconcile_counters(self, now: Optional[datetime] = None) -> tuple[int, int]:
        """Rewrite display counters with this month's spec_generated ledger counts."""
        period = current_period(now)

        user_counts = await self.usage_repo.count_action_by_actor(
            ActorType.USER, UsageAction.SPEC_GENERATED, period.start, period.end
        )
        user_ids = set(user_counts) | set(await self.user_repo.list_ids_with_generations())
        for user_id in user_ids:
            await self.user_repo.set_generations_count(user_id, user_counts.get(user_id, 0))

        team_counts = await self.usage_repo.count_action_by_actor(
            ActorType.TEAM, UsageAction.SPEC_GENERATED, period.start, period.end
        )
        team_ids = await self.team_repo.list_ids()
        for team_id in team_ids:
            await self.team_repo.set_usage_count(team_id, team_counts.get(team_id, 0))

        logger.info(
            f"Reconciled counters for {len(user_ids)} users and {len(team_ids)} teams"
        )
        return len(user_ids), len(team_ids)

    @trace_span
    async def cleanup_old_logs(
        self, days_to_keep: Optional[int] = None, now: Optional[datetime] = None
    ) -> int:
        """Delete ledger entries older than the retention window."""
        days = days_to_keep if days_to_keep is not None else settings.usage_log_retention_days
        cutoff = (now or utcnow()) - timedelta(days=days)
        deleted = await self.usage_repo.delete_older_than(cutoff)
        logger.info(
            f"Deleted {deleted} usage log entries older than {days} days",
            extra={"cutoff": cutoff.isoformat(), "deleted": deleted},
        )
        return deleted

    async def run(self, now: Optional[datetime] = None) -> MaintenanceReport:
        """One full maintenance pass."""
        users_reset = await self.reset_monthly_counters(now)
        users_reconciled, teams_reconciled = await self.reconcile_counters(now)
        logs_deleted = await self.cleanup_old_logs(now=now)
        return MaintenanceReport(
            users_reset=users_reset,
            users_reconciled=users_reconciled,
            teams_reconciled=teams_reconciled,
            logs_deleted=logs_deleted,
        )
