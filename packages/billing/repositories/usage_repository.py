"""
Repository for the usage ledger.
"""

from datetime import datetime
from typing import Dict, Iterable, Optional
from sqlalchemy import select, func, delete, distinct

from common.repositories.base import BaseRepository
from common.core.telemetry import trace_span
from packages.billing.models.database.usage import UsageLogEntity
from packages.billing.models.domain.usage import UsageLogEntry, ActorRef
from packages.billing.models.domain.enums import ActorType, UsageAction


class UsageLogRepository(BaseRepository[UsageLogEntity, UsageLogEntry]):
    """Append and aggregate usage log entries. Entries are never updated."""

    def __init__(self):
        super().__init__(UsageLogEntity, UsageLogEntry)

    @staticmethod
    def _actor_clause(actor: ActorRef):
        if actor.actor_type is ActorType.TEAM:
            return UsageLogEntity.team_id == actor.actor_id
        return UsageLogEntity.user_id == actor.actor_id

    @trace_span
    async def count_actions(
        self,
        actor: ActorRef,
        actions: Iterable[UsageAction],
        start_date: datetime,
        end_date: datetime,
    ) -> int:
        """Number of entries for the actor with any of `actions` in [start, end]."""
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count(UsageLogEntity.id)).where(
                    self._actor_clause(actor),
                    UsageLogEntity.action.in_([a.value for a in actions]),
                    UsageLogEntity.created_at >= start_date,
                    UsageLogEntity.created_at <= end_date,
                )
            )
            return result.scalar_one() or 0

    @trace_span
    async def count_by_action(
        self,
        actor: Optional[ActorRef],
        start_date: datetime,
        end_date: datetime,
    ) -> Dict[UsageAction, int]:
        """Entry counts grouped by action; all actors when actor is None."""
        query = select(UsageLogEntity.action, func.count(UsageLogEntity.id)).where(
            UsageLogEntity.created_at >= start_date,
            UsageLogEntity.created_at <= end_date,
        )
        if actor is not None:
            query = query.where(self._actor_clause(actor))
        query = query.group_by(UsageLogEntity.action)

        async with self._get_session() as session:
            result = await session.execute(query)
            counts = {action: 0 for action in UsageAction}
            for action, count in result.all():
                try:
                    counts[UsageAction(action)] = count
                except ValueError:
                    # Rows written by newer releases with unknown kinds
                    continue
            return counts

    @trace_span
    async def sum_storage_bytes(
        self, actor: ActorRef, start_date: datetime, end_date: datetime
    ) -> int:
        async with self._get_session() as session:
            result = await session.execute(
                select(func.coalesce(func.sum(UsageLogEntity.storage_bytes), 0)).where(
                    self._actor_clause(actor),
                    UsageLogEntity.action == UsageAction.FILE_UPLOADED.value,
                    UsageLogEntity.created_at >= start_date,
                    UsageLogEntity.created_at <= end_date,
                )
            )
            return int(result.scalar_one() or 0)

    @trace_span
    async def count_distinct_users(self, start_date: datetime, end_date: datetime) -> int:
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count(distinct(UsageLogEntity.user_id))).where(
                    UsageLogEntity.user_id.is_not(None),
                    UsageLogEntity.created_at >= start_date,
                    UsageLogEntity.created_at <= end_date,
                )
            )
            return result.scalar_one() or 0

    @trace_span
    async def get_by_actor(
        self, actor: ActorRef, limit: int = 100, offset: int = 0
    ) -> list[UsageLogEntry]:
        """Most recent entries first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(UsageLogEntity)
                .where(self._actor_clause(actor))
                .order_by(UsageLogEntity.created_at.desc(), UsageLogEntity.id.desc())
                .limit(limit)
                .offset(offset)
            )
            return self._entities_to_domain(result.scalars().all())

    @trace_span
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Retention sweep. Returns the number of deleted entries."""
        async with self._get_session() as session:
            result = await session.execute(
                delete(UsageLogEntity).where(UsageLogEntity.created_at < cutoff)
            )
            return result.rowcount or 0

    @trace_span
    async def count_action_by_actor(
        self,
        actor_type: ActorType,
        action: UsageAction,
        start_date: datetime,
        end_date: datetime,
    ) -> Dict[int, int]:
        """Entry counts for one action grouped by user or team id."""
        column = (
            UsageLogEntity.team_id
            if actor_type is ActorType.TEAM
            else UsageLogEntity.user_id
        )
        async with self._get_session() as session:
            result = await session.execute(
                select(column, func.count(UsageLogEntity.id))
                .where(
                    column.is_not(None),
                    UsageLogEntity.action == action.value,
                    UsageLogEntity.created_at >= start_date,
                    UsageLogEntity.created_at <= end_date,
                )
                .group_by(column)
            )
            return {actor_id: count for actor_id, count in result.all()}
