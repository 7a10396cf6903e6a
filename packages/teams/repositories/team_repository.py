from typing import Optional, List
from sqlalchemy import select, update, func

from common.repositories.base import BaseRepository
from common.core.telemetry import trace_span
from packages.teams.models.database.team import TeamEntity, TeamMemberEntity
from packages.teams.models.domain.team import (
    Team,
    TeamWithMembers,
    TeamMember,
    TeamMemberCreateModel,
)


class TeamRepository(BaseRepository[TeamEntity, Team]):
    def __init__(self):
        super().__init__(TeamEntity, Team)

    @trace_span
    async def get_with_member_count(self, team_id: int) -> Optional[TeamWithMembers]:
        member_count = (
            select(func.count(TeamMemberEntity.id))
            .where(TeamMemberEntity.team_id == TeamEntity.id)
            .scalar_subquery()
        )
        async with self._get_session() as session:
            result = await session.execute(
                select(TeamEntity, member_count).where(TeamEntity.id == team_id)
            )
            row = result.one_or_none()
            if row is None:
                return None
            entity, count = row
            team = Team.model_validate(entity)
            return TeamWithMembers(**team.model_dump(), member_count=count or 0)

    @trace_span
    async def add_member(self, member: TeamMemberCreateModel) -> TeamMember:
        db_obj = TeamMemberEntity(**member.model_dump())
        async with self._get_session() as session:
            session.add(db_obj)
            await session.flush()
            await session.refresh(db_obj)
            return TeamMember.model_validate(db_obj)

    @trace_span
    async def list_members(self, team_id: int) -> List[TeamMember]:
        async with self._get_session() as session:
            result = await session.execute(
                select(TeamMemberEntity)
                .where(TeamMemberEntity.team_id == team_id)
                .order_by(TeamMemberEntity.id)
            )
            return [TeamMember.model_validate(m) for m in result.scalars().all()]

    @trace_span
    async def is_member(self, team_id: int, user_id: int) -> bool:
        """Owners count as members even without a membership row."""
        async with self._get_session() as session:
            owner = await session.execute(
                select(TeamEntity.id).where(
                    TeamEntity.id == team_id, TeamEntity.owner_user_id == user_id
                )
            )
            if owner.scalar_one_or_none() is not None:
                return True
            member = await session.execute(
                select(TeamMemberEntity.id).where(
                    TeamMemberEntity.team_id == team_id,
                    TeamMemberEntity.user_id == user_id,
                )
            )
            return member.scalar_one_or_none() is not None

    @trace_span
    async def increment_usage_count(self, team_id: int, by: int = 1) -> None:
        async with self._get_session() as session:
            await session.execute(
                update(TeamEntity)
                .where(TeamEntity.id == team_id)
                .values(usage_count=TeamEntity.usage_count + by)
            )

    @trace_span
    async def set_usage_count(self, team_id: int, count: int) -> None:
        async with self._get_session() as session:
            await session.execute(
                update(TeamEntity)
                .where(TeamEntity.id == team_id)
                .values(usage_count=count)
            )

    @trace_span
    async def list_ids(self) -> List[int]:
        async with self._get_session() as session:
            result = await session.execute(select(TeamEntity.id).order_by(TeamEntity.id))
            return list(result.scalars().all())
