from typing import List, Optional
from datetime import datetime
from sqlalchemy import select, update, or_

from common.repositories.base import BaseRepository
from common.db.base import utcnow
from packages.users.models.database.user import UserEntity
from packages.users.models.domain.user import User
from common.core.telemetry import trace_span


class UserRepository(BaseRepository[UserEntity, User]):
    def __init__(self):
        super().__init__(UserEntity, User)

    @trace_span
    async def get_by_email(self, email: str) -> Optional[User]:
        async with self._get_session() as session:
            result = await session.execute(
                select(UserEntity).where(UserEntity.email == email)
            )
            db_user = result.scalar_one_or_none()
            return self._entity_to_domain(db_user) if db_user else None

    @trace_span
    async def exists(self, user_id: int) -> bool:
        async with self._get_session() as session:
            result = await session.execute(
                select(UserEntity.id).where(UserEntity.id == user_id)
            )
            return result.scalar_one_or_none() is not None

    @trace_span
    async def increment_generations_count(self, user_id: int, by: int = 1) -> None:
        """Bump the display counter in a single UPDATE (no read-modify-write)."""
        async with self._get_session() as session:
            await session.execute(
                update(UserEntity)
                .where(UserEntity.id == user_id)
                .values(generations_count=UserEntity.generations_count + by)
            )

    @trace_span
    async def set_generations_count(self, user_id: int, count: int) -> None:
        async with self._get_session() as session:
            await session.execute(
                update(UserEntity)
                .where(UserEntity.id == user_id)
                .values(generations_count=count)
            )

    @trace_span
    async def reset_generations_counts(self, month_start: datetime) -> int:
        """Zero counters not reset since month_start. Returns rows touched."""
        async with self._get_session() as session:
            result = await session.execute(
                update(UserEntity)
                .where(
                    or_(
                        UserEntity.last_reset_date.is_(None),
                        UserEntity.last_reset_date < month_start,
                    )
                )
                .values(generations_count=0, last_reset_date=utcnow())
            )
            return result.rowcount

    @trace_span
    async def list_ids_with_generations(self) -> List[int]:
        async with self._get_session() as session:
            result = await session.execute(
                select(UserEntity.id).where(UserEntity.generations_count > 0)
            )
            return list(result.scalars().all())
