from sqlalchemy import Column, String, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType, UTCDateTime, utcnow


class TeamEntity(Base):
    __tablename__ = "teams"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    owner_user_id = Column(
        BigIntegerType, ForeignKey("users.id"), nullable=False, index=True
    )

    # Per-team override of the monthly specifications limit. NULL means the
    # tier default applies; 0 is an explicit override that denies everything.
    usage_quota = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now())
    updated_at = Column(
        UTCDateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class TeamMemberEntity(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint("team_id", "user_id", name="uq_team_members_team_user"),
    )

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    team_id = Column(
        BigIntegerType,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(BigIntegerType, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String, nullable=False, default="member")
    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now())
