"""
Database entity for the usage ledger.
"""

from sqlalchemy import (
    Column,
    String,
    ForeignKey,
    Index,
    JSON,
    BigInteger,
    CheckConstraint,
)

from common.db.base import Base, BigIntegerType, UTCDateTime, utcnow


class UsageLogEntity(Base):
    """
    Append-only usage log entry.

    Rows are never updated; the retention sweep is the only delete path.
    High volume table - partitioned by created_at in production.
    """

    __tablename__ = "usage_logs"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    user_id = Column(BigIntegerType, ForeignKey("users.id"), nullable=True, index=True)
    team_id = Column(BigIntegerType, ForeignKey("teams.id"), nullable=True, index=True)

    action = Column(String(50), nullable=False, index=True)

    # Uploaded bytes for file_uploaded (denormalized for fast aggregation)
    storage_bytes = Column(BigInteger, nullable=True)

    # Action-specific metadata, e.g. {"specification_id": 12}
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        CheckConstraint(
            "user_id IS NOT NULL OR team_id IS NOT NULL",
            name="ck_usage_logs_actor_present",
        ),
        Index("idx_usage_user_action_date", "user_id", "action", "created_at"),
        Index("idx_usage_team_action_date", "team_id", "action", "created_at"),
    )
