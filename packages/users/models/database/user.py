from sqlalchemy import Column, String, Boolean, Integer
from sqlalchemy.sql import func

from common.db.base import Base, BigIntegerType, UTCDateTime, utcnow


class UserEntity(Base):
    __tablename__ = "users"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True, index=True)
    full_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    # Display-only counter of spec_generated actions this month; the usage
    # ledger is authoritative and the maintenance worker reconciles drift.
    generations_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_reset_date = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now())
    updated_at = Column(
        UTCDateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )
