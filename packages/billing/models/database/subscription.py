"""
Database entity for subscriptions.
"""

from sqlalchemy import Column, String, Boolean, ForeignKey, Index
from sqlalchemy.sql import func, expression

from common.db.base import Base, BigIntegerType, UTCDateTime, utcnow


class SubscriptionEntity(Base):
    """
    User subscription database entity.

    At most one row per user (unique owner_user_id). Rows are upserted by owner
    on every lifecycle event and never deleted.
    """

    __tablename__ = "subscriptions"

    id = Column(BigIntegerType, primary_key=True, index=True, autoincrement=True)
    owner_user_id = Column(
        BigIntegerType,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    tier = Column(String(50), nullable=False, index=True)
    status = Column(String(50), nullable=False, index=True)
    billing_interval = Column(String(20), nullable=True)

    # External platform IDs
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True, unique=True, index=True)
    payment_provider = Column(String(50), nullable=False, server_default="stripe")

    # Billing cycle, copied from the processor's authoritative state
    current_period_start = Column(UTCDateTime, nullable=True)
    current_period_end = Column(UTCDateTime, nullable=True)
    cancel_at_period_end = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    cancelled_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, default=utcnow, server_default=func.now())
    updated_at = Column(
        UTCDateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_subscription_status_tier", "status", "tier"),
        Index("idx_subscription_period_end", "current_period_end"),
    )
