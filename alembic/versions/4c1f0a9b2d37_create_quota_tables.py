"""create_quota_tables

Revision ID: 4c1f0a9b2d37
Revises:
Create Date: 2026-10-19 09:12:44.318205

Tables:
- users: account, admin flag and the monthly generations display counter
- teams / team_members: team ownership, membership and the specifications override
- subscriptions: one row per user, synchronized from Stripe webhooks
- usage_logs: append-only ledger of metered actions, source of truth for quotas
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1f0a9b2d37'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, teams, subscriptions and the usage ledger."""

    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('generations_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_reset_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'teams',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('owner_user_id', sa.BigInteger(), nullable=False),
        # NULL = tier default; 0 is an explicit deny-all override
        sa.Column('usage_quota', sa.Integer(), nullable=True),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
    )
    op.create_index('ix_teams_id', 'teams', ['id'])
    op.create_index('ix_teams_owner_user_id', 'teams', ['owner_user_id'])

    op.create_table(
        'team_members',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('team_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.BigInteger(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='member'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.UniqueConstraint('team_id', 'user_id', name='uq_team_members_team_user'),
    )
    op.create_index('ix_team_members_id', 'team_members', ['id'])
    op.create_index('ix_team_members_team_id', 'team_members', ['team_id'])
    op.create_index('ix_team_members_user_id', 'team_members', ['user_id'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('owner_user_id', sa.BigInteger(), nullable=False),

        # Subscription details
        sa.Column('tier', sa.String(50), nullable=False),
        sa.Column('status', sa.String(50), nullable=False),
        sa.Column('billing_interval', sa.String(20), nullable=True),

        # External platform IDs (nullable until checkout completes)
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True),
        sa.Column('payment_provider', sa.String(50), nullable=False, server_default='stripe'),

        # Billing cycle
        sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),

        # Standard timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True, server_default=sa.func.now()),

        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id'], ondelete='CASCADE'),
    )

    op.create_index('ix_subscriptions_id', 'subscriptions', ['id'])
    op.create_index('ix_subscriptions_owner_user_id', 'subscriptions', ['owner_user_id'], unique=True)
    op.create_index('ix_subscriptions_tier', 'subscriptions', ['tier'])
    op.create_index('ix_subscriptions_status', 'subscriptions', ['status'])
    op.create_index('ix_subscriptions_stripe_customer_id', 'subscriptions', ['stripe_customer_id'])
    op.create_index('ix_subscriptions_stripe_subscription_id', 'subscriptions', ['stripe_subscription_id'], unique=True)
    op.create_index('idx_subscription_status_tier', 'subscriptions', ['status', 'tier'])
    op.create_index('idx_subscription_period_end', 'subscriptions', ['current_period_end'])

    # Usage ledger (high volume, optimized for writes)
    op.create_table(
        'usage_logs',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('user_id', sa.BigInteger(), nullable=True),
        sa.Column('team_id', sa.BigInteger(), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('storage_bytes', sa.BigInteger(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['team_id'], ['teams.id']),
        sa.CheckConstraint('user_id IS NOT NULL OR team_id IS NOT NULL', name='ck_usage_logs_actor_present'),
    )

    op.create_index('ix_usage_logs_id', 'usage_logs', ['id'])
    op.create_index('ix_usage_logs_user_id', 'usage_logs', ['user_id'])
    op.create_index('ix_usage_logs_team_id', 'usage_logs', ['team_id'])
    op.create_index('ix_usage_logs_action', 'usage_logs', ['action'])
    op.create_index('ix_usage_logs_created_at', 'usage_logs', ['created_at'])
    op.create_index('idx_usage_user_action_date', 'usage_logs', ['user_id', 'action', 'created_at'])
    op.create_index('idx_usage_team_action_date', 'usage_logs', ['team_id', 'action', 'created_at'])

    # BRIN index on created_at for time-range scans and the retention sweep
    op.execute('CREATE INDEX idx_usage_logs_created_at_brin ON usage_logs USING BRIN (created_at)')


def downgrade() -> None:
    """Drop all quota tables."""
    op.drop_table('usage_logs')
    op.drop_table('subscriptions')
    op.drop_table('team_members')
    op.drop_table('teams')
    op.drop_table('users')
