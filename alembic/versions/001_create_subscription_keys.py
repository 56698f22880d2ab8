"""Create subscription key and admin user tables

Revision ID: 001_create_subscription_keys
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_subscription_keys'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create subscription_keys and admin_users."""

    op.create_table(
        'subscription_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=True),
        sa.Column('owner_username', sa.String(), nullable=True),
        sa.Column('owner_first_name', sa.String(), nullable=True),
        sa.Column('owner_last_name', sa.String(), nullable=True),
        sa.Column('plan_type', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('is_frozen', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('frozen_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_checked_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_index('ix_subscription_keys_key', 'subscription_keys', ['key'], unique=True)
    op.create_index('ix_subscription_keys_owner_id', 'subscription_keys', ['owner_id'])
    op.create_index('ix_subscription_keys_plan_type', 'subscription_keys', ['plan_type'])
    # Sweep scan: equality on is_active, range on expires_at
    op.create_index('ix_subscription_keys_active_expires', 'subscription_keys', ['is_active', 'expires_at'])

    op.create_table(
        'admin_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=150), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admin_users_username', 'admin_users', ['username'], unique=True)


def downgrade() -> None:
    """Drop subscription_keys and admin_users."""
    op.drop_index('ix_admin_users_username', table_name='admin_users')
    op.drop_table('admin_users')

    op.drop_index('ix_subscription_keys_active_expires', table_name='subscription_keys')
    op.drop_index('ix_subscription_keys_plan_type', table_name='subscription_keys')
    op.drop_index('ix_subscription_keys_owner_id', table_name='subscription_keys')
    op.drop_index('ix_subscription_keys_key', table_name='subscription_keys')
    op.drop_table('subscription_keys')
