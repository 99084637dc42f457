"""create_matching_tables

Revision ID: 20261019_0001_create_matching
Revises:
Create Date: 2026-10-19 09:00:00

Adds: users, creator_profiles, brand_profiles, matches, conversations, outbox_messages
Purpose: Match discovery and lifecycle storage with pair-level uniqueness
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_0001_create_matching'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Create all match engine tables.

    Features:
    - pair_key unique constraint (one match per unordered creator/brand pair)
    - match_id unique constraint on conversations (one thread per match)
    - idempotency_key unique constraint on outbox_messages (one event per match)
    - status and role check constraints
    """
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("role IN ('creator', 'brand')", name='ck_users_role'),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'creator_profiles',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('instagram_handle', sa.String(length=100), nullable=True),
        sa.Column('tiktok_handle', sa.String(length=100), nullable=True),
        sa.Column('follower_count_ig', sa.Integer(), nullable=True),
        sa.Column('follower_count_tiktok', sa.Integer(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    )

    op.create_table(
        'brand_profiles',
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('company_name', sa.String(length=255), nullable=False),
        sa.Column('vertical', sa.String(length=50), nullable=True),
        sa.Column('ad_spend_range', sa.String(length=20), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    )

    op.create_table(
        'matches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('pair_key', sa.String(length=140), nullable=False),
        sa.Column('creator_id', sa.String(length=64), nullable=False),
        sa.Column('brand_id', sa.String(length=64), nullable=False),
        sa.Column('match_score', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('scoring_details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('pair_key', name='uq_matches_pair_key'),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['brand_id'], ['users.id'], ),
        sa.CheckConstraint(
            "status IN ('pending', 'shortlisted', 'rejected', 'matched')",
            name='ck_matches_status'
        ),
    )
    op.create_index('ix_matches_creator_status', 'matches', ['creator_id', 'status'])
    op.create_index('ix_matches_brand_status', 'matches', ['brand_id', 'status'])

    op.create_table(
        'conversations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('match_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('match_id', name='uq_conversations_match_id'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ),
    )

    op.create_table(
        'outbox_messages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('aggregate_type', sa.String(length=100), nullable=False),
        sa.Column('aggregate_id', sa.String(length=255), nullable=False),
        sa.Column('operation', sa.String(length=50), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('retry_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_retries', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', name='uq_outbox_messages_idempotency_key'),
    )
    op.create_index('ix_outbox_unprocessed', 'outbox_messages', ['processed_at', 'retry_count'])
    op.create_index('ix_outbox_created_at', 'outbox_messages', ['created_at'])


def downgrade() -> None:
    """Drop all match engine tables in reverse dependency order."""
    op.drop_index('ix_outbox_created_at', table_name='outbox_messages')
    op.drop_index('ix_outbox_unprocessed', table_name='outbox_messages')
    op.drop_table('outbox_messages')
    op.drop_table('conversations')
    op.drop_index('ix_matches_brand_status', table_name='matches')
    op.drop_index('ix_matches_creator_status', table_name='matches')
    op.drop_table('matches')
    op.drop_table('brand_profiles')
    op.drop_table('creator_profiles')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')
