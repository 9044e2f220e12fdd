"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'app_user',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('is_anonymous', sa.Boolean(), server_default=sa.false(), nullable=False),
    )

    op.create_table(
        'sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('group_id', sa.Text(), server_default='global', nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('level', sa.Text(), nullable=False),
        sa.Column('points', sa.Float(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'date', 'type', name='uq_sessions_user_date_type'),
        sa.CheckConstraint('points >= 0', name='ck_sessions_points_non_negative'),
    )
    op.create_index('ix_sessions_user_date', 'sessions', ['user_id', 'date'])
    op.create_index('ix_sessions_group', 'sessions', ['group_id'])

    op.create_table(
        'group_members',
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('group_id', sa.Text(), nullable=False),
        sa.Column('username', sa.Text(), nullable=True),
        sa.Column('score', sa.Float(), server_default='0', nullable=False),
        sa.Column('badges', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'group_id'),
    )
    op.create_index('ix_group_members_group_score', 'group_members', ['group_id', 'score'])
    op.create_index('ix_group_members_username', 'group_members', ['username'])

    op.create_table(
        'shoutbox_messages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.CheckConstraint("type IN ('system', 'user')", name='ck_shoutbox_messages_type'),
    )
    op.create_index('ix_shoutbox_created_at', 'shoutbox_messages', ['created_at'])

    op.create_table(
        'user_settings',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('onboarding_seen', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', name='uq_user_settings_user_id'),
    )

    op.create_table(
        'analytics_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('event_name', sa.Text(), nullable=False),
        sa.Column('event_properties', sa.JSON(), nullable=True),
        sa.Column('page', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_analytics_events_name', 'analytics_events', ['event_name'])
    op.create_index('ix_analytics_events_user', 'analytics_events', ['user_id'])


def downgrade() -> None:
    op.drop_table('analytics_events')
    op.drop_table('user_settings')
    op.drop_table('shoutbox_messages')
    op.drop_table('group_members')
    op.drop_table('sessions')
    op.drop_table('app_user')
