"""Initial migration

Revision ID: 3f1c2a9b7d40
Create Date: 2025-02-08
"""
from alembic import op
import sqlalchemy as sa


revision = '3f1c2a9b7d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
	op.create_table('user_profile',
		sa.Column('id', sa.String(length=64), nullable=False),
		sa.Column('username', sa.String(), nullable=False),
		sa.Column('email', sa.String(), nullable=False),
		sa.Column('avatar_url', sa.String(), nullable=True),
		sa.Column('is_admin', sa.Boolean(), nullable=False),
		sa.Column('is_banned', sa.Boolean(), nullable=False),
		sa.Column('ban_reason', sa.String(), nullable=True),
		sa.Column('banned_at', sa.DateTime(), nullable=True),
		sa.Column('banned_by', sa.String(length=64), nullable=True),
		sa.Column('created_at', sa.DateTime(), nullable=False),
		sa.Column('updated_at', sa.DateTime(), nullable=False),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('email'),
		sa.UniqueConstraint('username')
	)
	op.create_table('server',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('name', sa.String(), nullable=False),
		sa.Column('slug', sa.String(), nullable=False),
		sa.Column('address', sa.String(), nullable=False),
		sa.Column('java_port', sa.Integer(), nullable=False),
		sa.Column('bedrock_port', sa.Integer(), nullable=True),
		sa.Column('query_port', sa.Integer(), nullable=True),
		sa.Column('platform', sa.String(length=16), nullable=False),
		sa.Column('gamemode', sa.String(), nullable=False),
		sa.Column('additional_gamemodes', sa.String(), nullable=True),
		sa.Column('min_version', sa.String(), nullable=False),
		sa.Column('max_version', sa.String(), nullable=False),
		sa.Column('country', sa.String(), nullable=False),
		sa.Column('website', sa.String(), nullable=True),
		sa.Column('discord', sa.String(), nullable=True),
		sa.Column('youtube', sa.String(), nullable=True),
		sa.Column('banner_url', sa.String(), nullable=True),
		sa.Column('description', sa.Text(), nullable=False),
		sa.Column('has_whitelist', sa.Boolean(), nullable=False),
		sa.Column('status', sa.String(length=16), nullable=False),
		sa.Column('featured', sa.Boolean(), nullable=False),
		sa.Column('votes', sa.Integer(), nullable=False),
		sa.Column('online', sa.Boolean(), nullable=False),
		sa.Column('players_online', sa.Integer(), nullable=False),
		sa.Column('players_max', sa.Integer(), nullable=False),
		sa.Column('last_ping', sa.DateTime(), nullable=True),
		sa.Column('created_at', sa.DateTime(), nullable=False),
		sa.Column('updated_at', sa.DateTime(), nullable=False),
		sa.Column('user_id', sa.String(length=64), nullable=False),
		sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('slug')
	)
	op.create_index(op.f('ix_server_gamemode'), 'server', ['gamemode'], unique=False)
	op.create_index(op.f('ix_server_status'), 'server', ['status'], unique=False)
	op.create_index('ix_server_status_votes', 'server', ['status', 'votes'], unique=False)
	op.create_table('server_stats',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('online', sa.Boolean(), nullable=False),
		sa.Column('players_online', sa.Integer(), nullable=False),
		sa.Column('players_max', sa.Integer(), nullable=False),
		sa.Column('version', sa.String(), nullable=True),
		sa.Column('motd_clean', sa.String(), nullable=True),
		sa.Column('response_time_ms', sa.Integer(), nullable=True),
		sa.Column('checked_at', sa.DateTime(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_server_stats_checked_at'), 'server_stats', ['checked_at'], unique=False)
	op.create_index('ix_server_stats_server_checked', 'server_stats', ['server_id', 'checked_at'], unique=False)
	op.create_table('server_icon',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('icon_data', sa.Text(), nullable=True),
		sa.Column('icon_hash', sa.String(length=64), nullable=True),
		sa.Column('last_updated', sa.DateTime(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('server_id')
	)
	op.create_index(op.f('ix_server_icon_icon_hash'), 'server_icon', ['icon_hash'], unique=False)
	op.create_table('daily_rank_snapshot',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('date', sa.Date(), nullable=False),
		sa.Column('rank_position', sa.Integer(), nullable=False),
		sa.Column('total_votes', sa.Integer(), nullable=False),
		sa.Column('computed_at', sa.DateTime(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('server_id', 'date', name='uq_daily_rank_server_date')
	)
	op.create_index(op.f('ix_daily_rank_snapshot_date'), 'daily_rank_snapshot', ['date'], unique=False)
	op.create_table('hourly_rank_snapshot',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('recorded_at', sa.DateTime(), nullable=False),
		sa.Column('rank_position', sa.Integer(), nullable=False),
		sa.Column('total_votes', sa.Integer(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('server_id', 'recorded_at', name='uq_hourly_rank_server_recorded')
	)
	op.create_index(op.f('ix_hourly_rank_snapshot_recorded_at'), 'hourly_rank_snapshot', ['recorded_at'], unique=False)
	op.create_table('vote',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('user_id', sa.String(length=64), nullable=True),
		sa.Column('ip_address', sa.String(), nullable=False),
		sa.Column('voter', sa.String(), nullable=False),
		sa.Column('minecraft_username', sa.String(), nullable=True),
		sa.Column('vote_window', sa.Integer(), nullable=False),
		sa.Column('created_at', sa.DateTime(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.ForeignKeyConstraint(['user_id'], ['user_profile.id'], ondelete='SET NULL'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('server_id', 'voter', 'vote_window', name='uq_vote_server_voter_window')
	)
	op.create_index('ix_vote_server_voter_created', 'vote', ['server_id', 'voter', 'created_at'], unique=False)
	op.create_table('review',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('minecraft_username', sa.String(), nullable=False),
		sa.Column('review_text', sa.Text(), nullable=False),
		sa.Column('rating', sa.Integer(), nullable=False),
		sa.Column('ip_address', sa.String(), nullable=False),
		sa.Column('created_at', sa.DateTime(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_review_server_id'), 'review', ['server_id'], unique=False)
	op.create_table('analytics_event',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('event_type', sa.String(length=16), nullable=False),
		sa.Column('user_ip_hash', sa.String(length=16), nullable=False),
		sa.Column('user_agent', sa.String(), nullable=True),
		sa.Column('referrer', sa.String(), nullable=True),
		sa.Column('session_id', sa.String(), nullable=True),
		sa.Column('meta', sa.JSON(), nullable=False),
		sa.Column('created_at', sa.DateTime(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id')
	)
	op.create_index(op.f('ix_analytics_event_event_type'), 'analytics_event', ['event_type'], unique=False)
	op.create_index(op.f('ix_analytics_event_session_id'), 'analytics_event', ['session_id'], unique=False)
	op.create_index('ix_analytics_event_server_created', 'analytics_event', ['server_id', 'created_at'], unique=False)
	op.create_table('daily_analytics',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('server_id', sa.Integer(), nullable=False),
		sa.Column('date', sa.Date(), nullable=False),
		sa.Column('impressions', sa.Integer(), nullable=False),
		sa.Column('clicks', sa.Integer(), nullable=False),
		sa.Column('ip_copies', sa.Integer(), nullable=False),
		sa.Column('votes', sa.Integer(), nullable=False),
		sa.Column('reviews', sa.Integer(), nullable=False),
		sa.Column('unique_visitors', sa.Integer(), nullable=False),
		sa.Column('updated_at', sa.DateTime(), nullable=False),
		sa.ForeignKeyConstraint(['server_id'], ['server.id'], ondelete='CASCADE'),
		sa.PrimaryKeyConstraint('id'),
		sa.UniqueConstraint('server_id', 'date', name='uq_daily_analytics_server_date')
	)
	op.create_index(op.f('ix_daily_analytics_date'), 'daily_analytics', ['date'], unique=False)


def downgrade():
	op.drop_index(op.f('ix_daily_analytics_date'), table_name='daily_analytics')
	op.drop_table('daily_analytics')
	op.drop_index('ix_analytics_event_server_created', table_name='analytics_event')
	op.drop_index(op.f('ix_analytics_event_session_id'), table_name='analytics_event')
	op.drop_index(op.f('ix_analytics_event_event_type'), table_name='analytics_event')
	op.drop_table('analytics_event')
	op.drop_index(op.f('ix_review_server_id'), table_name='review')
	op.drop_table('review')
	op.drop_index('ix_vote_server_voter_created', table_name='vote')
	op.drop_table('vote')
	op.drop_index(op.f('ix_hourly_rank_snapshot_recorded_at'), table_name='hourly_rank_snapshot')
	op.drop_table('hourly_rank_snapshot')
	op.drop_index(op.f('ix_daily_rank_snapshot_date'), table_name='daily_rank_snapshot')
	op.drop_table('daily_rank_snapshot')
	op.drop_index(op.f('ix_server_icon_icon_hash'), table_name='server_icon')
	op.drop_table('server_icon')
	op.drop_index('ix_server_stats_server_checked', table_name='server_stats')
	op.drop_index(op.f('ix_server_stats_checked_at'), table_name='server_stats')
	op.drop_table('server_stats')
	op.drop_index('ix_server_status_votes', table_name='server')
	op.drop_index(op.f('ix_server_status'), table_name='server')
	op.drop_index(op.f('ix_server_gamemode'), table_name='server')
	op.drop_table('server')
	op.drop_table('user_profile')
