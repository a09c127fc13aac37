"""Add server last checked field

Revision ID: c27d90f4ab18
Revises: 8a4e6d21c5f3
Create Date: 2025-04-02
"""
from alembic import op
import sqlalchemy as sa


revision = 'c27d90f4ab18'
down_revision = '8a4e6d21c5f3'
branch_labels = None
depends_on = None


def upgrade():
	op.add_column('server', sa.Column('last_checked', sa.DateTime(), nullable=True))
	op.create_index(op.f('ix_server_last_checked'), 'server', ['last_checked'], unique=False)


def downgrade():
	op.drop_index(op.f('ix_server_last_checked'), table_name='server')
	op.drop_column('server', 'last_checked')
