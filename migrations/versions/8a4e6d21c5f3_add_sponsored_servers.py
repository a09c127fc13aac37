"""Add sponsored servers

Revision ID: 8a4e6d21c5f3
Revises: 3f1c2a9b7d40
Create Date: 2025-03-15
"""
from alembic import op
import sqlalchemy as sa


revision = '8a4e6d21c5f3'
down_revision = '3f1c2a9b7d40'
branch_labels = None
depends_on = None


def upgrade():
	op.create_table('sponsored_server',
		sa.Column('id', sa.Integer(), nullable=False),
		sa.Column('name', sa.String(), nullable=False),
		sa.Column('address', sa.String(), nullable=False),
		sa.Column('description', sa.String(), nullable=True),
		sa.Column('banner_url', sa.String(), nullable=True),
		sa.Column('website', sa.String(), nullable=True),
		sa.Column('display_order', sa.Integer(), nullable=False),
		sa.Column('is_active', sa.Boolean(), nullable=False),
		sa.Column('created_at', sa.DateTime(), nullable=False),
		sa.Column('updated_at', sa.DateTime(), nullable=False),
		sa.PrimaryKeyConstraint('id')
	)


def downgrade():
	op.drop_table('sponsored_server')
