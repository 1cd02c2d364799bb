"""add access code columns to lessons

Revision ID: 7d3f0b6e2a11
Revises: 5c1e7a2d9b40
Create Date: 2026-10-13 16:40:51.203118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '7d3f0b6e2a11'
down_revision: Union[str, None] = '5c1e7a2d9b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

access_code_type = sa.Enum('PERMANENT', 'TEMPORARY', name='accesscodetypeenum')


def upgrade() -> None:
    access_code_type.create(op.get_bind(), checkfirst=True)
    op.add_column('lessons', sa.Column('access_code_enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False))
    op.add_column('lessons', sa.Column('access_code', sa.String(length=10), nullable=True))
    op.add_column('lessons', sa.Column('access_code_type', access_code_type, nullable=True))
    op.add_column('lessons', sa.Column('access_code_expires_at', sa.DateTime(timezone=True), nullable=True))
    op.add_column('lessons', sa.Column('access_code_generated_at', sa.DateTime(timezone=True), nullable=True))
    op.create_index(op.f('ix_lessons_access_code'), 'lessons', ['access_code'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_lessons_access_code'), table_name='lessons')
    op.drop_column('lessons', 'access_code_generated_at')
    op.drop_column('lessons', 'access_code_expires_at')
    op.drop_column('lessons', 'access_code_type')
    op.drop_column('lessons', 'access_code')
    op.drop_column('lessons', 'access_code_enabled')
    access_code_type.drop(op.get_bind(), checkfirst=True)
