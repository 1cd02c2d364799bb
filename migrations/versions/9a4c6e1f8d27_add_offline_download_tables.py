"""add user devices and offline downloads

Revision ID: 9a4c6e1f8d27
Revises: 7d3f0b6e2a11
Create Date: 2026-10-15 11:02:37.884610

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '9a4c6e1f8d27'
down_revision: Union[str, None] = '7d3f0b6e2a11'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user_devices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.String(length=255), nullable=False),
        sa.Column('device_name', sa.String(length=255), nullable=True),
        sa.Column('platform', sa.String(length=50), nullable=True),
        sa.Column('registered_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('last_active_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'device_id', name='uq_user_devices_user_device')
    )
    op.create_index(op.f('ix_user_devices_id'), 'user_devices', ['id'], unique=False)
    op.create_index(op.f('ix_user_devices_user_id'), 'user_devices', ['user_id'], unique=False)

    op.create_table(
        'offline_downloads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('lesson_id', sa.Integer(), nullable=False),
        sa.Column('device_id', sa.String(length=255), nullable=False),
        sa.Column('encryption_key_hash', sa.String(length=255), nullable=False),
        sa.Column('file_size_bytes', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('status', sa.Enum('ACTIVE', 'DELETED', 'REVOKED', name='downloadstatusenum'), nullable=False),
        sa.Column('downloaded_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['lesson_id'], ['lessons.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'lesson_id', 'device_id', name='uq_offline_downloads_user_lesson_device')
    )
    op.create_index(op.f('ix_offline_downloads_id'), 'offline_downloads', ['id'], unique=False)
    op.create_index(op.f('ix_offline_downloads_user_id'), 'offline_downloads', ['user_id'], unique=False)
    op.create_index(op.f('ix_offline_downloads_lesson_id'), 'offline_downloads', ['lesson_id'], unique=False)
    op.create_index('idx_offline_downloads_user_status', 'offline_downloads', ['user_id', 'status'])


def downgrade() -> None:
    op.drop_index('idx_offline_downloads_user_status', table_name='offline_downloads')
    op.drop_index(op.f('ix_offline_downloads_lesson_id'), table_name='offline_downloads')
    op.drop_index(op.f('ix_offline_downloads_user_id'), table_name='offline_downloads')
    op.drop_index(op.f('ix_offline_downloads_id'), table_name='offline_downloads')
    op.drop_table('offline_downloads')
    op.drop_index(op.f('ix_user_devices_user_id'), table_name='user_devices')
    op.drop_index(op.f('ix_user_devices_id'), table_name='user_devices')
    op.drop_table('user_devices')
    sa.Enum(name='downloadstatusenum').drop(op.get_bind(), checkfirst=True)
