"""Initial Truth Prevails schema

Revision ID: 001_initial
Revises:
Create Date: 2026-03-01 01:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('uid', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('wallet_address', sa.CHAR(length=42), nullable=False),
        sa.Column('encrypted_wallet', sa.Text(), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('uid')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_wallet_address'), 'users', ['wallet_address'])

    # Create files table
    op.create_table(
        'files',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('file_name', sa.String(length=512), nullable=False),
        sa.Column('content_hash', sa.CHAR(length=64), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('file_type', sa.String(length=255), nullable=False),
        sa.Column('upload_time', sa.DateTime(), nullable=False),
        sa.Column('wallet_address', sa.CHAR(length=42), nullable=True),
        sa.Column('verification_status', sa.String(length=16), nullable=False),
        sa.Column('transaction_hash', sa.String(length=66), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('verification_error', sa.Text(), nullable=True),
        sa.Column('storage_key', sa.String(length=1024), nullable=True),
        sa.Column('storage_url', sa.String(length=2048), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.uid'], ondelete='CASCADE'),
        sa.UniqueConstraint('owner_id', 'content_hash', name='uq_files_owner_hash')
    )
    op.create_index(op.f('ix_files_owner_id'), 'files', ['owner_id'])
    op.create_index(op.f('ix_files_content_hash'), 'files', ['content_hash'])
    op.create_index(op.f('ix_files_verification_status'), 'files', ['verification_status'])
    op.create_index('idx_files_owner_upload', 'files', ['owner_id', 'upload_time'])

    # Create registry_entries table (ledger backend)
    op.create_table(
        'registry_entries',
        sa.Column('seq', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('content_hash', sa.CHAR(length=64), nullable=False),
        sa.Column('submitter', sa.CHAR(length=42), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('tx_hash', sa.CHAR(length=66), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('seq'),
        sa.UniqueConstraint('tx_hash')
    )
    op.create_index(op.f('ix_registry_entries_content_hash'), 'registry_entries', ['content_hash'], unique=True)
    op.create_index(op.f('ix_registry_entries_submitter'), 'registry_entries', ['submitter'])
    op.create_index('idx_registry_timestamp', 'registry_entries', ['timestamp'])


def downgrade() -> None:
    op.drop_index('idx_registry_timestamp', table_name='registry_entries')
    op.drop_index(op.f('ix_registry_entries_submitter'), table_name='registry_entries')
    op.drop_index(op.f('ix_registry_entries_content_hash'), table_name='registry_entries')
    op.drop_table('registry_entries')

    op.drop_index('idx_files_owner_upload', table_name='files')
    op.drop_index(op.f('ix_files_verification_status'), table_name='files')
    op.drop_index(op.f('ix_files_content_hash'), table_name='files')
    op.drop_index(op.f('ix_files_owner_id'), table_name='files')
    op.drop_table('files')

    op.drop_index(op.f('ix_users_wallet_address'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
