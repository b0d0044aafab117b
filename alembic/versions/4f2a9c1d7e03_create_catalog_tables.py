"""create_catalog_tables

Revision ID: 4f2a9c1d7e03
Revises:
Create Date: 2026-10-17 09:12:31.208114

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f2a9c1d7e03'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'buckets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('region', sa.String(length=100), nullable=True),
        sa.Column('marked_for_deletion', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('last_accessible_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('access_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_buckets_name'), 'buckets', ['name'], unique=True)
    op.create_index(op.f('ix_buckets_marked_for_deletion'), 'buckets', ['marked_for_deletion'], unique=False)
    op.create_index(op.f('ix_buckets_last_accessible_at'), 'buckets', ['last_accessible_at'], unique=False)

    op.create_table(
        'catalog_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bucket_id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=1024), nullable=False),
        sa.Column('size', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
        sa.Column('last_modified', sa.DateTime(timezone=True), nullable=True),
        sa.Column('etag', sa.String(length=255), nullable=True),
        sa.Column('storage_class', sa.String(length=50), nullable=True),
        sa.Column('is_folder', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('prefix', sa.String(length=1024), nullable=True),
        sa.Column('marked_for_deletion', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['bucket_id'], ['buckets.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bucket_id', 'key', name='uq_catalog_entries_bucket_key'),
    )
    op.create_index('ix_catalog_entries_bucket_prefix_folder', 'catalog_entries', ['bucket_id', 'prefix', 'is_folder'], unique=False)
    op.create_index('ix_catalog_entries_bucket_marked', 'catalog_entries', ['bucket_id', 'marked_for_deletion'], unique=False)

    op.create_table(
        'scan_jobs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bucket_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('objects_scanned', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('objects_created', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('objects_updated', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('objects_deleted', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('buckets_validated', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('buckets_marked_inaccessible', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('buckets_cleaned_up', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('bucket_validation_errors', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['bucket_id'], ['buckets.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_scan_jobs_bucket_id'), 'scan_jobs', ['bucket_id'], unique=False)
    op.create_index(op.f('ix_scan_jobs_status'), 'scan_jobs', ['status'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_scan_jobs_status'), table_name='scan_jobs')
    op.drop_index(op.f('ix_scan_jobs_bucket_id'), table_name='scan_jobs')
    op.drop_table('scan_jobs')
    op.drop_index('ix_catalog_entries_bucket_marked', table_name='catalog_entries')
    op.drop_index('ix_catalog_entries_bucket_prefix_folder', table_name='catalog_entries')
    op.drop_table('catalog_entries')
    op.drop_index(op.f('ix_buckets_last_accessible_at'), table_name='buckets')
    op.drop_index(op.f('ix_buckets_marked_for_deletion'), table_name='buckets')
    op.drop_index(op.f('ix_buckets_name'), table_name='buckets')
    op.drop_table('buckets')
