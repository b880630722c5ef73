"""create boq extraction tables

Revision ID: 4f1c2a9d7e3b
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4f1c2a9d7e3b'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'material_categories',
        sa.Column('id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('code', sa.String(), nullable=False, comment='Short code, e.g. HV, CB-PW'),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_material_categories_code'),
    )

    op.create_table(
        'master_materials',
        sa.Column('id', sa.UUID(), nullable=False, server_default=sa.text('gen_random_uuid()')),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('category_id', sa.UUID(), nullable=True),
        sa.Column('unit', sa.String(), nullable=True),
        sa.Column('standard_supply_cost', sa.Float(), nullable=True),
        sa.Column('standard_install_cost', sa.Float(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['material_categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_master_materials_code', 'master_materials', ['code'])

    op.create_table(
        'extraction_jobs',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('document_name', sa.String(), nullable=True),
        sa.Column('source_type', sa.String(), nullable=False, server_default='text',
                  comment='text | google_sheet'),
        sa.Column('google_sheet_id', sa.String(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending',
                  comment='pending | processing | completed | failed'),
        sa.Column('started_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('total_items_extracted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('items_matched_to_catalog', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rate_only_items', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bills_found', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sections_found', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_extraction_jobs_status', 'extraction_jobs', ['status'])

    op.create_table(
        'extracted_items',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('job_id', sa.UUID(), nullable=False),
        sa.Column('row_number', sa.Integer(), nullable=False, comment='Global sequence across sheets'),
        sa.Column('bill_number', sa.Integer(), nullable=True),
        sa.Column('bill_name', sa.String(), nullable=True),
        sa.Column('section_code', sa.String(), nullable=True),
        sa.Column('section_name', sa.String(), nullable=True),
        sa.Column('item_code', sa.String(), nullable=True),
        sa.Column('item_description', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=True),
        sa.Column('unit', sa.String(), nullable=True),
        sa.Column('supply_rate', sa.Float(), nullable=True),
        sa.Column('install_rate', sa.Float(), nullable=True),
        sa.Column('total_rate', sa.Float(), nullable=True),
        sa.Column('amount', sa.Float(), nullable=True),
        sa.Column('supply_cost', sa.Float(), nullable=True),
        sa.Column('install_cost', sa.Float(), nullable=True),
        sa.Column('prime_cost', sa.Float(), nullable=True),
        sa.Column('profit_percentage', sa.Float(), nullable=True),
        sa.Column('is_rate_only', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('suggested_category_id', sa.UUID(), nullable=True),
        sa.Column('suggested_category_name', sa.String(), nullable=True),
        sa.Column('matched_material_id', sa.UUID(), nullable=True),
        sa.Column('match_confidence', sa.Float(), nullable=True),
        sa.Column('math_validated', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('raw_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('extraction_notes', sa.Text(), nullable=True),
        sa.Column('review_status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['extraction_jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['suggested_category_id'], ['material_categories.id']),
        sa.ForeignKeyConstraint(['matched_material_id'], ['master_materials.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_extracted_items_job_id', 'extracted_items', ['job_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_extracted_items_job_id', table_name='extracted_items')
    op.drop_table('extracted_items')
    op.drop_index('ix_extraction_jobs_status', table_name='extraction_jobs')
    op.drop_table('extraction_jobs')
    op.drop_index('ix_master_materials_code', table_name='master_materials')
    op.drop_table('master_materials')
    op.drop_table('material_categories')
