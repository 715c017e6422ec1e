"""Add stock returns, returned quantities and the damaged stock counter

Revision ID: 002
Revises: 001
Create Date: 2025-03-11 14:30:00.000000

"""
import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table('stock_levels') as batch:
        batch.add_column(
            sa.Column('damaged_stock', sa.Integer(), nullable=False, server_default=sa.text('0'))
        )
        batch.create_check_constraint(
            'ck_stock_levels_damaged_non_negative',
            'damaged_stock >= 0',
        )

    with op.batch_alter_table('spare_part_requests') as batch:
        batch.add_column(
            sa.Column('returned_quantity', sa.Integer(), nullable=False, server_default=sa.text('0'))
        )
        batch.create_check_constraint(
            'ck_spare_part_requests_returned_non_negative',
            'returned_quantity >= 0',
        )

    op.create_table('stock_returns',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('request_id', sa.Integer(), nullable=False),
    sa.Column('part_id', sa.Integer(), nullable=False),
    sa.Column('store_id', sa.Integer(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('condition', sa.Enum('good', 'damaged', name='stock_return_condition', native_enum=False), nullable=False),
    sa.Column('returned_by', sa.String(length=64), nullable=False),
    sa.Column('returned_at', sa.DateTime(), nullable=False),
    sa.Column('reason', sa.Text(), nullable=True),
    sa.CheckConstraint('quantity > 0', name='ck_stock_returns_quantity_positive'),
    sa.ForeignKeyConstraint(['request_id'], ['spare_part_requests.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['part_id'], ['spare_parts.id'], ),
    sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_returns_request_id', 'stock_returns', ['request_id'])


def downgrade() -> None:
    op.drop_index('ix_stock_returns_request_id', table_name='stock_returns')
    op.drop_table('stock_returns')

    with op.batch_alter_table('spare_part_requests') as batch:
        batch.drop_constraint('ck_spare_part_requests_returned_non_negative', type_='check')
        batch.drop_column('returned_quantity')

    with op.batch_alter_table('stock_levels') as batch:
        batch.drop_constraint('ck_stock_levels_damaged_non_negative', type_='check')
        batch.drop_column('damaged_stock')
