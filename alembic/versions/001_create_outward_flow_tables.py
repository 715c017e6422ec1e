"""Create spare parts outward flow tables

Revision ID: 001
Revises:
Create Date: 2025-02-03 09:00:00.000000

"""
import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    # Master data needed by the workflow
    op.create_table('spare_parts',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('part_number', sa.String(length=64), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('category_id', sa.Integer(), nullable=True),
    sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('warranty_months', sa.Integer(), nullable=True),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('unit_price >= 0', name='ck_spare_parts_unit_price_non_negative'),
    sa.CheckConstraint('warranty_months IS NULL OR warranty_months >= 0', name='ck_spare_parts_warranty_months_non_negative'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('part_number')
    )
    op.create_index('ix_spare_parts_category_id', 'spare_parts', ['category_id'])

    op.create_table('stores',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('code', sa.String(length=32), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('code')
    )

    op.create_table('stock_levels',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('part_id', sa.Integer(), nullable=False),
    sa.Column('store_id', sa.Integer(), nullable=False),
    sa.Column('current_stock', sa.Integer(), nullable=False),
    sa.Column('reserved_stock', sa.Integer(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('current_stock >= 0', name='ck_stock_levels_current_non_negative'),
    sa.CheckConstraint('reserved_stock >= 0', name='ck_stock_levels_reserved_non_negative'),
    sa.CheckConstraint('reserved_stock <= current_stock', name='ck_stock_levels_reserved_within_current'),
    sa.ForeignKeyConstraint(['part_id'], ['spare_parts.id'], ),
    sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('part_id', 'store_id', name='uq_stock_levels_part_store')
    )

    op.create_table('technician_limits',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('technician_id', sa.String(length=64), nullable=False),
    sa.Column('scope', _enum('technician_limit_scope', 'part', 'category', 'total'), nullable=False),
    sa.Column('target_id', sa.Integer(), nullable=True),
    sa.Column('max_quantity_per_request', sa.Integer(), nullable=True),
    sa.Column('max_value_per_request', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('max_quantity_per_day', sa.Integer(), nullable=True),
    sa.Column('max_value_per_day', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('max_quantity_per_month', sa.Integer(), nullable=True),
    sa.Column('max_value_per_month', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('requires_approval', sa.Boolean(), nullable=False),
    sa.Column('auto_approve_below', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint(
        "(scope = 'total' AND target_id IS NULL) OR (scope != 'total' AND target_id IS NOT NULL)",
        name='ck_technician_limits_scope_target',
    ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_technician_limits_technician_id', 'technician_limits', ['technician_id'])

    # Workflow aggregate root
    op.create_table('spare_part_requests',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('service_request_id', sa.String(length=64), nullable=False),
    sa.Column('part_id', sa.Integer(), nullable=False),
    sa.Column('store_id', sa.Integer(), nullable=True),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('priority', _enum('spare_part_request_priority', 'low', 'medium', 'high', 'critical'), nullable=False),
    sa.Column('justification', sa.Text(), nullable=True),
    sa.Column('estimated_cost', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('issued_cost', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('actual_cost', sa.Numeric(precision=12, scale=2), nullable=True),
    sa.Column('status', _enum('spare_part_request_status', 'pending', 'approved', 'rejected', 'issued', 'installed', 'cancelled'), nullable=False),
    sa.Column('current_approval_level', sa.Integer(), nullable=False),
    sa.Column('required_approval_levels', sa.Integer(), nullable=False),
    sa.Column('limit_violation', sa.Text(), nullable=True),
    sa.Column('requested_by', sa.String(length=64), nullable=False),
    sa.Column('approved_by', sa.String(length=64), nullable=True),
    sa.Column('issued_by', sa.String(length=64), nullable=True),
    sa.Column('cancelled_by', sa.String(length=64), nullable=True),
    sa.Column('cancel_reason', sa.Text(), nullable=True),
    sa.Column('requested_at', sa.DateTime(), nullable=False),
    sa.Column('approved_at', sa.DateTime(), nullable=True),
    sa.Column('issued_at', sa.DateTime(), nullable=True),
    sa.Column('installed_at', sa.DateTime(), nullable=True),
    sa.Column('cancelled_at', sa.DateTime(), nullable=True),
    sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    sa.CheckConstraint('quantity > 0', name='ck_spare_part_requests_quantity_positive'),
    sa.CheckConstraint('estimated_cost >= 0', name='ck_spare_part_requests_estimated_cost_non_negative'),
    sa.CheckConstraint('current_approval_level >= 0', name='ck_spare_part_requests_level_non_negative'),
    sa.CheckConstraint('required_approval_levels >= 1', name='ck_spare_part_requests_required_levels_positive'),
    sa.CheckConstraint("(status = 'installed') OR (actual_cost IS NULL)", name='ck_spare_part_requests_actual_cost_after_install'),
    sa.ForeignKeyConstraint(['part_id'], ['spare_parts.id'], ),
    sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_spare_part_requests_service_request_id', 'spare_part_requests', ['service_request_id'])
    op.create_index('ix_spare_part_requests_part_id', 'spare_part_requests', ['part_id'])
    op.create_index('ix_spare_part_requests_status', 'spare_part_requests', ['status'])
    op.create_index('ix_spare_part_requests_requested_by', 'spare_part_requests', ['requested_by'])

    # Event trails referencing the request by id
    op.create_table('approval_history',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('request_id', sa.Integer(), nullable=False),
    sa.Column('level', sa.Integer(), nullable=False),
    sa.Column('approver_id', sa.String(length=64), nullable=True),
    sa.Column('decision', _enum('approval_decision', 'pending', 'approved', 'rejected', 'escalated'), nullable=False),
    sa.Column('comments', sa.Text(), nullable=True),
    sa.Column('request_value', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('assigned_at', sa.DateTime(), nullable=False),
    sa.Column('processed_at', sa.DateTime(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.CheckConstraint('level >= 1', name='ck_approval_history_level_positive'),
    sa.CheckConstraint("(NOT is_active) OR (decision = 'pending')", name='ck_approval_history_active_is_pending'),
    sa.ForeignKeyConstraint(['request_id'], ['spare_part_requests.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('request_id', 'level', name='uq_approval_history_request_level')
    )
    op.create_index('ix_approval_history_request_id', 'approval_history', ['request_id'])
    op.create_index('ix_approval_history_is_active', 'approval_history', ['is_active'])

    op.create_table('stock_reservations',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('request_id', sa.Integer(), nullable=False),
    sa.Column('part_id', sa.Integer(), nullable=False),
    sa.Column('store_id', sa.Integer(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('reserved_by', sa.String(length=64), nullable=False),
    sa.Column('reserved_at', sa.DateTime(), nullable=False),
    sa.Column('expires_at', sa.DateTime(), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('released_at', sa.DateTime(), nullable=True),
    sa.Column('release_reason', _enum('reservation_release_reason', 'manual', 'expired', 'cancelled', 'consumed'), nullable=True),
    sa.CheckConstraint('quantity > 0', name='ck_stock_reservations_quantity_positive'),
    sa.CheckConstraint('(is_active) OR (release_reason IS NOT NULL)', name='ck_stock_reservations_inactive_requires_reason'),
    sa.ForeignKeyConstraint(['request_id'], ['spare_part_requests.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['part_id'], ['spare_parts.id'], ),
    sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_stock_reservations_request_id', 'stock_reservations', ['request_id'])
    op.create_index('ix_stock_reservations_expires_at', 'stock_reservations', ['expires_at'])
    op.create_index('ix_stock_reservations_part_store_active', 'stock_reservations', ['part_id', 'store_id', 'is_active'])

    op.create_table('stock_issuances',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('reservation_id', sa.Integer(), nullable=False),
    sa.Column('request_id', sa.Integer(), nullable=False),
    sa.Column('part_id', sa.Integer(), nullable=False),
    sa.Column('store_id', sa.Integer(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('issued_by', sa.String(length=64), nullable=False),
    sa.Column('issued_at', sa.DateTime(), nullable=False),
    sa.CheckConstraint('quantity > 0', name='ck_stock_issuances_quantity_positive'),
    sa.ForeignKeyConstraint(['reservation_id'], ['stock_reservations.id'], ),
    sa.ForeignKeyConstraint(['request_id'], ['spare_part_requests.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['part_id'], ['spare_parts.id'], ),
    sa.ForeignKeyConstraint(['store_id'], ['stores.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('reservation_id')
    )
    op.create_index('ix_stock_issuances_request_id', 'stock_issuances', ['request_id'])

    op.create_table('installed_parts',
    sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
    sa.Column('request_id', sa.Integer(), nullable=False),
    sa.Column('quantity', sa.Integer(), nullable=False),
    sa.Column('unit_cost', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('service_cost', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('labor_cost', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('total_cost', sa.Numeric(precision=12, scale=2), nullable=False),
    sa.Column('installed_by', sa.String(length=64), nullable=False),
    sa.Column('installed_at', sa.DateTime(), nullable=False),
    sa.Column('warranty_start', sa.Date(), nullable=True),
    sa.Column('warranty_end', sa.Date(), nullable=True),
    sa.Column('mileage_at_installation', sa.Integer(), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.CheckConstraint('quantity > 0', name='ck_installed_parts_quantity_positive'),
    sa.CheckConstraint('unit_cost >= 0', name='ck_installed_parts_unit_cost_non_negative'),
    sa.CheckConstraint('service_cost >= 0', name='ck_installed_parts_service_cost_non_negative'),
    sa.CheckConstraint('labor_cost >= 0', name='ck_installed_parts_labor_cost_non_negative'),
    sa.CheckConstraint(
        '(warranty_end IS NULL) OR (warranty_start IS NULL) OR (warranty_end >= warranty_start)',
        name='ck_installed_parts_warranty_window',
    ),
    sa.ForeignKeyConstraint(['request_id'], ['spare_part_requests.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('request_id')
    )


def downgrade() -> None:
    op.drop_table('installed_parts')
    op.drop_table('stock_issuances')
    op.drop_table('stock_reservations')
    op.drop_table('approval_history')
    op.drop_table('spare_part_requests')
    op.drop_table('technician_limits')
    op.drop_table('stock_levels')
    op.drop_table('stores')
    op.drop_table('spare_parts')
