"""Initial schema: farms, users, flocks, daily records, marketplace, notifications

TENANCY:
1. farms is the tenant root; users carry at most one farm_id
2. chk_users_role_farm keeps admins/customers unbound and farm roles bound

INTEGRITY BACKSTOPS:
1. products/order_items/orders never hold negative quantities or amounts
2. uq_daily_records_flock_date_approved allows one approved, non-duplicate
   record per (flock_id, record_date); pending_review duplicates are exempt

Revision ID: fo001_initial
Revises:
Create Date: 2026-10-12
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'fo001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    # ==========================================================================
    # STEP 1: Tenants and users
    # ==========================================================================
    op.create_table('farms',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=64), nullable=True),
        sa.Column('specialization', sa.String(length=32), nullable=False, server_default='layers'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_farms_status', 'farms', ['status'])

    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=120), nullable=True),
        sa.Column('last_name', sa.String(length=120), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='customer'),
        sa.Column('farm_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.CheckConstraint(
            "(role IN ('admin', 'customer') AND farm_id IS NULL) OR "
            "(role IN ('farm_owner', 'manager', 'staff') AND farm_id IS NOT NULL)",
            name='chk_users_role_farm',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_farm_id', 'users', ['farm_id'])

    # ==========================================================================
    # STEP 2: Flocks and daily records
    # ==========================================================================
    op.create_table('flocks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('farm_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('breed', sa.String(length=120), nullable=True),
        sa.Column('initial_count', sa.Integer(), nullable=False),
        sa.Column('current_count', sa.Integer(), nullable=False),
        sa.Column('hatch_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='brooding'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('initial_count >= 0 AND current_count >= 0', name='chk_flocks_counts'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_flocks_farm_id', 'flocks', ['farm_id'])

    op.create_table('daily_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('flock_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('record_date', sa.Date(), nullable=False),
        sa.Column('eggs_collected', sa.Integer(), nullable=True),
        sa.Column('broken_eggs', sa.Integer(), nullable=True),
        sa.Column('crates_produced', sa.Integer(), nullable=True),
        sa.Column('mortality_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mortality_reason', sa.Text(), nullable=True),
        sa.Column('feed_consumed', sa.Numeric(10, 2), nullable=True),
        sa.Column('feed_type', sa.String(length=64), nullable=True),
        sa.Column('temperature', sa.Numeric(5, 2), nullable=True),
        sa.Column('lighting_hours', sa.Numeric(4, 2), nullable=True),
        sa.Column('average_weight', sa.Numeric(6, 2), nullable=True),
        sa.Column('sample_size', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('review_status', sa.String(length=16), nullable=False, server_default='approved'),
        sa.Column('is_duplicate', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('duplicate_of_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['flock_id'], ['flocks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['duplicate_of_id'], ['daily_records.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'eggs_collected >= 0 AND broken_eggs >= 0 AND crates_produced >= 0 AND mortality_count >= 0',
            name='chk_daily_records_nonneg',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_daily_records_flock_id', 'daily_records', ['flock_id'])
    op.create_index('ix_daily_records_user_id', 'daily_records', ['user_id'])
    op.create_index('ix_daily_records_actor_flock_date', 'daily_records', ['user_id', 'flock_id', 'record_date'])
    op.create_index(
        'uq_daily_records_flock_date_approved',
        'daily_records',
        ['flock_id', 'record_date'],
        unique=True,
        sqlite_where=sa.text("review_status = 'approved' AND is_duplicate = 0"),
        postgresql_where=sa.text("review_status = 'approved' AND is_duplicate = false"),
    )

    # ==========================================================================
    # STEP 3: Marketplace
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('customer_type', sa.String(length=16), nullable=False, server_default='retail'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sqlite_autoincrement=True,
    )

    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('farm_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False, server_default='eggs'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('unit', sa.String(length=32), nullable=False, server_default='crates'),
        sa.Column('current_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('current_price >= 0 AND stock_quantity >= 0', name='chk_products_nonneg'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_farm_id', 'products', ['farm_id'])
    op.create_index('ix_products_farm_available', 'products', ['farm_id', 'is_available'])

    op.create_table('orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_number', sa.String(length=64), nullable=False),
        sa.Column('farm_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('required_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('paid_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('delivery_method', sa.String(length=16), nullable=False),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number'),
        sa.CheckConstraint(
            'total_amount >= 0 AND paid_amount >= 0 AND paid_amount <= total_amount',
            name='chk_orders_amounts',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_orders_farm_id', 'orders', ['farm_id'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'quantity > 0 AND unit_price >= 0 AND total_price >= 0',
            name='chk_order_items_nonneg',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    # ==========================================================================
    # STEP 4: Notifications
    # ==========================================================================
    op.create_table('notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('recipient_user_id', sa.Integer(), nullable=False),
        sa.Column('farm_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['recipient_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['farm_id'], ['farms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_notifications_farm_id', 'notifications', ['farm_id'])
    op.create_index('ix_notifications_recipient_created', 'notifications', ['recipient_user_id', 'created_at'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('products')
    op.drop_table('customers')
    op.drop_index('uq_daily_records_flock_date_approved', table_name='daily_records')
    op.drop_table('daily_records')
    op.drop_table('flocks')
    op.drop_table('users')
    op.drop_table('farms')
