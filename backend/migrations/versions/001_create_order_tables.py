"""
Alembic migration: Create catalog read tables, orders, items and payments.

Creates the outlet-scoped catalog tables read when pricing, the orders table
with its per-outlet daily order numbers, line items with modifier price
snapshots, and payments. Enum columns and positive quantities and amounts
are enforced in the database as well as in the services.

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_TYPE = postgresql.ENUM(
    'DINE_IN', 'TAKEAWAY', 'DELIVERY', 'CATERING',
    name='order_type', create_type=False,
)
ORDER_STATUS = postgresql.ENUM(
    'NEW', 'PREPARING', 'READY', 'COMPLETED', 'CANCELLED',
    name='order_status', create_type=False,
)
ORDER_ITEM_STATUS = postgresql.ENUM(
    'PENDING', 'PREPARING', 'READY',
    name='order_item_status', create_type=False,
)
CATERING_STATUS = postgresql.ENUM(
    'BOOKED', 'DP_PAID', 'SETTLED', 'CANCELLED',
    name='catering_status', create_type=False,
)
DISCOUNT_TYPE = postgresql.ENUM(
    'PERCENTAGE', 'FIXED_AMOUNT',
    name='discount_type', create_type=False,
)
KITCHEN_STATION = postgresql.ENUM(
    'GRILL', 'BEVERAGE', 'RICE', 'DESSERT',
    name='kitchen_station', create_type=False,
)
PAYMENT_METHOD = postgresql.ENUM(
    'CASH', 'QRIS', 'TRANSFER',
    name='payment_method', create_type=False,
)
PAYMENT_STATUS = postgresql.ENUM(
    'PENDING', 'COMPLETED', 'FAILED',
    name='payment_status', create_type=False,
)

ALL_ENUMS = (
    ORDER_TYPE,
    ORDER_STATUS,
    ORDER_ITEM_STATUS,
    CATERING_STATUS,
    DISCOUNT_TYPE,
    KITCHEN_STATION,
    PAYMENT_METHOD,
    PAYMENT_STATUS,
)


def _money() -> sa.Numeric:
    return sa.Numeric(precision=12, scale=2)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
        ),
    ]


def upgrade() -> None:
    """
    Upgrade database schema to add order and payment tables.
    """
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    # Catalog (read-only for the order core)
    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('outlet_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('base_price', _money(), nullable=False),
        sa.Column('station', KITCHEN_STATION, nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('base_price >= 0', name='ck_products_base_price_non_negative'),
        comment='Outlet catalog products (read-only for the order core)',
    )
    op.create_index('ix_products_outlet_id', 'products', ['outlet_id'])
    op.create_index('ix_products_outlet_active', 'products', ['outlet_id', 'is_active'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'product_id',
            sa.Uuid(),
            sa.ForeignKey('products.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_adjustment', _money(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    op.create_table(
        'product_modifiers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'product_id',
            sa.Uuid(),
            sa.ForeignKey('products.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', _money(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('price >= 0', name='ck_product_modifiers_price_non_negative'),
    )
    op.create_index('ix_product_modifiers_product_id', 'product_modifiers', ['product_id'])

    # Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('outlet_id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(length=20), nullable=False),
        sa.Column('business_date', sa.Date(), nullable=False),
        sa.Column('order_type', ORDER_TYPE, nullable=False),
        sa.Column('status', ORDER_STATUS, nullable=False, server_default='NEW'),
        sa.Column('table_number', sa.String(length=20), nullable=True),
        sa.Column('customer_id', sa.Uuid(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('subtotal', _money(), nullable=False),
        sa.Column('discount_type', DISCOUNT_TYPE, nullable=True),
        sa.Column('discount_value', _money(), nullable=True),
        sa.Column('discount_amount', _money(), nullable=False, server_default='0'),
        sa.Column('tax_amount', _money(), nullable=False, server_default='0'),
        sa.Column('total_amount', _money(), nullable=False),
        sa.Column('catering_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('catering_status', CATERING_STATUS, nullable=True),
        sa.Column('catering_dp_amount', _money(), nullable=True),
        sa.Column('delivery_platform', sa.String(length=50), nullable=True),
        sa.Column('delivery_address', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'outlet_id',
            'business_date',
            'order_number',
            name='uq_orders_outlet_day_number',
        ),
        sa.CheckConstraint('subtotal >= 0', name='ck_orders_subtotal_non_negative'),
        sa.CheckConstraint(
            'discount_amount >= 0',
            name='ck_orders_discount_amount_non_negative',
        ),
        sa.CheckConstraint('tax_amount >= 0', name='ck_orders_tax_amount_non_negative'),
        sa.CheckConstraint(
            'total_amount >= 0',
            name='ck_orders_total_amount_non_negative',
        ),
        comment='Outlet orders with pricing totals and lifecycle status',
    )
    op.create_index('ix_orders_outlet_created', 'orders', ['outlet_id', 'created_at'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_customer', 'orders', ['customer_id'])
    op.create_index('ix_orders_catering_status', 'orders', ['catering_status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'order_id',
            sa.Uuid(),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column(
            'variant_id',
            sa.Uuid(),
            sa.ForeignKey('product_variants.id'),
            nullable=True,
        ),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', _money(), nullable=False),
        sa.Column('discount_type', DISCOUNT_TYPE, nullable=True),
        sa.Column('discount_value', _money(), nullable=True),
        sa.Column('discount_amount', _money(), nullable=False, server_default='0'),
        sa.Column('subtotal', _money(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', ORDER_ITEM_STATUS, nullable=False, server_default='PENDING'),
        sa.Column('station', KITCHEN_STATION, nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sa.CheckConstraint(
            'discount_amount >= 0',
            name='ck_order_items_discount_amount_non_negative',
        ),
    )
    op.create_index('ix_order_items_order', 'order_items', ['order_id'])
    op.create_index('ix_order_items_status', 'order_items', ['status'])

    op.create_table(
        'order_item_modifiers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'order_item_id',
            sa.Uuid(),
            sa.ForeignKey('order_items.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'modifier_id',
            sa.Uuid(),
            sa.ForeignKey('product_modifiers.id'),
            nullable=False,
        ),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', _money(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'quantity > 0',
            name='ck_order_item_modifiers_quantity_positive',
        ),
    )
    op.create_index(
        'ix_order_item_modifiers_order_item_id',
        'order_item_modifiers',
        ['order_item_id'],
    )

    # Payments
    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column(
            'order_id',
            sa.Uuid(),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('payment_method', PAYMENT_METHOD, nullable=False),
        sa.Column('amount', _money(), nullable=False),
        sa.Column('status', PAYMENT_STATUS, nullable=False, server_default='COMPLETED'),
        sa.Column('reference_number', sa.String(length=100), nullable=True),
        sa.Column('amount_received', _money(), nullable=True),
        sa.Column('change_amount', _money(), nullable=True),
        sa.Column('processed_by', sa.Uuid(), nullable=False),
        sa.Column(
            'processed_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='ck_payments_amount_positive'),
        sa.CheckConstraint(
            'change_amount IS NULL OR change_amount >= 0',
            name='ck_payments_change_non_negative',
        ),
        comment='Payments applied to order balances',
    )
    op.create_index('ix_payments_order', 'payments', ['order_id'])
    op.create_index('ix_payments_method', 'payments', ['payment_method'])


def downgrade() -> None:
    """
    Downgrade database schema by dropping order and payment tables.
    """
    op.drop_table('payments')
    op.drop_table('order_item_modifiers')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('product_modifiers')
    op.drop_table('product_variants')
    op.drop_table('products')

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
