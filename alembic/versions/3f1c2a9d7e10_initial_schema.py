"""initial_schema

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-19 09:12:41.203118

"""
from alembic import op
import sqlalchemy as sa


revision = '3f1c2a9d7e10'
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum('ADMIN', 'CUSTOMER', name='userrole')
movement_type = sa.Enum('IN', 'OUT', 'ADJUSTMENT', name='movementtype')
order_status = sa.Enum('PENDING', 'PROCESSING', 'SHIPPED', 'DELIVERED', 'CANCELLED', name='orderstatus')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'product_categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_product_categories_id', 'product_categories', ['id'])
    op.create_index('ix_product_categories_name', 'product_categories', ['name'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sku', sa.String(length=100), nullable=True, unique=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('medium', sa.String(length=100), nullable=True),
        sa.Column('size', sa.String(length=100), nullable=True),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('featured', sa.Boolean(), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('product_categories.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
        sa.CheckConstraint('low_stock_threshold >= 0', name='ck_products_threshold_non_negative'),
    )
    op.create_index('ix_products_id', 'products', ['id'])
    op.create_index('ix_products_slug', 'products', ['slug'], unique=True)
    op.create_index('ix_products_category_id', 'products', ['category_id'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', movement_type, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=50), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('previous_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_stock_movements_quantity_positive'),
    )
    op.create_index('ix_stock_movements_id', 'stock_movements', ['id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('total', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', order_status, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_snapshot', sa.Numeric(10, 2), nullable=False),
    )
    op.create_index('ix_order_items_id', 'order_items', ['id'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'system_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        sa.Column('store_address', sa.String(length=500), nullable=True),
        sa.Column('store_phone', sa.String(length=50), nullable=True),
        sa.Column('store_email', sa.String(length=255), nullable=True),
        sa.Column('store_website', sa.String(length=255), nullable=True),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('enable_payment', sa.Boolean(), nullable=False),
        sa.Column('maintenance_mode', sa.Boolean(), nullable=False),
        sa.Column('logo_url', sa.String(length=500), nullable=True),
        sa.Column('primary_color', sa.String(length=20), nullable=True),
        sa.Column('secondary_color', sa.String(length=20), nullable=True),
        sa.Column('accent_color', sa.String(length=20), nullable=True),
        sa.Column('facebook_url', sa.String(length=255), nullable=True),
        sa.Column('twitter_url', sa.String(length=255), nullable=True),
        sa.Column('instagram_url', sa.String(length=255), nullable=True),
        sa.Column('support_phone', sa.String(length=50), nullable=True),
        sa.Column('privacy_policy_url', sa.String(length=255), nullable=True),
        sa.Column('terms_url', sa.String(length=255), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_system_settings_id', 'system_settings', ['id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('audit_data', sa.JSON(), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('system_settings')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('stock_movements')
    op.drop_table('products')
    op.drop_table('product_categories')
    op.drop_table('users')
    order_status.drop(op.get_bind(), checkfirst=True)
    movement_type.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
