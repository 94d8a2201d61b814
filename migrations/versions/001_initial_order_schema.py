"""Initial order schema

Revision ID: 001_initial_order_schema
Revises:
Create Date: 2026-10-19

Creates:
- clients, manufacturers, users, products
- orders (with the sample sub-record), order_products, order_items
- order_media, notifications, audit_log, system_config
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_order_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    """Create all OrderHub tables."""
    # ========================================================================
    # PARTIES AND USERS
    # ========================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('custom_margin_percentage', sa.Numeric(6, 2), nullable=True),
        sa.Column('custom_sample_margin_percentage', sa.Numeric(6, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_clients_id', 'clients', ['id'])
    op.create_index('ix_clients_email', 'clients', ['email'])

    op.create_table(
        'manufacturers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_manufacturers_id', 'manufacturers', ['id'])
    op.create_index('ix_manufacturers_email', 'manufacturers', ['email'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('role', sa.String(30), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('manufacturer_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['manufacturer_id'], ['manufacturers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_client_id', 'users', ['client_id'])
    op.create_index('ix_users_manufacturer_id', 'users', ['manufacturer_id'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(50), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku')
    )
    op.create_index('ix_products_id', 'products', ['id'])

    # ========================================================================
    # ORDERS
    # ========================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('order_name', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='draft'),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('manufacturer_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('sample_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sample_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('sample_routed_to', sa.String(20), nullable=False, server_default='admin'),
        sa.Column('sample_routed_at', sa.DateTime(), nullable=True),
        sa.Column('sample_routed_by', sa.Integer(), nullable=True),
        sa.Column('sample_fee', sa.Numeric(10, 2), nullable=True),
        sa.Column('sample_eta', sa.Date(), nullable=True),
        sa.Column('sample_notes', sa.Text(), nullable=True),
        sa.Column('sample_tracking_number', sa.String(100), nullable=True),
        sa.Column('sample_carrier', sa.String(100), nullable=True),
        sa.Column('sample_shipped_date', sa.Date(), nullable=True),
        sa.Column('sample_approved_at', sa.DateTime(), nullable=True),
        sa.Column('sample_approved_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='NO ACTION'),
        sa.ForeignKeyConstraint(['manufacturer_id'], ['manufacturers.id'], ondelete='NO ACTION'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='NO ACTION'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_client_id', 'orders', ['client_id'])
    op.create_index('ix_orders_manufacturer_id', 'orders', ['manufacturer_id'])
    op.create_index('ix_orders_created_by', 'orders', ['created_by'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table(
        'order_products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('sequence', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('product_order_number', sa.String(60), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sample_notes', sa.Text(), nullable=True),
        sa.Column('routed_to', sa.String(20), nullable=False, server_default='admin'),
        sa.Column('routed_at', sa.DateTime(), nullable=True),
        sa.Column('routed_by', sa.Integer(), nullable=True),
        sa.Column('product_status', sa.String(40), nullable=False, server_default='pending'),
        sa.Column('question_for_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('question_text', sa.Text(), nullable=True),
        sa.Column('product_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('sample_fee', sa.Numeric(10, 2), nullable=True),
        sa.Column('shipping_air_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('shipping_boat_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('selected_shipping_method', sa.String(10), nullable=True),
        sa.Column('production_start_date', sa.Date(), nullable=True),
        sa.Column('production_days', sa.Integer(), nullable=True),
        sa.Column('tracking_number', sa.String(100), nullable=True),
        sa.Column('shipping_carrier', sa.String(100), nullable=True),
        sa.Column('shipped_date', sa.Date(), nullable=True),
        sa.Column('client_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('client_approved_at', sa.DateTime(), nullable=True),
        sa.Column('client_approved_by', sa.Integer(), nullable=True),
        sa.Column('client_notes', sa.Text(), nullable=True),
        sa.Column('manufacturer_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='NO ACTION'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_products_id', 'order_products', ['id'])
    op.create_index('ix_order_products_order_id', 'order_products', ['order_id'])
    op.create_index('ix_order_products_product_id', 'order_products', ['product_id'])
    op.create_index('ix_order_products_product_order_number', 'order_products', ['product_order_number'])
    op.create_index('ix_order_products_routed_to', 'order_products', ['routed_to'])
    op.create_index('ix_order_products_product_status', 'order_products', ['product_status'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_product_id', sa.Integer(), nullable=False),
        sa.Column('variant_combo', sa.String(255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('admin_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('manufacturer_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['order_product_id'], ['order_products.id'], ondelete='NO ACTION'),
        sa.CheckConstraint('quantity >= 0', name='ck_order_items_quantity_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_id', 'order_items', ['id'])
    op.create_index('ix_order_items_order_product_id', 'order_items', ['order_product_id'])

    # ========================================================================
    # DEPENDENT RECORDS
    # ========================================================================
    op.create_table(
        'order_media',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('order_product_id', sa.Integer(), nullable=True),
        sa.Column('is_sample', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('kind', sa.String(20), nullable=False, server_default='image'),
        sa.Column('file_url', sa.String(1000), nullable=False),
        sa.Column('original_filename', sa.String(255), nullable=True),
        sa.Column('content_type', sa.String(100), nullable=True),
        sa.Column('size_bytes', sa.Integer(), nullable=True),
        sa.Column('uploaded_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='NO ACTION'),
        sa.ForeignKeyConstraint(['order_product_id'], ['order_products.id'], ondelete='NO ACTION'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_media_id', 'order_media', ['id'])
    op.create_index('ix_order_media_order_id', 'order_media', ['order_id'])
    op.create_index('ix_order_media_order_product_id', 'order_media', ['order_product_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('order_product_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='NO ACTION'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='NO ACTION'),
        sa.ForeignKeyConstraint(['order_product_id'], ['order_products.id'], ondelete='NO ACTION'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_order_id', 'notifications', ['order_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('user_name', sa.String(255), nullable=True),
        sa.Column('user_role', sa.String(30), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('target_type', sa.String(30), nullable=False),
        sa.Column('target_id', sa.String(50), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('old_value', sa.Text(), nullable=True),
        sa.Column('new_value', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='NO ACTION'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])
    op.create_index('ix_audit_log_user_id', 'audit_log', ['user_id'])
    op.create_index('ix_audit_log_action', 'audit_log', ['action'])
    op.create_index('ix_audit_log_target_id', 'audit_log', ['target_id'])
    op.create_index('ix_audit_log_order_id', 'audit_log', ['order_id'])
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'])

    op.create_table(
        'system_config',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('config_key', sa.String(100), nullable=False),
        sa.Column('config_value', sa.String(255), nullable=True),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_system_config_id', 'system_config', ['id'])
    op.create_index('ix_system_config_config_key', 'system_config', ['config_key'], unique=True)


def downgrade():
    """Drop all OrderHub tables."""
    op.drop_table('system_config')
    op.drop_table('audit_log')
    op.drop_table('notifications')
    op.drop_table('order_media')
    op.drop_table('order_items')
    op.drop_table('order_products')
    op.drop_table('orders')
    op.drop_table('products')
    op.drop_table('users')
    op.drop_table('manufacturers')
    op.drop_table('clients')
