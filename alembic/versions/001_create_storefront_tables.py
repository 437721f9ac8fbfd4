"""Create storefront tables

Revision ID: 001_storefront
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers
revision = '001_storefront'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create catalog, order and user tables"""

    # ====================
    # USERS TABLE
    # ====================
    op.create_table(
        'users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(30), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('id_number', sa.String(50), nullable=False),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('is_admin', sa.Boolean, server_default=sa.false(), nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('id_number', name='uq_users_id_number'),
    )

    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # ====================
    # PLATES TABLE
    # ====================
    op.create_table(
        'plates',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('plate_type', sa.String(30), nullable=False, comment='special, standard_custom, prestige'),
        sa.Column('text', sa.String(16), nullable=False, comment='Normalized (uppercase) plate text'),
        sa.Column('price', sa.Integer, nullable=False, comment='Unit price in KES'),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('background_index', sa.Integer, nullable=True),
        sa.Column('is_available', sa.Boolean, server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        # Two orders can never reserve the same text
        sa.UniqueConstraint('text', name='uq_plates_text'),
    )

    op.create_index('ix_plates_type_created', 'plates', ['plate_type', 'created_at'])

    # ====================
    # ORDERS TABLE
    # ====================
    op.create_table(
        'orders',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(30), server_default='pending', nullable=False),
        sa.Column('shipping_method', sa.String(20), server_default='free', nullable=False),
        sa.Column('shipping_cost', sa.Integer, server_default='0', nullable=False),
        sa.Column('total_amount', sa.Integer, server_default='0', nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=True),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('phone_number', sa.String(30), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_index('ix_orders_owner_id', 'orders', ['owner_id'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])
    op.create_index('ix_order_owner_created', 'orders', ['owner_id', 'created_at'])
    op.create_index('ix_order_status_created', 'orders', ['status', 'created_at'])

    # ====================
    # ORDER ITEMS TABLE
    # ====================
    op.create_table(
        'order_items',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plate_id', UUID(as_uuid=True), sa.ForeignKey('plates.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('plate_text', sa.String(16), nullable=False),
        sa.Column('plate_type', sa.String(30), nullable=False),
        sa.Column('background_index', sa.Integer, nullable=True),
        sa.Column('quantity', sa.Integer, server_default='1', nullable=False),
        sa.Column('unit_price', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('plate_id', name='uq_order_items_plate'),
        sa.CheckConstraint('quantity >= 1', name='ck_order_items_quantity_positive'),
    )

    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_plate_text', 'order_items', ['plate_text'])

    # ====================
    # ORDER STATUS HISTORY TABLE
    # ====================
    op.create_table(
        'order_status_history',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_status', sa.String(30), nullable=True),
        sa.Column('to_status', sa.String(30), nullable=False),
        sa.Column('changed_by', sa.String(64), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_index('ix_order_status_history_order_id', 'order_status_history', ['order_id'])


def downgrade():
    """Drop storefront tables"""
    op.drop_table('order_status_history')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('plates')
    op.drop_table('users')
