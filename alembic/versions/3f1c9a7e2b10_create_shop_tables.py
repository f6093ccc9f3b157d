"""create_shop_tables

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

WORKFLOW_STATES = ('PENDING', 'PROCESSING')

order_status_enum = sa.Enum(
    'PENDING', 'PROCESSING', 'SHIPPED', 'DELIVERED', 'CANCELLED',
    name='shop_order_status_enum',
)
payment_status_enum = sa.Enum(
    'PENDING', 'PROCESSING', 'PAID', 'FAILED', 'REFUNDED',
    name='shop_payment_status_enum',
)
shipped_to_us_status_enum = sa.Enum(
    *WORKFLOW_STATES, 'COMPLETE', name='shop_shipped_to_us_status_enum'
)
shipped_to_bd_status_enum = sa.Enum(
    *WORKFLOW_STATES, 'COMPLETE', name='shop_shipped_to_bd_status_enum'
)
domestic_fulfillment_status_enum = sa.Enum(
    *WORKFLOW_STATES, 'PICKUP', 'DELIVERY', name='shop_domestic_fulfillment_status_enum'
)
delivered_status_enum = sa.Enum(
    *WORKFLOW_STATES, 'PICKUP_COMPLETE', 'DELIVERY_COMPLETE',
    name='shop_delivered_status_enum',
)
admin_role_enum = sa.Enum(
    'SUPER_ADMIN', 'ADMIN', 'MODERATOR', name='shop_admin_role_enum'
)

ALL_ENUMS = (
    order_status_enum,
    payment_status_enum,
    shipped_to_us_status_enum,
    shipped_to_bd_status_enum,
    domestic_fulfillment_status_enum,
    delivered_status_enum,
    admin_role_enum,
)


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable)


def upgrade() -> None:
    """Upgrade schema - Create customer, order and admin tables."""

    # Create shop_users table
    op.create_table(
        'shop_users',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('is_guest', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create shop_addresses table
    op.create_table(
        'shop_addresses',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('street1', sa.String(length=255), nullable=False),
        sa.Column('street2', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=100), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=False),
        sa.Column('country', sa.String(length=100), server_default='Bangladesh', nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('is_default', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['shop_users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create shop_orders table
    op.create_table(
        'shop_orders',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_number', sa.Integer(), nullable=False),
        sa.Column('user_id', UUID(as_uuid=True), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=50), nullable=True),
        sa.Column('items', JSONB(), nullable=False),
        _money('product_cost_bdt'),
        _money('service_charge_bdt'),
        _money('shipping_cost_bdt'),
        _money('tax_bdt'),
        _money('total_amount_bdt'),
        _money('product_cost_usd'),
        _money('service_charge_usd'),
        _money('shipping_cost_usd'),
        _money('tax_usd'),
        _money('total_amount_usd'),
        sa.Column('exchange_rate', sa.Numeric(10, 4), nullable=True),
        sa.Column('final_pricing_updated', sa.Boolean(), server_default='false', nullable=False),
        _money('final_product_cost_bdt', nullable=True),
        _money('final_service_charge_bdt', nullable=True),
        _money('final_shipping_cost_bdt', nullable=True),
        _money('final_shipping_only_bdt', nullable=True),
        _money('final_additional_fees_bdt', nullable=True),
        _money('final_tax_bdt', nullable=True),
        _money('final_total_amount_bdt', nullable=True),
        _money('final_product_cost_usd', nullable=True),
        _money('final_service_charge_usd', nullable=True),
        _money('final_shipping_cost_usd', nullable=True),
        _money('final_shipping_only_usd', nullable=True),
        _money('final_additional_fees_usd', nullable=True),
        _money('final_tax_usd', nullable=True),
        _money('final_total_amount_usd', nullable=True),
        sa.Column('fee_description', sa.Text(), nullable=True),
        sa.Column('final_items', JSONB(), nullable=True),
        sa.Column('status', order_status_enum, server_default='PENDING', nullable=False),
        sa.Column('payment_status', payment_status_enum, server_default='PENDING', nullable=False),
        sa.Column('shipped_to_us_status', shipped_to_us_status_enum, server_default='PENDING', nullable=False),
        sa.Column('shipped_to_bd_status', shipped_to_bd_status_enum, server_default='PENDING', nullable=False),
        sa.Column('domestic_fulfillment_status', domestic_fulfillment_status_enum, server_default='PENDING', nullable=False),
        sa.Column('delivered_status', delivered_status_enum, server_default='PENDING', nullable=False),
        sa.Column('shipping_address', JSONB(), nullable=True),
        sa.Column('stripe_payment_intent_id', sa.String(length=255), nullable=True),
        sa.Column('refund_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('warehouse_location', sa.String(length=255), nullable=True),
        _money('home_delivery_fee', nullable=True),
        sa.Column('pickup_address', sa.Text(), nullable=True),
        sa.Column('delivery_options_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pickup_details', JSONB(), nullable=True),
        sa.Column('notes', JSONB(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['shop_users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create shop_admins table
    op.create_table(
        'shop_admins',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('role', admin_role_enum, server_default='ADMIN', nullable=False),
        sa.Column('permissions', JSONB(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('login_attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('locked_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_ip', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create shop_admin_sessions table
    op.create_table(
        'shop_admin_sessions',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('admin_id', UUID(as_uuid=True), nullable=False),
        sa.Column('token', sa.Text(), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['admin_id'], ['shop_admins.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token')
    )

    # Create shop_admin_audit_logs table
    op.create_table(
        'shop_admin_audit_logs',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('admin_id', UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=64), nullable=True),
        sa.Column('resource_id', sa.String(length=64), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('details', JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['admin_id'], ['shop_admins.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )

    # Create indexes
    op.create_index('ix_shop_users_email', 'shop_users', ['email'], unique=True)
    op.create_index('ix_shop_addresses_user_id', 'shop_addresses', ['user_id'])
    op.create_index('ix_shop_orders_order_number', 'shop_orders', ['order_number'], unique=True)
    op.create_index('ix_shop_orders_user_id', 'shop_orders', ['user_id'])
    op.create_index('ix_shop_orders_stripe_payment_intent_id', 'shop_orders', ['stripe_payment_intent_id'])
    op.create_index('ix_shop_admins_username', 'shop_admins', ['username'], unique=True)
    op.create_index('ix_shop_admins_email', 'shop_admins', ['email'], unique=True)
    op.create_index('ix_shop_admin_sessions_admin_id', 'shop_admin_sessions', ['admin_id'])
    op.create_index('ix_shop_admin_audit_logs_admin_id', 'shop_admin_audit_logs', ['admin_id'])
    op.create_index('ix_shop_admin_audit_logs_action', 'shop_admin_audit_logs', ['action'])


def downgrade() -> None:
    """Downgrade schema - Remove customer, order and admin tables."""

    # Drop indexes
    op.drop_index('ix_shop_admin_audit_logs_action', table_name='shop_admin_audit_logs')
    op.drop_index('ix_shop_admin_audit_logs_admin_id', table_name='shop_admin_audit_logs')
    op.drop_index('ix_shop_admin_sessions_admin_id', table_name='shop_admin_sessions')
    op.drop_index('ix_shop_admins_email', table_name='shop_admins')
    op.drop_index('ix_shop_admins_username', table_name='shop_admins')
    op.drop_index('ix_shop_orders_stripe_payment_intent_id', table_name='shop_orders')
    op.drop_index('ix_shop_orders_user_id', table_name='shop_orders')
    op.drop_index('ix_shop_orders_order_number', table_name='shop_orders')
    op.drop_index('ix_shop_addresses_user_id', table_name='shop_addresses')
    op.drop_index('ix_shop_users_email', table_name='shop_users')

    # Drop tables
    op.drop_table('shop_admin_audit_logs')
    op.drop_table('shop_admin_sessions')
    op.drop_table('shop_admins')
    op.drop_table('shop_orders')
    op.drop_table('shop_addresses')
    op.drop_table('shop_users')

    # Drop enum types
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.drop(bind, checkfirst=True)
