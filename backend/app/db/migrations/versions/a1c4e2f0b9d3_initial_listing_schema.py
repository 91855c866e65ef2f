"""initial listing schema

Revision ID: a1c4e2f0b9d3
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'a1c4e2f0b9d3'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=True),
        sa.Column('settings', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_organizations'),
    )

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), server_default=sa.text("'USER'"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='fk_users_organization_id_organizations'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'connectors',
        sa.Column('id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=50), nullable=False),
        sa.Column('shop_domain', sa.String(length=255), nullable=False),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('last_sync', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_connectors'),
    )
    op.create_index('idx_connectors_shop_domain', 'connectors', ['shop_domain'])

    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('connector_id', sa.String(length=255), nullable=True),
        sa.Column('external_id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('compare_at_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('currency', sa.String(length=3), server_default=sa.text("'USD'"), nullable=False),
        sa.Column('sku', sa.String(length=255), nullable=True),
        sa.Column('gtin', sa.String(length=255), nullable=True),
        sa.Column('brand', sa.String(length=255), nullable=True),
        sa.Column('category', sa.String(length=255), nullable=True),
        sa.Column('images', postgresql.ARRAY(sa.Text()), server_default=sa.text("'{}'"), nullable=False),
        sa.Column('variants', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('shipping', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('custom_labels', postgresql.ARRAY(sa.Text()), server_default=sa.text("'{}'"), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('status', sa.String(length=50), server_default=sa.text("'ACTIVE'"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['connector_id'], ['connectors.id'], name='fk_products_connector_id_connectors'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.UniqueConstraint('connector_id', 'external_id', name='uq_products_connector_id_external_id'),
    )
    op.create_index('ix_products_connector_id', 'products', ['connector_id'])
    op.create_index('idx_products_status', 'products', ['status', 'updated_at'])

    op.create_table(
        'inventory_levels',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', sa.Text(), nullable=False),     # 'unknown' 也能存
        sa.Column('connector_id', sa.String(length=255), nullable=False),
        sa.Column('inventory_item_id', sa.String(length=255), nullable=False),
        sa.Column('location_id', sa.String(length=255), nullable=False),
        sa.Column('available_quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('committed_quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('incoming_quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('on_hand_quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['connector_id'], ['connectors.id'], name='fk_inventory_levels_connector_id_connectors'),
        sa.PrimaryKeyConstraint('id', name='pk_inventory_levels'),
        sa.UniqueConstraint(
            'connector_id', 'inventory_item_id', 'location_id',
            name='uq_inventory_levels_connector_id_inventory_item_id_location_id',
        ),
    )
    op.create_index('ix_inventory_levels_product_id', 'inventory_levels', ['product_id'])

    op.create_table(
        'channels',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('config', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('credentials', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=50), server_default=sa.text("'ACTIVE'"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_channels'),
    )

    op.create_table(
        'feed_variants',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('config', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('transformation', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=50), server_default=sa.text("'ACTIVE'"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_feed_variants_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_feed_variants'),
    )
    op.create_index('ix_feed_variants_product_id', 'feed_variants', ['product_id'])

    op.create_table(
        'issues',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('connector_id', sa.String(length=255), nullable=True),
        sa.Column('type', sa.String(length=100), nullable=False),
        sa.Column('severity', sa.String(length=20), server_default=sa.text("'WARNING'"), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('details', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', sa.String(length=50), server_default=sa.text("'OPEN'"), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_issues_product_id_products'),
        sa.ForeignKeyConstraint(['connector_id'], ['connectors.id'], name='fk_issues_connector_id_connectors'),
        sa.PrimaryKeyConstraint('id', name='pk_issues'),
    )
    op.create_index('ix_issues_product_id', 'issues', ['product_id'])

    op.create_table(
        'optimization_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('optimization_type', sa.String(length=32), nullable=False),
        sa.Column('original_value', sa.Text(), nullable=True),
        sa.Column('optimized_value', sa.Text(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('improvement', sa.Float(), nullable=True),
        sa.Column('model', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=32), server_default=sa.text("'completed'"), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_optimization_records'),
    )
    op.create_index('idx_optimization_records_product', 'optimization_records', ['product_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_optimization_records_product', table_name='optimization_records')
    op.drop_table('optimization_records')
    op.drop_index('ix_issues_product_id', table_name='issues')
    op.drop_table('issues')
    op.drop_index('ix_feed_variants_product_id', table_name='feed_variants')
    op.drop_table('feed_variants')
    op.drop_table('channels')
    op.drop_index('ix_inventory_levels_product_id', table_name='inventory_levels')
    op.drop_table('inventory_levels')
    op.drop_index('idx_products_status', table_name='products')
    op.drop_index('ix_products_connector_id', table_name='products')
    op.drop_table('products')
    op.drop_index('idx_connectors_shop_domain', table_name='connectors')
    op.drop_table('connectors')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('organizations')
