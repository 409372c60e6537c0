"""purchases

Revision ID: 0002_purchases
Revises: 0001_initial_pos_schema
Create Date: 2026-10-19 00:00:00.000000

Adds supplier purchases:
- purchases: header with supplier and total
- purchase_items: line snapshots (product_id cleared when the product is deleted)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_purchases'
down_revision = '0001_initial_pos_schema'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('operator_id', sa.String(length=64), nullable=True),
        sa.Column('supplier_name', sa.String(length=255), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['tenant_id'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['operator_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchases_tenant_id', 'purchases', ['tenant_id'])
    op.create_index('ix_purchases_tenant_created', 'purchases', ['tenant_id', 'created_at'])

    op.create_table(
        'purchase_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('cost_price', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_items_purchase_id', 'purchase_items', ['purchase_id'])
    op.create_index('ix_purchase_items_product_id', 'purchase_items', ['product_id'])


def downgrade():
    op.drop_table('purchase_items')
    op.drop_table('purchases')
