"""initial pos schema

Revision ID: 0001_initial_pos_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the TiendaPOS schema:
- profiles / team_members / team_invitations: tenants and their teams
- session_tokens: identity provider sign-in sessions
- products: tenant catalogue with stock
- cash_registers: per-operator drawer cycles (one OPEN per operator)
- sales / sale_items: append-only sale ledger with line snapshots
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_pos_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # profiles: operator profile; owners' profiles are tenant roots
    # ============================================================================
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('tax_id', sa.String(length=64), nullable=True),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='USD'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('is_super_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index('ix_profiles_status', 'profiles', ['status'])

    op.create_table(
        'team_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['owner_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_team_members_user'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_team_members_owner_id', 'team_members', ['owner_id'])
    op.create_index('ix_team_members_owner_status', 'team_members', ['owner_id', 'status'])

    op.create_table(
        'team_invitations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('owner_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['owner_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'email', name='uq_team_invitations_owner_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_team_invitations_email', 'team_invitations', ['email'])
    op.create_index('ix_team_invitations_owner_id', 'team_invitations', ['owner_id'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('operator_id', sa.String(length=64), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['operator_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_operator_id', 'session_tokens', ['operator_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_operator_active', 'session_tokens', ['operator_id', 'is_revoked'])

    # ============================================================================
    # products: tenant catalogue
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False, server_default='0'),  # Minor units
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('icon', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['tenant_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_tenant_id', 'products', ['tenant_id'])
    op.create_index('ix_products_tenant_name', 'products', ['tenant_id', 'name'])

    # ============================================================================
    # cash_registers: one OPEN row per operator, enforced by partial unique index
    # ============================================================================
    op.create_table(
        'cash_registers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('operator_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        sa.Column('opening_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('closing_amount', sa.Integer(), nullable=True),
        sa.Column('expected_amount', sa.Integer(), nullable=True),
        sa.Column('variance', sa.Integer(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['operator_id'], ['profiles.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cash_registers_operator_id', 'cash_registers', ['operator_id'])
    op.create_index('ix_cash_registers_status', 'cash_registers', ['status'])
    op.create_index('ix_cash_registers_operator_opened', 'cash_registers', ['operator_id', 'opened_at'])
    op.create_index(
        'uq_cash_registers_operator_open',
        'cash_registers',
        ['operator_id'],
        unique=True,
        sqlite_where=sa.text("status = 'OPEN'"),
        postgresql_where=sa.text("status = 'OPEN'"),
    )

    # ============================================================================
    # sales / sale_items: append-only ledger
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.String(length=64), nullable=False),
        sa.Column('operator_id', sa.String(length=64), nullable=False),
        sa.Column('register_id', sa.Integer(), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('tendered', sa.Integer(), nullable=True),
        sa.Column('change', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['tenant_id'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['operator_id'], ['profiles.id'], ),
        sa.ForeignKeyConstraint(['register_id'], ['cash_registers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_tenant_id', 'sales', ['tenant_id'])
    op.create_index('ix_sales_operator_id', 'sales', ['operator_id'])
    op.create_index('ix_sales_register_id', 'sales', ['register_id'])
    op.create_index('ix_sales_tenant_created', 'sales', ['tenant_id', 'created_at'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product_id', 'sale_items', ['product_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('sale_items')
    op.drop_table('sales')
    op.drop_table('cash_registers')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('team_invitations')
    op.drop_table('team_members')
    op.drop_table('profiles')
