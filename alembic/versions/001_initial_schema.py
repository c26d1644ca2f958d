"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19

Creates all tables for the BizDesk application.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

ID = sa.String(36)
JSON = sa.JSON().with_variant(postgresql.JSONB, 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), default=sa.func.now()),
    ]


def _line_item_columns():
    return [
        sa.Column('id', ID, nullable=False),
        sa.Column('item_id', ID, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, default=1),
        sa.Column('unit_price', sa.Float(), nullable=False, default=0),
        sa.Column('total', sa.Float(), nullable=False, default=0),
        sa.Column('position', sa.Integer(), default=0),
    ]


def upgrade() -> None:
    # Organizations table
    op.create_table('organizations',
        sa.Column('id', ID, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('settings', JSON),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )

    # User profiles
    op.create_table('user_profiles',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255)),
        sa.Column('role', sa.String(100), default='user'),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('last_login', sa.DateTime()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.UniqueConstraint('email')
    )
    op.create_index('ix_user_profiles_organization', 'user_profiles', ['organization_id'])

    op.create_table('responsibles',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'])
    )

    # Catalog
    op.create_table('products',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100)),
        sa.Column('stock', sa.Integer(), nullable=False, default=0),
        sa.Column('min_stock', sa.Integer(), default=0),
        sa.Column('cost', sa.Float(), default=0),
        sa.Column('price', sa.Float(), default=0),
        sa.Column('supplier', sa.String(255)),
        sa.Column('batch', sa.String(100)),
        sa.Column('expiry_date', sa.Date()),
        sa.Column('image', sa.Text()),
        sa.Column('observation', sa.Text()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative')
    )
    op.create_index('ix_products_organization', 'products', ['organization_id'])
    op.create_index('ix_products_category', 'products', ['category'])

    op.create_table('services',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('category', sa.String(100)),
        sa.Column('description', sa.Text()),
        sa.Column('price', sa.Float(), default=0),
        sa.Column('cost', sa.Float(), default=0),
        sa.Column('estimated_hours', sa.Float(), default=0),
        sa.Column('active', sa.Boolean(), default=True),
        sa.Column('price_history', JSON),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'])
    )
    op.create_index('ix_services_organization', 'services', ['organization_id'])

    # Customers & orders
    op.create_table('customers',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.Text()),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'])
    )
    op.create_index('ix_customers_organization', 'customers', ['organization_id'])
    op.create_index('ix_customers_name', 'customers', ['name'])

    op.create_table('orders',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('customer_id', ID),
        sa.Column('budget_id', ID),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), default='completed'),
        sa.Column('subtotal', sa.Float(), default=0),
        sa.Column('discount_value', sa.Float(), default=0),
        sa.Column('discount_percent', sa.Float(), default=0),
        sa.Column('surcharge_value', sa.Float(), default=0),
        sa.Column('surcharge_percent', sa.Float(), default=0),
        sa.Column('total_value', sa.Float(), default=0),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'])
    )
    op.create_index('ix_orders_organization', 'orders', ['organization_id'])
    op.create_index('ix_orders_customer', 'orders', ['customer_id'])
    op.create_index('ix_orders_date', 'orders', ['date'])

    op.create_table('order_items',
        *_line_item_columns(),
        sa.Column('order_id', ID, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE')
    )

    # Budgets
    op.create_table('budgets',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('customer_id', ID),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255)),
        sa.Column('customer_phone', sa.String(50)),
        sa.Column('customer_address', sa.Text()),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('validity_date', sa.Date()),
        sa.Column('status', sa.String(20), default='draft'),
        sa.Column('discount', sa.Float(), default=0),
        sa.Column('total_value', sa.Float(), default=0),
        sa.Column('notes', sa.Text()),
        sa.Column('payment_method', sa.String(100)),
        sa.Column('payment_terms', sa.String(255)),
        sa.Column('warranty_notes', sa.Text()),
        sa.Column('responsible', sa.String(255)),
        sa.Column('signature', sa.Text()),
        sa.Column('order_id', ID),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'])
    )
    op.create_index('ix_budgets_organization', 'budgets', ['organization_id'])
    op.create_index('ix_budgets_status', 'budgets', ['status'])

    op.create_table('budget_items',
        *_line_item_columns(),
        sa.Column('budget_id', ID, nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['budget_id'], ['budgets.id'], ondelete='CASCADE')
    )

    # Agenda
    op.create_table('appointments',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('customer_id', ID),
        sa.Column('customer_name', sa.String(255)),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(5), nullable=False, default='09:00'),
        sa.Column('duration', sa.Integer(), default=60),
        sa.Column('status', sa.String(20), default='pending'),
        sa.Column('responsible', sa.String(255)),
        sa.Column('location', sa.String(500)),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'])
    )
    op.create_index('ix_appointments_organization', 'appointments', ['organization_id'])
    op.create_index('ix_appointments_date', 'appointments', ['date'])
    op.create_index('ix_appointments_status', 'appointments', ['status'])

    # Kanban
    op.create_table('kanban_columns',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('position', sa.Integer(), default=0),
        sa.Column('color', sa.String(20), default='#e2e8f0'),
        sa.Column('created_at', sa.DateTime(), default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', 'organization_id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'])
    )

    op.create_table('projects',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(64), nullable=False),
        sa.Column('priority', sa.String(10), default='medium'),
        sa.Column('due_date', sa.Date()),
        sa.Column('value', sa.Float(), default=0),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'])
    )
    op.create_index('ix_projects_organization', 'projects', ['organization_id'])
    op.create_index('ix_projects_status', 'projects', ['status'])

    # Expenses
    op.create_table('expenses',
        sa.Column('id', ID, nullable=False),
        sa.Column('organization_id', ID, nullable=False),
        sa.Column('description', sa.String(500), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False, default=0),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('category', sa.String(100), default='Outros'),
        sa.Column('payment_method', sa.String(100)),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'])
    )
    op.create_index('ix_expenses_organization', 'expenses', ['organization_id'])
    op.create_index('ix_expenses_date', 'expenses', ['date'])


def downgrade() -> None:
    for table in ['expenses', 'projects', 'kanban_columns', 'appointments', 'budget_items',
                  'budgets', 'order_items', 'orders', 'customers', 'services', 'products',
                  'responsibles', 'user_profiles', 'organizations']:
        op.drop_table(table)
