# alembic/versions/001_initial.py

"""Initial budget schema

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table('budget_configs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('profile_name', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('monthly_salary', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('budget_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('need_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('want_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('savings_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('investments_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'profile_name', 'year', 'month', name='uq_budget_config_period')
    )
    op.create_index('ix_budget_configs_user_id', 'budget_configs', ['user_id'])

    op.create_table('investment_portfolios',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('profile_name', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('allocation_type', sa.String(length=20), nullable=False),
        sa.Column('allocation_value', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('allocated_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('allow_direct_investment', sa.Boolean(), nullable=False),
        sa.Column('categories', sa.JSON(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_investment_portfolios_user_id', 'investment_portfolios', ['user_id'])
    op.create_index('idx_portfolio_period', 'investment_portfolios', ['user_id', 'profile_name', 'year', 'month'])

    op.create_table('transactions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('profile_name', sa.String(length=100), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('tag', sa.String(length=100), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('spent_for', sa.String(length=255), nullable=False),
        sa.Column('payment_type', sa.String(length=20), nullable=True),
        sa.Column('portfolio_id', sa.String(length=36), nullable=True),
        sa.Column('portfolio_category_id', sa.String(length=36), nullable=True),
        sa.Column('fund_id', sa.String(length=36), nullable=True),
        sa.Column('is_direct_investment', sa.Boolean(), nullable=False),
        sa.Column('refund_for', sa.String(length=36), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_refund_for', 'transactions', ['refund_for'])
    op.create_index('idx_transactions_profile_date', 'transactions', ['user_id', 'profile_name', 'date'])

    op.create_table('transaction_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('transaction_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transaction_history_transaction_id', 'transaction_history', ['transaction_id'])

    op.create_table('bank_balances',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('profile_name', sa.String(length=100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('opening_balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'profile_name', 'year', 'month', name='uq_bank_balance_period')
    )
    op.create_index('ix_bank_balances_user_id', 'bank_balances', ['user_id'])

    op.create_table('custom_tags',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('profile_name', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=20), nullable=False),
        sa.Column('tag', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'profile_name', 'category', 'tag', name='uq_custom_tag')
    )
    op.create_index('ix_custom_tags_user_id', 'custom_tags', ['user_id'])


def downgrade():
    op.drop_table('custom_tags')
    op.drop_table('bank_balances')
    op.drop_table('transaction_history')
    op.drop_table('transactions')
    op.drop_table('investment_portfolios')
    op.drop_table('budget_configs')
