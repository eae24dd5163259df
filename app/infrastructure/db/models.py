"""
Database Models (SQLAlchemy ORM)
Every row is scoped by user_id; budget rows also by profile and period.
Transactions are soft-deleted, never removed.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime,
    Boolean, Text, Index, JSON, UniqueConstraint
)

from app.infrastructure.db.database import Base
from app.utils.time import now_local_naive


class BudgetConfigModel(Base):
    """Salary and allocation for one (user, profile, month, year)"""
    __tablename__ = "budget_configs"
    __table_args__ = (
        UniqueConstraint("user_id", "profile_name", "year", "month", name="uq_budget_config_period"),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    profile_name = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    monthly_salary = Column(Numeric(12, 2), nullable=False)
    budget_percentage = Column(Numeric(5, 2), nullable=False)
    need_percentage = Column(Numeric(5, 2), nullable=False)
    want_percentage = Column(Numeric(5, 2), nullable=False)
    savings_percentage = Column(Numeric(5, 2), nullable=False)
    investments_percentage = Column(Numeric(5, 2), nullable=False)

    created_at = Column(DateTime, nullable=False, default=now_local_naive)
    updated_at = Column(DateTime, nullable=False, default=now_local_naive, onupdate=now_local_naive)


class InvestmentPortfolioModel(Base):
    """Top-level plan node; categories and funds are stored as JSON"""
    __tablename__ = "investment_portfolios"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    profile_name = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    name = Column(String(200), nullable=False)
    allocation_type = Column(String(20), nullable=False)
    allocation_value = Column(Numeric(12, 2), nullable=False)
    allocated_amount = Column(Numeric(12, 2), nullable=False, default=0)
    allow_direct_investment = Column(Boolean, nullable=False, default=False)
    categories = Column(JSON, nullable=False, default=list)
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=now_local_naive)
    updated_at = Column(DateTime, nullable=False, default=now_local_naive, onupdate=now_local_naive)

    __table_args__ = (
        Index("idx_portfolio_period", "user_id", "profile_name", "year", "month"),
    )


class TransactionModel(Base):
    """Expense, refund and investment records"""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    profile_name = Column(String(100), nullable=False)

    type = Column(String(20), nullable=False)
    category = Column(String(20), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(Date, nullable=False)
    tag = Column(String(100), nullable=False, default="")
    notes = Column(Text, nullable=False, default="")
    spent_for = Column(String(255), nullable=False, default="")
    payment_type = Column(String(20), nullable=True)

    portfolio_id = Column(String(36), nullable=True)
    portfolio_category_id = Column(String(36), nullable=True)
    fund_id = Column(String(36), nullable=True)
    is_direct_investment = Column(Boolean, nullable=False, default=False)

    refund_for = Column(String(36), nullable=True, index=True)
    status = Column(String(20), nullable=False, default="active")
    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=now_local_naive)
    updated_at = Column(DateTime, nullable=False, default=now_local_naive, onupdate=now_local_naive)

    __table_args__ = (
        Index("idx_transactions_profile_date", "user_id", "profile_name", "date"),
    )


class TransactionHistoryModel(Base):
    """Insert-only audit trail of transaction changes"""
    __tablename__ = "transaction_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(64), nullable=False)
    action = Column(String(20), nullable=False)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_local_naive)


class BankBalanceModel(Base):
    """Opening bank balance for one (user, profile, month, year)"""
    __tablename__ = "bank_balances"
    __table_args__ = (
        UniqueConstraint("user_id", "profile_name", "year", "month", name="uq_bank_balance_period"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    profile_name = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    opening_balance = Column(Numeric(12, 2), nullable=False)
    updated_at = Column(DateTime, nullable=False, default=now_local_naive, onupdate=now_local_naive)


class CustomTagModel(Base):
    """User-defined expense tag for one budget category"""
    __tablename__ = "custom_tags"
    __table_args__ = (
        UniqueConstraint("user_id", "profile_name", "category", "tag", name="uq_custom_tag"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    profile_name = Column(String(100), nullable=False)
    category = Column(String(20), nullable=False)
    tag = Column(String(100), nullable=False)
    created_at = Column(DateTime, nullable=False, default=now_local_naive)
