"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    AllocationType,
    BudgetCategory,
    HistoryAction,
    PaymentType,
    TransactionStatus,
    TransactionType,

    # Entities
    BankBalance,
    BudgetAllocation,
    BudgetConfig,
    ExpenseEntry,
    Fund,
    InvestmentEntry,
    Period,
    PeriodData,
    Portfolio,
    PortfolioCategory,
    RefundEntry,
    UserIdentity,
    ZERO,
    HUNDRED,
)
from .summary import (
    AllocationBreakdown,
    CategoryAmounts,
    DashboardSummary,
    InvestmentRollupResult,
    NodeProgress,
    SpendSummary,
)

__all__ = [
    # Enums
    "AllocationType",
    "BudgetCategory",
    "HistoryAction",
    "PaymentType",
    "TransactionStatus",
    "TransactionType",

    # Entities
    "BankBalance",
    "BudgetAllocation",
    "BudgetConfig",
    "ExpenseEntry",
    "Fund",
    "InvestmentEntry",
    "Period",
    "PeriodData",
    "Portfolio",
    "PortfolioCategory",
    "RefundEntry",
    "UserIdentity",
    "ZERO",
    "HUNDRED",

    # Summaries
    "AllocationBreakdown",
    "CategoryAmounts",
    "DashboardSummary",
    "InvestmentRollupResult",
    "NodeProgress",
    "SpendSummary",
]
