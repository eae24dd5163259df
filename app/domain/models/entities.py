"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies.

Money and percentages are Decimal throughout. Derived amounts
(allocated_amount / invested_amount on plan nodes) are filled in by the
investment rollup and are never edited directly.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from app.domain.exceptions import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class BudgetCategory(str, Enum):
    """Top-level spending bucket"""
    NEED = "need"
    WANT = "want"
    SAVINGS = "savings"
    INVESTMENTS = "investments"


class AllocationType(str, Enum):
    """How a plan node claims its share of the parent amount"""
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class TransactionType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"
    REFUND = "refund"
    INVESTMENT = "investment"
    SAVINGS = "savings"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIAL_REFUND = "partial_refund"


class PaymentType(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    NETBANKING = "netbanking"
    CHEQUE = "cheque"
    OTHER = "other"


class HistoryAction(str, Enum):
    """Audit trail action for a transaction change"""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    REFUNDED = "refunded"
    AMOUNT_REDUCED = "amount_reduced"


@dataclass(frozen=True, order=True)
class Period:
    """A (year, month) pair; month is 1-12"""
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {self.month}")
        if self.year < 1:
            raise ValidationError(f"Invalid year: {self.year}")

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class UserIdentity:
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class BudgetAllocation:
    """Category percentages; must total exactly 100 to be persisted"""
    need: Decimal
    want: Decimal
    savings: Decimal
    investments: Decimal

    def __post_init__(self):
        for category in BudgetCategory:
            if self.percent_for(category) < ZERO:
                raise ValidationError(f"{category.value} percentage cannot be negative")

    def percent_for(self, category: BudgetCategory) -> Decimal:
        return getattr(self, category.value)

    @property
    def total(self) -> Decimal:
        return self.need + self.want + self.savings + self.investments

    @property
    def is_complete(self) -> bool:
        return self.total == HUNDRED

    def as_dict(self) -> dict[str, Decimal]:
        return {category.value: self.percent_for(category) for category in BudgetCategory}


@dataclass(frozen=True)
class BudgetConfig:
    """Salary and its split for one (user, profile, period)"""
    salary: Decimal
    budget_percentage: Decimal
    allocation: BudgetAllocation
    id: Optional[str] = None

    def __post_init__(self):
        if self.salary < ZERO:
            raise ValidationError("Salary cannot be negative")
        if not ZERO <= self.budget_percentage <= HUNDRED:
            raise ValidationError("Budget percentage must be between 0 and 100")

    @property
    def has_values(self) -> bool:
        return self.salary > ZERO or self.budget_percentage > ZERO


@dataclass(frozen=True)
class Fund:
    """Leaf of the investment plan"""
    id: str
    name: str
    allocated_amount: Decimal = ZERO
    invested_amount: Decimal = ZERO


@dataclass(frozen=True)
class PortfolioCategory:
    """Middle level of the investment plan, owned by one portfolio"""
    id: str
    name: str
    allocation_type: AllocationType
    allocation_value: Decimal
    funds: tuple[Fund, ...] = ()
    allocated_amount: Decimal = ZERO
    invested_amount: Decimal = ZERO

    def __post_init__(self):
        if self.allocation_value < ZERO:
            raise ValidationError(f"Allocation value for '{self.name}' cannot be negative")


@dataclass(frozen=True)
class Portfolio:
    """Root of the investment plan"""
    id: str
    name: str
    allocation_type: AllocationType
    allocation_value: Decimal
    allow_direct_investment: bool = False
    categories: tuple[PortfolioCategory, ...] = ()
    allocated_amount: Decimal = ZERO
    invested_amount: Decimal = ZERO

    def __post_init__(self):
        if self.allocation_value < ZERO:
            raise ValidationError(f"Allocation value for '{self.name}' cannot be negative")
        if self.allow_direct_investment and self.categories:
            raise ValidationError(
                f"Portfolio '{self.name}' allows direct investment and cannot have categories"
            )

    def find_category(self, category_id: str) -> Optional[PortfolioCategory]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None


def _require_positive(amount: Decimal, what: str) -> None:
    if amount <= ZERO:
        raise ValidationError(f"{what} amount must be positive")


@dataclass(frozen=True)
class ExpenseEntry:
    id: str
    date: date
    amount: Decimal
    category: BudgetCategory
    tag: str = ""
    notes: str = ""
    spent_for: str = ""
    payment_type: Optional[PaymentType] = None
    status: TransactionStatus = TransactionStatus.ACTIVE
    is_deleted: bool = False

    def __post_init__(self):
        _require_positive(self.amount, "Expense")


@dataclass(frozen=True)
class RefundEntry:
    """Refund netted against expenses of the same category"""
    id: str
    date: date
    amount: Decimal
    category: BudgetCategory
    tag: str = ""
    notes: str = ""
    payment_type: Optional[PaymentType] = None
    original_expense_id: Optional[str] = None
    is_deleted: bool = False

    def __post_init__(self):
        _require_positive(self.amount, "Refund")


@dataclass(frozen=True)
class InvestmentEntry:
    """
    Money put into the investment plan.

    Direct entries target the portfolio only; all other entries must name
    both the category and the fund they go to.
    """
    id: str
    date: date
    amount: Decimal
    portfolio_id: str
    category_id: Optional[str] = None
    fund_id: Optional[str] = None
    is_direct_investment: bool = False
    notes: str = ""
    is_deleted: bool = False

    def __post_init__(self):
        _require_positive(self.amount, "Investment")
        if not self.portfolio_id:
            raise ValidationError("Investment entry requires a portfolio")
        if self.is_direct_investment:
            if self.category_id or self.fund_id:
                raise ValidationError("Direct investments cannot reference a category or fund")
        elif not (self.category_id and self.fund_id):
            raise ValidationError("Investment entry requires a category and a fund")


@dataclass(frozen=True)
class BankBalance:
    period: Period
    opening_balance: Decimal


@dataclass(frozen=True)
class PeriodData:
    """Everything the backend holds for one (user, profile, period)"""
    config: Optional[BudgetConfig] = None
    portfolios: tuple[Portfolio, ...] = ()
    expenses: tuple[ExpenseEntry, ...] = ()
    refunds: tuple[RefundEntry, ...] = ()
    investments: tuple[InvestmentEntry, ...] = ()
    opening_balance: Decimal = ZERO
    custom_tags: tuple[tuple[BudgetCategory, str], ...] = ()

    @property
    def is_empty(self) -> bool:
        return (
            self.config is None
            and not self.portfolios
            and not self.expenses
            and not self.refunds
            and not self.investments
        )
