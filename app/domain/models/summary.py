from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from app.domain.models.entities import ZERO, BudgetCategory, Period


@dataclass(frozen=True)
class CategoryAmounts:
    """
    One currency amount per budget category.
    """
    need: Decimal = ZERO
    want: Decimal = ZERO
    savings: Decimal = ZERO
    investments: Decimal = ZERO

    @classmethod
    def from_mapping(cls, values: dict[BudgetCategory, Decimal]) -> "CategoryAmounts":
        return cls(**{category.value: values.get(category, ZERO) for category in BudgetCategory})

    def get(self, category: BudgetCategory) -> Decimal:
        return getattr(self, category.value)

    @property
    def total(self) -> Decimal:
        return self.need + self.want + self.savings + self.investments

    def __add__(self, other: "CategoryAmounts") -> "CategoryAmounts":
        return CategoryAmounts(
            need=self.need + other.need,
            want=self.want + other.want,
            savings=self.savings + other.savings,
            investments=self.investments + other.investments,
        )


@dataclass(frozen=True)
class AllocationBreakdown:
    """
    Budget ceiling for a period: total budget and each category's share.
    """
    total_budget: Decimal
    amounts: CategoryAmounts

    @classmethod
    def empty(cls) -> "AllocationBreakdown":
        return cls(total_budget=ZERO, amounts=CategoryAmounts())

    def __add__(self, other: "AllocationBreakdown") -> "AllocationBreakdown":
        return AllocationBreakdown(
            total_budget=self.total_budget + other.total_budget,
            amounts=self.amounts + other.amounts,
        )


@dataclass(frozen=True)
class SpendSummary:
    """
    Actual spend for a period.

    `net` holds expenses minus refunds floored at zero per category, except
    `net.investments` which is the investment-entry total. The net of
    expenses tagged under the investments category is kept separately in
    `investment_expenses`.
    """
    net: CategoryAmounts
    expenses: CategoryAmounts
    refunds: CategoryAmounts
    investment_expenses: Decimal = ZERO

    @classmethod
    def empty(cls) -> "SpendSummary":
        return cls(net=CategoryAmounts(), expenses=CategoryAmounts(), refunds=CategoryAmounts())

    @property
    def total_spent(self) -> Decimal:
        return self.net.total

    def __add__(self, other: "SpendSummary") -> "SpendSummary":
        return SpendSummary(
            net=self.net + other.net,
            expenses=self.expenses + other.expenses,
            refunds=self.refunds + other.refunds,
            investment_expenses=self.investment_expenses + other.investment_expenses,
        )


@dataclass(frozen=True)
class NodeProgress:
    """
    Allocated vs invested for one node of the investment plan.
    """
    node_id: str
    name: str
    level: str
    allocated: Decimal
    invested: Decimal
    parent_id: Optional[str] = None

    @property
    def remaining(self) -> Decimal:
        # Negative when over-invested; not clamped.
        return self.allocated - self.invested

    @property
    def ratio(self) -> Decimal:
        if self.allocated <= ZERO:
            return ZERO
        return self.invested / self.allocated * Decimal("100")

    @property
    def progress_percent(self) -> Decimal:
        """Display value, clamped to [0, 100]."""
        return min(max(self.ratio, ZERO), Decimal("100"))

    @property
    def is_over_budget(self) -> bool:
        return self.ratio > Decimal("100")


@dataclass(frozen=True)
class InvestmentRollupResult:
    portfolio_invested: dict[str, Decimal]
    category_invested: dict[str, Decimal]
    fund_invested: dict[str, Decimal]

    @property
    def total_invested(self) -> Decimal:
        return sum(self.portfolio_invested.values(), ZERO)


@dataclass(frozen=True)
class DashboardSummary:
    """
    Everything the dashboard renders for one selection.
    """
    period: Period
    profile: str
    read_only: bool
    has_data: bool
    allocation: AllocationBreakdown
    spend: SpendSummary
    nodes: tuple[NodeProgress, ...] = ()
    opening_balance: Decimal = ZERO

    @property
    def total_spent(self) -> Decimal:
        return self.spend.total_spent

    @property
    def total_remaining(self) -> Decimal:
        return self.allocation.total_budget - self.total_spent

    @property
    def current_balance(self) -> Decimal:
        return self.opening_balance - self.total_spent

    @classmethod
    def empty(cls, period: Period, profile: str, read_only: bool = False) -> "DashboardSummary":
        return cls(
            period=period,
            profile=profile,
            read_only=read_only,
            has_data=False,
            allocation=AllocationBreakdown.empty(),
            spend=SpendSummary.empty(),
        )
