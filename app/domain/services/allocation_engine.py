"""
ALLOCATION ENGINE
Convert salary → budget ceiling → category amounts

RESPONSIBILITIES:
- Derive total budget from salary and budget percentage
- Split total budget across need / want / savings / investments
- Validate allocations before they are persisted

RULES:
✅ Whole currency units, round-half-up
✅ Each category rounded independently (sum may drift from total by up to 3)
✅ Percentages must total exactly 100 (Decimal, no float tolerance)
✅ Pure functions, deterministic output
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

from app.domain.exceptions import ValidationError
from app.domain.models import (
    ZERO,
    HUNDRED,
    AllocationBreakdown,
    BudgetAllocation,
    BudgetCategory,
    BudgetConfig,
    CategoryAmounts,
)

WHOLE_UNIT = Decimal("1")


def round_amount(value: Decimal) -> Decimal:
    """Round to a whole currency unit, halves away from zero."""
    return value.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """
    Coerce user input to Decimal. Negative or non-numeric values read as zero.
    """
    if value is None:
        return ZERO
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO
    if result.is_nan() or result < ZERO:
        return ZERO
    return result


class AllocationCalculator:
    """
    Allocation Calculator
    Budget ceilings for one profile and period
    """

    @staticmethod
    def total_budget(salary: Decimal, budget_percentage: Decimal) -> Decimal:
        salary = to_decimal(salary)
        budget_percentage = to_decimal(budget_percentage)
        return round_amount(salary * budget_percentage / HUNDRED)

    @staticmethod
    def category_amount(total_budget: Decimal, percent: Decimal) -> Decimal:
        return round_amount(to_decimal(total_budget) * to_decimal(percent) / HUNDRED)

    def calculate(
        self,
        salary: Decimal,
        budget_percentage: Decimal,
        allocation: BudgetAllocation
    ) -> AllocationBreakdown:
        """
        Derive the budget ceiling

        Example:
            salary=100000, pct=70, {50, 20, 15, 15}
            → total 70000; 35000 / 14000 / 10500 / 10500
        """
        total = self.total_budget(salary, budget_percentage)
        amounts = {
            category: self.category_amount(total, allocation.percent_for(category))
            for category in BudgetCategory
        }
        return AllocationBreakdown(
            total_budget=total,
            amounts=CategoryAmounts.from_mapping(amounts)
        )

    def calculate_for_config(self, config: Optional[BudgetConfig]) -> AllocationBreakdown:
        if config is None:
            return AllocationBreakdown.empty()
        return self.calculate(config.salary, config.budget_percentage, config.allocation)

    def investment_budget(self, config: Optional[BudgetConfig]) -> Decimal:
        """Amount available to the investment plan."""
        return self.calculate_for_config(config).amounts.investments

    @staticmethod
    def validate_allocation(allocation: BudgetAllocation) -> None:
        """
        Raises:
            ValidationError: If the percentages do not total exactly 100
        """
        if not allocation.is_complete:
            raise ValidationError(
                f"Budget allocation must total 100%, got {allocation.total:f}%"
            )

    def validate_config(self, config: BudgetConfig) -> None:
        """
        Check a config before it is persisted

        Raises:
            ValidationError: On a zero budget percentage or an incomplete allocation
        """
        if config.budget_percentage < Decimal("1"):
            raise ValidationError("Budget percentage must be between 1 and 100")
        self.validate_allocation(config.allocation)
