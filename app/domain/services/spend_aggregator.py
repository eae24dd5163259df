"""
SPEND AGGREGATOR
Net expenses against refunds per category for a period

RULES:
✅ Only non-deleted entries dated inside the period count
✅ Net spend = max(0, expenses - refunds) per category
✅ Refund overshoot is absorbed, never carried into another category
✅ Empty input → all zeros, no exceptions
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from app.domain.models import (
    ZERO,
    BudgetCategory,
    CategoryAmounts,
    ExpenseEntry,
    Period,
    RefundEntry,
    SpendSummary,
)


def _in_period(entries, period: Period, category: Optional[BudgetCategory] = None):
    for entry in entries:
        if entry.is_deleted or not period.contains(entry.date):
            continue
        if category is not None and entry.category != category:
            continue
        yield entry


def _sum_by_category(entries) -> dict[BudgetCategory, Decimal]:
    totals: dict[BudgetCategory, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        totals[entry.category] += entry.amount
    return totals


class SpendAggregator:
    """
    Spend Aggregator
    Actual spend per category, refunds netted in
    """

    def net_by_category(
        self,
        expenses: Iterable[ExpenseEntry],
        refunds: Iterable[RefundEntry],
        period: Period,
        category: Optional[BudgetCategory] = None
    ) -> dict[BudgetCategory, Decimal]:
        """
        Net spend per category

        Args:
            expenses: Expense entries (any period)
            refunds: Refund entries (any period)
            period: Target month
            category: Restrict the result to one category

        Returns:
            Mapping of every (or the requested) category to its net spend
        """
        expense_totals = _sum_by_category(_in_period(expenses, period, category))
        refund_totals = _sum_by_category(_in_period(refunds, period, category))
        categories = [category] if category is not None else list(BudgetCategory)
        return {
            cat: max(ZERO, expense_totals[cat] - refund_totals[cat])
            for cat in categories
        }

    def summarize(
        self,
        expenses: Iterable[ExpenseEntry],
        refunds: Iterable[RefundEntry],
        period: Period,
        investment_total: Decimal = ZERO
    ) -> SpendSummary:
        """
        Build the period's spend summary

        `investment_total` comes from the investment rollup and takes the
        investments slot; total_spent = need + want + savings + investment_total.
        """
        expenses = list(expenses)
        refunds = list(refunds)
        expense_totals = _sum_by_category(_in_period(expenses, period))
        refund_totals = _sum_by_category(_in_period(refunds, period))
        net = self.net_by_category(expenses, refunds, period)

        return SpendSummary(
            net=CategoryAmounts(
                need=net[BudgetCategory.NEED],
                want=net[BudgetCategory.WANT],
                savings=net[BudgetCategory.SAVINGS],
                investments=investment_total,
            ),
            expenses=CategoryAmounts.from_mapping(expense_totals),
            refunds=CategoryAmounts.from_mapping(refund_totals),
            investment_expenses=net[BudgetCategory.INVESTMENTS],
        )
