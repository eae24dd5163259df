"""
Unit Tests for SpendAggregator
"""

import pytest
from datetime import date
from decimal import Decimal

from app.domain.models import BudgetCategory, ExpenseEntry, Period, RefundEntry
from app.domain.services.spend_aggregator import SpendAggregator

PERIOD = Period(2025, 3)


def expense(amount, category=BudgetCategory.NEED, day=date(2025, 3, 10), **kwargs) -> ExpenseEntry:
    return ExpenseEntry(id=f"e-{amount}-{category.value}-{day}", date=day, amount=Decimal(amount),
                        category=category, **kwargs)


def refund(amount, category=BudgetCategory.NEED, day=date(2025, 3, 12), **kwargs) -> RefundEntry:
    return RefundEntry(id=f"r-{amount}-{category.value}-{day}", date=day, amount=Decimal(amount),
                       category=category, **kwargs)


@pytest.fixture
def aggregator():
    return SpendAggregator()


def test_refunds_net_against_same_category(aggregator):
    net = aggregator.net_by_category(
        [expense("5000"), expense("1200", BudgetCategory.WANT)],
        [refund("800")],
        PERIOD,
    )
    assert net[BudgetCategory.NEED] == Decimal("4200")
    assert net[BudgetCategory.WANT] == Decimal("1200")
    assert net[BudgetCategory.SAVINGS] == Decimal("0")


def test_refund_overshoot_floors_at_zero_and_does_not_leak(aggregator):
    net = aggregator.net_by_category(
        [expense("5000"), expense("1000", BudgetCategory.WANT)],
        [refund("6000")],
        PERIOD,
    )
    assert net[BudgetCategory.NEED] == Decimal("0")
    assert net[BudgetCategory.WANT] == Decimal("1000")


def test_deleted_and_out_of_period_entries_are_ignored(aggregator):
    net = aggregator.net_by_category(
        [
            expense("100"),
            expense("200", is_deleted=True),
            expense("400", day=date(2025, 4, 1)),
        ],
        [refund("50", day=date(2025, 2, 28))],
        PERIOD,
    )
    assert net[BudgetCategory.NEED] == Decimal("100")


def test_single_category_filter(aggregator):
    net = aggregator.net_by_category(
        [expense("100"), expense("300", BudgetCategory.WANT)], [], PERIOD, BudgetCategory.WANT
    )
    assert net == {BudgetCategory.WANT: Decimal("300")}


def test_empty_input_is_all_zero(aggregator):
    summary = aggregator.summarize([], [], PERIOD)
    assert summary.total_spent == Decimal("0")
    assert summary.net.need == Decimal("0")


def test_summary_uses_investment_total_for_investments(aggregator):
    summary = aggregator.summarize(
        [
            expense("1000"),
            expense("500", BudgetCategory.SAVINGS),
            expense("700", BudgetCategory.INVESTMENTS),
        ],
        [refund("200", BudgetCategory.INVESTMENTS)],
        PERIOD,
        investment_total=Decimal("3000"),
    )
    assert summary.net.investments == Decimal("3000")
    assert summary.investment_expenses == Decimal("500")
    assert summary.expenses.investments == Decimal("700")
    assert summary.refunds.investments == Decimal("200")
    assert summary.total_spent == Decimal("4500")
