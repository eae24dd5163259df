"""
Unit Tests for ConfigurationInheritance
"""

import itertools

import pytest
from decimal import Decimal

from app.domain.exceptions import ValidationError
from app.domain.models import (
    AllocationType,
    BudgetAllocation,
    BudgetConfig,
    Fund,
    Period,
    Portfolio,
    PortfolioCategory,
)
from app.domain.services.config_inheritance import ConfigurationInheritance


@pytest.fixture
def inheritance():
    counter = itertools.count(1)
    return ConfigurationInheritance(id_factory=lambda: f"new-{next(counter)}")


def config() -> BudgetConfig:
    return BudgetConfig(
        id="cfg-jan",
        salary=Decimal("80000"),
        budget_percentage=Decimal("90"),
        allocation=BudgetAllocation(
            need=Decimal("50"), want=Decimal("20"), savings=Decimal("15"), investments=Decimal("15")
        ),
    )


def plan() -> list[Portfolio]:
    return [
        Portfolio(
            id="p-1",
            name="Retirement",
            allocation_type=AllocationType.PERCENTAGE,
            allocation_value=Decimal("100"),
            invested_amount=Decimal("5000"),
            categories=(
                PortfolioCategory(
                    id="c-1",
                    name="Equity",
                    allocation_type=AllocationType.PERCENTAGE,
                    allocation_value=Decimal("100"),
                    invested_amount=Decimal("5000"),
                    funds=(Fund(id="f-1", name="Index", invested_amount=Decimal("5000")),),
                ),
            ),
        )
    ]


def test_copies_config_without_id(inheritance):
    new_config, portfolios = inheritance.inherit(Period(2025, 1), Period(2025, 2), config(), [])
    assert new_config.id is None
    assert new_config.salary == Decimal("80000")
    assert new_config.allocation == config().allocation
    assert portfolios == []


def test_clones_plan_with_fresh_ids_and_nothing_invested(inheritance):
    _, [portfolio] = inheritance.inherit(Period(2025, 1), Period(2025, 2), None, plan())

    category = portfolio.categories[0]
    fund = category.funds[0]
    assert {portfolio.id, category.id, fund.id} == {"new-1", "new-2", "new-3"}
    assert portfolio.name == "Retirement"
    assert fund.name == "Index"
    assert portfolio.invested_amount == category.invested_amount == fund.invested_amount == Decimal("0")


def test_same_period_is_rejected(inheritance):
    with pytest.raises(ValidationError, match="same month and year"):
        inheritance.inherit(Period(2025, 1), Period(2025, 1), config(), plan())


def test_nothing_to_inherit(inheritance):
    with pytest.raises(ValidationError, match="No configurations found for 2024-12"):
        inheritance.inherit(Period(2024, 12), Period(2025, 1), None, [])
