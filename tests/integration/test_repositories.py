from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.exceptions import NotFoundError, TransientBackendError
from app.domain.models import (
    AllocationType,
    BudgetAllocation,
    BudgetCategory,
    BudgetConfig,
    ExpenseEntry,
    Fund,
    HistoryAction,
    InvestmentEntry,
    Period,
    Portfolio,
    PortfolioCategory,
    RefundEntry,
    TransactionStatus,
)
from app.infrastructure.budget_gateway import SqlBudgetGateway
from app.infrastructure.db.repositories.budget_config_repository import BudgetConfigRepository
from app.infrastructure.db.repositories.transaction_repository import TransactionRepository

MARCH = Period(2025, 3)


def config(salary="60000") -> BudgetConfig:
    return BudgetConfig(
        salary=Decimal(salary),
        budget_percentage=Decimal("75"),
        allocation=BudgetAllocation(
            need=Decimal("50"), want=Decimal("20"), savings=Decimal("15"), investments=Decimal("15")
        ),
    )


def plan() -> list[Portfolio]:
    return [
        Portfolio(
            id="p-1",
            name="Long term",
            allocation_type=AllocationType.PERCENTAGE,
            allocation_value=Decimal("100"),
            allocated_amount=Decimal("6750"),
            categories=(
                PortfolioCategory(
                    id="c-1",
                    name="Equity",
                    allocation_type=AllocationType.PERCENTAGE,
                    allocation_value=Decimal("100"),
                    allocated_amount=Decimal("6750"),
                    funds=(Fund(id="f-1", name="Index"), Fund(id="f-2", name="Mid")),
                ),
            ),
        ),
        Portfolio(
            id="p-2",
            name="Gold",
            allocation_type=AllocationType.AMOUNT,
            allocation_value=Decimal("0"),
            allow_direct_investment=True,
        ),
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_config_upsert_keeps_one_row_per_period(db_session):
    repo = BudgetConfigRepository(db_session)
    first = await repo.upsert("u1", "Primary", MARCH, config())
    second = await repo.upsert("u1", "Primary", MARCH, config("65000"))

    assert first.id is not None
    assert second.id == first.id
    fetched = await repo.get_for_period("u1", "Primary", MARCH)
    assert fetched.salary == Decimal("65000")
    assert fetched.allocation.is_complete
    assert await repo.get_for_period("u1", "Partner", MARCH) is None
    assert await repo.get_for_period("u2", "Primary", MARCH) is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_gateway_roundtrip_for_period(db_session):
    gateway = SqlBudgetGateway(db_session)
    await gateway.save_config("u1", "Primary", MARCH, config())
    await gateway.save_portfolios("u1", "Primary", MARCH, plan())
    await gateway.save_transaction("u1", "Primary", ExpenseEntry(
        id="e-1", date=date(2025, 3, 2), amount=Decimal("1200"), category=BudgetCategory.NEED, tag="Rent",
    ))
    await gateway.save_transaction("u1", "Primary", ExpenseEntry(
        id="e-2", date=date(2025, 4, 2), amount=Decimal("50"), category=BudgetCategory.NEED,
    ))
    await gateway.save_transaction("u1", "Primary", RefundEntry(
        id="r-1", date=date(2025, 3, 8), amount=Decimal("200"), category=BudgetCategory.NEED,
        original_expense_id="e-1",
    ))
    await gateway.save_transaction("u1", "Primary", InvestmentEntry(
        id="i-1", date=date(2025, 3, 9), amount=Decimal("300"), portfolio_id="p-1",
        category_id="c-1", fund_id="f-1",
    ))
    await gateway.save_transaction("u1", "Primary", InvestmentEntry(
        id="i-2", date=date(2025, 3, 9), amount=Decimal("100"), portfolio_id="p-2", is_direct_investment=True,
    ))
    await gateway.set_opening_balance("u1", "Primary", MARCH, Decimal("25000"))
    await gateway.add_custom_tag("u1", "Primary", BudgetCategory.WANT, "Concerts")
    await gateway.add_custom_tag("u1", "Primary", BudgetCategory.WANT, "Concerts")
    await db_session.commit()

    data = await gateway.fetch_period_data("u1", "Primary", MARCH)

    assert data.config.salary == Decimal("60000")
    assert [p.id for p in data.portfolios] == ["p-1", "p-2"]
    assert [f.id for f in data.portfolios[0].categories[0].funds] == ["f-1", "f-2"]
    assert data.portfolios[1].allow_direct_investment
    assert [e.id for e in data.expenses] == ["e-1"]
    assert data.refunds[0].original_expense_id == "e-1"
    assert {i.id for i in data.investments} == {"i-1", "i-2"}
    assert data.opening_balance == Decimal("25000")
    assert data.custom_tags == ((BudgetCategory.WANT, "Concerts"),)

    other_user = await gateway.fetch_period_data("u2", "Primary", MARCH)
    assert other_user.is_empty


@pytest.mark.asyncio
@pytest.mark.integration
async def test_transaction_history_actions(db_session):
    repo = TransactionRepository(db_session)
    entry = ExpenseEntry(id="e-1", date=date(2025, 3, 2), amount=Decimal("1000"), category=BudgetCategory.WANT)

    await repo.upsert("u1", "Primary", entry)
    await repo.upsert("u1", "Primary", ExpenseEntry(
        id="e-1", date=date(2025, 3, 2), amount=Decimal("800"), category=BudgetCategory.WANT,
    ))
    await repo.upsert("u1", "Primary", ExpenseEntry(
        id="e-1", date=date(2025, 3, 2), amount=Decimal("800"), category=BudgetCategory.WANT,
        status=TransactionStatus.PARTIAL_REFUND,
    ))
    await repo.upsert("u1", "Primary", ExpenseEntry(
        id="e-1", date=date(2025, 3, 2), amount=Decimal("800"), category=BudgetCategory.WANT,
        status=TransactionStatus.PARTIAL_REFUND, tag="Shopping",
    ))
    assert await repo.soft_delete("u1", "e-1")
    assert not await repo.soft_delete("u1", "e-1")

    history = await repo.history("u1", "e-1")
    assert [h.action for h in history] == [
        HistoryAction.CREATED.value,
        HistoryAction.AMOUNT_REDUCED.value,
        HistoryAction.REFUNDED.value,
        HistoryAction.UPDATED.value,
        HistoryAction.DELETED.value,
    ]
    assert history[1].old_values["amount"] == "1000.00"
    assert history[1].new_values["amount"] == "800.00"

    assert await repo.list_for_period("u1", "Primary", MARCH) == []
    stored = await repo.get("u1", "e-1")
    assert stored.is_deleted


@pytest.mark.asyncio
@pytest.mark.integration
async def test_refund_rolled_back_when_status_write_fails(db_session, monkeypatch):
    gateway = SqlBudgetGateway(db_session)
    original = ExpenseEntry(id="e-1", date=date(2025, 3, 2), amount=Decimal("500"), category=BudgetCategory.WANT)
    await gateway.save_transaction("u1", "Primary", original)
    await db_session.commit()

    upsert = gateway.transactions.upsert
    calls = []

    async def flaky_upsert(user_id, profile, entry):
        calls.append(entry.id)
        if len(calls) == 2:
            raise OperationalError("UPDATE transactions", {}, Exception("database is locked"))
        return await upsert(user_id, profile, entry)

    monkeypatch.setattr(gateway.transactions, "upsert", flaky_upsert)
    refund = RefundEntry(
        id="r-1", date=date(2025, 3, 5), amount=Decimal("500"), category=BudgetCategory.WANT,
        original_expense_id="e-1",
    )
    with pytest.raises(TransientBackendError):
        await gateway.save_refund("u1", "Primary", refund, replace(original, status=TransactionStatus.REFUNDED))

    data = await gateway.fetch_period_data("u1", "Primary", MARCH)
    assert data.refunds == ()
    assert data.expenses[0].status == TransactionStatus.ACTIVE


@pytest.mark.asyncio
@pytest.mark.integration
async def test_plan_replace_and_node_delete(db_session):
    gateway = SqlBudgetGateway(db_session)
    await gateway.save_portfolios("u1", "Primary", MARCH, plan())

    await gateway.hard_delete_portfolio_node("u1", "Primary", MARCH, "f-2")
    data = await gateway.fetch_period_data("u1", "Primary", MARCH)
    assert [f.id for f in data.portfolios[0].categories[0].funds] == ["f-1"]

    await gateway.hard_delete_portfolio_node("u1", "Primary", MARCH, "p-2")
    await gateway.save_portfolios("u1", "Primary", MARCH, data.portfolios[:1])
    data = await gateway.fetch_period_data("u1", "Primary", MARCH)
    assert [p.id for p in data.portfolios] == ["p-1"]

    with pytest.raises(NotFoundError):
        await gateway.hard_delete_portfolio_node("u1", "Primary", MARCH, "missing")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_soft_delete_unknown_transaction(db_session):
    with pytest.raises(NotFoundError):
        await SqlBudgetGateway(db_session).soft_delete_transaction("u1", "Primary", "missing")
