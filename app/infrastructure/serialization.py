"""
Plain-dict codecs for budget entities.

Used for the JSON columns of the relational store and for the local JSON
store. Money is written as strings so Decimal values survive unchanged.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from app.domain.models import (
    AllocationType,
    BudgetAllocation,
    BudgetCategory,
    BudgetConfig,
    ExpenseEntry,
    Fund,
    InvestmentEntry,
    PaymentType,
    Portfolio,
    PortfolioCategory,
    RefundEntry,
    TransactionStatus,
)


def _dec(value: Any) -> Decimal:
    return Decimal(str(value if value is not None else 0))


def _str(value: Decimal) -> str:
    return str(value)


# ----------------------------------------------------------------------
# Investment plan
# ----------------------------------------------------------------------

def fund_to_dict(fund: Fund) -> dict:
    return {"id": fund.id, "name": fund.name, "allocated_amount": _str(fund.allocated_amount)}


def fund_from_dict(data: dict) -> Fund:
    return Fund(id=data["id"], name=data["name"], allocated_amount=_dec(data.get("allocated_amount")))


def category_to_dict(category: PortfolioCategory) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "allocation_type": category.allocation_type.value,
        "allocation_value": _str(category.allocation_value),
        "allocated_amount": _str(category.allocated_amount),
        "funds": [fund_to_dict(f) for f in category.funds],
    }


def category_from_dict(data: dict) -> PortfolioCategory:
    return PortfolioCategory(
        id=data["id"],
        name=data["name"],
        allocation_type=AllocationType(data["allocation_type"]),
        allocation_value=_dec(data["allocation_value"]),
        allocated_amount=_dec(data.get("allocated_amount")),
        funds=tuple(fund_from_dict(f) for f in data.get("funds", [])),
    )


def portfolio_to_dict(portfolio: Portfolio) -> dict:
    return {
        "id": portfolio.id,
        "name": portfolio.name,
        "allocation_type": portfolio.allocation_type.value,
        "allocation_value": _str(portfolio.allocation_value),
        "allocated_amount": _str(portfolio.allocated_amount),
        "allow_direct_investment": portfolio.allow_direct_investment,
        "categories": [category_to_dict(c) for c in portfolio.categories],
    }


def portfolio_from_dict(data: dict) -> Portfolio:
    return Portfolio(
        id=data["id"],
        name=data["name"],
        allocation_type=AllocationType(data["allocation_type"]),
        allocation_value=_dec(data["allocation_value"]),
        allocated_amount=_dec(data.get("allocated_amount")),
        allow_direct_investment=bool(data.get("allow_direct_investment", False)),
        categories=tuple(category_from_dict(c) for c in data.get("categories", [])),
    )


# ----------------------------------------------------------------------
# Config
# ----------------------------------------------------------------------

def config_to_dict(config: BudgetConfig) -> dict:
    return {
        "id": config.id,
        "salary": _str(config.salary),
        "budget_percentage": _str(config.budget_percentage),
        "allocation": {k: _str(v) for k, v in config.allocation.as_dict().items()},
    }


def config_from_dict(data: dict) -> BudgetConfig:
    allocation = data.get("allocation", {})
    return BudgetConfig(
        id=data.get("id"),
        salary=_dec(data.get("salary")),
        budget_percentage=_dec(data.get("budget_percentage")),
        allocation=BudgetAllocation(**{c.value: _dec(allocation.get(c.value)) for c in BudgetCategory}),
    )


# ----------------------------------------------------------------------
# Transactions
# ----------------------------------------------------------------------

def _payment(value: Optional[str]) -> Optional[PaymentType]:
    return PaymentType(value) if value else None


def expense_to_dict(entry: ExpenseEntry) -> dict:
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "amount": _str(entry.amount),
        "category": entry.category.value,
        "tag": entry.tag,
        "notes": entry.notes,
        "spent_for": entry.spent_for,
        "payment_type": entry.payment_type.value if entry.payment_type else None,
        "status": entry.status.value,
        "is_deleted": entry.is_deleted,
    }


def expense_from_dict(data: dict) -> ExpenseEntry:
    return ExpenseEntry(
        id=data["id"],
        date=date.fromisoformat(data["date"]),
        amount=_dec(data["amount"]),
        category=BudgetCategory(data["category"]),
        tag=data.get("tag") or "",
        notes=data.get("notes") or "",
        spent_for=data.get("spent_for") or "",
        payment_type=_payment(data.get("payment_type")),
        status=TransactionStatus(data.get("status") or "active"),
        is_deleted=bool(data.get("is_deleted", False)),
    )


def refund_to_dict(entry: RefundEntry) -> dict:
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "amount": _str(entry.amount),
        "category": entry.category.value,
        "tag": entry.tag,
        "notes": entry.notes,
        "payment_type": entry.payment_type.value if entry.payment_type else None,
        "original_expense_id": entry.original_expense_id,
        "is_deleted": entry.is_deleted,
    }


def refund_from_dict(data: dict) -> RefundEntry:
    return RefundEntry(
        id=data["id"],
        date=date.fromisoformat(data["date"]),
        amount=_dec(data["amount"]),
        category=BudgetCategory(data["category"]),
        tag=data.get("tag") or "",
        notes=data.get("notes") or "",
        payment_type=_payment(data.get("payment_type")),
        original_expense_id=data.get("original_expense_id"),
        is_deleted=bool(data.get("is_deleted", False)),
    )


def investment_to_dict(entry: InvestmentEntry) -> dict:
    return {
        "id": entry.id,
        "date": entry.date.isoformat(),
        "amount": _str(entry.amount),
        "portfolio_id": entry.portfolio_id,
        "category_id": entry.category_id,
        "fund_id": entry.fund_id,
        "is_direct_investment": entry.is_direct_investment,
        "notes": entry.notes,
        "is_deleted": entry.is_deleted,
    }


def investment_from_dict(data: dict) -> InvestmentEntry:
    return InvestmentEntry(
        id=data["id"],
        date=date.fromisoformat(data["date"]),
        amount=_dec(data["amount"]),
        portfolio_id=data["portfolio_id"],
        category_id=data.get("category_id"),
        fund_id=data.get("fund_id"),
        is_direct_investment=bool(data.get("is_direct_investment", False)),
        notes=data.get("notes") or "",
        is_deleted=bool(data.get("is_deleted", False)),
    )
