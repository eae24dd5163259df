"""
Transaction API Routes
Expenses, refunds and investment entries for a profile/period
"""

import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.dependencies import get_budget_service
from app.domain.models import (
    BudgetCategory,
    ExpenseEntry,
    InvestmentEntry,
    PaymentType,
    RefundEntry,
    TransactionStatus,
)
from app.services.budget_service import BudgetService

router = APIRouter()

PERIOD_PATH = "/{profile}/{year}/{month}"


# -------------------------------------------------------------------
# Request / Response models
# -------------------------------------------------------------------

class ExpenseRequest(BaseModel):
    date: datetime.date
    amount: float = Field(..., gt=0)
    category: BudgetCategory
    tag: str = ""
    notes: str = ""
    spent_for: str = ""
    payment_type: Optional[PaymentType] = None


class ExpenseUpdateRequest(BaseModel):
    date: Optional[datetime.date] = None
    amount: Optional[float] = Field(None, gt=0)
    category: Optional[BudgetCategory] = None
    tag: Optional[str] = None
    notes: Optional[str] = None
    spent_for: Optional[str] = None
    payment_type: Optional[PaymentType] = None


class ExpenseResponse(BaseModel):
    id: str
    date: datetime.date
    amount: float
    category: BudgetCategory
    tag: str
    notes: str
    spent_for: str
    payment_type: Optional[PaymentType]
    status: TransactionStatus


class RefundRequest(BaseModel):
    date: datetime.date
    amount: float = Field(..., gt=0)
    category: Optional[BudgetCategory] = None
    original_expense_id: Optional[str] = None
    tag: str = ""
    notes: str = ""
    payment_type: Optional[PaymentType] = None


class RefundResponse(BaseModel):
    id: str
    date: datetime.date
    amount: float
    category: BudgetCategory
    tag: str
    notes: str
    original_expense_id: Optional[str]


class InvestmentRequest(BaseModel):
    date: datetime.date
    amount: float = Field(..., gt=0)
    portfolio_id: str
    category_id: Optional[str] = None
    fund_id: Optional[str] = None
    notes: str = ""


class InvestmentUpdateRequest(BaseModel):
    date: Optional[datetime.date] = None
    amount: Optional[float] = Field(None, gt=0)
    portfolio_id: Optional[str] = None
    category_id: Optional[str] = None
    fund_id: Optional[str] = None
    notes: Optional[str] = None


class InvestmentResponse(BaseModel):
    id: str
    date: datetime.date
    amount: float
    portfolio_id: str
    category_id: Optional[str]
    fund_id: Optional[str]
    is_direct_investment: bool
    notes: str


def expense_response(entry: ExpenseEntry) -> ExpenseResponse:
    return ExpenseResponse(
        id=entry.id,
        date=entry.date,
        amount=float(entry.amount),
        category=entry.category,
        tag=entry.tag,
        notes=entry.notes,
        spent_for=entry.spent_for,
        payment_type=entry.payment_type,
        status=entry.status,
    )


def refund_response(entry: RefundEntry) -> RefundResponse:
    return RefundResponse(
        id=entry.id,
        date=entry.date,
        amount=float(entry.amount),
        category=entry.category,
        tag=entry.tag,
        notes=entry.notes,
        original_expense_id=entry.original_expense_id,
    )


def investment_response(entry: InvestmentEntry) -> InvestmentResponse:
    return InvestmentResponse(
        id=entry.id,
        date=entry.date,
        amount=float(entry.amount),
        portfolio_id=entry.portfolio_id,
        category_id=entry.category_id,
        fund_id=entry.fund_id,
        is_direct_investment=entry.is_direct_investment,
        notes=entry.notes,
    )


def _changes(model: BaseModel) -> dict:
    changes = model.model_dump(exclude_unset=True, exclude_none=True)
    if "amount" in changes:
        changes["amount"] = Decimal(str(changes["amount"]))
    return changes


# -------------------------------------------------------------------
# Expenses
# -------------------------------------------------------------------

@router.get(PERIOD_PATH + "/expenses", response_model=list[ExpenseResponse])
async def list_expenses(service: BudgetService = Depends(get_budget_service)):
    entries = []
    for profile in service.selector.profiles:
        data = service.store.get(profile, service.period)
        entries.extend(e for e in data.expenses if not e.is_deleted)
    return [expense_response(e) for e in sorted(entries, key=lambda e: e.date)]


@router.post(PERIOD_PATH + "/expenses", response_model=ExpenseResponse, status_code=201)
async def add_expense(request: ExpenseRequest, service: BudgetService = Depends(get_budget_service)):
    entry = await service.add_expense(
        entry_date=request.date,
        amount=Decimal(str(request.amount)),
        category=request.category,
        tag=request.tag,
        notes=request.notes,
        spent_for=request.spent_for,
        payment_type=request.payment_type,
    )
    return expense_response(entry)


@router.put(PERIOD_PATH + "/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: str,
    request: ExpenseUpdateRequest,
    service: BudgetService = Depends(get_budget_service),
):
    entry = await service.update_expense(expense_id, **_changes(request))
    return expense_response(entry)


@router.delete(PERIOD_PATH + "/expenses/{expense_id}", status_code=204)
async def delete_expense(expense_id: str, service: BudgetService = Depends(get_budget_service)):
    await service.delete_expense(expense_id)


# -------------------------------------------------------------------
# Refunds
# -------------------------------------------------------------------

@router.post(PERIOD_PATH + "/refunds", response_model=RefundResponse, status_code=201)
async def add_refund(request: RefundRequest, service: BudgetService = Depends(get_budget_service)):
    entry = await service.add_refund(
        entry_date=request.date,
        amount=Decimal(str(request.amount)),
        category=request.category,
        original_expense_id=request.original_expense_id,
        tag=request.tag,
        notes=request.notes,
        payment_type=request.payment_type,
    )
    return refund_response(entry)


@router.delete(PERIOD_PATH + "/refunds/{refund_id}", status_code=204)
async def delete_refund(refund_id: str, service: BudgetService = Depends(get_budget_service)):
    await service.delete_refund(refund_id)


# -------------------------------------------------------------------
# Investment entries
# -------------------------------------------------------------------

@router.post(PERIOD_PATH + "/investments", response_model=InvestmentResponse, status_code=201)
async def add_investment(request: InvestmentRequest, service: BudgetService = Depends(get_budget_service)):
    entry = await service.add_investment(
        entry_date=request.date,
        amount=Decimal(str(request.amount)),
        portfolio_id=request.portfolio_id,
        category_id=request.category_id,
        fund_id=request.fund_id,
        notes=request.notes,
    )
    return investment_response(entry)


@router.put(PERIOD_PATH + "/investments/{entry_id}", response_model=InvestmentResponse)
async def update_investment(
    entry_id: str,
    request: InvestmentUpdateRequest,
    service: BudgetService = Depends(get_budget_service),
):
    entry = await service.update_investment(entry_id, **_changes(request))
    return investment_response(entry)


@router.delete(PERIOD_PATH + "/investments/{entry_id}", status_code=204)
async def delete_investment(entry_id: str, service: BudgetService = Depends(get_budget_service)):
    await service.delete_investment(entry_id)
