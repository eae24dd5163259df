"""
Budget API Routes
Dashboard summary, salary configuration, investment plan, balances and tags

Every path is scoped to /{profile}/{year}/{month}. `combined` as profile
returns the merged read-only view of the profiles given in `members`.
"""

import uuid
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.dependencies import get_budget_service
from app.domain.models import (
    AllocationType,
    BudgetAllocation,
    BudgetCategory,
    CategoryAmounts,
    DashboardSummary,
    Fund,
    Portfolio,
    PortfolioCategory,
)
from app.services.budget_service import BudgetService

router = APIRouter()

PERIOD_PATH = "/{profile}/{year}/{month}"


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


# -------------------------------------------------------------------
# Request / Response models
# -------------------------------------------------------------------

class AllocationModel(BaseModel):
    need: float = Field(..., ge=0, le=100)
    want: float = Field(..., ge=0, le=100)
    savings: float = Field(..., ge=0, le=100)
    investments: float = Field(..., ge=0, le=100)


class ConfigRequest(BaseModel):
    """Salary configuration for the period"""
    salary: float = Field(..., ge=0, description="Monthly salary")
    budget_percentage: float = Field(..., ge=1, le=100, description="Share of salary budgeted")
    allocation: AllocationModel


class ConfigResponse(BaseModel):
    id: Optional[str]
    salary: float
    budget_percentage: float
    allocation: AllocationModel


class CategoryAmountsModel(BaseModel):
    need: float
    want: float
    savings: float
    investments: float

    @classmethod
    def of(cls, amounts: CategoryAmounts) -> "CategoryAmountsModel":
        return cls(
            need=float(amounts.need),
            want=float(amounts.want),
            savings=float(amounts.savings),
            investments=float(amounts.investments),
        )


class NodeResponse(BaseModel):
    node_id: str
    name: str
    level: str
    parent_id: Optional[str] = None
    allocated: float
    invested: float
    remaining: float
    progress_percent: float
    over_budget: bool


class SummaryResponse(BaseModel):
    period: str
    profile: str
    read_only: bool
    has_data: bool
    total_budget: float
    allocated: CategoryAmountsModel
    spent: CategoryAmountsModel
    expenses: CategoryAmountsModel
    refunds: CategoryAmountsModel
    total_spent: float
    total_remaining: float
    opening_balance: float
    current_balance: float
    nodes: List[NodeResponse]


class FundModel(BaseModel):
    id: Optional[str] = None
    name: str
    allocated_amount: float = 0


class PlanCategoryModel(BaseModel):
    id: Optional[str] = None
    name: str
    allocation_type: AllocationType
    allocation_value: float = Field(..., ge=0)
    allocated_amount: float = 0
    funds: List[FundModel] = []


class PortfolioModel(BaseModel):
    id: Optional[str] = None
    name: str
    allocation_type: AllocationType
    allocation_value: float = Field(..., ge=0)
    allow_direct_investment: bool = False
    allocated_amount: float = 0
    categories: List[PlanCategoryModel] = []


class PlanRequest(BaseModel):
    portfolios: List[PortfolioModel]


class OpeningBalanceRequest(BaseModel):
    amount: float = Field(..., ge=0)


class TagRequest(BaseModel):
    tag: str = Field(..., min_length=1, max_length=100)


class InheritRequest(BaseModel):
    year: int = Field(..., ge=1)
    month: int = Field(..., ge=1, le=12)


def summary_response(summary: DashboardSummary) -> SummaryResponse:
    return SummaryResponse(
        period=summary.period.label,
        profile=summary.profile,
        read_only=summary.read_only,
        has_data=summary.has_data,
        total_budget=float(summary.allocation.total_budget),
        allocated=CategoryAmountsModel.of(summary.allocation.amounts),
        spent=CategoryAmountsModel.of(summary.spend.net),
        expenses=CategoryAmountsModel.of(summary.spend.expenses),
        refunds=CategoryAmountsModel.of(summary.spend.refunds),
        total_spent=float(summary.total_spent),
        total_remaining=float(summary.total_remaining),
        opening_balance=float(summary.opening_balance),
        current_balance=float(summary.current_balance),
        nodes=[
            NodeResponse(
                node_id=node.node_id,
                name=node.name,
                level=node.level,
                parent_id=node.parent_id,
                allocated=float(node.allocated),
                invested=float(node.invested),
                remaining=float(node.remaining),
                progress_percent=float(node.progress_percent),
                over_budget=node.is_over_budget,
            )
            for node in summary.nodes
        ],
    )


def plan_to_domain(request: PlanRequest) -> list[Portfolio]:
    """Build plan entities; nodes without an id get a fresh one."""
    def new_id(value: Optional[str]) -> str:
        return value or str(uuid.uuid4())

    return [
        Portfolio(
            id=new_id(p.id),
            name=p.name,
            allocation_type=p.allocation_type,
            allocation_value=_dec(p.allocation_value),
            allow_direct_investment=p.allow_direct_investment,
            categories=tuple(
                PortfolioCategory(
                    id=new_id(c.id),
                    name=c.name,
                    allocation_type=c.allocation_type,
                    allocation_value=_dec(c.allocation_value),
                    funds=tuple(Fund(id=new_id(f.id), name=f.name) for f in c.funds),
                )
                for c in p.categories
            ),
        )
        for p in request.portfolios
    ]


def plan_response(portfolios: list[Portfolio]) -> list[PortfolioModel]:
    return [
        PortfolioModel(
            id=p.id,
            name=p.name,
            allocation_type=p.allocation_type,
            allocation_value=float(p.allocation_value),
            allow_direct_investment=p.allow_direct_investment,
            allocated_amount=float(p.allocated_amount),
            categories=[
                PlanCategoryModel(
                    id=c.id,
                    name=c.name,
                    allocation_type=c.allocation_type,
                    allocation_value=float(c.allocation_value),
                    allocated_amount=float(c.allocated_amount),
                    funds=[
                        FundModel(id=f.id, name=f.name, allocated_amount=float(f.allocated_amount))
                        for f in c.funds
                    ],
                )
                for c in p.categories
            ],
        )
        for p in portfolios
    ]


# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------

@router.get(PERIOD_PATH + "/summary", response_model=SummaryResponse)
async def get_summary(service: BudgetService = Depends(get_budget_service)):
    """
    Allocated vs spent per category, investment plan progress and balance
    """
    return summary_response(service.summary())


@router.put(PERIOD_PATH + "/config", response_model=ConfigResponse)
async def save_config(request: ConfigRequest, service: BudgetService = Depends(get_budget_service)):
    allocation = BudgetAllocation(
        need=_dec(request.allocation.need),
        want=_dec(request.allocation.want),
        savings=_dec(request.allocation.savings),
        investments=_dec(request.allocation.investments),
    )
    config = await service.save_config(_dec(request.salary), _dec(request.budget_percentage), allocation)
    return ConfigResponse(
        id=config.id,
        salary=float(config.salary),
        budget_percentage=float(config.budget_percentage),
        allocation=AllocationModel(**{k: float(v) for k, v in config.allocation.as_dict().items()}),
    )


@router.get(PERIOD_PATH + "/portfolios", response_model=List[PortfolioModel])
async def get_plan(service: BudgetService = Depends(get_budget_service)):
    return plan_response(service.computed_portfolios())


@router.put(PERIOD_PATH + "/portfolios", response_model=List[PortfolioModel])
async def save_plan(request: PlanRequest, service: BudgetService = Depends(get_budget_service)):
    """
    Replace the period's investment plan

    Allocated amounts are derived server-side; values sent by the client
    are ignored.
    """
    saved = await service.save_investment_plan(plan_to_domain(request))
    return plan_response(saved)


@router.delete(PERIOD_PATH + "/portfolios/nodes/{node_id}", response_model=List[PortfolioModel])
async def delete_plan_node(node_id: str, service: BudgetService = Depends(get_budget_service)):
    remaining = await service.delete_portfolio_node(node_id)
    return plan_response(remaining)


@router.put(PERIOD_PATH + "/opening-balance")
async def set_opening_balance(request: OpeningBalanceRequest, service: BudgetService = Depends(get_budget_service)):
    amount = await service.set_opening_balance(_dec(request.amount))
    summary = service.summary()
    return {
        "opening_balance": float(amount),
        "current_balance": float(summary.current_balance),
    }


@router.get(PERIOD_PATH + "/tags/{category}", response_model=List[str])
async def get_tags(category: BudgetCategory, service: BudgetService = Depends(get_budget_service)):
    return service.tags_for(category)


@router.post(PERIOD_PATH + "/tags/{category}", response_model=List[str])
async def add_tag(category: BudgetCategory, request: TagRequest, service: BudgetService = Depends(get_budget_service)):
    return await service.add_custom_tag(category, request.tag)


@router.post(PERIOD_PATH + "/inherit", response_model=SummaryResponse)
async def inherit_configuration(request: InheritRequest, service: BudgetService = Depends(get_budget_service)):
    """
    Copy another period's salary configuration and investment plan here
    """
    await service.inherit_configuration(request.year, request.month)
    return summary_response(service.summary())
