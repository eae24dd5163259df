"""
INVESTMENT ROLLUP
Portfolio → category → fund plan: allocated, invested, remaining per node

RESPONSIBILITIES:
- Derive allocated amounts top-down from the investment budget
- Accumulate the period's investment entries bottom-up
- Validate a plan before it is persisted

RULES:
✅ Allocated amounts are always derived, never edited
✅ Funds split their category equally
✅ Portfolio accumulator always receives the entry; category/fund only when referenced
✅ Remaining is not clamped (negative = over-invested)
✅ Plan total must match the investment budget within the tolerance
"""

from collections import defaultdict
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Sequence

from app.domain.exceptions import ValidationError
from app.domain.models import (
    ZERO,
    HUNDRED,
    AllocationType,
    InvestmentEntry,
    InvestmentRollupResult,
    NodeProgress,
    Period,
    Portfolio,
    PortfolioCategory,
)
from app.domain.services.allocation_engine import round_amount

DEFAULT_TOLERANCE = Decimal("1")


def node_allocated_amount(
    allocation_type: AllocationType,
    allocation_value: Decimal,
    parent_amount: Decimal
) -> Decimal:
    """Allocated amount of a node against its parent's amount."""
    if allocation_type == AllocationType.PERCENTAGE:
        return round_amount(parent_amount * allocation_value / HUNDRED)
    return allocation_value


def fund_split(category_amount: Decimal, fund_count: int) -> Decimal:
    if fund_count <= 0:
        return ZERO
    return round_amount(category_amount / Decimal(fund_count))


class InvestmentRollup:
    """
    Investment Rollup
    Pure calculations over the investment plan tree
    """

    def __init__(self, tolerance: Decimal = DEFAULT_TOLERANCE):
        self.tolerance = tolerance

    # ------------------------------------------------------------------
    # Allocation (top-down)
    # ------------------------------------------------------------------

    def derive_allocations(
        self,
        portfolios: Sequence[Portfolio],
        total_investment: Decimal
    ) -> list[Portfolio]:
        """
        Recompute allocated amounts at every level of the plan

        Invested amounts are left untouched.
        """
        derived = []
        for portfolio in portfolios:
            portfolio_amount = node_allocated_amount(
                portfolio.allocation_type, portfolio.allocation_value, total_investment
            )
            categories = []
            for category in portfolio.categories:
                category_amount = node_allocated_amount(
                    category.allocation_type, category.allocation_value, portfolio_amount
                )
                per_fund = fund_split(category_amount, len(category.funds))
                funds = tuple(replace(fund, allocated_amount=per_fund) for fund in category.funds)
                categories.append(
                    replace(category, allocated_amount=category_amount, funds=funds)
                )
            derived.append(
                replace(portfolio, allocated_amount=portfolio_amount, categories=tuple(categories))
            )
        return derived

    # ------------------------------------------------------------------
    # Invested (bottom-up)
    # ------------------------------------------------------------------

    def rollup(self, entries: Iterable[InvestmentEntry], period: Period) -> InvestmentRollupResult:
        portfolio_invested: dict[str, Decimal] = defaultdict(lambda: ZERO)
        category_invested: dict[str, Decimal] = defaultdict(lambda: ZERO)
        fund_invested: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for entry in entries:
            if entry.is_deleted or not period.contains(entry.date):
                continue
            if entry.fund_id:
                fund_invested[entry.fund_id] += entry.amount
            if entry.category_id:
                category_invested[entry.category_id] += entry.amount
            portfolio_invested[entry.portfolio_id] += entry.amount

        return InvestmentRollupResult(
            portfolio_invested=dict(portfolio_invested),
            category_invested=dict(category_invested),
            fund_invested=dict(fund_invested),
        )

    def apply_invested(
        self,
        portfolios: Sequence[Portfolio],
        result: InvestmentRollupResult
    ) -> list[Portfolio]:
        """Copy the accumulators onto the plan nodes."""
        applied = []
        for portfolio in portfolios:
            categories = []
            for category in portfolio.categories:
                funds = tuple(
                    replace(fund, invested_amount=result.fund_invested.get(fund.id, ZERO))
                    for fund in category.funds
                )
                categories.append(
                    replace(
                        category,
                        invested_amount=result.category_invested.get(category.id, ZERO),
                        funds=funds,
                    )
                )
            applied.append(
                replace(
                    portfolio,
                    invested_amount=result.portfolio_invested.get(portfolio.id, ZERO),
                    categories=tuple(categories),
                )
            )
        return applied

    def compute(
        self,
        portfolios: Sequence[Portfolio],
        entries: Iterable[InvestmentEntry],
        period: Period,
        total_investment: Decimal
    ) -> tuple[list[Portfolio], InvestmentRollupResult]:
        """Derive allocations and apply the period's invested amounts."""
        derived = self.derive_allocations(portfolios, total_investment)
        result = self.rollup(entries, period)
        return self.apply_invested(derived, result), result

    @staticmethod
    def progress(portfolios: Sequence[Portfolio]) -> list[NodeProgress]:
        """Flatten a computed plan into per-node progress rows."""
        rows = []
        for portfolio in portfolios:
            rows.append(NodeProgress(
                node_id=portfolio.id,
                name=portfolio.name,
                level="portfolio",
                allocated=portfolio.allocated_amount,
                invested=portfolio.invested_amount,
            ))
            for category in portfolio.categories:
                rows.append(NodeProgress(
                    node_id=category.id,
                    name=category.name,
                    level="category",
                    allocated=category.allocated_amount,
                    invested=category.invested_amount,
                    parent_id=portfolio.id,
                ))
                for fund in category.funds:
                    rows.append(NodeProgress(
                        node_id=fund.id,
                        name=fund.name,
                        level="fund",
                        allocated=fund.allocated_amount,
                        invested=fund.invested_amount,
                        parent_id=category.id,
                    ))
        return rows

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_plan(self, portfolios: Sequence[Portfolio], total_investment: Decimal) -> None:
        """
        Check a plan before persisting it

        Raises:
            ValidationError: On unnamed nodes, duplicate ids, or a portfolio
                total that misses the investment budget by more than the tolerance
        """
        seen_ids: set[str] = set()

        def check_node(node_id: str, name: str, kind: str) -> None:
            if not name or not name.strip():
                raise ValidationError(f"{kind} name is required")
            if node_id in seen_ids:
                raise ValidationError(f"Duplicate {kind.lower()} id: {node_id}")
            seen_ids.add(node_id)

        for portfolio in portfolios:
            check_node(portfolio.id, portfolio.name, "Portfolio")
            for category in portfolio.categories:
                check_node(category.id, category.name, "Category")
                for fund in category.funds:
                    check_node(fund.id, fund.name, "Fund")

        if not portfolios:
            # An empty plan leaves the investment budget unassigned.
            return

        derived = self.derive_allocations(portfolios, total_investment)
        allocated = sum((p.allocated_amount for p in derived), ZERO)
        if abs(allocated - total_investment) > self.tolerance:
            raise ValidationError(
                f"Portfolio allocations total {allocated} but the investment budget is "
                f"{total_investment}; the difference must be at most {self.tolerance}"
            )


def find_category(portfolios: Sequence[Portfolio], category_id: str) -> tuple[Portfolio, PortfolioCategory] | None:
    for portfolio in portfolios:
        category = portfolio.find_category(category_id)
        if category is not None:
            return portfolio, category
    return None
