"""
Portfolio Repository
Investment plan per (user, profile, month, year)
"""

from decimal import Decimal
from typing import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import AllocationType, Period, Portfolio
from app.infrastructure.db.models import InvestmentPortfolioModel
from app.infrastructure.serialization import category_from_dict, category_to_dict


class PortfolioRepository:
    """Repository for the investment plan"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    def _period_query(self, user_id: str, profile: str, period: Period):
        return select(InvestmentPortfolioModel).where(
            InvestmentPortfolioModel.user_id == user_id,
            InvestmentPortfolioModel.profile_name == profile,
            InvestmentPortfolioModel.year == period.year,
            InvestmentPortfolioModel.month == period.month,
        )

    async def list_for_period(self, user_id: str, profile: str, period: Period) -> list[Portfolio]:
        result = await self.session.execute(
            self._period_query(user_id, profile, period).order_by(InvestmentPortfolioModel.position)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def replace_for_period(
        self,
        user_id: str,
        profile: str,
        period: Period,
        portfolios: Sequence[Portfolio]
    ) -> list[Portfolio]:
        """
        Make the stored plan equal to `portfolios`

        Rows missing from the new plan are deleted; the rest are updated
        in place or inserted.
        """
        result = await self.session.execute(self._period_query(user_id, profile, period))
        existing = {m.id: m for m in result.scalars().all()}
        keep_ids = {p.id for p in portfolios}

        for model_id, model in existing.items():
            if model_id not in keep_ids:
                await self.session.delete(model)

        for position, portfolio in enumerate(portfolios):
            model = existing.get(portfolio.id)
            if model is None:
                model = InvestmentPortfolioModel(
                    id=portfolio.id,
                    user_id=user_id,
                    profile_name=profile,
                    year=period.year,
                    month=period.month,
                )
                self.session.add(model)
            self._apply(model, portfolio, position)

        await self.session.flush()
        return list(portfolios)

    async def delete_node(self, user_id: str, profile: str, period: Period, node_id: str) -> bool:
        """
        Hard-delete a portfolio row, or splice a category/fund out of its JSON

        Returns:
            True if a node was removed
        """
        removed = await self.session.execute(
            delete(InvestmentPortfolioModel).where(
                InvestmentPortfolioModel.user_id == user_id,
                InvestmentPortfolioModel.id == node_id,
            )
        )
        if removed.rowcount:
            await self.session.flush()
            return True

        result = await self.session.execute(self._period_query(user_id, profile, period))
        for model in result.scalars().all():
            categories = []
            changed = False
            for category in model.categories or []:
                if category.get("id") == node_id:
                    changed = True
                    continue
                funds = [f for f in category.get("funds", []) if f.get("id") != node_id]
                if len(funds) != len(category.get("funds", [])):
                    changed = True
                    category = {**category, "funds": funds}
                categories.append(category)
            if changed:
                # Reassign so the JSON column is marked dirty.
                model.categories = categories
                await self.session.flush()
                return True
        return False

    @staticmethod
    def _apply(model: InvestmentPortfolioModel, portfolio: Portfolio, position: int) -> None:
        model.name = portfolio.name
        model.allocation_type = portfolio.allocation_type.value
        model.allocation_value = portfolio.allocation_value
        model.allocated_amount = portfolio.allocated_amount
        model.allow_direct_investment = portfolio.allow_direct_investment
        model.categories = [category_to_dict(c) for c in portfolio.categories]
        model.position = position

    @staticmethod
    def _to_domain(model: InvestmentPortfolioModel) -> Portfolio:
        """Convert database model to domain entity"""
        return Portfolio(
            id=model.id,
            name=model.name,
            allocation_type=AllocationType(model.allocation_type),
            allocation_value=Decimal(str(model.allocation_value)),
            allocated_amount=Decimal(str(model.allocated_amount or 0)),
            allow_direct_investment=bool(model.allow_direct_investment),
            categories=tuple(category_from_dict(c) for c in model.categories or []),
        )
