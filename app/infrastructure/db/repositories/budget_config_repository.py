"""
Budget Config Repository
One salary/allocation row per (user, profile, month, year)
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import BudgetAllocation, BudgetConfig, Period
from app.infrastructure.db.models import BudgetConfigModel


class BudgetConfigRepository:
    """Repository for BudgetConfig data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def _get_model(self, user_id: str, profile: str, period: Period) -> Optional[BudgetConfigModel]:
        result = await self.session.execute(
            select(BudgetConfigModel).where(
                BudgetConfigModel.user_id == user_id,
                BudgetConfigModel.profile_name == profile,
                BudgetConfigModel.year == period.year,
                BudgetConfigModel.month == period.month,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_period(self, user_id: str, profile: str, period: Period) -> Optional[BudgetConfig]:
        model = await self._get_model(user_id, profile, period)
        return self._to_domain(model)

    async def upsert(self, user_id: str, profile: str, period: Period, config: BudgetConfig) -> BudgetConfig:
        """
        Insert or update the period's config

        Conflicts resolve on (user, profile, year, month); the stored id wins.
        """
        model = await self._get_model(user_id, profile, period)
        if model is None:
            model = BudgetConfigModel(
                id=config.id or str(uuid.uuid4()),
                user_id=user_id,
                profile_name=profile,
                year=period.year,
                month=period.month,
            )
            self.session.add(model)

        model.monthly_salary = config.salary
        model.budget_percentage = config.budget_percentage
        model.need_percentage = config.allocation.need
        model.want_percentage = config.allocation.want
        model.savings_percentage = config.allocation.savings
        model.investments_percentage = config.allocation.investments

        await self.session.flush()
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: Optional[BudgetConfigModel]) -> Optional[BudgetConfig]:
        """Convert database model to domain entity"""
        if model is None:
            return None

        return BudgetConfig(
            id=model.id,
            salary=Decimal(str(model.monthly_salary)),
            budget_percentage=Decimal(str(model.budget_percentage)),
            allocation=BudgetAllocation(
                need=Decimal(str(model.need_percentage)),
                want=Decimal(str(model.want_percentage)),
                savings=Decimal(str(model.savings_percentage)),
                investments=Decimal(str(model.investments_percentage)),
            ),
        )
