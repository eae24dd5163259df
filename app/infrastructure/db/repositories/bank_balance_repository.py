"""
Bank Balance Repository
Opening balance per (user, profile, month, year)
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import BankBalance, Period
from app.infrastructure.db.models import BankBalanceModel


class BankBalanceRepository:
    """Repository for opening bank balances"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_model(self, user_id: str, profile: str, period: Period) -> Optional[BankBalanceModel]:
        result = await self.session.execute(
            select(BankBalanceModel).where(
                BankBalanceModel.user_id == user_id,
                BankBalanceModel.profile_name == profile,
                BankBalanceModel.year == period.year,
                BankBalanceModel.month == period.month,
            )
        )
        return result.scalar_one_or_none()

    async def get_for_period(self, user_id: str, profile: str, period: Period) -> Optional[BankBalance]:
        model = await self._get_model(user_id, profile, period)
        if model is None:
            return None
        return BankBalance(period=period, opening_balance=Decimal(str(model.opening_balance)))

    async def upsert(self, user_id: str, profile: str, period: Period, amount: Decimal) -> BankBalance:
        model = await self._get_model(user_id, profile, period)
        if model is None:
            model = BankBalanceModel(
                user_id=user_id,
                profile_name=profile,
                year=period.year,
                month=period.month,
            )
            self.session.add(model)
        model.opening_balance = amount
        await self.session.flush()
        return BankBalance(period=period, opening_balance=amount)
