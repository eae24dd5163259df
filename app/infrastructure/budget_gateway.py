"""
Relational budget gateway.

Implements the budget data-access contract on top of the SQLAlchemy
repositories. Database failures surface as TransientBackendError.
"""

import functools
import logging
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.exceptions import NotFoundError, TransientBackendError
from app.domain.models import (
    ZERO,
    BudgetCategory,
    BudgetConfig,
    ExpenseEntry,
    InvestmentEntry,
    Period,
    PeriodData,
    Portfolio,
    RefundEntry,
)
from app.infrastructure.db.repositories.bank_balance_repository import BankBalanceRepository
from app.infrastructure.db.repositories.budget_config_repository import BudgetConfigRepository
from app.infrastructure.db.repositories.custom_tag_repository import CustomTagRepository
from app.infrastructure.db.repositories.portfolio_repository import PortfolioRepository
from app.infrastructure.db.repositories.transaction_repository import Entry, TransactionRepository

logger = logging.getLogger(__name__)


def _backend_call(func):
    """Roll back and re-raise database errors as TransientBackendError."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.warning("Database call %s failed: %s", func.__name__, exc)
            await self.session.rollback()
            raise TransientBackendError(f"Database unavailable during {func.__name__}") from exc
        except OSError as exc:
            logger.warning("Database connection error in %s: %s", func.__name__, exc)
            raise TransientBackendError(f"Database unreachable during {func.__name__}") from exc

    return wrapper


class SqlBudgetGateway:
    """Budget data access over one AsyncSession"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.configs = BudgetConfigRepository(session)
        self.portfolios = PortfolioRepository(session)
        self.transactions = TransactionRepository(session)
        self.balances = BankBalanceRepository(session)
        self.tags = CustomTagRepository(session)

    @_backend_call
    async def fetch_period_data(self, user_id: str, profile: str, period: Period) -> Optional[PeriodData]:
        config = await self.configs.get_for_period(user_id, profile, period)
        portfolios = await self.portfolios.list_for_period(user_id, profile, period)
        entries = await self.transactions.list_for_period(user_id, profile, period)
        balance = await self.balances.get_for_period(user_id, profile, period)
        tags = await self.tags.list_for_profile(user_id, profile)

        return PeriodData(
            config=config,
            portfolios=tuple(portfolios),
            expenses=tuple(e for e in entries if isinstance(e, ExpenseEntry)),
            refunds=tuple(e for e in entries if isinstance(e, RefundEntry)),
            investments=tuple(e for e in entries if isinstance(e, InvestmentEntry)),
            opening_balance=balance.opening_balance if balance else ZERO,
            custom_tags=tuple(tags),
        )

    @_backend_call
    async def save_config(self, user_id: str, profile: str, period: Period, config: BudgetConfig) -> BudgetConfig:
        return await self.configs.upsert(user_id, profile, period, config)

    @_backend_call
    async def save_transaction(self, user_id: str, profile: str, entry: Entry) -> Entry:
        return await self.transactions.upsert(user_id, profile, entry)

    @_backend_call
    async def save_refund(
        self, user_id: str, profile: str, refund: RefundEntry, original: Optional[ExpenseEntry]
    ) -> RefundEntry:
        saved = await self.transactions.upsert(user_id, profile, refund)
        if original is not None:
            await self.transactions.upsert(user_id, profile, original)
        return saved

    @_backend_call
    async def soft_delete_transaction(self, user_id: str, profile: str, transaction_id: str) -> None:
        if not await self.transactions.soft_delete(user_id, transaction_id):
            raise NotFoundError(f"Transaction not found: {transaction_id}")

    @_backend_call
    async def save_portfolios(
        self, user_id: str, profile: str, period: Period, portfolios: Sequence[Portfolio]
    ) -> list[Portfolio]:
        return await self.portfolios.replace_for_period(user_id, profile, period, portfolios)

    @_backend_call
    async def hard_delete_portfolio_node(self, user_id: str, profile: str, period: Period, node_id: str) -> None:
        if not await self.portfolios.delete_node(user_id, profile, period, node_id):
            raise NotFoundError(f"Investment plan node not found: {node_id}")

    @_backend_call
    async def set_opening_balance(self, user_id: str, profile: str, period: Period, amount: Decimal) -> None:
        await self.balances.upsert(user_id, profile, period, amount)

    @_backend_call
    async def add_custom_tag(self, user_id: str, profile: str, category: BudgetCategory, tag: str) -> None:
        await self.tags.add(user_id, profile, category, tag)
