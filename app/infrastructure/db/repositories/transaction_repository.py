"""
Transaction Repository
Expenses, refunds and investment entries, with an audit trail
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import (
    BudgetCategory,
    ExpenseEntry,
    HistoryAction,
    InvestmentEntry,
    PaymentType,
    Period,
    RefundEntry,
    TransactionStatus,
    TransactionType,
)
from app.infrastructure.db.models import TransactionHistoryModel, TransactionModel
from app.utils.time import month_bounds, now_local_naive

Entry = Union[ExpenseEntry, RefundEntry, InvestmentEntry]

# Columns captured in the audit trail
AUDITED_FIELDS = (
    "type", "category", "amount", "date", "tag", "notes", "spent_for", "payment_type",
    "portfolio_id", "portfolio_category_id", "fund_id", "is_direct_investment",
    "refund_for", "status", "is_deleted",
)


def _snapshot(model: TransactionModel) -> dict:
    values = {}
    for name in AUDITED_FIELDS:
        value = getattr(model, name)
        if isinstance(value, (Decimal, date)):
            value = str(value)
        values[name] = value
    return values


class TransactionRepository:
    """Repository for transaction data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def _get_model(self, user_id: str, transaction_id: str) -> Optional[TransactionModel]:
        result = await self.session.execute(
            select(TransactionModel).where(
                TransactionModel.user_id == user_id,
                TransactionModel.id == transaction_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_period(self, user_id: str, profile: str, period: Period) -> list[Entry]:
        """Active (not deleted) entries dated inside the period."""
        start, end = month_bounds(period.year, period.month)
        result = await self.session.execute(
            select(TransactionModel)
            .where(
                TransactionModel.user_id == user_id,
                TransactionModel.profile_name == profile,
                TransactionModel.is_deleted.is_(False),
                TransactionModel.date >= start,
                TransactionModel.date <= end,
                TransactionModel.type.in_((
                    TransactionType.EXPENSE.value,
                    TransactionType.REFUND.value,
                    TransactionType.INVESTMENT.value,
                )),
            )
            .order_by(TransactionModel.date, TransactionModel.created_at)
        )
        return [self._to_domain(m) for m in result.scalars().all()]

    async def get(self, user_id: str, transaction_id: str) -> Optional[Entry]:
        model = await self._get_model(user_id, transaction_id)
        return self._to_domain(model) if model else None

    async def upsert(self, user_id: str, profile: str, entry: Entry) -> Entry:
        """
        Insert or update an entry and record the change

        History actions: created for new rows; refunded when the status
        moves to refunded/partial_refund; amount_reduced when only the
        amount went down; updated otherwise.
        """
        model = await self._get_model(user_id, entry.id)
        old_values = None
        if model is None:
            model = TransactionModel(id=entry.id, user_id=user_id, profile_name=profile)
            self.session.add(model)
        else:
            old_values = _snapshot(model)

        self._apply(model, entry)
        new_values = _snapshot(model)

        if old_values is None:
            action = HistoryAction.CREATED
        elif new_values == old_values:
            await self.session.flush()
            return self._to_domain(model)
        elif old_values["status"] != new_values["status"] and new_values["status"] in (
            TransactionStatus.REFUNDED.value, TransactionStatus.PARTIAL_REFUND.value
        ):
            action = HistoryAction.REFUNDED
        elif Decimal(new_values["amount"]) < Decimal(old_values["amount"]) and all(
            old_values[k] == new_values[k] for k in AUDITED_FIELDS if k != "amount"
        ):
            action = HistoryAction.AMOUNT_REDUCED
        else:
            action = HistoryAction.UPDATED

        self.session.add(TransactionHistoryModel(
            transaction_id=entry.id,
            user_id=user_id,
            action=action.value,
            old_values=old_values,
            new_values=new_values,
        ))
        await self.session.flush()
        return self._to_domain(model)

    async def soft_delete(self, user_id: str, transaction_id: str) -> bool:
        model = await self._get_model(user_id, transaction_id)
        if model is None or model.is_deleted:
            return False

        old_values = _snapshot(model)
        model.is_deleted = True
        model.deleted_at = now_local_naive()
        self.session.add(TransactionHistoryModel(
            transaction_id=transaction_id,
            user_id=user_id,
            action=HistoryAction.DELETED.value,
            old_values=old_values,
            new_values=_snapshot(model),
        ))
        await self.session.flush()
        return True

    async def history(self, user_id: str, transaction_id: str) -> list[TransactionHistoryModel]:
        result = await self.session.execute(
            select(TransactionHistoryModel)
            .where(
                TransactionHistoryModel.user_id == user_id,
                TransactionHistoryModel.transaction_id == transaction_id,
            )
            .order_by(TransactionHistoryModel.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def _apply(model: TransactionModel, entry: Entry) -> None:
        model.date = entry.date
        model.notes = entry.notes
        model.is_deleted = entry.is_deleted
        # Stored amounts come back as Numeric(12, 2); keep the comparison stable.
        model.amount = Decimal(str(entry.amount)).quantize(Decimal("0.01"))

        if isinstance(entry, InvestmentEntry):
            model.type = TransactionType.INVESTMENT.value
            model.category = BudgetCategory.INVESTMENTS.value
            model.tag = ""
            model.spent_for = ""
            model.payment_type = None
            model.portfolio_id = entry.portfolio_id
            model.portfolio_category_id = entry.category_id
            model.fund_id = entry.fund_id
            model.is_direct_investment = entry.is_direct_investment
            model.refund_for = None
            model.status = TransactionStatus.ACTIVE.value
            return

        model.category = entry.category.value
        model.tag = entry.tag
        model.payment_type = entry.payment_type.value if entry.payment_type else None
        model.portfolio_id = None
        model.portfolio_category_id = None
        model.fund_id = None
        model.is_direct_investment = False

        if isinstance(entry, RefundEntry):
            model.type = TransactionType.REFUND.value
            model.spent_for = ""
            model.refund_for = entry.original_expense_id
            model.status = TransactionStatus.ACTIVE.value
        else:
            model.type = TransactionType.EXPENSE.value
            model.spent_for = entry.spent_for
            model.refund_for = None
            model.status = entry.status.value

    @staticmethod
    def _to_domain(model: TransactionModel) -> Entry:
        """Convert database model to domain entity"""
        amount = Decimal(str(model.amount))
        payment_type = PaymentType(model.payment_type) if model.payment_type else None

        if model.type == TransactionType.INVESTMENT.value:
            return InvestmentEntry(
                id=model.id,
                date=model.date,
                amount=amount,
                portfolio_id=model.portfolio_id,
                category_id=model.portfolio_category_id,
                fund_id=model.fund_id,
                is_direct_investment=bool(model.is_direct_investment),
                notes=model.notes or "",
                is_deleted=bool(model.is_deleted),
            )
        if model.type == TransactionType.REFUND.value:
            return RefundEntry(
                id=model.id,
                date=model.date,
                amount=amount,
                category=BudgetCategory(model.category),
                tag=model.tag or "",
                notes=model.notes or "",
                payment_type=payment_type,
                original_expense_id=model.refund_for,
                is_deleted=bool(model.is_deleted),
            )
        return ExpenseEntry(
            id=model.id,
            date=model.date,
            amount=amount,
            category=BudgetCategory(model.category),
            tag=model.tag or "",
            notes=model.notes or "",
            spent_for=model.spent_for or "",
            payment_type=payment_type,
            status=TransactionStatus(model.status),
            is_deleted=bool(model.is_deleted),
        )
