# app/services/budget_service.py

"""
SERVICE: BUDGET DASHBOARD SESSION

Owns one user's selection (profile + period), the data loaded for it, and
every read/write the dashboard performs.

• Reads degrade to an empty period on missing auth or backend failure
• Writes: combined view → policy error, no identity → auth error,
  then validation, then the backend; memory changes only after success
• Late fetches for a selection that is no longer current are discarded
"""

import logging
import uuid
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Callable, Optional, Protocol, Sequence, Union

from app.domain.exceptions import (
    AuthenticationRequiredError,
    NotFoundError,
    TransientBackendError,
    ValidationError,
)
from app.domain.models import (
    ZERO,
    AllocationBreakdown,
    BudgetAllocation,
    BudgetCategory,
    BudgetConfig,
    DashboardSummary,
    ExpenseEntry,
    InvestmentEntry,
    PaymentType,
    Period,
    PeriodData,
    Portfolio,
    RefundEntry,
    TransactionStatus,
    UserIdentity,
)
from app.domain.services.allocation_engine import AllocationCalculator, to_decimal
from app.domain.services.config_engine import TagCatalog
from app.domain.services.config_inheritance import ConfigurationInheritance
from app.domain.services.investment_rollup import InvestmentRollup, find_category
from app.domain.services.profile_merger import ProfileMerger, ProfileSelector
from app.domain.services.spend_aggregator import SpendAggregator
from app.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

Transaction = Union[ExpenseEntry, RefundEntry, InvestmentEntry]


class BudgetDataGateway(Protocol):
    """Protocol for budget data access - ASYNC, scoped by user id"""

    async def fetch_period_data(self, user_id: str, profile: str, period: Period) -> Optional[PeriodData]:
        ...

    async def save_config(self, user_id: str, profile: str, period: Period, config: BudgetConfig) -> BudgetConfig:
        ...

    async def save_transaction(self, user_id: str, profile: str, entry: Transaction) -> Transaction:
        ...

    async def save_refund(
        self, user_id: str, profile: str, refund: RefundEntry, original: Optional[ExpenseEntry]
    ) -> RefundEntry:
        ...

    async def soft_delete_transaction(self, user_id: str, profile: str, transaction_id: str) -> None:
        ...

    async def save_portfolios(
        self, user_id: str, profile: str, period: Period, portfolios: Sequence[Portfolio]
    ) -> list[Portfolio]:
        ...

    async def hard_delete_portfolio_node(self, user_id: str, profile: str, period: Period, node_id: str) -> None:
        ...

    async def set_opening_balance(self, user_id: str, profile: str, period: Period, amount: Decimal) -> None:
        ...

    async def add_custom_tag(self, user_id: str, profile: str, category: BudgetCategory, tag: str) -> None:
        ...


class AuthProvider(Protocol):
    """Protocol for the signed-in identity"""

    async def current_user(self) -> Optional[UserIdentity]:
        ...


def _new_id() -> str:
    return str(uuid.uuid4())


def _replace_by_id(items: tuple, item) -> tuple:
    return tuple(item if existing.id == item.id else existing for existing in items)


def _splice_node(portfolios: Sequence[Portfolio], node_id: str) -> tuple[list[Portfolio], bool]:
    """Remove a portfolio, category or fund by id."""
    found = False
    result = []
    for portfolio in portfolios:
        if portfolio.id == node_id:
            found = True
            continue
        categories = []
        for category in portfolio.categories:
            if category.id == node_id:
                found = True
                continue
            funds = tuple(f for f in category.funds if f.id != node_id)
            if len(funds) != len(category.funds):
                found = True
                category = replace(category, funds=funds)
            categories.append(category)
        result.append(replace(portfolio, categories=tuple(categories)))
    return result, found


class BudgetService:
    """
    Budget dashboard session for one signed-in user
    """

    def __init__(
        self,
        gateway: BudgetDataGateway,
        auth: AuthProvider,
        tag_catalog: Optional[TagCatalog] = None,
        allocation_tolerance: Decimal = Decimal("1"),
        id_factory: Callable[[], str] = _new_id,
    ):
        self.gateway = gateway
        self.auth = auth
        self.tag_catalog = tag_catalog or TagCatalog(defaults={})
        self.id_factory = id_factory

        self.calculator = AllocationCalculator()
        self.aggregator = SpendAggregator()
        self.rollup = InvestmentRollup(tolerance=allocation_tolerance)
        self.merger = ProfileMerger()
        self.inheritance = ConfigurationInheritance(id_factory=id_factory)

        self.selector = ProfileSelector()
        self.store = ProfileStore()
        self.period: Optional[Period] = None
        self._active_user_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_profile(self, profile: str) -> None:
        self.selector.select(profile)

    def select_combined(self, profiles: Sequence[str]) -> None:
        self.selector.select_combined(profiles)

    def select_period(self, year: int, month: int) -> None:
        self.period = Period(year=year, month=month)

    def _require_period(self) -> Period:
        if self.period is None:
            raise ValidationError("Select a month and year first")
        return self.period

    def _selection_key(self) -> tuple:
        return (self._active_user_id, self.selector.current, self.selector.profiles, self.period)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _fetch(self, user: Optional[UserIdentity], profile: str, period: Period) -> PeriodData:
        if user is None:
            return PeriodData()
        try:
            data = await self.gateway.fetch_period_data(user.id, profile, period)
        except TransientBackendError as exc:
            logger.warning(
                "Budget fetch failed, showing empty period | profile=%s | period=%s | error=%s",
                profile, period.label, exc,
            )
            return PeriodData()
        return data or PeriodData()

    async def refresh(self) -> bool:
        """
        Load data for the current selection

        Returns:
            False if the selection changed while loading and the result was discarded
        """
        period = self._require_period()
        profiles = self.selector.profiles
        if not profiles:
            raise ValidationError("Select a profile first")

        user = await self.auth.current_user()
        self._active_user_id = user.id if user else None
        key = self._selection_key()

        loaded = {}
        for profile in profiles:
            loaded[profile] = await self._fetch(user, profile, period)

        if self._selection_key() != key:
            logger.info("Discarding stale budget data | profiles=%s | period=%s", profiles, period.label)
            return False

        for profile, data in loaded.items():
            self.store.put(profile, period, data)
        logger.debug("Loaded budget data | profiles=%s | period=%s", profiles, period.label)
        return True

    def _has_data(self, data: PeriodData, period: Period) -> bool:
        if data.config is not None and data.config.has_values:
            return True
        entries = (*data.expenses, *data.refunds, *data.investments)
        return any(not e.is_deleted and period.contains(e.date) for e in entries)

    def _profile_summary(self, profile: str, period: Period) -> DashboardSummary:
        data = self.store.get(profile, period)
        has_data = self._has_data(data, period)
        allocation = self.calculator.calculate_for_config(data.config) if has_data else AllocationBreakdown.empty()

        portfolios, invested = self.rollup.compute(
            data.portfolios, data.investments, period, allocation.amounts.investments
        )
        spend = self.aggregator.summarize(data.expenses, data.refunds, period, invested.total_invested)

        return DashboardSummary(
            period=period,
            profile=profile,
            read_only=False,
            has_data=has_data,
            allocation=allocation,
            spend=spend,
            nodes=tuple(self.rollup.progress(portfolios)),
            opening_balance=data.opening_balance,
        )

    def summary(self) -> DashboardSummary:
        """Recompute every aggregate for the current selection."""
        period = self._require_period()
        if self.selector.is_combined:
            summaries = [self._profile_summary(p, period) for p in self.selector.profiles]
            return self.merger.merge(summaries, period)
        if self.selector.current is None:
            raise ValidationError("Select a profile first")
        return self._profile_summary(self.selector.current, period)

    def computed_portfolios(self) -> list[Portfolio]:
        """The selected profile's plan with derived and invested amounts filled in."""
        period = self._require_period()
        profile = self.selector.current
        data = self.store.get(profile, period)
        budget = self.calculator.investment_budget(data.config)
        portfolios, _ = self.rollup.compute(data.portfolios, data.investments, period, budget)
        return portfolios

    def tags_for(self, category: BudgetCategory) -> list[str]:
        period = self._require_period()
        custom = set()
        for profile in self.selector.profiles:
            custom.update(tag for cat, tag in self.store.get(profile, period).custom_tags if cat == category)
        return self.tag_catalog.tags_for(category, tuple(custom))

    # ------------------------------------------------------------------
    # Write helpers
    # ------------------------------------------------------------------

    async def _begin_write(self, what: str) -> tuple[UserIdentity, str, Period]:
        self.selector.ensure_mutable(what)
        user = await self.auth.current_user()
        if user is None:
            raise AuthenticationRequiredError()
        profile = self.selector.current
        if profile is None:
            raise ValidationError("Select a profile first")
        return user, profile, self._require_period()

    def _data(self, profile: str, period: Period) -> PeriodData:
        return self.store.get(profile, period)

    def _find(self, entries: tuple, entry_id: str, what: str):
        for entry in entries:
            if entry.id == entry_id and not entry.is_deleted:
                return entry
        raise NotFoundError(f"{what} not found: {entry_id}")

    # ------------------------------------------------------------------
    # Budget config
    # ------------------------------------------------------------------

    async def save_config(
        self,
        salary: Decimal,
        budget_percentage: Decimal,
        allocation: BudgetAllocation
    ) -> BudgetConfig:
        user, profile, period = await self._begin_write("Budget configuration")
        existing = self._data(profile, period).config
        config = BudgetConfig(
            salary=to_decimal(salary),
            budget_percentage=to_decimal(budget_percentage),
            allocation=allocation,
            id=existing.id if existing else None,
        )
        self.calculator.validate_config(config)

        saved = await self.gateway.save_config(user.id, profile, period, config)
        self.store.update(profile, period, config=saved)
        logger.info("Saved budget config | profile=%s | period=%s", profile, period.label)
        return saved

    # ------------------------------------------------------------------
    # Expenses and refunds
    # ------------------------------------------------------------------

    async def add_expense(
        self,
        entry_date: date,
        amount: Decimal,
        category: BudgetCategory,
        tag: str = "",
        notes: str = "",
        spent_for: str = "",
        payment_type: Optional[PaymentType] = None
    ) -> ExpenseEntry:
        user, profile, period = await self._begin_write("Expenses")
        entry = ExpenseEntry(
            id=self.id_factory(),
            date=entry_date,
            amount=to_decimal(amount),
            category=category,
            tag=tag,
            notes=notes,
            spent_for=spent_for,
            payment_type=payment_type,
        )
        saved = await self.gateway.save_transaction(user.id, profile, entry)
        data = self._data(profile, period)
        self.store.update(profile, period, expenses=data.expenses + (saved,))
        logger.info("Added expense | profile=%s | category=%s | amount=%s", profile, category.value, saved.amount)
        return saved

    async def update_expense(self, expense_id: str, **changes) -> ExpenseEntry:
        user, profile, period = await self._begin_write("Expenses")
        data = self._data(profile, period)
        current = self._find(data.expenses, expense_id, "Expense")
        if "amount" in changes:
            changes["amount"] = to_decimal(changes["amount"])
        updated = replace(current, **changes)

        saved = await self.gateway.save_transaction(user.id, profile, updated)
        self.store.update(profile, period, expenses=_replace_by_id(data.expenses, saved))
        return saved

    async def delete_expense(self, expense_id: str) -> None:
        user, profile, period = await self._begin_write("Expenses")
        data = self._data(profile, period)
        current = self._find(data.expenses, expense_id, "Expense")

        await self.gateway.soft_delete_transaction(user.id, profile, expense_id)
        self.store.update(
            profile, period, expenses=_replace_by_id(data.expenses, replace(current, is_deleted=True))
        )

    async def add_refund(
        self,
        entry_date: date,
        amount: Decimal,
        category: Optional[BudgetCategory] = None,
        original_expense_id: Optional[str] = None,
        tag: str = "",
        notes: str = "",
        payment_type: Optional[PaymentType] = None
    ) -> RefundEntry:
        """
        Record a refund

        When the original expense is loaded its category is used by default
        and its status becomes refunded (fully covered by refunds) or
        partial_refund. An unknown original id is kept as a plain reference.
        """
        user, profile, period = await self._begin_write("Refunds")
        data = self._data(profile, period)

        original = None
        if original_expense_id:
            original = next(
                (e for e in data.expenses if e.id == original_expense_id and not e.is_deleted), None
            )
        if category is None:
            if original is None:
                raise ValidationError("Refund category is required")
            category = original.category

        refund = RefundEntry(
            id=self.id_factory(),
            date=entry_date,
            amount=to_decimal(amount),
            category=category,
            tag=tag or (original.tag if original else ""),
            notes=notes,
            payment_type=payment_type,
            original_expense_id=original_expense_id,
        )

        marked = None
        if original is not None:
            refunded = refund.amount + sum(
                (r.amount for r in data.refunds if r.original_expense_id == original.id and not r.is_deleted),
                ZERO,
            )
            status = (
                TransactionStatus.REFUNDED if refunded >= original.amount
                else TransactionStatus.PARTIAL_REFUND
            )
            marked = replace(original, status=status)

        # Refund and status change are persisted together or not at all.
        saved = await self.gateway.save_refund(user.id, profile, refund, marked)
        expenses = _replace_by_id(data.expenses, marked) if marked is not None else data.expenses

        self.store.update(profile, period, expenses=expenses, refunds=data.refunds + (saved,))
        logger.info("Added refund | profile=%s | category=%s | amount=%s", profile, category.value, saved.amount)
        return saved

    async def delete_refund(self, refund_id: str) -> None:
        user, profile, period = await self._begin_write("Refunds")
        data = self._data(profile, period)
        current = self._find(data.refunds, refund_id, "Refund")

        await self.gateway.soft_delete_transaction(user.id, profile, refund_id)
        self.store.update(
            profile, period, refunds=_replace_by_id(data.refunds, replace(current, is_deleted=True))
        )

    # ------------------------------------------------------------------
    # Investment entries
    # ------------------------------------------------------------------

    def _build_investment(
        self,
        portfolios: Sequence[Portfolio],
        entry_id: str,
        entry_date: date,
        amount: Decimal,
        portfolio_id: str,
        category_id: Optional[str],
        fund_id: Optional[str],
        notes: str
    ) -> InvestmentEntry:
        portfolio = next((p for p in portfolios if p.id == portfolio_id), None)
        if portfolio is None:
            raise NotFoundError(f"Portfolio not found: {portfolio_id}")

        if not portfolio.allow_direct_investment:
            located = find_category(portfolios, category_id) if category_id else None
            if located is None or located[0].id != portfolio.id:
                raise ValidationError(f"Category does not belong to portfolio '{portfolio.name}'")
            if fund_id and not any(f.id == fund_id for f in located[1].funds):
                raise ValidationError(f"Fund does not belong to category '{located[1].name}'")

        return InvestmentEntry(
            id=entry_id,
            date=entry_date,
            amount=to_decimal(amount),
            portfolio_id=portfolio_id,
            category_id=category_id,
            fund_id=fund_id,
            is_direct_investment=portfolio.allow_direct_investment,
            notes=notes,
        )

    async def add_investment(
        self,
        entry_date: date,
        amount: Decimal,
        portfolio_id: str,
        category_id: Optional[str] = None,
        fund_id: Optional[str] = None,
        notes: str = ""
    ) -> InvestmentEntry:
        user, profile, period = await self._begin_write("Investments")
        data = self._data(profile, period)
        entry = self._build_investment(
            data.portfolios, self.id_factory(), entry_date, amount, portfolio_id, category_id, fund_id, notes
        )
        saved = await self.gateway.save_transaction(user.id, profile, entry)
        self.store.update(profile, period, investments=data.investments + (saved,))
        logger.info("Added investment | profile=%s | portfolio=%s | amount=%s", profile, portfolio_id, saved.amount)
        return saved

    async def update_investment(self, entry_id: str, **changes) -> InvestmentEntry:
        user, profile, period = await self._begin_write("Investments")
        data = self._data(profile, period)
        current = self._find(data.investments, entry_id, "Investment")
        fields = {
            "entry_date": current.date,
            "amount": current.amount,
            "portfolio_id": current.portfolio_id,
            "category_id": current.category_id,
            "fund_id": current.fund_id,
            "notes": current.notes,
        }
        if "date" in changes:
            changes["entry_date"] = changes.pop("date")
        fields.update(changes)
        updated = self._build_investment(data.portfolios, entry_id, **fields)

        saved = await self.gateway.save_transaction(user.id, profile, updated)
        self.store.update(profile, period, investments=_replace_by_id(data.investments, saved))
        return saved

    async def delete_investment(self, entry_id: str) -> None:
        user, profile, period = await self._begin_write("Investments")
        data = self._data(profile, period)
        current = self._find(data.investments, entry_id, "Investment")

        await self.gateway.soft_delete_transaction(user.id, profile, entry_id)
        self.store.update(
            profile, period, investments=_replace_by_id(data.investments, replace(current, is_deleted=True))
        )

    # ------------------------------------------------------------------
    # Investment plan
    # ------------------------------------------------------------------

    async def save_investment_plan(self, portfolios: Sequence[Portfolio]) -> list[Portfolio]:
        """
        Replace the period's investment plan

        Raises:
            ValidationError: If the plan does not match the investment budget
        """
        user, profile, period = await self._begin_write("Investment plans")
        data = self._data(profile, period)
        budget = self.calculator.investment_budget(data.config)
        self.rollup.validate_plan(portfolios, budget)
        derived = self.rollup.derive_allocations(portfolios, budget)

        saved = await self.gateway.save_portfolios(user.id, profile, period, derived)
        self.store.update(profile, period, portfolios=tuple(saved))
        logger.info("Saved investment plan | profile=%s | period=%s | portfolios=%s", profile, period.label, len(saved))
        return saved

    async def delete_portfolio_node(self, node_id: str) -> list[Portfolio]:
        """Remove a portfolio, category or fund and re-derive the rest."""
        user, profile, period = await self._begin_write("Investment plans")
        data = self._data(profile, period)
        remaining, found = _splice_node(data.portfolios, node_id)
        if not found:
            raise NotFoundError(f"Investment plan node not found: {node_id}")

        await self.gateway.hard_delete_portfolio_node(user.id, profile, period, node_id)
        budget = self.calculator.investment_budget(data.config)
        derived = self.rollup.derive_allocations(remaining, budget)
        self.store.update(profile, period, portfolios=tuple(derived))
        return derived

    # ------------------------------------------------------------------
    # Bank balance and tags
    # ------------------------------------------------------------------

    async def set_opening_balance(self, amount: Decimal) -> Decimal:
        user, profile, period = await self._begin_write("Bank balances")
        try:
            value = Decimal(str(amount))
        except ArithmeticError:
            raise ValidationError(f"Invalid opening balance: {amount!r}")
        if value.is_nan() or value < ZERO:
            raise ValidationError("Opening balance cannot be negative")

        await self.gateway.set_opening_balance(user.id, profile, period, value)
        self.store.update(profile, period, opening_balance=value)
        return value

    async def add_custom_tag(self, category: BudgetCategory, tag: str) -> list[str]:
        user, profile, period = await self._begin_write("Tags")
        tag = (tag or "").strip()
        if not tag:
            raise ValidationError("Tag cannot be empty")
        if tag in self.tags_for(category):
            return self.tags_for(category)

        await self.gateway.add_custom_tag(user.id, profile, category, tag)
        data = self._data(profile, period)
        self.store.update(profile, period, custom_tags=data.custom_tags + ((category, tag),))
        return self.tags_for(category)

    # ------------------------------------------------------------------
    # Inheritance
    # ------------------------------------------------------------------

    async def inherit_configuration(self, year: int, month: int) -> PeriodData:
        """
        Copy another period's config and investment plan into the current one

        Raises:
            ValidationError: Same period, nothing to inherit, or an inherited
                plan that does not fit the resulting investment budget
            TransientBackendError: If the source period cannot be read
        """
        user, profile, period = await self._begin_write("Configurations")
        source = Period(year=year, month=month)
        if source == period:
            raise ValidationError("Cannot inherit configuration from the same month and year")

        source_data = await self.gateway.fetch_period_data(user.id, profile, source) or PeriodData()
        config, portfolios = self.inheritance.inherit(
            source, period, source_data.config, source_data.portfolios
        )

        current = self._data(profile, period)
        if config is not None:
            config = replace(config, id=current.config.id if current.config else None)
            self.calculator.validate_config(config)
        effective_config = config or current.config
        budget = self.calculator.investment_budget(effective_config)
        if portfolios:
            self.rollup.validate_plan(portfolios, budget)
            portfolios = self.rollup.derive_allocations(portfolios, budget)

        changes = {}
        if config is not None:
            changes["config"] = await self.gateway.save_config(user.id, profile, period, config)
        if portfolios:
            changes["portfolios"] = tuple(
                await self.gateway.save_portfolios(user.id, profile, period, portfolios)
            )
        data = self.store.update(profile, period, **changes)
        logger.info(
            "Inherited configuration | profile=%s | from=%s | to=%s", profile, source.label, period.label
        )
        return data


