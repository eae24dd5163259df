"""
Configuration inheritance: start a period from another period's setup.
"""

import uuid
from dataclasses import replace
from typing import Callable, Optional, Sequence

from app.domain.exceptions import ValidationError
from app.domain.models import ZERO, BudgetConfig, Period, Portfolio


def _new_id() -> str:
    return str(uuid.uuid4())


class ConfigurationInheritance:
    """
    Copies a budget config and investment plan between periods.

    Copied plan nodes get fresh ids and start with nothing invested;
    allocated amounts are re-derived by the caller for the target period.
    """

    def __init__(self, id_factory: Callable[[], str] = _new_id):
        self.id_factory = id_factory

    def inherit(
        self,
        source: Period,
        target: Period,
        config: Optional[BudgetConfig],
        portfolios: Sequence[Portfolio]
    ) -> tuple[Optional[BudgetConfig], list[Portfolio]]:
        if source == target:
            raise ValidationError("Cannot inherit configuration from the same month and year")
        if config is None and not portfolios:
            raise ValidationError(f"No configurations found for {source.label}")

        new_config = replace(config, id=None) if config is not None else None
        return new_config, [self._clone_portfolio(p) for p in portfolios]

    def _clone_portfolio(self, portfolio: Portfolio) -> Portfolio:
        categories = tuple(
            replace(
                category,
                id=self.id_factory(),
                invested_amount=ZERO,
                funds=tuple(
                    replace(fund, id=self.id_factory(), invested_amount=ZERO)
                    for fund in category.funds
                ),
            )
            for category in portfolio.categories
        )
        return replace(
            portfolio,
            id=self.id_factory(),
            invested_amount=ZERO,
            categories=categories,
        )
