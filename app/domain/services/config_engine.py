"""
CONFIG ENGINE
Load, validate, and expose budget defaults

RESPONSIBILITIES:
- Load budget.yml
- Validate configuration integrity
- Expose read-only typed objects

RULES:
❌ No defaults if config missing
✅ Fail fast on invalid config
✅ Deterministic output
"""

import yaml
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Dict, Tuple

from app.domain.models import BudgetAllocation, BudgetCategory


@dataclass(frozen=True)
class TagCatalog:
    """Default tags per budget category"""
    defaults: Dict[BudgetCategory, Tuple[str, ...]]

    def tags_for(self, category: BudgetCategory, custom: Tuple[str, ...] = ()) -> list[str]:
        """Default tags merged with custom ones, sorted, no duplicates."""
        return sorted(set(self.defaults.get(category, ())) | set(custom))


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for budget defaults
    """

    def __init__(self, config_dir: Path):
        """Initialize with config directory"""
        self.config_dir = Path(config_dir)
        self._default_allocation: BudgetAllocation = None
        self._default_budget_percentage: Decimal = None
        self._allocation_tolerance: Decimal = None
        self._tag_catalog: TagCatalog = None

    def load_all(self) -> None:
        """Load all configuration files"""
        self._load_budget()
        self._validate_all()

    def _load_budget(self) -> None:
        """Load defaults from budget.yml"""
        budget_file = self.config_dir / "budget.yml"
        if not budget_file.exists():
            raise FileNotFoundError(f"Budget config not found: {budget_file}")

        with open(budget_file, 'r') as f:
            data = yaml.safe_load(f) or {}

        budget = data['budget']
        allocation = {k: Decimal(str(v)) for k, v in budget['default_allocation'].items()}
        unknown = set(allocation) - {c.value for c in BudgetCategory}
        if unknown:
            raise ValueError(f"Unknown budget categories in default_allocation: {sorted(unknown)}")
        self._default_allocation = BudgetAllocation(**allocation)
        self._default_budget_percentage = Decimal(str(budget['default_budget_percentage']))

        self._allocation_tolerance = Decimal(str(data['investments']['allocation_tolerance']))

        defaults = {}
        for key, tags in (data.get('tags') or {}).items():
            try:
                category = BudgetCategory(key)
            except ValueError:
                raise ValueError(f"Unknown budget category in tags: {key}")
            defaults[category] = tuple(str(tag) for tag in tags or ())
        self._tag_catalog = TagCatalog(defaults=defaults)

    def _validate_all(self) -> None:
        """Validate all configurations"""
        if not self._default_allocation.is_complete:
            raise ValueError(
                f"default_allocation must total 100, got {self._default_allocation.total}"
            )
        if not Decimal('1') <= self._default_budget_percentage <= Decimal('100'):
            raise ValueError("default_budget_percentage must be between 1 and 100")
        if self._allocation_tolerance < Decimal('0'):
            raise ValueError("allocation_tolerance cannot be negative")

    # Public getters

    @property
    def default_allocation(self) -> BudgetAllocation:
        if self._default_allocation is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._default_allocation

    @property
    def default_budget_percentage(self) -> Decimal:
        if self._default_budget_percentage is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._default_budget_percentage

    @property
    def allocation_tolerance(self) -> Decimal:
        if self._allocation_tolerance is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._allocation_tolerance

    @property
    def tag_catalog(self) -> TagCatalog:
        if self._tag_catalog is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._tag_catalog
