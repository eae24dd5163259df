from decimal import Decimal

import pytest

from app.domain.models import BudgetCategory
from app.domain.services.config_engine import ConfigEngine, TagCatalog


def _write_budget(tmp_path, allocation="need: 50\n    want: 20\n    savings: 15\n    investments: 15", tolerance=1):
    (tmp_path / "budget.yml").write_text(
        f"""
budget:
  default_budget_percentage: 80
  default_allocation:
    {allocation}
investments:
  allocation_tolerance: {tolerance}
tags:
  need: [Rent, Fuel]
  want: [Movies]
""".strip()
    )


def test_shipped_config_loads(config_engine):
    assert config_engine.default_allocation.is_complete
    assert config_engine.default_budget_percentage == Decimal("100")
    assert config_engine.allocation_tolerance == Decimal("1")
    assert "Rent" in config_engine.tag_catalog.tags_for(BudgetCategory.NEED)


def test_custom_config(tmp_path):
    _write_budget(tmp_path, tolerance=2)
    engine = ConfigEngine(tmp_path)
    engine.load_all()

    assert engine.default_budget_percentage == Decimal("80")
    assert engine.allocation_tolerance == Decimal("2")
    assert engine.tag_catalog.tags_for(BudgetCategory.NEED) == ["Fuel", "Rent"]
    assert engine.tag_catalog.tags_for(BudgetCategory.SAVINGS) == []


def test_incomplete_default_allocation_fails_fast(tmp_path):
    _write_budget(tmp_path, allocation="need: 50\n    want: 20\n    savings: 15\n    investments: 10")
    with pytest.raises(ValueError, match="must total 100"):
        ConfigEngine(tmp_path).load_all()


def test_unknown_category_fails_fast(tmp_path):
    _write_budget(tmp_path, allocation="need: 50\n    want: 20\n    savings: 15\n    luxury: 15")
    with pytest.raises(ValueError, match="Unknown budget categories"):
        ConfigEngine(tmp_path).load_all()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigEngine(tmp_path).load_all()


def test_getters_require_load(tmp_path):
    with pytest.raises(RuntimeError):
        ConfigEngine(tmp_path).tag_catalog


def test_tag_catalog_merges_custom_tags_without_duplicates():
    catalog = TagCatalog(defaults={BudgetCategory.WANT: ("Movies", "Shopping")})
    assert catalog.tags_for(BudgetCategory.WANT, ("Concerts", "Movies")) == ["Concerts", "Movies", "Shopping"]
