"""
RECORD MIGRATION
Upgrade stored budget documents to the current schema, once, at load time

Document layout (current version):

    {
      "schema_version": 2,
      "profiles": {
        "<profile>": {
          "configs":            {"YYYY-MM": {...}},
          "portfolios":         {"YYYY-MM": [...]},
          "expenses":           [...],
          "refunds":            [...],
          "investment_entries": [...],
          "bank_balances":      [...],
          "custom_tags":        ["category:tag", ...]
        }
      }
    }

Version 0 documents are the bare profile mapping without the envelope.
Version 1 documents predate direct investments and may miss fields that
every later reader expects; version 2 fills them in explicitly.
"""

import copy
import logging
from typing import Any, Callable

from app.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2

PROFILE_LIST_FIELDS = ("expenses", "refunds", "investment_entries", "bank_balances", "custom_tags")
PROFILE_MAP_FIELDS = ("configs", "portfolios")


def _v0_to_v1(document: dict) -> dict:
    profiles = {name: data for name, data in document.items() if isinstance(data, dict)}
    return {"schema_version": 1, "profiles": profiles}


def _backfill_portfolio(portfolio: dict) -> None:
    portfolio.setdefault("allow_direct_investment", False)
    portfolio.setdefault("invested_amount", "0")
    categories = portfolio.get("categories")
    if categories is None:
        categories = portfolio["categories"] = []
    for category in categories:
        category.setdefault("invested_amount", "0")
        funds = category.get("funds")
        if funds is None:
            funds = category["funds"] = []
        for fund in funds:
            fund.setdefault("invested_amount", "0")


def _v1_to_v2(document: dict) -> dict:
    for profile in document.get("profiles", {}).values():
        for name in PROFILE_LIST_FIELDS:
            if profile.get(name) is None:
                profile[name] = []
        for name in PROFILE_MAP_FIELDS:
            if profile.get(name) is None:
                profile[name] = {}
        for plan in profile["portfolios"].values():
            for portfolio in plan:
                _backfill_portfolio(portfolio)
        for entry in profile["investment_entries"]:
            entry.setdefault("is_direct_investment", False)
            entry.setdefault("is_deleted", False)
        for name in ("expenses", "refunds"):
            for entry in profile[name]:
                entry.setdefault("is_deleted", False)
    document["schema_version"] = 2
    return document


MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    0: _v0_to_v1,
    1: _v1_to_v2,
}


def detect_version(document: dict) -> int:
    version = document.get("schema_version")
    if version is None:
        return 0
    if not isinstance(version, int) or version < 0:
        raise ValidationError(f"Invalid schema_version: {version!r}")
    return version


def migrate_document(document: Any) -> tuple[dict, bool]:
    """
    Upgrade a stored document to CURRENT_SCHEMA_VERSION

    The input is not modified.

    Returns:
        (migrated_document, changed)

    Raises:
        ValidationError: If the document is not a mapping or was written
            by a newer schema than this code understands
    """
    if not isinstance(document, dict):
        raise ValidationError("Stored budget document must be a JSON object")

    version = detect_version(document)
    if version > CURRENT_SCHEMA_VERSION:
        raise ValidationError(
            f"Stored budget document has schema_version {version}, "
            f"newer than supported {CURRENT_SCHEMA_VERSION}"
        )
    if version == CURRENT_SCHEMA_VERSION:
        return document, False

    migrated = copy.deepcopy(document)
    while version < CURRENT_SCHEMA_VERSION:
        logger.info("Migrating budget document from schema v%s to v%s", version, version + 1)
        migrated = MIGRATIONS[version](migrated)
        version += 1
    return migrated, True
