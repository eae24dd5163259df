"""
Local budget store.

One JSON document per user holding every profile. Documents are migrated
to the current schema when read and written back atomically.
"""

import asyncio
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional, Sequence

from app.domain.exceptions import NotFoundError, TransientBackendError, ValidationError
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
from app.domain.services.record_migration import CURRENT_SCHEMA_VERSION, migrate_document
from app.infrastructure import serialization as codec
from app.utils.time import now_local_naive

logger = logging.getLogger(__name__)

_ENTRY_LISTS = {
    ExpenseEntry: ("expenses", codec.expense_to_dict, codec.expense_from_dict),
    RefundEntry: ("refunds", codec.refund_to_dict, codec.refund_from_dict),
    InvestmentEntry: ("investment_entries", codec.investment_to_dict, codec.investment_from_dict),
}


def _empty_profile() -> dict:
    return {
        "configs": {},
        "portfolios": {},
        "expenses": [],
        "refunds": [],
        "investment_entries": [],
        "bank_balances": [],
        "custom_tags": [],
    }


def _in_period(entry: dict, period: Period) -> bool:
    return entry.get("date", "").startswith(period.label + "-")


@dataclass(frozen=True)
class LocalRecords:
    """What the local store holds for one period, deleted entries included"""
    transaction_ids: frozenset[str] = frozenset()
    has_plan: bool = False
    has_opening_balance: bool = False


class LocalBudgetStore:
    """Budget data gateway backed by JSON files"""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, user_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", user_id)
        return self.directory / f"{safe}.json"

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read(self, user_id: str) -> dict:
        path = self._path(user_id)
        if not path.exists():
            return {"schema_version": CURRENT_SCHEMA_VERSION, "profiles": {}}
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise TransientBackendError(f"Local budget store unreadable: {path}") from exc

        try:
            document, changed = migrate_document(raw)
        except ValidationError as exc:
            raise TransientBackendError(str(exc)) from exc
        if changed:
            logger.info("Upgraded local budget store to schema v%s | file=%s", CURRENT_SCHEMA_VERSION, path)
            self._write(user_id, document)
        return document

    def _write(self, user_id: str, document: dict) -> None:
        path = self._path(user_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise TransientBackendError(f"Local budget store not writable: {path}") from exc

    async def _load(self, user_id: str) -> dict:
        return await asyncio.to_thread(self._read, user_id)

    async def _store(self, user_id: str, document: dict) -> None:
        await asyncio.to_thread(self._write, user_id, document)

    @staticmethod
    def _profile(document: dict, profile: str) -> dict:
        return document["profiles"].setdefault(profile, _empty_profile())

    # ------------------------------------------------------------------
    # Gateway contract
    # ------------------------------------------------------------------

    async def fetch_period_data(self, user_id: str, profile: str, period: Period) -> Optional[PeriodData]:
        document = await self._load(user_id)
        data = document["profiles"].get(profile)
        if data is None:
            return None

        config = data["configs"].get(period.label)
        opening = next(
            (
                Decimal(str(b["opening_balance"])) for b in data["bank_balances"]
                if b.get("year") == period.year and b.get("month") == period.month
            ),
            ZERO,
        )
        tags = []
        for raw in data["custom_tags"]:
            category, _, tag = raw.partition(":")
            try:
                tags.append((BudgetCategory(category), tag))
            except ValueError:
                logger.warning("Ignoring malformed custom tag %r", raw)

        def active(name: str):
            return [e for e in data[name] if not e.get("is_deleted") and _in_period(e, period)]

        return PeriodData(
            config=codec.config_from_dict(config) if config else None,
            portfolios=tuple(codec.portfolio_from_dict(p) for p in data["portfolios"].get(period.label, [])),
            expenses=tuple(codec.expense_from_dict(e) for e in active("expenses")),
            refunds=tuple(codec.refund_from_dict(e) for e in active("refunds")),
            investments=tuple(codec.investment_from_dict(e) for e in active("investment_entries")),
            opening_balance=opening,
            custom_tags=tuple(tags),
        )

    async def recorded(self, user_id: str, profile: str, period: Period) -> LocalRecords:
        document = await self._load(user_id)
        data = document["profiles"].get(profile)
        if data is None:
            return LocalRecords()
        return LocalRecords(
            transaction_ids=frozenset(
                e["id"] for name in ("expenses", "refunds", "investment_entries") for e in data[name]
            ),
            has_plan=period.label in data["portfolios"],
            has_opening_balance=any(
                b.get("year") == period.year and b.get("month") == period.month for b in data["bank_balances"]
            ),
        )

    async def save_config(self, user_id: str, profile: str, period: Period, config: BudgetConfig) -> BudgetConfig:
        document = await self._load(user_id)
        self._profile(document, profile)["configs"][period.label] = codec.config_to_dict(config)
        await self._store(user_id, document)
        return config

    @staticmethod
    def _put_entry(data: dict, entry) -> None:
        name, to_dict, _ = _ENTRY_LISTS[type(entry)]
        entries = data[name]
        payload = to_dict(entry)
        for index, existing in enumerate(entries):
            if existing.get("id") == entry.id:
                entries[index] = payload
                return
        entries.append(payload)

    async def save_transaction(self, user_id: str, profile: str, entry):
        document = await self._load(user_id)
        self._put_entry(self._profile(document, profile), entry)
        await self._store(user_id, document)
        return entry

    async def save_refund(
        self, user_id: str, profile: str, refund: RefundEntry, original: Optional[ExpenseEntry]
    ) -> RefundEntry:
        document = await self._load(user_id)
        data = self._profile(document, profile)
        self._put_entry(data, refund)
        if original is not None:
            self._put_entry(data, original)
        await self._store(user_id, document)
        return refund

    async def soft_delete_transaction(self, user_id: str, profile: str, transaction_id: str) -> None:
        document = await self._load(user_id)
        data = self._profile(document, profile)
        for name in ("expenses", "refunds", "investment_entries"):
            for entry in data[name]:
                if entry.get("id") == transaction_id:
                    entry["is_deleted"] = True
                    entry["deleted_at"] = now_local_naive().isoformat()
                    await self._store(user_id, document)
                    return
        raise NotFoundError(f"Transaction not found: {transaction_id}")

    async def save_portfolios(
        self, user_id: str, profile: str, period: Period, portfolios: Sequence[Portfolio]
    ) -> list[Portfolio]:
        document = await self._load(user_id)
        self._profile(document, profile)["portfolios"][period.label] = [
            codec.portfolio_to_dict(p) for p in portfolios
        ]
        await self._store(user_id, document)
        return list(portfolios)

    async def hard_delete_portfolio_node(self, user_id: str, profile: str, period: Period, node_id: str) -> None:
        document = await self._load(user_id)
        plans = self._profile(document, profile)["portfolios"]
        plan = plans.get(period.label, [])

        removed = False
        kept = []
        for portfolio in plan:
            if portfolio["id"] == node_id:
                removed = True
                continue
            categories = []
            for category in portfolio.get("categories", []):
                if category["id"] == node_id:
                    removed = True
                    continue
                funds = [f for f in category.get("funds", []) if f["id"] != node_id]
                removed = removed or len(funds) != len(category.get("funds", []))
                categories.append({**category, "funds": funds})
            kept.append({**portfolio, "categories": categories})

        if not removed:
            raise NotFoundError(f"Investment plan node not found: {node_id}")
        plans[period.label] = kept
        await self._store(user_id, document)

    async def set_opening_balance(self, user_id: str, profile: str, period: Period, amount: Decimal) -> None:
        document = await self._load(user_id)
        balances = self._profile(document, profile)["bank_balances"]
        balances[:] = [b for b in balances if not (b.get("year") == period.year and b.get("month") == period.month)]
        balances.append({"year": period.year, "month": period.month, "opening_balance": str(amount)})
        await self._store(user_id, document)

    async def add_custom_tag(self, user_id: str, profile: str, category: BudgetCategory, tag: str) -> None:
        document = await self._load(user_id)
        tags = self._profile(document, profile)["custom_tags"]
        key = f"{category.value}:{tag}"
        if key not in tags:
            tags.append(key)
            await self._store(user_id, document)
