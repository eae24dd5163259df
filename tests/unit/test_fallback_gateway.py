from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from app.domain.exceptions import NotFoundError, TransientBackendError
from app.domain.models import BudgetCategory, ExpenseEntry, Period, PeriodData
from app.infrastructure.fallback_gateway import FallbackBudgetGateway
from app.infrastructure.local_store import LocalBudgetStore, LocalRecords

MARCH = Period(2025, 3)


class RecordingGateway:
    def __init__(self, name, fail_with=None, data=None, records=None):
        self.name = name
        self.fail_with = fail_with
        self.data = data
        self.records = records or LocalRecords()
        self.calls = []

    async def fetch_period_data(self, user_id, profile, period):
        self.calls.append("fetch_period_data")
        if self.fail_with:
            raise self.fail_with
        return self.data

    async def recorded(self, user_id, profile, period):
        return self.records

    async def save_transaction(self, user_id, profile, entry):
        self.calls.append("save_transaction")
        if self.fail_with:
            raise self.fail_with
        return entry

    async def soft_delete_transaction(self, user_id, profile, transaction_id):
        self.calls.append("soft_delete_transaction")
        if self.fail_with:
            raise self.fail_with


def expense() -> ExpenseEntry:
    return ExpenseEntry(id="e-1", date=date(2025, 3, 1), amount=Decimal("10"), category=BudgetCategory.NEED)


@pytest.mark.asyncio
async def test_reads_use_remote_when_local_store_is_empty():
    remote = RecordingGateway("remote", data=PeriodData(opening_balance=Decimal("1")))
    local = RecordingGateway("local", data=None)
    data = await FallbackBudgetGateway(remote, local).fetch_period_data("u", "p", MARCH)
    assert data.opening_balance == Decimal("1")


@pytest.mark.asyncio
async def test_local_records_win_and_remote_only_records_are_kept():
    remote_only = replace(expense(), id="e-remote")
    remote = RecordingGateway("remote", data=PeriodData(
        expenses=(replace(expense(), amount=Decimal("99")), remote_only),
        opening_balance=Decimal("1"),
    ))
    local = RecordingGateway(
        "local",
        data=PeriodData(expenses=(expense(),), opening_balance=Decimal("2")),
        records=LocalRecords(transaction_ids=frozenset({"e-1"}), has_opening_balance=True),
    )
    data = await FallbackBudgetGateway(remote, local).fetch_period_data("u", "p", MARCH)
    assert [(e.id, e.amount) for e in data.expenses] == [("e-1", Decimal("10")), ("e-remote", Decimal("10"))]
    assert data.opening_balance == Decimal("2")


@pytest.mark.asyncio
async def test_locally_deleted_entry_stays_hidden_when_remote_still_has_it():
    remote = RecordingGateway("remote", data=PeriodData(expenses=(expense(),)))
    local = RecordingGateway(
        "local", data=PeriodData(), records=LocalRecords(transaction_ids=frozenset({"e-1"}))
    )
    data = await FallbackBudgetGateway(remote, local).fetch_period_data("u", "p", MARCH)
    assert data.expenses == ()


@pytest.mark.asyncio
async def test_write_while_remote_down_survives_remote_recovery(tmp_path):
    remote = RecordingGateway("remote", fail_with=TransientBackendError("down"), data=PeriodData())
    gateway = FallbackBudgetGateway(remote, LocalBudgetStore(tmp_path))

    await gateway.save_transaction("u", "p", expense())
    data = await gateway.fetch_period_data("u", "p", MARCH)
    assert [e.id for e in data.expenses] == ["e-1"]

    remote.fail_with = None
    data = await gateway.fetch_period_data("u", "p", MARCH)
    assert [e.id for e in data.expenses] == ["e-1"]


@pytest.mark.asyncio
async def test_unreadable_local_store_falls_back_to_remote():
    remote = RecordingGateway("remote", data=PeriodData(opening_balance=Decimal("1")))
    local = RecordingGateway("local", data=PeriodData(opening_balance=Decimal("2")))
    local.fail_with = TransientBackendError("corrupt")
    data = await FallbackBudgetGateway(remote, local).fetch_period_data("u", "p", MARCH)
    assert data.opening_balance == Decimal("1")


@pytest.mark.asyncio
async def test_reads_fall_back_to_local_when_remote_is_down():
    remote = RecordingGateway("remote", fail_with=TransientBackendError("down"))
    local = RecordingGateway("local", data=PeriodData(opening_balance=Decimal("2")))
    data = await FallbackBudgetGateway(remote, local).fetch_period_data("u", "p", MARCH)
    assert data.opening_balance == Decimal("2")


@pytest.mark.asyncio
async def test_writes_go_local_first_and_tolerate_remote_failure():
    remote = RecordingGateway("remote", fail_with=TransientBackendError("down"))
    local = RecordingGateway("local")
    saved = await FallbackBudgetGateway(remote, local).save_transaction("u", "p", expense())
    assert saved.id == "e-1"
    assert local.calls == ["save_transaction"]
    assert remote.calls == ["save_transaction"]


@pytest.mark.asyncio
async def test_local_failure_propagates_without_remote_write():
    remote = RecordingGateway("remote")
    local = RecordingGateway("local", fail_with=TransientBackendError("disk full"))
    with pytest.raises(TransientBackendError):
        await FallbackBudgetGateway(remote, local).save_transaction("u", "p", expense())
    assert remote.calls == []


@pytest.mark.asyncio
async def test_record_only_known_remotely_is_deleted_remotely():
    remote = RecordingGateway("remote")
    local = RecordingGateway("local", fail_with=NotFoundError("missing"))
    await FallbackBudgetGateway(remote, local).soft_delete_transaction("u", "p", "e-1")
    assert remote.calls == ["soft_delete_transaction"]
