"""
Local-first gateway.

Writes land in the local store first and are then pushed to the remote on
a best-effort basis. Reads take the remote result and lay the local store
over it, so anything written while the remote was down stays visible after
it recovers. When the remote is unavailable the local store answers alone.
"""

import logging
from typing import Optional

from app.domain.exceptions import NotFoundError, TransientBackendError
from app.domain.models import Period, PeriodData

logger = logging.getLogger(__name__)


def merge_local_over_remote(remote: Optional[PeriodData], local: PeriodData, records) -> PeriodData:
    """Local records win; remote records the local store never held are kept."""
    remote = remote or PeriodData()

    def entries(local_items, remote_items):
        return tuple(local_items) + tuple(
            e for e in remote_items if e.id not in records.transaction_ids
        )

    return PeriodData(
        config=local.config or remote.config,
        portfolios=local.portfolios if records.has_plan else remote.portfolios,
        expenses=entries(local.expenses, remote.expenses),
        refunds=entries(local.refunds, remote.refunds),
        investments=entries(local.investments, remote.investments),
        opening_balance=local.opening_balance if records.has_opening_balance else remote.opening_balance,
        custom_tags=local.custom_tags + tuple(t for t in remote.custom_tags if t not in local.custom_tags),
    )


class FallbackBudgetGateway:
    def __init__(self, remote, local):
        self.remote = remote
        self.local = local

    async def fetch_period_data(self, user_id: str, profile: str, period: Period) -> Optional[PeriodData]:
        try:
            remote = await self.remote.fetch_period_data(user_id, profile, period)
        except TransientBackendError as exc:
            logger.warning(
                "Remote fetch failed, reading local store | profile=%s | period=%s | error=%s",
                profile, period.label, exc,
            )
            return await self.local.fetch_period_data(user_id, profile, period)

        try:
            local = await self.local.fetch_period_data(user_id, profile, period)
            records = await self.local.recorded(user_id, profile, period)
        except TransientBackendError as exc:
            logger.warning("Local store unreadable, using remote data only: %s", exc)
            return remote

        if local is None:
            return remote
        return merge_local_over_remote(remote, local, records)

    async def _write(self, method: str, *args):
        try:
            result = await getattr(self.local, method)(*args)
        except NotFoundError:
            # Record predates the local store; only the remote can apply it.
            return await getattr(self.remote, method)(*args)

        try:
            await getattr(self.remote, method)(*args)
        except (TransientBackendError, NotFoundError) as exc:
            logger.warning("Remote %s not synced, kept locally: %s", method, exc)
        return result

    async def save_config(self, user_id, profile, period, config):
        return await self._write("save_config", user_id, profile, period, config)

    async def save_transaction(self, user_id, profile, entry):
        return await self._write("save_transaction", user_id, profile, entry)

    async def save_refund(self, user_id, profile, refund, original):
        return await self._write("save_refund", user_id, profile, refund, original)

    async def soft_delete_transaction(self, user_id, profile, transaction_id):
        return await self._write("soft_delete_transaction", user_id, profile, transaction_id)

    async def save_portfolios(self, user_id, profile, period, portfolios):
        return await self._write("save_portfolios", user_id, profile, period, portfolios)

    async def hard_delete_portfolio_node(self, user_id, profile, period, node_id):
        return await self._write("hard_delete_portfolio_node", user_id, profile, period, node_id)

    async def set_opening_balance(self, user_id, profile, period, amount):
        return await self._write("set_opening_balance", user_id, profile, period, amount)

    async def add_custom_tag(self, user_id, profile, category, tag):
        return await self._write("add_custom_tag", user_id, profile, category, tag)
