# app/services/profile_store.py

"""
Keyed in-memory store of loaded budget data.

One PeriodData per (profile, period). Any number of profiles; nothing is
hard-coded.
"""

from dataclasses import replace

from app.domain.models import Period, PeriodData


class ProfileStore:
    def __init__(self):
        self._data: dict[tuple[str, Period], PeriodData] = {}

    def get(self, profile: str, period: Period) -> PeriodData:
        return self._data.get((profile, period), PeriodData())

    def put(self, profile: str, period: Period, data: PeriodData) -> None:
        self._data[(profile, period)] = data

    def update(self, profile: str, period: Period, **changes) -> PeriodData:
        data = replace(self.get(profile, period), **changes)
        self._data[(profile, period)] = data
        return data
