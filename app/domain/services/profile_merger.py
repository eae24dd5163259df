"""
PROFILE MERGER
Combined (read-only) view over several individual profiles

RULES:
✅ Each profile is computed on its own, then summed element-wise
✅ The combined view never accepts writes
✅ Selection changes only through explicit select calls
"""

from typing import Optional, Sequence

from app.domain.exceptions import ReadOnlyProfileError, ValidationError
from app.domain.models import ZERO, DashboardSummary, Period

COMBINED_PROFILE = "combined"


def validate_profile_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Profile name is required")
    if cleaned.lower() == COMBINED_PROFILE:
        raise ValidationError(f"'{COMBINED_PROFILE}' is reserved for the merged view")
    return cleaned


class ProfileMerger:
    """
    Profile Merger
    Sums independently computed profile summaries
    """

    def merge(self, summaries: Sequence[DashboardSummary], period: Period) -> DashboardSummary:
        """
        Merge per-profile summaries into the combined view

        Allocations and spend are added category by category, so each
        profile's rounding and refund floor are applied before summing.
        Opening balances are per profile and read as zero here.
        """
        merged = DashboardSummary.empty(period, COMBINED_PROFILE, read_only=True)
        for summary in summaries:
            merged = DashboardSummary(
                period=period,
                profile=COMBINED_PROFILE,
                read_only=True,
                has_data=merged.has_data or summary.has_data,
                allocation=merged.allocation + summary.allocation,
                spend=merged.spend + summary.spend,
                nodes=merged.nodes + summary.nodes,
                opening_balance=ZERO,
            )
        return merged


class ProfileSelector:
    """
    Profile selector state machine

    States: one individual profile, or the combined view over a set of
    member profiles. Starts with nothing selected.
    """

    def __init__(self):
        self._profile: Optional[str] = None
        self._members: tuple[str, ...] = ()

    @property
    def is_combined(self) -> bool:
        return bool(self._members)

    @property
    def current(self) -> Optional[str]:
        """Selected profile name, or "combined"."""
        return COMBINED_PROFILE if self.is_combined else self._profile

    @property
    def profiles(self) -> tuple[str, ...]:
        """Individual profiles whose data the selection needs."""
        if self.is_combined:
            return self._members
        return (self._profile,) if self._profile else ()

    def select(self, profile_name: str) -> None:
        self._profile = validate_profile_name(profile_name)
        self._members = ()

    def select_combined(self, members: Sequence[str]) -> None:
        names = []
        for name in members:
            cleaned = validate_profile_name(name)
            if cleaned not in names:
                names.append(cleaned)
        if len(names) < 2:
            raise ValidationError("Combined view needs at least two profiles")
        self._members = tuple(names)
        self._profile = None

    def ensure_mutable(self, what: str = "Changes") -> None:
        """
        Raises:
            ReadOnlyProfileError: While the combined view is selected
        """
        if self.is_combined:
            raise ReadOnlyProfileError(what)
