"""Report window shared by every aggregation and detector."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from clouddeck_cost.core.errors import InvalidDateRangeError


@dataclass(frozen=True)
class UsageFilter:
    """A half-open ``[start, end)`` window with optional tenant scoping.

    Attributes:
        start: Window start (inclusive).
        end: Window end (exclusive).
        team_id: Restrict to a single team when set.
        project_id: Restrict to a single project when set.
    """

    start: datetime
    end: datetime
    team_id: str | None = None
    project_id: str | None = None

    @classmethod
    def build(
        cls,
        start: datetime | None,
        end: datetime | None,
        team_id: str | None = None,
        project_id: str | None = None,
        max_range_days: int | None = None,
    ) -> UsageFilter:
        """Validate a requested window and return a UsageFilter.

        Naive datetimes are taken to be UTC.

        Raises:
            InvalidDateRangeError: If a bound is missing, start is not before
                end, or the span exceeds max_range_days.
        """
        if start is None or end is None:
            raise InvalidDateRangeError("Both startDate and endDate are required")

        start = _as_utc(start)
        end = _as_utc(end)
        if start >= end:
            raise InvalidDateRangeError(
                f"startDate ({start.isoformat()}) must be before endDate ({end.isoformat()})"
            )
        if max_range_days is not None and end - start > timedelta(days=max_range_days):
            raise InvalidDateRangeError(
                f"Date range of {end - start} exceeds the maximum of {max_range_days} days"
            )

        return cls(start=start, end=end, team_id=team_id or None, project_id=project_id or None)

    def previous(self) -> UsageFilter:
        """Return the same-length window immediately preceding this one."""
        return replace(self, start=self.start - (self.end - self.start), end=self.start)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
