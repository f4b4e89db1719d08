from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Set, Union

DATE_DELIMITER = "-"


class TimePeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @property
    def label(self) -> str:
        labels = {
            "day": "Daily",
            "week": "Weekly",
            "month": "Monthly",
        }
        return labels[self.value]


def parse_filter_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a filter date written as month-day-year ("3-14-2021").

    Empty input means "no bound". Malformed text raises ValueError; the filter
    input is expected to reject it before it reaches the filter state.
    """
    if value is None or not str(value).strip():
        return None

    parts = str(value).strip().split(DATE_DELIMITER)
    if len(parts) != 3:
        raise ValueError(f"Expected M-D-YYYY, got {value!r}")

    month, day, year = (int(p) for p in parts)
    return date(year, month, day)


def format_filter_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return f"{value.month}{DATE_DELIMITER}{value.day}{DATE_DELIMITER}{value.year}"


@dataclass
class FilterCriteria:
    """
    Filter criteria applied to timeline queries.

    Fields:

    - device: a single device type, or None for all devices
    - countries: set of country codes; empty means all countries
    - from_date / to_date: inclusive date range bounds, None means open-ended
    - period: aggregation period of the timeline, None lets the backend choose
    """

    device: Optional[str] = None
    countries: Set[str] = field(default_factory=set)
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    period: Optional[TimePeriod] = None

    def is_empty(self) -> bool:
        return (
            not self.device
            and not self.countries
            and self.from_date is None
            and self.to_date is None
            and self.period is None
        )

    def copy(self) -> FilterCriteria:
        return FilterCriteria(
            device=self.device,
            countries=set(self.countries),
            from_date=self.from_date,
            to_date=self.to_date,
            period=self.period,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Query form sent to the backend."""
        return {
            "device": self.device,
            "countries": sorted(self.countries),
            "fromDate": format_filter_date(self.from_date),
            "toDate": format_filter_date(self.to_date),
            "timePeriod": self.period.value if self.period is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FilterCriteria:
        period = data.get("timePeriod")
        return cls(
            device=data.get("device") or None,
            countries=set(data.get("countries") or []),
            from_date=parse_filter_date(data.get("fromDate")),
            to_date=parse_filter_date(data.get("toDate")),
            period=TimePeriod(period) if period else None,
        )


@dataclass(frozen=True)
class Committed:
    """The user confirmed the filter modal with these criteria."""
    criteria: FilterCriteria


@dataclass(frozen=True)
class Cancelled:
    """The user dismissed the filter modal."""


FilterOutcome = Union[Committed, Cancelled]


class FilterState:
    """
    Committed filter criteria plus the draft being edited in the filter modal.

    Only the committed criteria are ever sent to the backend. The draft is a
    scratch buffer: commit() copies it over the committed criteria, discard()
    throws the edits away by copying committed back over it.
    """

    def __init__(self, committed: Optional[FilterCriteria] = None):
        self._committed = committed.copy() if committed is not None else FilterCriteria()
        self._draft = self._committed.copy()
        self._filtered = not self._committed.is_empty()

    @property
    def committed(self) -> FilterCriteria:
        return self._committed.copy()

    @property
    def draft(self) -> FilterCriteria:
        return self._draft

    @property
    def filtered(self) -> bool:
        return self._filtered

    def begin_edit(self) -> FilterCriteria:
        self._draft = self._committed.copy()
        return self._draft

    def commit(self) -> FilterCriteria:
        self._committed = self._draft.copy()
        self._filtered = not self._committed.is_empty()
        return self._committed.copy()

    def discard(self) -> None:
        self._draft = self._committed.copy()

    def replace_draft(self, criteria: FilterCriteria) -> FilterCriteria:
        self._draft = criteria.copy()
        return self._draft

    def restore(self, committed: FilterCriteria, filtered: bool) -> None:
        """Put back a previously taken committed snapshot (failed transition)."""
        self._committed = committed.copy()
        self._draft = committed.copy()
        self._filtered = filtered
