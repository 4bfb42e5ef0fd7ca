"""
Best Effort Aggregator

Ranks personal-best records for one distance within a time window:
- Filter by distance label and activity date
- Sort fastest first (stable, so equal times keep their input order)
- Cut to the requested number of records (0 = all)
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from .records import PersonalBestRecord, parse_activity_date

DEFAULT_LIMIT = 10

# The dashboard switches every row to H:MM:SS based on this row
HOURS_DISPLAY_ROW = 10


class TimeWindowKind(Enum):
    ALL_TIME = "all-time"
    THIS_YEAR = "this-year"
    LAST_N_MONTHS = "last-n-months"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TimeWindow:
    """Date-range filter applied before ranking or progression"""

    kind: TimeWindowKind = TimeWindowKind.ALL_TIME
    months: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def all_time(cls) -> "TimeWindow":
        return cls(TimeWindowKind.ALL_TIME)

    @classmethod
    def this_year(cls) -> "TimeWindow":
        return cls(TimeWindowKind.THIS_YEAR)

    @classmethod
    def last_months(cls, months: int) -> "TimeWindow":
        if months <= 0:
            raise ValueError(f"Months must be positive, got {months}")
        return cls(TimeWindowKind.LAST_N_MONTHS, months=months)

    @classmethod
    def custom(
        cls,
        start: Union[date, datetime, str],
        end: Union[date, datetime, str],
    ) -> "TimeWindow":
        """
        Inclusive custom range.

        A date-only end (a date object or a "YYYY-MM-DD" string) covers
        the whole of that day.
        """
        start_dt = parse_activity_date(start)
        end_dt = parse_activity_date(end)
        if _is_date_only(end):
            end_dt = datetime.combine(end_dt.date(), time.max)
        if start_dt > end_dt:
            raise ValueError(f"Window start {start_dt} is after end {end_dt}")
        return cls(TimeWindowKind.CUSTOM, start=start_dt, end=end_dt)

    @classmethod
    def from_filter(
        cls,
        value: str,
        custom_from: Optional[Union[date, datetime, str]] = None,
        custom_to: Optional[Union[date, datetime, str]] = None,
    ) -> "TimeWindow":
        """
        Parse a dashboard time filter.

        Args:
            value: "all-time", "this-year", "last-<N>-months" or "custom"
            custom_from: Start of a custom range
            custom_to: End of a custom range

        Returns:
            TimeWindow (a custom filter without both bounds is all-time)
        """
        if value in (None, "", TimeWindowKind.ALL_TIME.value):
            return cls.all_time()
        if value == TimeWindowKind.THIS_YEAR.value:
            return cls.this_year()
        if value == TimeWindowKind.CUSTOM.value:
            if custom_from and custom_to:
                return cls.custom(custom_from, custom_to)
            return cls.all_time()

        parts = value.split("-")
        if len(parts) == 3 and parts[0] == "last" and parts[2] == "months" and parts[1].isdigit():
            return cls.last_months(int(parts[1]))

        raise ValueError(f"Unknown time filter: {value!r}")

    def bounds(self, now: Optional[datetime] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Resolve the window to (start, end), both inclusive.

        Relative windows end at now. None means unbounded.
        """
        if self.kind is TimeWindowKind.ALL_TIME:
            return None, None
        if self.kind is TimeWindowKind.CUSTOM:
            return self.start, self.end

        now = parse_activity_date(now) if now is not None else _utcnow()
        if self.kind is TimeWindowKind.THIS_YEAR:
            return datetime(now.year, 1, 1), now
        return now - relativedelta(months=self.months), now

    def contains(self, value: Optional[datetime], now: Optional[datetime] = None) -> bool:
        start, end = self.bounds(now)
        if start is None and end is None:
            return True
        if value is None:
            return False
        if start is not None and value < start:
            return False
        if end is not None and value > end:
            return False
        return True


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _is_date_only(value: Union[date, datetime, str]) -> bool:
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return isinstance(value, str) and len(value.strip()) == 10


def filter_records(
    records: Iterable[PersonalBestRecord],
    distance_label: str,
    time_window: TimeWindow = TimeWindow(),
    now: Optional[datetime] = None,
) -> List[PersonalBestRecord]:
    """Records for one distance whose activity date lies in the window"""
    now = now if now is not None else _utcnow()
    return [
        record
        for record in records
        if record.distance_label == distance_label
        and time_window.contains(record.activity_date, now)
    ]


def top_records(
    records: Iterable[PersonalBestRecord],
    distance_label: str,
    time_window: TimeWindow = TimeWindow(),
    limit: int = DEFAULT_LIMIT,
    now: Optional[datetime] = None,
) -> List[PersonalBestRecord]:
    """
    Fastest records for a distance within a time window.

    Args:
        records: Candidate records (any distances)
        distance_label: Distance to rank, e.g. "5K"
        time_window: Date filter on activity date
        limit: Maximum number of records; 0 returns all of them
        now: Reference time for relative windows (defaults to utcnow)

    Returns:
        Copies of the records, fastest first, with 1-based rank set
    """
    if limit < 0:
        raise ValueError(f"Limit must be 0 or positive, got {limit}")

    matching = filter_records(records, distance_label, time_window, now)
    # sorted() is stable: equal times keep input order
    ranked = sorted(matching, key=lambda r: r.time_seconds)
    if limit:
        ranked = ranked[:limit]

    return [replace(record, rank=i + 1) for i, record in enumerate(ranked)]


def should_show_hours(ranked: List[PersonalBestRecord]) -> bool:
    """
    Whether a ranked table should print every time as H:MM:SS.

    True when the 10th record (or the last, if fewer) takes an hour or more.
    """
    if not ranked:
        return False
    reference = ranked[min(HOURS_DISPLAY_ROW, len(ranked)) - 1]
    return reference.time_seconds >= 3600
