"""
Display formatting for times, paces, distances and dates.

All inputs are SI units (seconds, meters, meters per second). The unit
system and date format are always passed in by the caller.
"""

import math
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

METERS_PER_KM = 1000.0
METERS_PER_MILE = 1609.344


class UnitSystem(Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


def _unit_length(units: UnitSystem) -> float:
    return METERS_PER_MILE if units is UnitSystem.IMPERIAL else METERS_PER_KM


def _unit_suffix(units: UnitSystem) -> str:
    return "mi" if units is UnitSystem.IMPERIAL else "km"


def format_duration(seconds: float, force_hours: bool = False) -> str:
    """
    Format seconds as M:SS, or H:MM:SS when an hour or longer.

    Args:
        seconds: Duration in seconds (fractions are floored)
        force_hours: Always include the hours field

    Returns:
        Formatted duration string
    """
    total = int(math.floor(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    if force_hours or hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _format_pace_seconds(seconds_per_unit: float) -> str:
    minutes = int(seconds_per_unit // 60)
    seconds = int(seconds_per_unit % 60)
    return f"{minutes}:{seconds:02d}"


def format_pace(time_seconds: float, distance_m: float) -> str:
    """
    Pace per kilometre for covering distance_m in time_seconds.

    Minutes and seconds are both floored: 299.9 s/km is "4:59".
    """
    if distance_m <= 0:
        return "0:00"
    return _format_pace_seconds(time_seconds * METERS_PER_KM / distance_m)


def format_speed_as_pace(speed_mps: float, units: UnitSystem = UnitSystem.METRIC) -> str:
    """
    Format a speed as pace per km or per mile.

    Args:
        speed_mps: Speed in meters per second
        units: Unit system for display

    Returns:
        e.g. "4:00 /km", or "--" for a non-positive speed
    """
    if not speed_mps or speed_mps <= 0:
        return "--"
    seconds_per_unit = _unit_length(units) / speed_mps
    return f"{_format_pace_seconds(seconds_per_unit)} /{_unit_suffix(units)}"


def format_distance(
    meters: float, units: UnitSystem = UnitSystem.METRIC, decimals: int = 2
) -> str:
    """Format meters as kilometres or miles, e.g. "5.00 km" """
    value = meters / _unit_length(units)
    return f"{value:.{decimals}f} {_unit_suffix(units)}"


def format_run_distance(meters: Optional[float]) -> str:
    """Full-run distance label, e.g. 10520 -> "10.52K" """
    if meters is None:
        return "N/A"
    km = round(meters / METERS_PER_KM * 100) / 100
    return f"{km:g}K"


def format_segment_range(start_m: Optional[float], end_m: Optional[float]) -> str:
    """Where in the run the segment lies, e.g. "1.20km - 6.20km" """
    if start_m is None or end_m is None:
        return "Full Run"
    return f"{start_m / METERS_PER_KM:.2f}km - {end_m / METERS_PER_KM:.2f}km"


DATE_FORMATS = {
    "DD MMM YYYY": "{day} {mon} {year}",
    "MM/DD/YYYY": "{month}/{day}/{year}",
    "DD/MM/YYYY": "{day}/{month}/{year}",
    "YYYY-MM-DD": "{year}-{month}-{day}",
    "MMM DD, YYYY": "{mon} {day}, {year}",
    "DD.MM.YYYY": "{day}.{month}.{year}",
}

DEFAULT_DATE_FORMAT = "DD MMM YYYY"

_MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_date(value: Union[date, datetime], date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """
    Format a date using one of the dashboard's date formats.

    Unknown formats fall back to "DD MMM YYYY".
    """
    template = DATE_FORMATS.get(date_format, DATE_FORMATS[DEFAULT_DATE_FORMAT])
    return template.format(
        day=f"{value.day:02d}",
        month=f"{value.month:02d}",
        year=value.year,
        mon=_MONTH_ABBR[value.month - 1],
    )
