"""
Record Progression

The record-breaking history for a distance: walking the records in date
order, keep each one that beat every record before it.
"""

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List

from .records import PersonalBestRecord


def build_progression(records: Iterable[PersonalBestRecord]) -> List[PersonalBestRecord]:
    """
    Derive the strictly improving progression from one distance's records.

    Records without a date cannot be placed in time and are ignored.
    A record equal to the current best is not an improvement, so of two
    identical times only the earlier one is kept.

    Args:
        records: Personal-best records for a single target distance

    Returns:
        Copies of the kept records in date order, rank = position in the progression
    """
    dated = [r for r in records if r.activity_date is not None]
    # sorted() is stable: same-day records keep input order
    chronological = sorted(dated, key=lambda r: r.activity_date)

    progression: List[PersonalBestRecord] = []
    current_best = float("inf")

    for record in chronological:
        if record.time_seconds < current_best:
            current_best = record.time_seconds
            progression.append(replace(record, rank=len(progression) + 1))

    return progression


def progression_improvements(progression: List[PersonalBestRecord]) -> List[dict]:
    """
    Seconds gained and days taken by each step of a progression.

    The first entry has no previous record, so both values are None.
    """
    steps = []
    previous = None
    for record in progression:
        if previous is None:
            steps.append({"rank": record.rank, "improvement_s": None, "days_since_previous": None})
        else:
            steps.append({
                "rank": record.rank,
                "improvement_s": previous.time_seconds - record.time_seconds,
                "days_since_previous": _days_between(previous.activity_date, record.activity_date),
            })
        previous = record
    return steps


def _days_between(earlier: datetime, later: datetime) -> int:
    return (later - earlier).days
