"""
Tests for Record Progression

Tests for the chronological record-breaking history of a distance.
"""

import random
from datetime import datetime, timedelta

from bestefforts.analysis.progression import build_progression, progression_improvements
from bestefforts.analysis.records import PersonalBestRecord


def _record(activity_id, activity_date, time_seconds):
    return PersonalBestRecord(
        activity_id=activity_id,
        activity_name=f"Run {activity_id}",
        activity_date=activity_date,
        distance_label="5K",
        target_meters=5000,
        time_seconds=time_seconds,
    )


def _random_records(seed, n=25):
    rng = random.Random(seed)
    start = datetime(2022, 1, 1)
    return [
        _record(str(i), start + timedelta(days=rng.randint(0, 700)), rng.randint(1150, 1700))
        for i in range(n)
    ]


class TestBuildProgression:
    """Tests for build_progression"""

    def test_keeps_only_improvements_in_date_order(self):
        """A slower later run is not part of the progression"""
        records = [
            _record("jan", datetime(2024, 1, 1), 1500),
            _record("mar", datetime(2024, 3, 1), 1400),
            _record("feb", datetime(2024, 2, 1), 1600),
            _record("jun", datetime(2024, 6, 1), 1300),
        ]

        progression = build_progression(records)

        assert [r.activity_id for r in progression] == ["jan", "mar", "jun"]
        assert [r.time_seconds for r in progression] == [1500, 1400, 1300]
        assert [r.rank for r in progression] == [1, 2, 3]

    def test_equal_time_keeps_earlier_record(self):
        """Matching the current best is not an improvement"""
        records = [
            _record("later", datetime(2024, 2, 1), 1200),
            _record("earlier", datetime(2024, 1, 1), 1200),
        ]

        progression = build_progression(records)

        assert [r.activity_id for r in progression] == ["earlier"]

    def test_empty_input(self):
        """No records, no progression"""
        assert build_progression([]) == []

    def test_single_record_is_first_best(self):
        """A lone record is trivially the first best"""
        progression = build_progression([_record("only", datetime(2024, 1, 1), 1500)])

        assert len(progression) == 1
        assert progression[0].rank == 1

    def test_undated_records_ignored(self):
        """Records without a date cannot be placed in the history"""
        records = [
            _record("undated", None, 1000),
            _record("dated", datetime(2024, 1, 1), 1500),
        ]

        assert [r.activity_id for r in build_progression(records)] == ["dated"]

    def test_rank_is_position_in_progression(self):
        """Rank counts kept entries, not position among all records"""
        records = [
            _record("a", datetime(2024, 1, 1), 1500),
            _record("b", datetime(2024, 1, 2), 1550),
            _record("c", datetime(2024, 1, 3), 1600),
            _record("d", datetime(2024, 1, 4), 1450),
        ]

        progression = build_progression(records)

        assert [(r.activity_id, r.rank) for r in progression] == [("a", 1), ("d", 2)]

    def test_input_not_modified(self):
        """Progression entries are copies"""
        record = _record("a", datetime(2024, 1, 1), 1500)

        build_progression([record])

        assert record.rank is None


class TestProgressionProperties:
    """Property checks on random record sets"""

    def test_strictly_decreasing_in_time_order(self):
        """Each entry is later and faster than the previous one"""
        for seed in range(10):
            progression = build_progression(_random_records(seed))

            for previous, current in zip(progression, progression[1:]):
                assert current.activity_date >= previous.activity_date
                assert current.time_seconds < previous.time_seconds

    def test_is_subsequence_of_input(self):
        """No entries are synthesised"""
        for seed in range(10):
            records = _random_records(seed)
            keys = {(r.activity_id, r.activity_date, r.time_seconds) for r in records}

            for entry in build_progression(records):
                assert (entry.activity_id, entry.activity_date, entry.time_seconds) in keys

    def test_idempotent(self):
        """Building a progression from a progression changes nothing"""
        for seed in range(10):
            progression = build_progression(_random_records(seed))

            assert build_progression(progression) == progression

    def test_first_entry_is_earliest_record(self):
        """The chronologically first record always starts the progression"""
        records = _random_records(3)
        earliest = min(records, key=lambda r: r.activity_date)

        assert build_progression(records)[0].activity_date == earliest.activity_date


class TestProgressionImprovements:
    """Tests for progression_improvements"""

    def test_steps(self):
        """Each step reports seconds gained and days taken"""
        progression = build_progression([
            _record("a", datetime(2024, 1, 1), 1500),
            _record("b", datetime(2024, 1, 11), 1450),
        ])

        steps = progression_improvements(progression)

        assert steps[0] == {"rank": 1, "improvement_s": None, "days_since_previous": None}
        assert steps[1] == {"rank": 2, "improvement_s": 50, "days_since_previous": 10}

    def test_empty(self):
        """Empty progression has no steps"""
        assert progression_improvements([]) == []
