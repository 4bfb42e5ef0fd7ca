"""
Activity Stream Tests

Unit tests for building and validating activity sample streams.
"""

import math
from datetime import datetime, timezone

import pytest
from bestefforts.analysis.geo import cumulative_distances, haversine_distance
from bestefforts.analysis.streams import (
    ActivitySampleStream,
    MalformedSampleData,
    MalformedSamplePolicy,
    MissingStreamData,
    validate_stream,
)


# Points 1/1000 degree of latitude apart (~111 m), one every 30 seconds
SAMPLE_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test">
  <trk>
    <name>Morning Run</name>
    <trkseg>
      <trkpt lat="38.8977" lon="-77.0365"><time>2024-05-04T07:00:00Z</time></trkpt>
      <trkpt lat="38.8987" lon="-77.0365"><time>2024-05-04T07:00:30Z</time></trkpt>
      <trkpt lat="38.8997" lon="-77.0365"><time>2024-05-04T07:01:00Z</time></trkpt>
      <trkpt lat="38.9007" lon="-77.0365"><time>2024-05-04T07:01:30Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""

# Second point has no timestamp
PARTIAL_GPX = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test">
  <trk>
    <trkseg>
      <trkpt lat="38.8977" lon="-77.0365"><time>2024-05-04T07:00:00Z</time></trkpt>
      <trkpt lat="38.8987" lon="-77.0365"></trkpt>
      <trkpt lat="38.8997" lon="-77.0365"><time>2024-05-04T07:01:00Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""

METERS_PER_MILLIDEGREE = 6371000 * math.pi / 180 / 1000


def _stream(time, distance, activity_id="42"):
    return ActivitySampleStream(
        activity_id=activity_id,
        time=time,
        distance=distance,
        position=[(0.0, 0.0)] * len(time),
    )


class TestGeo:
    """Tests for great-circle helpers"""

    def test_haversine_one_millidegree_latitude(self):
        """1/1000 degree of latitude is about 111 m"""
        distance = haversine_distance(38.8977, -77.0365, 38.8987, -77.0365)

        assert distance == pytest.approx(METERS_PER_MILLIDEGREE, rel=1e-6)

    def test_haversine_same_point(self):
        assert haversine_distance(10.0, 20.0, 10.0, 20.0) == 0

    def test_cumulative_distances(self):
        """Distance accumulates along the track"""
        positions = [(38.8977, -77.0365), (38.8987, -77.0365), (38.8997, -77.0365)]

        distances = cumulative_distances(positions)

        assert distances[0] == 0
        assert distances[2] == pytest.approx(2 * METERS_PER_MILLIDEGREE, rel=1e-6)

    def test_cumulative_distances_skip_missing_positions(self):
        """A missing position adds nothing and the next is measured from the last fix"""
        positions = [(38.8977, -77.0365), None, (38.8987, -77.0365)]

        distances = cumulative_distances(positions)

        assert distances[1] == 0
        assert distances[2] == pytest.approx(METERS_PER_MILLIDEGREE, rel=1e-6)


class TestFromStravaStreams:
    """Tests for building streams from the stream payload"""

    def test_key_by_type_shape(self):
        """Streams wrapped in {"data": [...]} are unwrapped"""
        streams = {
            "time": {"data": [0, 1, 2]},
            "distance": {"data": [0.0, 3.5, 7.0]},
            "latlng": {"data": [[51.5, -0.1], [51.5001, -0.1], [51.5002, -0.1]]},
        }

        stream = ActivitySampleStream.from_strava_streams(123, streams)

        assert stream.activity_id == "123"
        assert stream.time == [0, 1, 2]
        assert stream.distance == [0.0, 3.5, 7.0]
        assert stream.position[1] == (51.5001, -0.1)
        assert len(stream) == 3

    def test_bare_lists(self):
        """Plain lists are accepted as well"""
        stream = ActivitySampleStream.from_strava_streams(
            "7", {"time": [0, 1], "distance": [0, 4], "latlng": [[1, 2], None]}
        )

        assert stream.position == [(1.0, 2.0), None]

    def test_missing_streams_are_none(self):
        """Absent streams stay None so validation can report them"""
        stream = ActivitySampleStream.from_strava_streams("7", {"time": {"data": [0, 1]}})

        assert stream.distance is None
        assert stream.position is None

        with pytest.raises(MissingStreamData, match="distance, position"):
            stream.require_complete()

    def test_no_payload(self):
        """A missing payload gives an empty stream"""
        stream = ActivitySampleStream.from_strava_streams("7", None)

        assert len(stream) == 0


class TestFromGpx:
    """Tests for parsing GPX files into streams"""

    def test_times_are_seconds_from_first_point(self):
        """Time is elapsed seconds since the first timed point"""
        stream = ActivitySampleStream.from_gpx(SAMPLE_GPX, activity_id="gpx-1")

        assert stream.activity_id == "gpx-1"
        assert stream.time == [0, 30, 60, 90]

    def test_cumulative_distance(self):
        """Distance is the great-circle distance along the track"""
        stream = ActivitySampleStream.from_gpx(SAMPLE_GPX)

        assert stream.distance[0] == 0
        assert stream.distance[-1] == pytest.approx(3 * METERS_PER_MILLIDEGREE, rel=1e-3)
        assert stream.distance == sorted(stream.distance)

    def test_positions(self):
        stream = ActivitySampleStream.from_gpx(SAMPLE_GPX)

        assert stream.position[0] == (38.8977, -77.0365)
        assert len(stream.position) == len(stream.time)

    def test_start_time(self):
        """The first point's timestamp is the activity start"""
        stream = ActivitySampleStream.from_gpx(SAMPLE_GPX)

        assert stream.start_time.astimezone(timezone.utc).replace(tzinfo=None) == datetime(
            2024, 5, 4, 7, 0, 0
        )

    def test_untimed_points_dropped(self):
        """Points without a timestamp cannot be placed in time"""
        stream = ActivitySampleStream.from_gpx(PARTIAL_GPX)

        assert stream.time == [0, 60]
        assert stream.distance[-1] == pytest.approx(2 * METERS_PER_MILLIDEGREE, rel=1e-3)

    def test_validates_cleanly(self):
        """A parsed GPX stream passes validation unchanged"""
        stream = ActivitySampleStream.from_gpx(SAMPLE_GPX)

        assert validate_stream(stream) is stream


class TestValidateStream:
    """Tests for validate_stream"""

    def test_clean_stream_returned_as_is(self):
        stream = _stream([0, 1, 2], [0, 5, 10])

        assert validate_stream(stream) is stream

    def test_length_mismatch(self):
        """Streams of different lengths cannot be aligned"""
        stream = ActivitySampleStream("42", [0, 1, 2], [0, 5], [(0.0, 0.0)] * 3)

        with pytest.raises(MalformedSampleData, match="differ in length"):
            validate_stream(stream)

    @pytest.mark.parametrize(
        "time, distance, message",
        [
            ([0, float("nan"), 2], [0, 5, 10], "not finite"),
            ([0, 1, 2], [0, float("inf"), 10], "not finite"),
            ([0, 1, 2], [0, -5, 10], "negative"),
            ([0, 2, 1], [0, 5, 10], "time goes backwards"),
            ([0, 1, 2], [0, 10, 5], "distance goes backwards"),
            ([0, "1", 2], [0, 5, 10], "not a number"),
            ([0, None, 2], [0, 5, 10], "not a number"),
        ],
    )
    def test_reject_policy(self, time, distance, message):
        """The default policy fails on the first bad sample"""
        with pytest.raises(MalformedSampleData, match=message):
            validate_stream(_stream(time, distance))

    def test_reject_names_sample(self):
        """The error points at the offending sample"""
        with pytest.raises(MalformedSampleData, match="Activity 42 sample 2"):
            validate_stream(_stream([0, 1, 0.5], [0, 5, 10]))

    def test_skip_policy_drops_bad_samples(self):
        """SKIP keeps the usable, monotonic samples"""
        stream = _stream([0, 1, float("nan"), 3, 4, 5], [0, 5, 10, 15, 2, 20])

        cleaned = validate_stream(stream, MalformedSamplePolicy.SKIP)

        assert cleaned.time == [0, 1, 3, 5]
        assert cleaned.distance == [0, 5, 15, 20]
        assert len(cleaned.position) == 4
        assert cleaned.activity_id == "42"

    def test_skip_policy_drops_only_distance_spike(self):
        """An upward spike is dropped, not every sample after it"""
        stream = _stream(
            [i * 60 for i in range(8)],
            [0, 250, 90000, 750, 1000, 1250, 1500, 1750],
        )

        cleaned = validate_stream(stream, MalformedSamplePolicy.SKIP)

        assert cleaned.distance == [0, 250, 750, 1000, 1250, 1500, 1750]
        assert cleaned.time == [0, 60, 180, 240, 300, 360, 420]

    def test_skip_policy_drops_only_time_spike(self):
        stream = _stream([0, 10, 9999, 30, 40], [0, 10, 20, 30, 40])

        cleaned = validate_stream(stream, MalformedSamplePolicy.SKIP)

        assert cleaned.time == [0, 10, 30, 40]
        assert cleaned.distance == [0, 10, 30, 40]

    def test_skip_policy_logs_drop_count(self, caplog):
        stream = _stream([0, 60, 120, 180], [0, 100, 90000, 300])

        with caplog.at_level("WARNING", logger="bestefforts.analysis.streams"):
            validate_stream(stream, MalformedSamplePolicy.SKIP)

        assert "Dropped 1 of 4 malformed samples from activity 42" in caplog.text

    def test_skip_policy_keeps_start_time(self):
        stream = _stream([0, -1, 2], [0, 5, 10])
        stream.start_time = datetime(2024, 5, 4, 7, 0)

        cleaned = validate_stream(stream, MalformedSamplePolicy.SKIP)

        assert cleaned.start_time == datetime(2024, 5, 4, 7, 0)

    def test_skip_policy_still_requires_streams(self):
        """Missing streams are never skippable"""
        stream = ActivitySampleStream("42", [0, 1], None, None)

        with pytest.raises(MissingStreamData):
            validate_stream(stream, MalformedSamplePolicy.SKIP)

    def test_missing_stream_is_stream_data_error(self):
        """Both error kinds are ValueErrors"""
        assert issubclass(MissingStreamData, ValueError)
        assert issubclass(MalformedSampleData, ValueError)
