"""
Activity Sample Streams

Time-ordered samples of a single activity: elapsed seconds, cumulative
meters and (optional) GPS position per sample. Streams can be built from
the fitness API's stream payload or parsed from a GPX file, and are
validated here before any best-effort search runs.
"""

import logging
import math
from bisect import bisect_right
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import gpxpy

from .geo import Position, cumulative_distances

logger = logging.getLogger(__name__)


class StreamDataError(ValueError):
    """Base error for unusable activity stream data"""


class MissingStreamData(StreamDataError):
    """One or more of the time/distance/position streams is absent"""


class MalformedSampleData(StreamDataError):
    """Samples are not finite, negative, or go backwards"""


class MalformedSamplePolicy(Enum):
    """What to do with samples that fail validation"""

    REJECT = "reject"  # Fail the whole activity
    SKIP = "skip"  # Drop the offending samples and carry on


@dataclass
class ActivitySampleStream:
    """Aligned per-sample streams for one activity"""

    activity_id: str
    time: Optional[List[float]]
    distance: Optional[List[float]]
    position: Optional[List[Optional[Position]]] = field(default=None)
    start_time: Optional[datetime] = None  # Wall-clock time of sample 0, when known

    def __len__(self) -> int:
        return len(self.time) if self.time is not None else 0

    def require_complete(self) -> None:
        """Raise MissingStreamData unless all three streams are present"""
        missing = [
            name
            for name in ("time", "distance", "position")
            if getattr(self, name) is None
        ]
        if missing:
            raise MissingStreamData(
                f"Activity {self.activity_id} is missing stream data: {', '.join(missing)}"
            )

        lengths = {len(self.time), len(self.distance), len(self.position)}
        if len(lengths) > 1:
            raise MalformedSampleData(
                f"Activity {self.activity_id} streams differ in length: "
                f"time={len(self.time)}, distance={len(self.distance)}, "
                f"position={len(self.position)}"
            )

    @classmethod
    def from_strava_streams(
        cls, activity_id: Any, streams: Dict[str, Any]
    ) -> "ActivitySampleStream":
        """
        Build a stream from the fitness API's stream payload.

        Accepts the key_by_type shape ({"time": {"data": [...]}, ...})
        as well as bare lists ({"time": [...], ...}).

        Args:
            activity_id: Activity identifier
            streams: Stream payload keyed by stream type

        Returns:
            ActivitySampleStream (streams absent from the payload are None)
        """
        streams = streams or {}

        def _data(key: str) -> Optional[List[Any]]:
            value = streams.get(key)
            if isinstance(value, dict):
                value = value.get("data")
            return list(value) if value is not None else None

        latlng = _data("latlng")

        return cls(
            activity_id=str(activity_id),
            time=_data("time"),
            distance=_data("distance"),
            position=[_to_position(p) for p in latlng] if latlng is not None else None,
        )

    @classmethod
    def from_gpx(cls, gpx_content: str, activity_id: str = "unknown") -> "ActivitySampleStream":
        """
        Parse GPX content into a sample stream.

        Points without a timestamp are dropped. Distance is the cumulative
        great-circle distance between consecutive kept points.

        Args:
            gpx_content: Raw GPX file content
            activity_id: Optional ID for tracking

        Returns:
            ActivitySampleStream
        """
        gpx = gpxpy.parse(gpx_content)

        times: List[float] = []
        positions: List[Optional[Position]] = []
        start_time = None

        for track in gpx.tracks:
            for segment in track.segments:
                for point in segment.points:
                    if point.time is None:
                        continue
                    if start_time is None:
                        start_time = point.time

                    times.append((point.time - start_time).total_seconds())
                    positions.append((point.latitude, point.longitude))

        return cls(
            activity_id=activity_id,
            time=times,
            distance=cumulative_distances(positions),
            position=positions,
            start_time=start_time,
        )


def _to_position(value: Any) -> Optional[Position]:
    if value is None or len(value) < 2:
        return None
    lat, lon = value[0], value[1]
    if lat is None or lon is None:
        return None
    return (float(lat), float(lon))


def _value_problem(time_s: Any, distance_m: Any) -> Optional[str]:
    """Describe why a sample's values are unusable, or None if they are fine"""
    for name, value in (("time", time_s), ("distance", distance_m)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f"{name} is not a number ({value!r})"
        if not math.isfinite(value):
            return f"{name} is not finite ({value!r})"
        if value < 0:
            return f"{name} is negative ({value!r})"
    return None


def _order_problem(
    time_s: float, distance_m: float, prev_time: float, prev_distance: float
) -> Optional[str]:
    if time_s < prev_time:
        return f"time goes backwards ({prev_time} -> {time_s})"
    if distance_m < prev_distance:
        return f"distance goes backwards ({prev_distance} -> {distance_m})"
    return None


def _longest_non_decreasing(values: Sequence[float]) -> List[int]:
    """
    Positions of a longest non-decreasing subsequence of values.

    Patience sorting: tails[k] is the smallest value ending a run of
    length k + 1 seen so far.
    """
    tails: List[float] = []
    tail_positions: List[int] = []
    previous = [-1] * len(values)

    for i, value in enumerate(values):
        k = bisect_right(tails, value)
        if k > 0:
            previous[i] = tail_positions[k - 1]
        if k == len(tails):
            tails.append(value)
            tail_positions.append(i)
        else:
            tails[k] = value
            tail_positions[k] = i

    result = []
    i = tail_positions[-1] if tail_positions else -1
    while i != -1:
        result.append(i)
        i = previous[i]
    return result[::-1]


def _skip_policy_samples(time: Sequence[Any], distance: Sequence[Any]) -> List[int]:
    """
    Indices of the samples kept under the SKIP policy.

    Samples with unusable values go first. Of the rest, the longest run of
    non-decreasing time is kept, and within it the longest run of
    non-decreasing distance. A single spike is dropped on its own instead
    of taking every later sample with it.
    """
    usable = [
        i for i, (time_s, distance_m) in enumerate(zip(time, distance))
        if _value_problem(time_s, distance_m) is None
    ]
    usable = [usable[k] for k in _longest_non_decreasing([time[i] for i in usable])]
    return [usable[k] for k in _longest_non_decreasing([distance[i] for i in usable])]


def validate_stream(
    stream: ActivitySampleStream,
    policy: MalformedSamplePolicy = MalformedSamplePolicy.REJECT,
) -> ActivitySampleStream:
    """
    Check that a stream is complete and its samples are usable.

    Every sample must have finite, non-negative time and distance, and
    neither may decrease from one kept sample to the next.

    Args:
        stream: Stream to validate
        policy: REJECT raises on the first bad sample, SKIP keeps the
            largest monotonic set of good samples

    Returns:
        The stream itself when clean, otherwise a sanitized copy (SKIP)

    Raises:
        MissingStreamData: A stream is absent
        MalformedSampleData: Lengths differ, or a sample is bad under REJECT
    """
    stream.require_complete()

    if policy is MalformedSamplePolicy.REJECT:
        prev_time = 0.0
        prev_distance = 0.0
        for i, (time_s, distance_m) in enumerate(zip(stream.time, stream.distance)):
            problem = _value_problem(time_s, distance_m) or _order_problem(
                time_s, distance_m, prev_time, prev_distance
            )
            if problem is not None:
                raise MalformedSampleData(
                    f"Activity {stream.activity_id} sample {i}: {problem}"
                )
            prev_time = time_s
            prev_distance = distance_m
        return stream

    kept = _skip_policy_samples(stream.time, stream.distance)
    dropped = len(stream) - len(kept)
    if dropped == 0:
        return stream

    logger.warning(
        f"Dropped {dropped} of {len(stream)} malformed samples from activity {stream.activity_id}"
    )
    return _subset(stream, kept)


def _subset(stream: ActivitySampleStream, indices: Sequence[int]) -> ActivitySampleStream:
    return ActivitySampleStream(
        activity_id=stream.activity_id,
        time=[stream.time[i] for i in indices],
        distance=[stream.distance[i] for i in indices],
        position=[stream.position[i] for i in indices],
        start_time=stream.start_time,
    )
