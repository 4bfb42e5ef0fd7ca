"""
Best Segment Finder

Finds, for each target distance, the fastest contiguous window of an
activity's sample stream that covers at least that distance:
- Scan every start sample, advancing the end until the distance is covered
- Stop scanning once a start can no longer reach the target distance
- Keep the earliest window among equally fast ones
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .distances import STANDARD_DISTANCES, TargetDistance
from .formatting import format_pace
from .geo import Position
from .streams import ActivitySampleStream, MalformedSamplePolicy, validate_stream


@dataclass
class BestEffortSegment:
    """Fastest window of one activity for one target distance"""

    distance_label: str
    target_meters: float
    start_index: int
    end_index: int
    start_time_s: float
    end_time_s: float
    time_seconds: float
    start_distance_m: float
    end_distance_m: float
    start_position: Optional[Position]
    end_position: Optional[Position]
    pace: str  # M:SS per km, display only
    average_speed_mps: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _find_best_window(
    time: Sequence[float], distance: Sequence[float], target_meters: float
) -> Optional[tuple]:
    """
    Minimum-duration (start, end) window covering target_meters.

    Distance is non-decreasing, so the distance left after a start index
    only shrinks as the start moves forward: the first start that cannot
    reach the target ends the scan.

    Returns:
        (start_idx, end_idx), or None when the target is never reached
    """
    n = len(distance)
    best_time = float("inf")
    best = None

    for start_idx in range(n):
        target_end_distance = distance[start_idx] + target_meters

        end_idx = start_idx + 1
        while end_idx < n and distance[end_idx] < target_end_distance:
            end_idx += 1

        if end_idx >= n:
            break

        segment_time = time[end_idx] - time[start_idx]
        # Strict comparison keeps the earliest of equally fast windows
        if segment_time < best_time:
            best_time = segment_time
            best = (start_idx, end_idx)

    return best


def find_best_segment_for_distance(
    stream: ActivitySampleStream, target: TargetDistance
) -> Optional[BestEffortSegment]:
    """
    Best segment of an already validated stream for one target distance.

    Returns:
        BestEffortSegment, or None if the activity never covers the distance
    """
    window = _find_best_window(stream.time, stream.distance, target.meters)
    if window is None:
        return None

    start_idx, end_idx = window
    segment_time = stream.time[end_idx] - stream.time[start_idx]

    return BestEffortSegment(
        distance_label=target.label,
        target_meters=target.meters,
        start_index=start_idx,
        end_index=end_idx,
        start_time_s=stream.time[start_idx],
        end_time_s=stream.time[end_idx],
        time_seconds=segment_time,
        start_distance_m=stream.distance[start_idx],
        end_distance_m=stream.distance[end_idx],
        start_position=stream.position[start_idx],
        end_position=stream.position[end_idx],
        pace=format_pace(segment_time, target.meters),
        average_speed_mps=target.meters / segment_time if segment_time > 0 else None,
    )


def find_best_segments(
    stream: ActivitySampleStream,
    targets: Iterable[TargetDistance] = STANDARD_DISTANCES,
    policy: MalformedSamplePolicy = MalformedSamplePolicy.REJECT,
) -> List[BestEffortSegment]:
    """
    Find the best segment for every reachable target distance.

    Args:
        stream: Activity sample stream
        targets: Target distances to search for
        policy: Handling of malformed samples (see validate_stream)

    Returns:
        One BestEffortSegment per reachable target, in target order

    Raises:
        MissingStreamData: time, distance or position stream is absent
        MalformedSampleData: Samples are invalid under the REJECT policy
    """
    stream = validate_stream(stream, policy)

    if len(stream) < 2:
        return []

    segments = []
    for target in targets:
        segment = find_best_segment_for_distance(stream, target)
        if segment is not None:
            segments.append(segment)

    return segments


class BestSegmentFinder:
    """Finds best segments across activities for a fixed set of distances"""

    def __init__(
        self,
        targets: Optional[Iterable[TargetDistance]] = None,
        policy: MalformedSamplePolicy = MalformedSamplePolicy.REJECT,
    ):
        self.targets = list(targets) if targets is not None else list(STANDARD_DISTANCES)
        self.policy = policy

    def find(self, stream: ActivitySampleStream) -> List[BestEffortSegment]:
        return find_best_segments(stream, self.targets, self.policy)

    def find_by_label(self, stream: ActivitySampleStream) -> Dict[str, BestEffortSegment]:
        return {s.distance_label: s for s in self.find(stream)}
