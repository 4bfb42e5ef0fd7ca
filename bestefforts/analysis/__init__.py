"""
Analysis Module

Best-effort extraction, ranking and progression over activity sample streams.
"""

from .aggregator import (
    DEFAULT_LIMIT,
    filter_records,
    should_show_hours,
    TimeWindow,
    TimeWindowKind,
    top_records,
)
from .distances import (
    DistanceCatalog,
    parse_custom_distance,
    STANDARD_DISTANCES,
    TargetDistance,
)
from .fit_parser import FitActivityData, FitSample, parse_fit_content, parse_fit_to_stream
from .formatting import (
    format_date,
    format_distance,
    format_duration,
    format_pace,
    format_run_distance,
    format_segment_range,
    format_speed_as_pace,
    UnitSystem,
)
from .geo import cumulative_distances, haversine_distance
from .progression import build_progression, progression_improvements
from .records import (
    build_personal_best_records,
    parse_activity_date,
    PersonalBestRecord,
)
from .segment_finder import (
    BestEffortSegment,
    BestSegmentFinder,
    find_best_segment_for_distance,
    find_best_segments,
)
from .streams import (
    ActivitySampleStream,
    MalformedSampleData,
    MalformedSamplePolicy,
    MissingStreamData,
    StreamDataError,
    validate_stream,
)

__all__ = [
    "ActivitySampleStream",
    "MissingStreamData",
    "MalformedSampleData",
    "MalformedSamplePolicy",
    "StreamDataError",
    "validate_stream",
    "TargetDistance",
    "DistanceCatalog",
    "STANDARD_DISTANCES",
    "parse_custom_distance",
    "BestEffortSegment",
    "BestSegmentFinder",
    "find_best_segments",
    "find_best_segment_for_distance",
    "PersonalBestRecord",
    "build_personal_best_records",
    "parse_activity_date",
    "TimeWindow",
    "TimeWindowKind",
    "DEFAULT_LIMIT",
    "filter_records",
    "top_records",
    "should_show_hours",
    "build_progression",
    "progression_improvements",
    "UnitSystem",
    "format_date",
    "format_distance",
    "format_duration",
    "format_pace",
    "format_run_distance",
    "format_segment_range",
    "format_speed_as_pace",
    "haversine_distance",
    "cumulative_distances",
    "FitActivityData",
    "FitSample",
    "parse_fit_content",
    "parse_fit_to_stream",
]
