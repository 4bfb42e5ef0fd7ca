"""
Personal Best Records

Best-effort segments enriched with the activity metadata needed for
ranking and display. Records round-trip through plain dicts so the host
application can store them and hand them back for ranking.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from .segment_finder import BestEffortSegment

# Optional activity fields carried through to records, keyed by the name
# used in the record, with every source field name seen in activity payloads
EXTRA_FIELD_SOURCES: Dict[str, tuple] = {
    "average_heartrate": ("average_heartrate", "avg_heart_rate", "averageHeartRate", "heartRate"),
    "max_heartrate": ("max_heartrate", "max_heart_rate", "maxHeartRate"),
    "average_cadence": ("average_cadence", "avg_cadence", "averageCadence", "cadence"),
    "total_elevation_gain": ("total_elevation_gain", "elevation_gain", "elevationGain"),
    "average_watts": ("average_watts", "avg_power", "averagePower", "power"),
    "suffer_score": ("suffer_score", "sufferScore"),
}

# Field names used by records stored before this worker existed
_LEGACY_KEYS = {
    "distance": "distance_label",
    "distanceMeters": "target_meters",
    "time": "time_seconds",
    "activityId": "activity_id",
    "activityName": "activity_name",
    "date": "activity_date",
    "segmentStart": "start_distance_m",
    "segmentEnd": "end_distance_m",
    "averageSpeed": "average_speed_mps",
    "fullRunTime": "full_run_time_s",
}


def parse_activity_date(value: Any) -> Optional[datetime]:
    """
    Normalise an activity date to a naive UTC datetime.

    Accepts datetimes, dates, ISO 8601 strings (including a trailing "Z"),
    epoch seconds, and document-store timestamps ({"seconds": ...}).
    """
    if value is None or value == "":
        return None

    if isinstance(value, dict) and "seconds" in value:
        value = value["seconds"]
    elif hasattr(value, "seconds") and not isinstance(value, (datetime, date)):
        value = value.seconds

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported activity date: {value!r}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def collect_extras(activity: Dict[str, Any]) -> Dict[str, Any]:
    """Pick optional physiological/technical fields from an activity payload"""
    extras = {}
    for name, sources in EXTRA_FIELD_SOURCES.items():
        for source in sources:
            value = activity.get(source)
            if value is not None:
                extras[name] = value
                break
    return extras


@dataclass
class PersonalBestRecord:
    """A best-effort segment attached to its activity"""

    activity_id: str
    activity_name: str
    activity_date: Optional[datetime]
    distance_label: str
    target_meters: float
    time_seconds: float
    pace: Optional[str] = None
    start_index: Optional[int] = None
    end_index: Optional[int] = None
    start_time_s: Optional[float] = None
    end_time_s: Optional[float] = None
    start_distance_m: Optional[float] = None
    end_distance_m: Optional[float] = None
    start_position: Optional[tuple] = None
    end_position: Optional[tuple] = None
    average_speed_mps: Optional[float] = None
    full_run_distance_m: Optional[float] = None
    full_run_time_s: Optional[float] = None
    extras: Dict[str, Any] = field(default_factory=dict)
    rank: Optional[int] = None

    @property
    def key(self) -> tuple:
        """Storage identity: one record per (activity, distance)"""
        return (self.activity_id, self.distance_label)

    @classmethod
    def from_segment(
        cls, segment: BestEffortSegment, activity: Dict[str, Any]
    ) -> "PersonalBestRecord":
        """
        Enrich a segment with activity metadata.

        Args:
            segment: Segment found in the activity's stream
            activity: Activity payload (id, name, start_date, distance, moving_time, ...)
        """
        return cls(
            activity_id=str(activity.get("id")),
            activity_name=activity.get("name") or "Unknown Run",
            activity_date=parse_activity_date(activity.get("start_date")),
            full_run_distance_m=activity.get("distance"),
            full_run_time_s=activity.get("moving_time"),
            extras=collect_extras(activity),
            **segment.to_dict(),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PersonalBestRecord":
        """Rebuild a record from its stored dict form"""
        normalized = {}
        for key, value in data.items():
            normalized.setdefault(_LEGACY_KEYS.get(key, key), value)

        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in normalized.items() if k in known}
        kwargs["activity_id"] = str(kwargs.get("activity_id"))
        kwargs.setdefault("activity_name", "Unknown Run")
        kwargs["activity_date"] = parse_activity_date(kwargs.get("activity_date"))
        kwargs["extras"] = dict(kwargs.get("extras") or {})

        for position_key in ("start_position", "end_position"):
            if kwargs.get(position_key) is not None:
                kwargs[position_key] = tuple(kwargs[position_key])

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["activity_date"] = (
            self.activity_date.isoformat() if self.activity_date else None
        )
        return result


def build_personal_best_records(
    activity: Dict[str, Any], segments: List[BestEffortSegment]
) -> List[PersonalBestRecord]:
    """Attach activity metadata to each of the activity's best segments"""
    return [PersonalBestRecord.from_segment(segment, activity) for segment in segments]
