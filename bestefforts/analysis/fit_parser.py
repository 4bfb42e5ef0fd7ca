"""
FIT File Parser

Decodes Garmin/ANT+ FIT files into activity metadata and a sample stream
suitable for best-effort extraction.

Uses the fitparse library to decode FIT files.
"""

import io
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from fitparse import FitFile

from .geo import cumulative_distances
from .streams import ActivitySampleStream

# FIT stores positions in semicircles
SEMICIRCLES_TO_DEGREES = 180.0 / 2**31


@dataclass
class FitSample:
    """A single record message from a FIT file"""
    time: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_m: Optional[float] = None
    heart_rate: Optional[int] = None
    cadence: Optional[int] = None
    power: Optional[int] = None


@dataclass
class FitActivityData:
    """Session summary and samples extracted from a FIT file"""
    sport: Optional[str] = None
    start_time: Optional[datetime] = None
    total_distance_m: float = 0.0
    total_elapsed_time_s: float = 0.0
    total_timer_time_s: float = 0.0
    total_ascent_m: Optional[float] = None
    avg_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    avg_cadence: Optional[int] = None
    avg_power: Optional[int] = None
    samples: List[FitSample] = field(default_factory=list)

    def to_activity(self, activity_id: str, name: Optional[str] = None) -> Dict[str, Any]:
        """
        Summarise the session in the same shape as fitness API activities.

        Returns:
            Activity metadata dict usable by the best-effort tasks
        """
        return {
            "id": activity_id,
            "name": name or "FIT Activity",
            "type": _FIT_SPORT_TYPES.get(self.sport or "", self.sport),
            "start_date": self.start_time.isoformat() if self.start_time else None,
            "distance": self.total_distance_m,
            "moving_time": self.total_timer_time_s,
            "elapsed_time": self.total_elapsed_time_s,
            "total_elevation_gain": self.total_ascent_m,
            "average_heartrate": self.avg_heart_rate,
            "max_heartrate": self.max_heart_rate,
            "average_cadence": self.avg_cadence,
            "average_watts": self.avg_power,
        }


_FIT_SPORT_TYPES = {
    "running": "Run",
    "trail_running": "TrailRun",
}


def _number(value: Any, cast=float):
    return cast(value) if value is not None else None


def parse_fit_content(fit_content: bytes) -> FitActivityData:
    """
    Parse FIT file content into session summary and samples.

    Args:
        fit_content: Raw FIT file content as bytes

    Returns:
        FitActivityData with all timed samples
    """
    fitfile = FitFile(io.BytesIO(fit_content))
    data = FitActivityData()

    for record in fitfile.get_messages():
        if record.name == "session":
            for f in record.fields:
                if f.name == "sport":
                    data.sport = str(f.value) if f.value else None
                elif f.name == "start_time":
                    data.start_time = f.value
                elif f.name == "total_distance":
                    data.total_distance_m = float(f.value) if f.value else 0.0
                elif f.name == "total_elapsed_time":
                    data.total_elapsed_time_s = float(f.value) if f.value else 0.0
                elif f.name == "total_timer_time":
                    data.total_timer_time_s = float(f.value) if f.value else 0.0
                elif f.name == "total_ascent":
                    data.total_ascent_m = _number(f.value)
                elif f.name == "avg_heart_rate":
                    data.avg_heart_rate = _number(f.value, int)
                elif f.name == "max_heart_rate":
                    data.max_heart_rate = _number(f.value, int)
                elif f.name in ("avg_cadence", "avg_running_cadence"):
                    data.avg_cadence = _number(f.value, int)
                elif f.name == "avg_power":
                    data.avg_power = _number(f.value, int)

        elif record.name == "record":
            values = {f.name: f.value for f in record.fields}
            timestamp = values.get("timestamp")
            if timestamp is None:
                continue

            lat = values.get("position_lat")
            lon = values.get("position_long")

            data.samples.append(FitSample(
                time=timestamp,
                latitude=lat * SEMICIRCLES_TO_DEGREES if lat is not None else None,
                longitude=lon * SEMICIRCLES_TO_DEGREES if lon is not None else None,
                distance_m=_number(values.get("distance")),
                heart_rate=_number(values.get("heart_rate"), int),
                cadence=_number(values.get("cadence"), int),
                power=_number(values.get("power"), int),
            ))

    return data


def fit_to_stream(fit_data: FitActivityData, activity_id: str) -> ActivitySampleStream:
    """
    Convert parsed FIT samples into an ActivitySampleStream.

    Uses the device-recorded distance when every sample carries one,
    otherwise falls back to great-circle distance between positions.
    """
    samples = fit_data.samples
    if not samples:
        return ActivitySampleStream(activity_id, time=[], distance=[], position=[])

    start = samples[0].time
    times = [(s.time - start).total_seconds() for s in samples]
    positions = [
        (s.latitude, s.longitude)
        if s.latitude is not None and s.longitude is not None
        else None
        for s in samples
    ]

    if all(s.distance_m is not None for s in samples):
        distances = [s.distance_m for s in samples]
    else:
        distances = cumulative_distances(positions)

    return ActivitySampleStream(
        activity_id=activity_id,
        time=times,
        distance=distances,
        position=positions,
        start_time=start,
    )


def parse_fit_to_stream(fit_content: bytes, activity_id: str = "unknown") -> ActivitySampleStream:
    """
    Parse a FIT file straight into a sample stream.

    Args:
        fit_content: Raw FIT file content as bytes
        activity_id: Optional ID for tracking

    Returns:
        ActivitySampleStream
    """
    return fit_to_stream(parse_fit_content(fit_content), activity_id)
