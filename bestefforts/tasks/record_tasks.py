"""
Best Effort Tasks

Celery tasks that extract best-effort records from activity streams,
rank them per distance, and build record progressions. The host
application stores the records these tasks return and passes them back
in for ranking.
"""

import base64
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..analysis import (
    ActivitySampleStream,
    build_personal_best_records,
    build_progression,
    DistanceCatalog,
    find_best_segments,
    format_date,
    format_duration,
    format_run_distance,
    format_segment_range,
    format_speed_as_pace,
    MalformedSamplePolicy,
    parse_fit_content,
    PersonalBestRecord,
    progression_improvements,
    should_show_hours,
    StreamDataError,
    TimeWindow,
    top_records,
    UnitSystem,
)
from ..analysis.fit_parser import fit_to_stream
from ..analysis.formatting import DEFAULT_DATE_FORMAT
from . import app

logger = logging.getLogger(__name__)

# Activity types that get best efforts
RUNNING_TYPES = ("Run", "TrailRun")


def _catalog(custom_distances: Optional[Iterable[str]]) -> DistanceCatalog:
    catalog = DistanceCatalog()
    for value in custom_distances or []:
        catalog.add_custom(value)
    return catalog


def _is_running(activity: Dict[str, Any]) -> bool:
    activity_type = activity.get("type")
    return activity_type is None or activity_type in RUNNING_TYPES


def extract_records(
    activity: Dict[str, Any],
    stream: ActivitySampleStream,
    catalog: DistanceCatalog,
    policy: MalformedSamplePolicy = MalformedSamplePolicy.REJECT,
) -> List[PersonalBestRecord]:
    """
    Best-effort records of one activity for every distance in the catalog.

    Raises:
        MissingStreamData, MalformedSampleData: stream unusable
    """
    segments = find_best_segments(stream, catalog.distances, policy)
    return build_personal_best_records(activity, segments)


@app.task(name="extract_best_efforts", bind=True)
def extract_best_efforts(
    self,
    activity: Dict[str, Any],
    streams: Dict[str, Any],
    custom_distances: Optional[List[str]] = None,
    malformed_policy: str = "reject",
) -> Dict[str, Any]:
    """
    Extract best-effort records from one activity's streams.

    Args:
        activity: Activity metadata (id, name, type, start_date, distance, moving_time, ...)
        streams: Stream payload with time, distance and latlng streams
        custom_distances: Extra user-defined distances, e.g. ["7K", "1200m"]
        malformed_policy: "reject" or "skip" for invalid samples

    Returns:
        Dict containing:
            - success: Whether extraction ran
            - records: Record dicts, one per reachable distance
            - skipped: True when the activity's stream data was unusable
    """
    activity_id = activity.get("id")

    if not _is_running(activity):
        logger.info(
            f"[Task {self.request.id}] Ignoring {activity.get('type')} activity {activity_id}"
        )
        return {"success": True, "activity_id": activity_id, "records": [], "ignored": True}

    try:
        catalog = _catalog(custom_distances)
        stream = ActivitySampleStream.from_strava_streams(activity_id, streams)
        records = extract_records(
            activity, stream, catalog, MalformedSamplePolicy(malformed_policy)
        )

        logger.info(
            f"[Task {self.request.id}] Activity {activity_id}: "
            f"{len(records)} best efforts from {len(stream)} samples"
        )

        return {
            "success": True,
            "activity_id": activity_id,
            "records": [r.to_dict() for r in records],
        }

    except StreamDataError as e:
        logger.warning(f"[Task {self.request.id}] Skipping activity {activity_id}: {e}")
        return {"success": False, "skipped": True, "error": str(e), "activity_id": activity_id}

    except Exception as e:
        logger.error(
            f"[Task {self.request.id}] Error extracting best efforts for {activity_id}: {e}",
            exc_info=True,
        )
        return {"success": False, "error": str(e), "activity_id": activity_id}


@app.task(name="extract_best_efforts_from_file", bind=True)
def extract_best_efforts_from_file(
    self,
    activity: Dict[str, Any],
    file_content: str,
    file_type: str = "gpx",
    custom_distances: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Extract best-effort records from an uploaded GPX or FIT file.

    Activity metadata missing from the payload (start date, distance,
    moving time) is filled in from the file.

    Args:
        activity: Activity metadata; at least an "id"
        file_content: GPX as string, FIT as base64-encoded string
        file_type: "gpx" or "fit"
        custom_distances: Extra user-defined distances

    Returns:
        Dict with success flag and record dicts
    """
    activity = dict(activity)
    activity_id = str(activity.get("id", "unknown"))

    logger.info(
        f"[Task {self.request.id}] Reading {file_type} file for activity {activity_id} "
        f"({len(file_content)} chars)"
    )

    try:
        if file_type.lower() == "fit":
            fit_data = parse_fit_content(base64.b64decode(file_content))
            stream = fit_to_stream(fit_data, activity_id)
            activity = {**fit_data.to_activity(activity_id), **activity}
        else:
            stream = ActivitySampleStream.from_gpx(file_content, activity_id)

        if stream.time:
            defaults = {
                "distance": stream.distance[-1],
                "moving_time": stream.time[-1],
                "start_date": stream.start_time.isoformat() if stream.start_time else None,
            }
            for key, value in defaults.items():
                if activity.get(key) is None:
                    activity[key] = value

        if not _is_running(activity):
            return {"success": True, "activity_id": activity_id, "records": [], "ignored": True}

        records = extract_records(activity, stream, _catalog(custom_distances))

        logger.info(
            f"[Task {self.request.id}] Activity {activity_id}: {len(records)} best efforts"
        )

        return {
            "success": True,
            "activity_id": activity_id,
            "records": [r.to_dict() for r in records],
        }

    except StreamDataError as e:
        logger.warning(f"[Task {self.request.id}] Skipping activity {activity_id}: {e}")
        return {"success": False, "skipped": True, "error": str(e), "activity_id": activity_id}

    except Exception as e:
        logger.error(
            f"[Task {self.request.id}] Error reading activity file {activity_id}: {e}",
            exc_info=True,
        )
        return {"success": False, "error": str(e), "activity_id": activity_id}


@app.task(name="process_activity_batch", bind=True)
def process_activity_batch(
    self,
    items: List[Dict[str, Any]],
    custom_distances: Optional[List[str]] = None,
    known_activity_ids: Optional[List[Any]] = None,
    malformed_policy: str = "reject",
) -> Dict[str, Any]:
    """
    Extract best efforts for many activities, isolating failures.

    Activities already known to the store are not reprocessed. An activity
    whose streams are missing or malformed is skipped and logged; the rest
    of the batch carries on.

    Args:
        items: List of {"activity": {...}, "streams": {...}}
        custom_distances: Extra user-defined distances
        known_activity_ids: IDs of activities that already have records
        malformed_policy: "reject" or "skip" for invalid samples

    Returns:
        Dict with all records plus processed/skipped/failed counts
    """
    try:
        catalog = _catalog(custom_distances)
        policy = MalformedSamplePolicy(malformed_policy)
    except ValueError as e:
        return {"success": False, "error": str(e)}

    known = {str(i) for i in known_activity_ids or []}
    records: List[Dict[str, Any]] = []
    processed = 0
    already_known = 0
    ignored = 0
    failures: List[Dict[str, Any]] = []

    for index, item in enumerate(items, 1):
        activity = item.get("activity") or {}
        activity_id = activity.get("id")

        if str(activity_id) in known:
            already_known += 1
            continue
        if not _is_running(activity):
            ignored += 1
            continue

        try:
            stream = ActivitySampleStream.from_strava_streams(activity_id, item.get("streams"))
            found = extract_records(activity, stream, catalog, policy)
        except StreamDataError as e:
            logger.warning(f"[Task {self.request.id}] Skipping activity {activity_id}: {e}")
            failures.append({"activity_id": activity_id, "error": str(e)})
            continue
        except Exception as e:
            logger.error(
                f"[Task {self.request.id}] Error processing activity {activity_id}: {e}",
                exc_info=True,
            )
            failures.append({"activity_id": activity_id, "error": str(e)})
            continue

        records.extend(r.to_dict() for r in found)
        processed += 1
        logger.info(
            f"[Task {self.request.id}] Processed activity {activity_id} "
            f"(item {index}/{len(items)}, {processed} processed so far)"
        )

    logger.info(
        f"[Task {self.request.id}] Batch of {len(items)}: {processed} processed, "
        f"{already_known} already known, {ignored} ignored, {len(failures)} failed"
    )

    return {
        "success": True,
        "records": records,
        "processed": processed,
        "already_known": already_known,
        "ignored": ignored,
        "failed": len(failures),
        "failures": failures,
    }


def _display_row(
    record: PersonalBestRecord,
    show_hours: bool,
    units: UnitSystem,
    date_format: str,
) -> Dict[str, Any]:
    row = record.to_dict()
    row.update({
        "time_formatted": format_duration(record.time_seconds, show_hours),
        "pace_formatted": format_speed_as_pace(record.average_speed_mps, units),
        "date_formatted": (
            format_date(record.activity_date, date_format) if record.activity_date else None
        ),
        "run_name": record.activity_name,
        "segment": format_segment_range(record.start_distance_m, record.end_distance_m),
        "full_run_distance": format_run_distance(record.full_run_distance_m),
    })
    return row


def _parse_stored_records(records: List[Dict[str, Any]]) -> tuple:
    """
    Rebuild stored record dicts, leaving out any that cannot be parsed.

    Returns:
        (parsed records, number of records left out)
    """
    parsed = []
    invalid = 0
    for data in records:
        try:
            parsed.append(PersonalBestRecord.from_dict(data))
        except (TypeError, ValueError) as e:
            invalid += 1
            logger.warning(f"Ignoring unreadable stored record {data!r}: {e}")
    return parsed, invalid


def _ranking_input(
    records: List[Dict[str, Any]],
    distance: str,
    custom_distances: Optional[List[str]],
) -> tuple:
    target = _catalog(custom_distances).resolve(distance)
    if target is None:
        raise ValueError(f"Invalid distance: {distance!r}")
    parsed, invalid = _parse_stored_records(records)
    return target, parsed, invalid


@app.task(name="rank_personal_bests")
def rank_personal_bests(
    records: List[Dict[str, Any]],
    distance: str,
    time_filter: str = "all-time",
    custom_from: Optional[str] = None,
    custom_to: Optional[str] = None,
    limit: int = 10,
    unit_system: str = "metric",
    date_format: str = DEFAULT_DATE_FORMAT,
    custom_distances: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Rank stored records for one distance within a time filter.

    Args:
        records: Stored record dicts (any distances)
        distance: Distance label, e.g. "5K", or a custom distance string
        time_filter: "all-time", "this-year", "last-N-months" or "custom"
        custom_from, custom_to: Bounds of a custom filter (inclusive)
        limit: Number of records to return; 0 returns all
        unit_system: "metric" or "imperial" for pace display
        date_format: Display format for dates
        custom_distances: Extra user-defined distances

    Returns:
        Dict with ranked rows (fastest first) and display strings
    """
    try:
        target, parsed, invalid = _ranking_input(records, distance, custom_distances)
        window = TimeWindow.from_filter(time_filter, custom_from, custom_to)
        units = UnitSystem(unit_system)

        ranked = top_records(parsed, target.label, window, limit)
        show_hours = should_show_hours(ranked)

        return {
            "success": True,
            "distance": target.label,
            "count": len(ranked),
            "invalid_records": invalid,
            "records": [_display_row(r, show_hours, units, date_format) for r in ranked],
        }

    except Exception as e:
        logger.error(f"Error ranking personal bests for {distance}: {e}", exc_info=True)
        return {"success": False, "error": str(e)}


@app.task(name="record_progression")
def record_progression(
    records: List[Dict[str, Any]],
    distance: str,
    time_filter: str = "all-time",
    custom_from: Optional[str] = None,
    custom_to: Optional[str] = None,
    unit_system: str = "metric",
    date_format: str = DEFAULT_DATE_FORMAT,
    custom_distances: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Build the personal-record progression for one distance.

    Args:
        records: Stored record dicts (any distances)
        distance: Distance label or custom distance string
        time_filter: Time filter applied before the progression is built
        custom_from, custom_to: Bounds of a custom filter (inclusive)
        unit_system: "metric" or "imperial" for pace display
        date_format: Display format for dates
        custom_distances: Extra user-defined distances

    Returns:
        Dict with progression rows in date order and per-step improvements
    """
    try:
        target, parsed, invalid = _ranking_input(records, distance, custom_distances)
        window = TimeWindow.from_filter(time_filter, custom_from, custom_to)
        units = UnitSystem(unit_system)

        candidates = top_records(parsed, target.label, window, limit=0)
        progression = build_progression(candidates)
        show_hours = any(r.time_seconds >= 3600 for r in progression)

        return {
            "success": True,
            "distance": target.label,
            "count": len(progression),
            "invalid_records": invalid,
            "records": [_display_row(r, show_hours, units, date_format) for r in progression],
            "improvements": progression_improvements(progression),
        }

    except Exception as e:
        logger.error(f"Error building progression for {distance}: {e}", exc_info=True)
        return {"success": False, "error": str(e)}
