"""Local views over the activity set: filters, segment catalog, chart series."""

from typing import Any, Dict, Iterable, List

from activity_trend.models.strava import Activity, ActivityFilter, SegmentEffort, SegmentSummary
from activity_trend.utils.geo import haversine_km

NEARBY_RADIUS_KM = 0.5
SEGMENT_SORT_KEYS = (
    "name",
    "distance",
    "average_grade",
    "maximum_grade",
    "elevation_diff",
    "city",
    "effort_count",
)


def format_pace(speed: float) -> str:
    """Pace as m:ss per km from a speed in m/s."""
    if not speed:
        return "-"
    raw_pace = (1000 / speed) / 60
    mins = int(raw_pace)
    secs = round((raw_pace - mins) * 60)
    if secs == 60:
        mins, secs = mins + 1, 0
    return f"{mins}:{secs:02d}"


def pace_decimal(speed: float) -> float:
    """Pace in decimal minutes per km (5.5 == 5:30/km), 0 when stationary."""
    if not speed:
        return 0.0
    return (1000 / speed) / 60


def format_duration(seconds: int) -> str:
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h}h {m}m" if h > 0 else f"{m}m {s}s"


def filter_activities(activities: Iterable[Activity], activity_filter: ActivityFilter) -> List[Activity]:
    result = []
    name = activity_filter.name.lower() if activity_filter.name else None
    near = None
    if activity_filter.near_lat is not None and activity_filter.near_lng is not None:
        near = [activity_filter.near_lat, activity_filter.near_lng]

    for activity in activities:
        if name and name not in activity.name.lower():
            continue
        if activity_filter.activity_type and activity.type != activity_filter.activity_type:
            continue

        distance_km = activity.distance / 1000
        if activity_filter.min_distance_km is not None and distance_km < activity_filter.min_distance_km:
            continue
        if activity_filter.max_distance_km is not None and distance_km > activity_filter.max_distance_km:
            continue

        if near:
            if not activity.start_latlng:
                continue
            if haversine_km(near, activity.start_latlng) > NEARBY_RADIUS_KM:
                continue

        result.append(activity)
    return result


def activity_types(activities: Iterable[Activity]) -> List[str]:
    return sorted({a.type for a in activities})


def list_segments(
    activities: Iterable[Activity],
    sort_key: str = "effort_count",
    descending: bool = True,
) -> List[SegmentSummary]:
    """Unique segments found in locally stored efforts, with effort counts.

    ``sort_key`` is one of SEGMENT_SORT_KEYS; anything else raises ValueError.
    """
    if sort_key not in SEGMENT_SORT_KEYS:
        raise ValueError(f"Unknown segment sort key: {sort_key}")

    segments: Dict[int, SegmentSummary] = {}
    for activity in activities:
        for effort in activity.segment_efforts or []:
            summary = segments.get(effort.segment.id)
            if summary is None:
                summary = SegmentSummary(**effort.segment.model_dump())
                segments[effort.segment.id] = summary
            summary.effort_count += 1

    def key(summary: SegmentSummary) -> Any:
        value = getattr(summary, sort_key)
        # None sorts first ascending, last descending
        return (value is not None, value if value is not None else 0)

    return sorted(segments.values(), key=key, reverse=descending)


def similar_chart_series(activities: Iterable[Activity]) -> List[Dict[str, Any]]:
    return [
        {
            "date": a.start_date.date().isoformat(),
            "timestamp": int(a.start_date.timestamp() * 1000),
            "pace": round(pace_decimal(a.average_speed), 2),
            "hr": round(a.average_heartrate) if a.average_heartrate else None,
            "id": a.id,
            "name": a.name,
        }
        for a in activities
    ]


def segment_chart_series(efforts: Iterable[SegmentEffort]) -> List[Dict[str, Any]]:
    return [
        {
            "date": e.start_date.date().isoformat(),
            "timestamp": int(e.start_date.timestamp() * 1000),
            "time_seconds": e.elapsed_time,
            "time_formatted": format_duration(e.elapsed_time),
            "hr": round(e.average_heartrate) if e.average_heartrate else None,
        }
        for e in efforts
        if e.start_date
    ]
