"""Tests for local activity views and formatters."""

import pytest

from activity_trend.models.strava import ActivityFilter
from activity_trend.services import analytics
from activity_trend.utils.geo import haversine_km, is_valid_latlng

from tests.conftest import make_activity, make_effort


def test_formatters():
    assert analytics.format_pace(0) == "-"
    assert analytics.format_pace(1000 / 330) == "5:30"
    assert analytics.pace_decimal(1000 / 330) == pytest.approx(5.5)
    assert analytics.format_duration(3725) == "1h 2m"
    assert analytics.format_duration(125) == "2m 5s"


def test_haversine_known_distance():
    # One degree of latitude is about 111.19 km on a 6371 km sphere
    assert haversine_km([0.0, 0.0], [1.0, 0.0]) == pytest.approx(111.19, abs=0.01)
    assert haversine_km([47.6, -122.3], [47.6, -122.3]) == 0


def test_filter_by_distance_range():
    activities = [make_activity(1, distance=5000), make_activity(2, distance=10000), make_activity(3, distance=21100)]

    result = analytics.filter_activities(activities, ActivityFilter(min_distance_km=6, max_distance_km=21.1))

    assert [a.id for a in result] == [2, 3]


def test_filter_by_type_and_name():
    activities = [
        make_activity(1, name="Tempo Tuesday"),
        make_activity(2, name="tempo ride", type="Ride"),
        make_activity(3, name="Easy"),
    ]

    result = analytics.filter_activities(activities, ActivityFilter(name="TEMPO", activity_type="Run"))

    assert [a.id for a in result] == [1]


def test_list_segments_counts_and_sorting():
    activities = [
        make_activity(1, segment_efforts=[
            make_effort(1, 10, segment={"id": 10, "name": "Flat", "elevation_high": 12, "elevation_low": 10}).model_dump(),
            make_effort(2, 20, segment={"id": 20, "name": "Steep", "elevation_high": 150, "elevation_low": 50}).model_dump(),
        ]),
        make_activity(2, segment_efforts=[
            make_effort(3, 10, segment={"id": 10, "name": "Flat", "elevation_high": 12, "elevation_low": 10}).model_dump(),
        ]),
        make_activity(3),
    ]

    by_count = analytics.list_segments(activities)
    assert [(s.id, s.effort_count) for s in by_count] == [(10, 2), (20, 1)]

    by_climb = analytics.list_segments(activities, sort_key="elevation_diff", descending=True)
    assert [s.id for s in by_climb] == [20, 10]

    by_name = analytics.list_segments(activities, sort_key="name", descending=False)
    assert [s.name for s in by_name] == ["Flat", "Steep"]

    with pytest.raises(ValueError):
        analytics.list_segments(activities, sort_key="nope")


def test_segment_chart_skips_undated_efforts():
    efforts = [make_effort(1, 10, average_heartrate=151.6), make_effort(2, 10, start_date=None)]

    series = analytics.segment_chart_series(efforts)

    assert len(series) == 1
    assert series[0]["hr"] == 152
    assert series[0]["time_formatted"] == "4m 0s"


def test_start_points_are_normalized_through_the_geo_check():
    assert is_valid_latlng([47.6, -122.3])
    assert not is_valid_latlng([47.6, -122.3, 10.0])
    assert not is_valid_latlng(["47.6", "-122.3"])

    assert make_activity(1, start_latlng=(47, -122)).start_latlng == [47.0, -122.0]
    assert make_activity(2, start_latlng=[]).start_latlng is None
    assert make_activity(3, start_latlng=["a", "b"]).start_latlng is None


def test_list_segments_rejects_non_scalar_sort_keys():
    activities = [
        make_activity(1, segment_efforts=[
            make_effort(1, 10, segment={"id": 10, "name": "A", "map": {"polyline": "abc"}}).model_dump(),
            make_effort(2, 20, segment={"id": 20, "name": "B", "map": {"polyline": "def"}}).model_dump(),
        ]),
    ]

    for bad_key in ("map", "start_latlng", "id"):
        with pytest.raises(ValueError):
            analytics.list_segments(activities, sort_key=bad_key)

    by_city = analytics.list_segments(activities, sort_key="city", descending=False)
    assert {s.id for s in by_city} == {10, 20}
