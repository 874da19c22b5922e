from datetime import datetime
from types import SimpleNamespace

import pytest

from runmate.models.run_log import RunLogStatus, RunType
from runmate.services.run_logs import (
    calculate_points,
    iso_week_bounds,
    level_for_points,
    month_bounds,
    period_start,
    personal_records,
    summarize,
)


@pytest.mark.parametrize(
    "distance, duration, run_type, expected",
    [
        (5.0, 1500, RunType.easy, 50),
        (0.25, 120, RunType.recovery, 3),
        (10.0, 3000, RunType.tempo, 195),
        (5.5, 1700, RunType.tempo, 72),
        (6.0, 1500, RunType.interval, 90),
        (3.5, 1300, RunType.hill, 49),
        (21.1, 5400, RunType.race, 782),
        (42.2, 12600, RunType.long, 802),
    ],
)
def test_points(distance, duration, run_type, expected):
    assert calculate_points(distance, duration, run_type) == expected


@pytest.mark.parametrize(
    "points, level",
    [(0, 1), (299, 1), (300, 2), (699, 2), (700, 3), (2500, 6), (9999, 9), (10000, 10), (25000, 10)],
)
def test_level_for_points(points, level):
    assert level_for_points(points) == level


def _run(id, distance, duration, status=RunLogStatus.completed, elevation=None, day=1):
    return SimpleNamespace(
        id=id,
        distance=distance,
        duration=duration,
        status=status,
        elevation_gain=elevation,
        start_time=datetime(2026, 5, day, 7, 0),
    )


def test_personal_records_pick_fastest_completed_run_per_window():
    runs = [
        _run(1, 5.0, 1500),
        _run(2, 5.1, 1450),
        _run(3, 5.0, 1400, status=RunLogStatus.draft),
        _run(4, 5.3, 1300),
        _run(5, 10.0, 3100),
    ]
    records = personal_records(runs)
    assert set(records) == {"5k", "10k"}
    assert records["5k"]["duration"] == 1450
    assert records["5k"]["runLogId"] == 2
    assert records["10k"]["duration"] == 3100


def test_personal_records_empty():
    assert personal_records([]) == {}


def test_summarize():
    totals = summarize([_run(1, 5.0, 1500, elevation=20.0), _run(2, 10.0, 3300)])
    assert totals == {"runs": 2, "distance": 15.0, "time": 4800, "elevation": 20.0, "pace": 320.0}
    assert summarize([])["pace"] == 0


def test_period_start():
    now = datetime(2026, 10, 21, 15, 30)
    assert period_start("today", now) == datetime(2026, 10, 21)
    assert period_start("week", now) == datetime(2026, 10, 14, 15, 30)
    assert period_start("month", now) == datetime(2026, 9, 21, 15, 30)
    assert period_start("all", now) is None
    assert period_start(None, now) is None


def test_calendar_bounds():
    # a Wednesday
    assert iso_week_bounds(datetime(2026, 10, 21, 15)) == (datetime(2026, 10, 19), datetime(2026, 10, 26))
    assert month_bounds(datetime(2026, 10, 21)) == (datetime(2026, 10, 1), datetime(2026, 11, 1))
    assert month_bounds(datetime(2026, 12, 5)) == (datetime(2026, 12, 1), datetime(2027, 1, 1))
