# runmate/services/run_logs.py
"""
Business rules for logged runs.

- derived metrics: average pace (s/km) and speed (km/h) follow distance and duration
- points: 10 per km, distance and duration bonuses, a multiplier for hard sessions
- the owner's points/level always equal the sum over their run logs
- personal records: fastest completed run inside each race-distance window
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from runmate.core.exceptions import ForbiddenError, NotFoundError
from runmate.db import utcnow
from runmate.models.run_log import RunLog, RunLogStatus, RunType
from runmate.models.user import User
from runmate.repositories.run_logs import RunLogRepository

log = logging.getLogger(__name__)

# (minimum distance km, bonus)
DISTANCE_BONUSES = ((10.0, 50), (21.1, 100), (42.2, 200))
LONG_DURATION_SECONDS = 3600
LONG_DURATION_BONUS = 30

TYPE_MULTIPLIERS = {
    RunType.interval: Decimal("1.5"),
    RunType.tempo: Decimal("1.3"),
    RunType.hill: Decimal("1.4"),
    RunType.race: Decimal("2.0"),
}

# (minimum points, level), highest first
LEVEL_THRESHOLDS = (
    (10000, 10),
    (7500, 9),
    (5000, 8),
    (3500, 7),
    (2500, 6),
    (1800, 5),
    (1200, 4),
    (700, 3),
    (300, 2),
)

# race distances and the km window a run must fall in to count for them
RECORD_WINDOWS = {
    "5k": (4.8, 5.2),
    "10k": (9.8, 10.2),
    "21.1k": (20.6, 21.6),
    "42.2k": (41.7, 42.7),
}

PERIOD_DAYS = {"week": 7, "month": 30, "year": 365}


def _round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_points(distance: float, duration: int, run_type: RunType) -> int:
    points = _round_half_up(distance * 10)
    for minimum, bonus in DISTANCE_BONUSES:
        if distance >= minimum:
            points += bonus
    if duration >= LONG_DURATION_SECONDS:
        points += LONG_DURATION_BONUS

    multiplier = TYPE_MULTIPLIERS.get(run_type)
    if multiplier is not None:
        points = _round_half_up(Decimal(points) * multiplier)
    return points


def level_for_points(points: int) -> int:
    for minimum, level in LEVEL_THRESHOLDS:
        if points >= minimum:
            return level
    return 1


def _apply_derived(run_log: RunLog) -> None:
    run_log.average_pace = run_log.duration / run_log.distance
    run_log.average_speed = run_log.distance / run_log.duration * 3600
    run_log.points_earned = calculate_points(run_log.distance, run_log.duration, run_log.run_type)


def _credit(user: User, delta: int) -> None:
    user.points = max(0, (user.points or 0) + delta)
    user.level = level_for_points(user.points)


# =========================
# WORKFLOW
# =========================

def get_own_run_log(db: Session, run_log_id: int, user_id: int) -> RunLog:
    run_log = RunLogRepository(db).get(run_log_id)
    if run_log is None:
        raise NotFoundError("Run log", run_log_id)
    if run_log.user_id != user_id:
        raise ForbiddenError("Not authorized", "NOT_OWNER")
    return run_log


def log_run(db: Session, user: User, fields: Dict[str, Any]) -> RunLog:
    run_log = RunLog(user_id=user.id, **fields)
    _apply_derived(run_log)
    RunLogRepository(db).add(run_log)
    _credit(user, run_log.points_earned)
    log.info("user %s logged run %s (+%s points)", user.id, run_log.id, run_log.points_earned)
    return run_log


def update_run(db: Session, run_log: RunLog, user: User, changes: Dict[str, Any]) -> RunLog:
    """Only the sent fields change; points move with distance, duration and type."""
    before = run_log.points_earned
    for field, value in changes.items():
        setattr(run_log, field, value)
    _apply_derived(run_log)
    _credit(user, run_log.points_earned - before)
    db.flush()
    return run_log


def delete_run(db: Session, run_log: RunLog, user: User) -> None:
    _credit(user, -run_log.points_earned)
    RunLogRepository(db).delete(run_log)
    log.info("user %s deleted run %s (-%s points)", user.id, run_log.id, run_log.points_earned)


# =========================
# READ MODELS
# =========================

def period_start(period: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Lower bound for ?period=today|week|month|year; None (all time) otherwise."""
    now = now or utcnow()
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period in PERIOD_DAYS:
        return now - timedelta(days=PERIOD_DAYS[period])
    return None


def iso_week_bounds(now: datetime) -> Tuple[datetime, datetime]:
    start = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=7)


def month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


def summarize(run_logs: Iterable[RunLog]) -> Dict[str, Any]:
    """Totals for a set of runs; pace is total time over total distance."""
    runs, distance, time, elevation = 0, 0.0, 0, 0.0
    for r in run_logs:
        runs += 1
        distance += r.distance
        time += r.duration
        elevation += r.elevation_gain or 0.0
    return {
        "runs": runs,
        "distance": round(distance, 2),
        "time": time,
        "elevation": round(elevation, 1),
        "pace": round(time / distance, 1) if distance else 0,
    }


def personal_records(run_logs: Iterable[RunLog]) -> Dict[str, Dict[str, Any]]:
    """
    Fastest completed run for each race distance. A run counts for a
    distance when its length falls inside that distance's window.
    """
    candidates: List[RunLog] = [
        r for r in run_logs if r.status == RunLogStatus.completed and r.distance > 0 and r.duration > 0
    ]
    records: Dict[str, Dict[str, Any]] = {}
    for name, (low, high) in RECORD_WINDOWS.items():
        inside = [r for r in candidates if low <= r.distance <= high]
        if not inside:
            continue
        best = min(inside, key=lambda r: (r.duration, r.start_time))
        records[name] = {"duration": best.duration, "runLogId": best.id, "date": best.start_time}
    return records
