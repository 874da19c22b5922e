# runmate/repositories/run_logs.py
"""
Data access for logged runs. Flushes, never commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from runmate.models.run_log import RunLog
from runmate.models.user import User


class RunLogRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, run_log_id: int) -> Optional[RunLog]:
        return self.db.get(RunLog, run_log_id)

    def add(self, run_log: RunLog) -> RunLog:
        self.db.add(run_log)
        self.db.flush()
        return run_log

    def delete(self, run_log: RunLog) -> None:
        self.db.delete(run_log)
        self.db.flush()

    def list_for_user(
        self,
        user_id: int,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[RunLog]:
        """Newest first; since is inclusive, until exclusive."""
        stmt = select(RunLog).where(RunLog.user_id == user_id)
        if since is not None:
            stmt = stmt.where(RunLog.start_time >= since)
        if until is not None:
            stmt = stmt.where(RunLog.start_time < until)
        stmt = stmt.order_by(RunLog.start_time.desc(), RunLog.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt).all())

    def totals_for_user(self, user_id: int) -> Dict[str, Any]:
        row = self.db.execute(
            select(
                func.count(RunLog.id),
                func.coalesce(func.sum(RunLog.distance), 0.0),
                func.coalesce(func.sum(RunLog.duration), 0),
                func.coalesce(func.sum(RunLog.elevation_gain), 0.0),
                func.coalesce(func.sum(RunLog.points_earned), 0),
                func.avg(RunLog.distance),
                func.avg(RunLog.average_pace),
            ).where(RunLog.user_id == user_id)
        ).one()
        count, distance, time, elevation, points, avg_distance, avg_pace = row
        return {
            "total_activities": count,
            "total_distance": round(float(distance), 2),
            "total_time": int(time),
            "total_elevation": round(float(elevation), 1),
            "total_points": int(points),
            "avg_distance": round(float(avg_distance), 2) if avg_distance is not None else 0,
            "avg_pace": round(float(avg_pace), 1) if avg_pace is not None else 0,
        }

    def national_rank(self, user: User) -> int:
        """1 + the number of active runners with more points."""
        ahead = self.db.scalar(
            select(func.count(User.id)).where(User.is_active.is_(True), User.points > (user.points or 0))
        )
        return int(ahead or 0) + 1
