# runmate/schemas/run_log.py
# -----------------------------------------------------------------------------
# Pydantic schemas: RunLog (/api/activities) and training statistics
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from runmate.models.run_log import RunLog, RunLogStatus, RunSource, RunType
from runmate.schemas.common import CamelModel
from runmate.schemas.run_event import Location, _to_naive_utc


class RunLogCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    run_type: RunType = Field(alias="activityType")
    distance: float = Field(gt=0, description="km")
    duration: int = Field(gt=0, description="seconds")
    elevation_gain: float = Field(default=0.0, ge=0)
    calories: int = Field(default=0, ge=0)
    average_heart_rate: Optional[int] = Field(default=None, gt=0, le=250)
    max_heart_rate: Optional[int] = Field(default=None, gt=0, le=250)
    start_location: Optional[Location] = None
    source: RunSource = RunSource.manual
    status: RunLogStatus = RunLogStatus.completed
    is_public: bool = True
    start_time: datetime

    @field_validator("start_time")
    @classmethod
    def _naive_utc_start(cls, v):
        return _to_naive_utc(v)

    def to_fields(self) -> Dict[str, Any]:
        fields = self.model_dump(exclude={"start_location"})
        fields["title"] = self.title.strip()
        fields.update(_location_fields(self.start_location))
        return fields


class RunLogUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    run_type: Optional[RunType] = Field(default=None, alias="activityType")
    distance: Optional[float] = Field(default=None, gt=0)
    duration: Optional[int] = Field(default=None, gt=0)
    elevation_gain: Optional[float] = Field(default=None, ge=0)
    calories: Optional[int] = Field(default=None, ge=0)
    average_heart_rate: Optional[int] = Field(default=None, gt=0, le=250)
    max_heart_rate: Optional[int] = Field(default=None, gt=0, le=250)
    start_location: Optional[Location] = None
    status: Optional[RunLogStatus] = None
    is_public: Optional[bool] = None
    start_time: Optional[datetime] = None

    @field_validator("start_time")
    @classmethod
    def _naive_utc_start(cls, v):
        return _to_naive_utc(v)

    def to_changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent; explicit nulls are ignored."""
        changes = {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "start_location" and getattr(self, name) is not None
        }
        if self.start_location is not None:
            changes.update(_location_fields(self.start_location))
        return changes


def _location_fields(location: Optional[Location]) -> Dict[str, Any]:
    if location is None:
        return {"location_name": None, "location_lat": None, "location_lng": None}
    return {"location_name": location.name, "location_lat": location.lat, "location_lng": location.lng}


class RunLogOut(CamelModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    run_type: str = Field(alias="activityType")
    distance: float
    duration: int
    average_pace: Optional[float] = None
    average_speed: Optional[float] = None
    elevation_gain: float
    calories: int
    average_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    start_location: Optional[Location] = None
    source: str
    status: str
    is_public: bool
    start_time: datetime
    points_earned: int
    created_at: datetime

    @classmethod
    def from_run_log(cls, run_log: RunLog) -> "RunLogOut":
        location = None
        if run_log.location_name:
            location = Location(name=run_log.location_name, lat=run_log.location_lat, lng=run_log.location_lng)
        return cls(
            id=run_log.id,
            user_id=run_log.user_id,
            title=run_log.title,
            description=run_log.description,
            run_type=run_log.run_type.value,
            distance=run_log.distance,
            duration=run_log.duration,
            average_pace=run_log.average_pace,
            average_speed=run_log.average_speed,
            elevation_gain=run_log.elevation_gain or 0.0,
            calories=run_log.calories or 0,
            average_heart_rate=run_log.average_heart_rate,
            max_heart_rate=run_log.max_heart_rate,
            start_location=location,
            source=run_log.source.value,
            status=run_log.status.value,
            is_public=run_log.is_public,
            start_time=run_log.start_time,
            points_earned=run_log.points_earned,
            created_at=run_log.created_at,
        )


class RunTotals(CamelModel):
    total_activities: int
    total_distance: float
    total_time: int
    total_elevation: float
    total_points: int
    avg_distance: float
    avg_pace: float
