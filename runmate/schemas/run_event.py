# runmate/schemas/run_event.py
# -----------------------------------------------------------------------------
# Pydantic schemas: RunEvent
# -----------------------------------------------------------------------------
# Dates arrive as ISO strings; aware values are converted to naive UTC, the
# form every DateTime column stores.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator

from runmate.models.run_event import RunEvent
from runmate.schemas.common import CamelModel
from runmate.schemas.user import UserBrief


def _to_naive_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is not None and v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


class Location(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)


class RunEventCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    location: Location
    distance: float = Field(gt=0, description="km")
    pace: int = Field(gt=0, description="seconds per km")
    date: datetime
    max_participants: int = Field(default=4, ge=2)

    @field_validator("date")
    @classmethod
    def _naive_utc_date(cls, v):
        return _to_naive_utc(v)

    def to_fields(self) -> Dict[str, Any]:
        return {
            "title": self.title.strip(),
            "description": self.description.strip(),
            "location_name": self.location.name,
            "location_lat": self.location.lat,
            "location_lng": self.location.lng,
            "distance": self.distance,
            "pace": self.pace,
            "date": self.date,
            "max_participants": self.max_participants,
        }


class RunEventUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    location: Optional[Location] = None
    distance: Optional[float] = Field(default=None, gt=0)
    pace: Optional[int] = Field(default=None, gt=0)
    date: Optional[datetime] = None
    max_participants: Optional[int] = Field(default=None, ge=2)

    @field_validator("date")
    @classmethod
    def _naive_utc_date(cls, v):
        return _to_naive_utc(v)

    def to_changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent; explicit nulls are ignored."""
        raw = self.model_dump(exclude_unset=True, exclude_none=True)
        location = raw.pop("location", None)
        if location is not None:
            raw["location_name"] = location["name"]
            raw["location_lat"] = location.get("lat")
            raw["location_lng"] = location.get("lng")
        return raw


class JoinDecision(CamelModel):
    applicant_id: int
    action: Literal["approve", "reject"]


class RunEventOut(CamelModel):
    id: int
    host: UserBrief
    title: str
    description: str
    location: Location
    distance: float
    pace: int
    date: datetime
    max_participants: int
    participants: List[UserBrief]
    pending_requests: List[UserBrief]
    status: str
    chat_id: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_event(cls, run_event: RunEvent) -> "RunEventOut":
        return cls(
            id=run_event.id,
            host=UserBrief.model_validate(run_event.host),
            title=run_event.title,
            description=run_event.description,
            location=Location(
                name=run_event.location_name,
                lat=run_event.location_lat,
                lng=run_event.location_lng,
            ),
            distance=run_event.distance,
            pace=run_event.pace,
            date=run_event.date,
            max_participants=run_event.max_participants,
            participants=[UserBrief.model_validate(p.user) for p in run_event.participants],
            pending_requests=[UserBrief.model_validate(r.user) for r in run_event.pending_requests],
            status=run_event.status.value,
            chat_id=run_event.chat_id,
            created_at=run_event.created_at,
        )


class RunEventBrief(CamelModel):
    id: int
    title: str
    date: datetime
