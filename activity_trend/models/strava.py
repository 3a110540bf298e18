"""Pydantic models for Strava API data structures."""

from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator

from activity_trend.utils.geo import is_valid_latlng


def _normalize_latlng(value: Any) -> Optional[List[float]]:
    # Strava sends [] for activities recorded without GPS
    if is_valid_latlng(value):
        return [float(value[0]), float(value[1])]
    return None


class StravaCredentials(BaseModel):
    """OAuth client and token state for one connected athlete."""
    client_id: str = ""
    client_secret: str = ""
    access_token: str = ""
    refresh_token: str = ""
    expires_at: int = 0

    @property
    def has_client(self) -> bool:
        return bool(self.client_id and self.client_secret)


class Athlete(BaseModel):
    """Strava athlete model."""
    id: int
    username: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    profile: Optional[str] = None


class StravaAuthResponse(BaseModel):
    """Response body of POST /oauth/token."""
    access_token: str
    refresh_token: str
    expires_at: int
    expires_in: Optional[int] = None
    token_type: str = "Bearer"
    athlete: Optional[Athlete] = None


class PolylineMap(BaseModel):
    """Encoded route geometry attached to activities and segments."""
    id: Optional[str] = None
    polyline: Optional[str] = None
    summary_polyline: Optional[str] = None


class Segment(BaseModel):
    """Strava segment model."""
    id: int
    name: Optional[str] = None
    distance: float = 0.0
    average_grade: float = 0.0
    maximum_grade: float = 0.0
    elevation_high: float = 0.0
    elevation_low: float = 0.0
    start_latlng: Optional[List[float]] = None
    end_latlng: Optional[List[float]] = None
    map: Optional[PolylineMap] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    @field_validator("start_latlng", "end_latlng", mode="before")
    @classmethod
    def normalize_latlng(cls, value: Any) -> Optional[List[float]]:
        return _normalize_latlng(value)

    @property
    def elevation_diff(self) -> float:
        return self.elevation_high - self.elevation_low


class ActivityRef(BaseModel):
    id: int


class SegmentEffort(BaseModel):
    """One traversal of a segment during an activity."""
    id: int
    name: Optional[str] = None
    segment: Segment
    activity: Optional[ActivityRef] = None
    elapsed_time: int = 0
    moving_time: int = 0
    start_date: Optional[datetime] = None
    start_date_local: Optional[datetime] = None
    distance: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None


class Activity(BaseModel):
    """Strava activity model.

    ``segment_efforts`` is only populated by the detail endpoint. ``None``
    marks a summary record from the list endpoint.
    """
    id: int
    name: str
    distance: float
    moving_time: int
    elapsed_time: int
    total_elevation_gain: float
    type: str
    sport_type: Optional[str] = None
    start_date: datetime
    start_date_local: Optional[datetime] = None
    timezone: Optional[str] = None
    average_speed: float = 0.0
    max_speed: float = 0.0
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    start_latlng: Optional[List[float]] = None
    end_latlng: Optional[List[float]] = None
    map: Optional[PolylineMap] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    location_country: Optional[str] = None
    kudos_count: int = 0
    achievement_count: int = 0
    segment_efforts: Optional[List[SegmentEffort]] = None

    @field_validator("start_latlng", "end_latlng", mode="before")
    @classmethod
    def normalize_latlng(cls, value: Any) -> Optional[List[float]]:
        return _normalize_latlng(value)

    @property
    def has_details(self) -> bool:
        return self.segment_efforts is not None

    @property
    def segment_ids(self) -> set:
        return {effort.segment.id for effort in self.segment_efforts or []}


class ActivityFilter(BaseModel):
    """Filter parameters for the local activity list."""
    name: Optional[str] = Field(None, description="Case-insensitive substring of the activity name")
    activity_type: Optional[str] = Field(None, description="Filter by activity type (Run, Ride, etc.)")
    min_distance_km: Optional[float] = Field(None, ge=0, description="Minimum distance in km")
    max_distance_km: Optional[float] = Field(None, ge=0, description="Maximum distance in km")
    near_lat: Optional[float] = Field(None, ge=-90, le=90, description="Reference latitude for geo filter")
    near_lng: Optional[float] = Field(None, ge=-180, le=180, description="Reference longitude for geo filter")


class SegmentSummary(Segment):
    """Segment row of the local catalog with the number of stored efforts."""
    effort_count: int = 0


class SegmentHistory(BaseModel):
    """Segment detail plus its merged effort history, oldest first."""
    segment: Segment
    efforts: List[SegmentEffort]


class SyncResult(BaseModel):
    count: int
    synced_at: datetime


class SyncStatus(BaseModel):
    in_progress: bool
    progress: int
    last_synced_at: Optional[datetime] = None
    last_count: Optional[int] = None


class RefinementResult(BaseModel):
    """Outcome of fetching segment details for a match cohort."""
    reference: Activity
    segments_available: bool
    fetched: int = 0
    failed: List[int] = Field(default_factory=list)
    matches: List[Activity] = Field(default_factory=list)
    # Records that replaced their in-memory counterparts; not serialized
    updated: List[Activity] = Field(default_factory=list, exclude=True)


class AuthStatus(BaseModel):
    connected: bool
    has_client: bool
    expires_at: int = 0
