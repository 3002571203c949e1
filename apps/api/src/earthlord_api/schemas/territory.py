"""Territory schemas - claimed polygons and the sessions that trace them."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

from earthlord_shared import BoundingBox, GeoPoint


class Territory(BaseModel):
    """A closed polygon owned by one player."""

    id: UUID
    owner_id: UUID
    name: str | None = None
    boundary: list[GeoPoint] = Field(
        ...,
        description="Raw WGS-84 boundary in recording order; closure is implicit",
    )
    polygon_wkt: str = Field(..., description="SRID=4326;POLYGON((lon lat, ...))")
    area: float = Field(..., description="Area in square metres")
    bounding_box: BoundingBox
    point_count: int
    started_at: datetime
    completed_at: datetime
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    display_boundary: list[GeoPoint] | None = Field(
        default=None,
        description="Boundary converted for a regional (GCJ-02) map, when requested",
    )

    model_config = {"from_attributes": True}


class TerritoryUpdate(BaseModel):
    """Request model for renaming a territory."""

    name: str = Field(..., min_length=1, max_length=255)


class TrackingStatus(StrEnum):
    """Lifecycle of a path recording."""

    RECORDING = "recording"
    CLOSED = "closed"
    ABANDONED = "abandoned"


class TrackingPointCreate(BaseModel):
    """A single GPS fix reported by the client (raw WGS-84)."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    def to_point(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)


class TrackingSession(BaseModel):
    """A path being recorded by a walking player."""

    id: UUID
    owner_id: UUID
    status: TrackingStatus
    path: list[GeoPoint] = Field(default_factory=list)
    territory_id: UUID | None = None
    version: int = 1
    started_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def point_count(self) -> int:
        return len(self.path)


class TrackingPointResult(BaseModel):
    """Outcome of reporting a GPS fix."""

    session: TrackingSession
    accepted: bool = Field(..., description="False when the fix was too close to the last point")
    closed: bool = False
    territory: Territory | None = None
