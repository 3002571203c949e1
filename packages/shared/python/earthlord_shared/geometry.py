"""Core geometry schemas used across the application."""

from pydantic import BaseModel, ConfigDict, Field


class GeoPoint(BaseModel):
    """A WGS-84 (or GCJ-02, for display) coordinate in degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class BoundingBox(BaseModel):
    """A latitude/longitude aligned bounding box."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, point: GeoPoint) -> bool:
        """Cheap pre-filter before a full polygon test."""
        return (
            self.min_lat <= point.latitude <= self.max_lat
            and self.min_lon <= point.longitude <= self.max_lon
        )
