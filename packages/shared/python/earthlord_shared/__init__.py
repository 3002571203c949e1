"""Shared geometry and coordinate utilities for EarthLord."""

from earthlord_shared.errors import GeometryError, InsufficientPoints, InvalidGeometry
from earthlord_shared.geometry import BoundingBox, GeoPoint

__version__ = "0.1.0"
__all__ = [
    "BoundingBox",
    "GeoPoint",
    "GeometryError",
    "InsufficientPoints",
    "InvalidGeometry",
]
