"""Data access layer for the EarthLord API."""

from earthlord_api.repositories import building, inventory, territory, tracking

__all__ = [
    "building",
    "inventory",
    "territory",
    "tracking",
]
