"""SQLAlchemy models for the EarthLord database."""

from earthlord_api.models.building import PlayerBuilding
from earthlord_api.models.inventory import InventoryItem
from earthlord_api.models.territory import Territory, TrackingSession

__all__ = [
    "InventoryItem",
    "PlayerBuilding",
    "Territory",
    "TrackingSession",
]
