"""Pydantic schemas for API request/response models."""

from earthlord_api.schemas.building import (
    BuildingCategory,
    BuildingCreate,
    BuildingStatus,
    BuildingTemplate,
    BuildingTemplateCollection,
    BuildingView,
    MaterialCheckRequest,
    MaterialCheckResult,
    PlayerBuilding,
)
from earthlord_api.schemas.inventory import Inventory, InventoryGrant
from earthlord_api.schemas.territory import (
    Territory,
    TerritoryUpdate,
    TrackingPointCreate,
    TrackingPointResult,
    TrackingSession,
    TrackingStatus,
)

__all__ = [
    # Building
    "BuildingCategory",
    "BuildingCreate",
    "BuildingStatus",
    "BuildingTemplate",
    "BuildingTemplateCollection",
    "BuildingView",
    "MaterialCheckRequest",
    "MaterialCheckResult",
    "PlayerBuilding",
    # Inventory
    "Inventory",
    "InventoryGrant",
    # Territory
    "Territory",
    "TerritoryUpdate",
    "TrackingPointCreate",
    "TrackingPointResult",
    "TrackingSession",
    "TrackingStatus",
]
