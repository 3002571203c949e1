"""API routes for EarthLord."""

from earthlord_api.routes.buildings import router as buildings_router
from earthlord_api.routes.inventory import router as inventory_router
from earthlord_api.routes.templates import router as templates_router
from earthlord_api.routes.territories import router as territories_router
from earthlord_api.routes.tracking import router as tracking_router

__all__ = [
    "buildings_router",
    "inventory_router",
    "templates_router",
    "territories_router",
    "tracking_router",
]
