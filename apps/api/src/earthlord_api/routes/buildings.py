"""Building endpoints - placement, upgrades and demolition.

Every response carries the building's effective state: a timer that has run
out is reported as ``active`` even before it is written back.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.clock import utcnow
from earthlord_api.config import Settings
from earthlord_api.database import get_db
from earthlord_api.dependencies import get_current_user, get_settings
from earthlord_api.routes.conflicts import retry_on_conflict
from earthlord_api.schemas import (
    BuildingCreate,
    BuildingView,
    MaterialCheckRequest,
    MaterialCheckResult,
)
from earthlord_api.services import construction
from earthlord_api.services.templates import TemplateCatalog, get_template_catalog
from earthlord_api.services.territories import get_owned_territory

logger = logging.getLogger(__name__)

router = APIRouter(tags=["buildings"])


@router.get("/territories/{territory_id}/buildings", response_model=list[BuildingView])
async def list_buildings(
    territory_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> list[BuildingView]:
    """List the buildings in a territory, settling finished timers."""
    now = utcnow()
    buildings = await construction.list_territory_buildings(db, user_id, territory_id, now)
    return [construction.to_view(b, now) for b in buildings]


@router.post(
    "/territories/{territory_id}/buildings",
    response_model=BuildingView,
    status_code=status.HTTP_201_CREATED,
)
async def create_building(
    territory_id: UUID,
    request: BuildingCreate,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    catalog: TemplateCatalog = Depends(get_template_catalog),
) -> BuildingView:
    """
    Start constructing a building.

    The location must lie inside the territory boundary, the territory must
    have room for another building of this template, and the player's
    inventory must cover the cost. The cost is debited immediately.
    """
    building = await retry_on_conflict(
        lambda: construction.start_construction(
            db, catalog, user_id, territory_id, request.template_id, request.location
        )
    )
    return construction.to_view(building, utcnow())


@router.post("/territories/{territory_id}/buildings/check", response_model=MaterialCheckResult)
async def check_materials(
    territory_id: UUID,
    request: MaterialCheckRequest,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    catalog: TemplateCatalog = Depends(get_template_catalog),
) -> MaterialCheckResult:
    """Advisory check of whether the player can afford a template. Nothing is debited."""
    await get_owned_territory(db, territory_id, user_id)
    template = catalog.get(request.template_id)
    return await construction.check_construction_materials(db, user_id, template)


@router.get("/buildings", response_model=list[BuildingView])
async def list_my_buildings(
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> list[BuildingView]:
    """List all of the player's buildings, newest first."""
    now = utcnow()
    buildings = await construction.list_player_buildings(db, user_id, now)
    return [construction.to_view(b, now) for b in buildings]


@router.get("/buildings/{building_id}", response_model=BuildingView)
async def get_building(
    building_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> BuildingView:
    """Get a building with its progress. Poll this to observe completion."""
    building = await construction.get_owned_building(db, building_id, user_id)
    return construction.to_view(building, utcnow())


@router.post("/buildings/{building_id}/upgrade", response_model=BuildingView)
async def upgrade_building(
    building_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    catalog: TemplateCatalog = Depends(get_template_catalog),
    app_settings: Settings = Depends(get_settings),
) -> BuildingView:
    """
    Start upgrading an active building to the next level.

    Returns 409 if the building is busy, at max level, or the player can't
    afford the upgrade.
    """
    building = await retry_on_conflict(
        lambda: construction.upgrade_building(
            db,
            catalog,
            user_id,
            building_id,
            cost_multiplier=app_settings.upgrade_cost_multiplier,
        )
    )
    return construction.to_view(building, utcnow())


@router.delete("/buildings/{building_id}", status_code=status.HTTP_204_NO_CONTENT)
async def demolish_building(
    building_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    catalog: TemplateCatalog = Depends(get_template_catalog),
    app_settings: Settings = Depends(get_settings),
) -> None:
    """Demolish a building in any state. Refunds follow the configured ratio."""
    await retry_on_conflict(
        lambda: construction.demolish_building(
            db,
            catalog,
            user_id,
            building_id,
            refund_ratio=app_settings.demolish_refund_ratio,
        )
    )
