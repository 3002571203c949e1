"""Territory endpoints."""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.database import get_db
from earthlord_api.dependencies import get_current_user
from earthlord_api.errors import NotFound
from earthlord_api.repositories import territory as territory_repo
from earthlord_api.schemas import Territory, TerritoryUpdate
from earthlord_api.services.territories import get_owned_territory, with_display_boundary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/territories", tags=["territories"])


@router.get("", response_model=list[Territory])
async def list_my_territories(
    include_inactive: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> list[Territory]:
    """List the current player's territories, newest first."""
    return await territory_repo.list_territories_by_owner(
        db, user_id, include_inactive=include_inactive
    )


@router.get("/active", response_model=list[Territory])
async def list_active_territories(
    display: Literal["wgs84", "gcj02"] = Query(default="wgs84"),
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> list[Territory]:
    """List every player's active territories for the world map."""
    territories = await territory_repo.list_active_territories(db)
    if display == "gcj02":
        return [with_display_boundary(t) for t in territories]
    return territories


@router.get("/{territory_id}", response_model=Territory)
async def get_territory(
    territory_id: UUID,
    display: Literal["wgs84", "gcj02"] = Query(default="wgs84"),
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Territory:
    """
    Get a territory by ID.

    With ``display=gcj02`` the response also carries ``display_boundary``
    converted for maps of mainland China. ``boundary`` is always raw WGS-84.
    """
    territory = await get_owned_territory(db, territory_id, user_id)
    if display == "gcj02":
        return with_display_boundary(territory)
    return territory


@router.patch("/{territory_id}", response_model=Territory)
async def rename_territory(
    territory_id: UUID,
    update: TerritoryUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Territory:
    """Rename a territory."""
    await get_owned_territory(db, territory_id, user_id)
    territory = await territory_repo.rename_territory(db, territory_id, update.name)
    if territory is None:
        raise NotFound(f"Territory {territory_id} not found")
    return territory


@router.post("/{territory_id}/deactivate", response_model=Territory)
async def deactivate_territory(
    territory_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Territory:
    """Give up a territory. It stays on record but no longer accepts buildings."""
    await get_owned_territory(db, territory_id, user_id)
    territory = await territory_repo.deactivate_territory(db, territory_id)
    if territory is None:
        raise NotFound(f"Territory {territory_id} not found")
    logger.info("Territory deactivated: territory_id=%s user_id=%s", territory_id, user_id)
    return territory


@router.delete("/{territory_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_territory(
    territory_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> None:
    """
    Delete a territory and every building in it.

    Returns 404 if the territory doesn't exist.
    Returns 403 if the territory belongs to another player.
    """
    await get_owned_territory(db, territory_id, user_id)
    await territory_repo.delete_territory(db, territory_id)
    logger.info("Territory deleted: territory_id=%s user_id=%s", territory_id, user_id)
