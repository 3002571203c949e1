"""Inventory endpoints - the player's resource ledger."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.config import Settings
from earthlord_api.database import get_db
from earthlord_api.dependencies import get_current_user, get_settings
from earthlord_api.repositories import inventory as inventory_repo
from earthlord_api.schemas import Inventory, InventoryGrant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("", response_model=Inventory)
async def get_inventory(
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Inventory:
    """Get the current player's resource balances."""
    resources = await inventory_repo.get_balances(db, user_id)
    return Inventory(owner_id=user_id, resources=resources)


@router.post("/grant", response_model=Inventory)
async def grant_resources(
    grant: InventoryGrant,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> Inventory:
    """
    Credit resources to the current player.

    Only available in dev mode (AUTH_MODE=dev). Anywhere else rewards are
    credited server-side, so a self-service grant returns 403.
    """
    if settings.auth_mode != "dev":
        logger.warning("Refused resource grant outside dev mode: user_id=%s", user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Resource grants are only available in dev mode",
        )

    resources = await inventory_repo.grant(db, user_id, grant.resources)
    return Inventory(owner_id=user_id, resources=resources)
