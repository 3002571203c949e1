"""Territory access rules shared by the territory and building routes."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.errors import NotFound, NotOwner
from earthlord_api.repositories import territory as territory_repo
from earthlord_api.schemas import Territory
from earthlord_shared.geodesy import to_regional_display_many

logger = logging.getLogger(__name__)


async def get_owned_territory(db: AsyncSession, territory_id: UUID, user_id: UUID) -> Territory:
    """Load a territory, raising NotFound or NotOwner."""
    territory = await territory_repo.get_territory(db, territory_id)
    if territory is None:
        logger.warning("Territory not found: territory_id=%s user_id=%s", territory_id, user_id)
        raise NotFound(f"Territory {territory_id} not found")

    if territory.owner_id != user_id:
        logger.warning(
            "Unauthorized territory access: territory_id=%s owner=%s requester=%s",
            territory_id,
            territory.owner_id,
            user_id,
        )
        raise NotOwner("You don't own this territory")

    return territory


def with_display_boundary(territory: Territory) -> Territory:
    """Attach the GCJ-02 boundary for regional maps. Stored geometry is untouched."""
    return territory.model_copy(
        update={"display_boundary": to_regional_display_many(territory.boundary)}
    )
