"""Building repository - data access for player buildings."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.clock import ensure_utc
from earthlord_api.models import PlayerBuilding as PlayerBuildingModel
from earthlord_api.schemas import BuildingStatus, PlayerBuilding
from earthlord_shared import GeoPoint

logger = logging.getLogger(__name__)


async def add_building(
    db: AsyncSession,
    owner_id: UUID,
    territory_id: UUID,
    template_id: str,
    name: str,
    location: GeoPoint,
    started_at: datetime,
    completed_at: datetime,
) -> PlayerBuilding:
    """Stage a new building in ``constructing`` state. The caller commits."""
    building = PlayerBuildingModel(
        owner_id=owner_id,
        territory_id=territory_id,
        template_id=template_id,
        name=name,
        status=BuildingStatus.CONSTRUCTING.value,
        level=1,
        location_lat=location.latitude,
        location_lon=location.longitude,
        build_started_at=started_at,
        build_completed_at=completed_at,
        version=1,
        created_at=started_at,
        updated_at=started_at,
    )
    db.add(building)
    await db.flush()
    return _to_schema(building)


async def get_building(db: AsyncSession, building_id: UUID) -> PlayerBuilding | None:
    """Get a building by ID."""
    result = await db.execute(
        select(PlayerBuildingModel)
        .where(PlayerBuildingModel.id == building_id)
        .execution_options(populate_existing=True)
    )
    building = result.scalar_one_or_none()
    if building is None:
        return None
    return _to_schema(building)


async def list_buildings_by_territory(db: AsyncSession, territory_id: UUID) -> list[PlayerBuilding]:
    """List buildings in a territory, most recent first."""
    result = await db.execute(
        select(PlayerBuildingModel)
        .where(PlayerBuildingModel.territory_id == territory_id)
        .order_by(PlayerBuildingModel.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return [_to_schema(b) for b in result.scalars().all()]


async def list_buildings_by_owner(db: AsyncSession, owner_id: UUID) -> list[PlayerBuilding]:
    """List a player's buildings across all territories."""
    result = await db.execute(
        select(PlayerBuildingModel)
        .where(PlayerBuildingModel.owner_id == owner_id)
        .order_by(PlayerBuildingModel.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return [_to_schema(b) for b in result.scalars().all()]


async def count_buildings(db: AsyncSession, territory_id: UUID, template_id: str) -> int:
    """Number of buildings of one template in one territory, in any state."""
    result = await db.execute(
        select(func.count())
        .select_from(PlayerBuildingModel)
        .where(
            PlayerBuildingModel.territory_id == territory_id,
            PlayerBuildingModel.template_id == template_id,
        )
    )
    return result.scalar_one()


async def compare_and_set(
    db: AsyncSession,
    building_id: UUID,
    expected_version: int,
    expected_status: BuildingStatus,
    updated_at: datetime,
    **values,
) -> bool:
    """Apply ``values`` only if the row still has the expected version and status.

    Bumps ``version`` on success. Does not commit. Returns False when another
    writer got there first.
    """
    if "status" in values and isinstance(values["status"], BuildingStatus):
        values["status"] = values["status"].value
    result = await db.execute(
        update(PlayerBuildingModel)
        .where(
            PlayerBuildingModel.id == building_id,
            PlayerBuildingModel.version == expected_version,
            PlayerBuildingModel.status == expected_status.value,
        )
        .values(version=expected_version + 1, updated_at=updated_at, **values)
    )
    return result.rowcount == 1


async def delete_building(db: AsyncSession, building_id: UUID, expected_version: int) -> bool:
    """Remove a building if it has not changed since it was read. Does not commit."""
    result = await db.execute(
        delete(PlayerBuildingModel).where(
            PlayerBuildingModel.id == building_id,
            PlayerBuildingModel.version == expected_version,
        )
    )
    return result.rowcount == 1


def _to_schema(building: PlayerBuildingModel) -> PlayerBuilding:
    """Convert SQLAlchemy model to Pydantic schema."""
    return PlayerBuilding(
        id=building.id,
        owner_id=building.owner_id,
        territory_id=building.territory_id,
        template_id=building.template_id,
        name=building.name,
        status=building.status,
        level=building.level,
        location=GeoPoint(latitude=building.location_lat, longitude=building.location_lon),
        build_started_at=ensure_utc(building.build_started_at),
        build_completed_at=(
            ensure_utc(building.build_completed_at) if building.build_completed_at else None
        ),
        version=building.version,
        created_at=ensure_utc(building.created_at),
        updated_at=ensure_utc(building.updated_at),
    )
