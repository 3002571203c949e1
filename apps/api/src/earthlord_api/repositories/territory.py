"""Territory repository - data access for claimed territories."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.clock import ensure_utc, utcnow
from earthlord_api.models import PlayerBuilding as PlayerBuildingModel
from earthlord_api.models import Territory as TerritoryModel
from earthlord_api.schemas import Territory
from earthlord_shared import BoundingBox
from earthlord_shared.territory import TerritoryGeometry, parse_path_json

logger = logging.getLogger(__name__)


async def add_territory(
    db: AsyncSession,
    owner_id: UUID,
    geometry: TerritoryGeometry,
    started_at: datetime,
    completed_at: datetime,
    name: str | None = None,
) -> Territory:
    """Stage a new territory in the current transaction.

    The caller commits; territory creation always happens together with
    closing the tracking session that produced it.
    """
    bbox = geometry.bounding_box
    territory = TerritoryModel(
        owner_id=owner_id,
        name=name,
        path=geometry.path,
        polygon_wkt=geometry.polygon_wkt,
        bbox_min_lat=bbox.min_lat,
        bbox_max_lat=bbox.max_lat,
        bbox_min_lon=bbox.min_lon,
        bbox_max_lon=bbox.max_lon,
        area=geometry.area,
        point_count=geometry.point_count,
        started_at=started_at,
        completed_at=completed_at,
        is_active=True,
        created_at=completed_at,
        updated_at=completed_at,
    )
    db.add(territory)
    await db.flush()
    return _to_schema(territory)


async def get_territory(db: AsyncSession, territory_id: UUID) -> Territory | None:
    """Get a territory by ID, active or not."""
    result = await db.execute(
        select(TerritoryModel)
        .where(TerritoryModel.id == territory_id)
        .execution_options(populate_existing=True)
    )
    territory = result.scalar_one_or_none()
    if territory is None:
        return None
    return _to_schema(territory)


async def lock_territory(db: AsyncSession, territory_id: UUID) -> Territory | None:
    """Load a territory with a row lock held until the transaction ends.

    Building placements in the same territory queue behind this lock, so
    their per-template counts cannot interleave. SQLite has no row locks and
    serializes writers instead.
    """
    result = await db.execute(
        select(TerritoryModel)
        .where(TerritoryModel.id == territory_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    territory = result.scalar_one_or_none()
    if territory is None:
        return None
    return _to_schema(territory)


async def list_territories_by_owner(
    db: AsyncSession, owner_id: UUID, include_inactive: bool = False, limit: int = 100
) -> list[Territory]:
    """List a player's territories, most recent first."""
    query = select(TerritoryModel).where(TerritoryModel.owner_id == owner_id)
    if not include_inactive:
        query = query.where(TerritoryModel.is_active == True)  # noqa: E712
    result = await db.execute(query.order_by(TerritoryModel.completed_at.desc()).limit(limit))
    return [_to_schema(t) for t in result.scalars().all()]


async def list_active_territories(db: AsyncSession, limit: int = 500) -> list[Territory]:
    """List every active territory (map overview)."""
    result = await db.execute(
        select(TerritoryModel)
        .where(TerritoryModel.is_active == True)  # noqa: E712
        .order_by(TerritoryModel.completed_at.desc())
        .limit(limit)
    )
    return [_to_schema(t) for t in result.scalars().all()]


async def rename_territory(db: AsyncSession, territory_id: UUID, name: str) -> Territory | None:
    """Rename a territory. Returns None if it does not exist."""
    return await _update_fields(db, territory_id, name=name)


async def deactivate_territory(db: AsyncSession, territory_id: UUID) -> Territory | None:
    """Soft-delete a territory by clearing ``is_active``."""
    return await _update_fields(db, territory_id, is_active=False)


async def delete_territory(db: AsyncSession, territory_id: UUID) -> bool:
    """Hard-delete a territory and every building inside it."""
    await db.execute(
        delete(PlayerBuildingModel).where(PlayerBuildingModel.territory_id == territory_id)
    )
    result = await db.execute(delete(TerritoryModel).where(TerritoryModel.id == territory_id))
    await db.commit()
    return result.rowcount > 0


async def _update_fields(db: AsyncSession, territory_id: UUID, **values) -> Territory | None:
    result = await db.execute(
        update(TerritoryModel)
        .where(TerritoryModel.id == territory_id)
        .values(updated_at=utcnow(), **values)
    )
    if result.rowcount == 0:
        await db.rollback()
        return None
    await db.commit()
    return await get_territory(db, territory_id)


def _to_schema(territory: TerritoryModel) -> Territory:
    """Convert SQLAlchemy model to Pydantic schema."""
    return Territory(
        id=territory.id,
        owner_id=territory.owner_id,
        name=territory.name,
        boundary=parse_path_json(territory.path),
        polygon_wkt=territory.polygon_wkt,
        area=territory.area,
        bounding_box=BoundingBox(
            min_lat=territory.bbox_min_lat,
            max_lat=territory.bbox_max_lat,
            min_lon=territory.bbox_min_lon,
            max_lon=territory.bbox_max_lon,
        ),
        point_count=territory.point_count,
        started_at=ensure_utc(territory.started_at),
        completed_at=ensure_utc(territory.completed_at),
        is_active=territory.is_active,
        created_at=ensure_utc(territory.created_at),
        updated_at=ensure_utc(territory.updated_at),
    )
