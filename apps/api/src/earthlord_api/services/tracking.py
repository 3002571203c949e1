"""Path tracking sessions.

A player claims territory by walking a loop. Each GPS fix is appended to a
``TrackingSession`` row, so a recording survives the client going to the
background or the server restarting. When the path returns close enough to
its start, the loop becomes a Territory in the same transaction that closes
the session.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.clock import utcnow
from earthlord_api.errors import ConcurrentModification, InvalidSessionState, NotFound, NotOwner
from earthlord_api.repositories import territory as territory_repo
from earthlord_api.repositories import tracking as tracking_repo
from earthlord_api.schemas import TrackingPointResult, TrackingSession, TrackingStatus
from earthlord_shared import GeoPoint
from earthlord_shared.geodesy import haversine_distance
from earthlord_shared.territory import (
    DEFAULT_MIN_CLOSURE_POINTS,
    MIN_POLYGON_POINTS,
    build_territory_geometry,
    count_distinct_points,
    detect_closure,
    to_path_json,
)

logger = logging.getLogger(__name__)

DEFAULT_CLOSURE_TOLERANCE_METERS = 30.0
DEFAULT_MIN_POINT_SPACING_METERS = 10.0


async def start_session(
    db: AsyncSession, owner_id: UUID, now: datetime | None = None
) -> TrackingSession:
    session = await tracking_repo.create_session(db, owner_id, now or utcnow())
    logger.info("Tracking started: session=%s owner=%s", session.id, owner_id)
    return session


async def get_owned_session(db: AsyncSession, session_id: UUID, user_id: UUID) -> TrackingSession:
    """Load a session, raising NotFound or NotOwner."""
    session = await tracking_repo.get_session(db, session_id)
    if session is None:
        logger.warning("Tracking session not found: session_id=%s user_id=%s", session_id, user_id)
        raise NotFound(f"Tracking session {session_id} not found")

    if session.owner_id != user_id:
        logger.warning(
            "Unauthorized session access: session_id=%s owner=%s requester=%s",
            session_id,
            session.owner_id,
            user_id,
        )
        raise NotOwner("You don't own this tracking session")

    return session


def is_closed_loop(path: list[GeoPoint], closure_tolerance_meters: float, min_points: int) -> bool:
    """Closure also needs enough distinct vertices to form a polygon."""
    return (
        detect_closure(path, closure_tolerance_meters, min_points)
        and count_distinct_points(path) >= MIN_POLYGON_POINTS
    )


async def append_point(
    db: AsyncSession,
    owner_id: UUID,
    session_id: UUID,
    point: GeoPoint,
    now: datetime | None = None,
    closure_tolerance_meters: float = DEFAULT_CLOSURE_TOLERANCE_METERS,
    min_closure_points: int = DEFAULT_MIN_CLOSURE_POINTS,
    min_point_spacing_meters: float = DEFAULT_MIN_POINT_SPACING_METERS,
) -> TrackingPointResult:
    """Record one GPS fix and close the loop if it returns to the start.

    Fixes closer than ``min_point_spacing_meters`` to the previous point are
    GPS jitter and are not recorded.
    """
    now = now or utcnow()
    session = await get_owned_session(db, session_id, owner_id)
    if session.status != TrackingStatus.RECORDING:
        raise InvalidSessionState(session.status.value, "record a point")

    if session.path and haversine_distance(session.path[-1], point) < min_point_spacing_meters:
        return TrackingPointResult(session=session, accepted=False)

    path = [*session.path, point]
    if not is_closed_loop(path, closure_tolerance_meters, min_closure_points):
        saved = await tracking_repo.update_recording(
            db, session_id, session.version, now, path=to_path_json(path)
        )
        if not saved:
            await db.rollback()
            raise ConcurrentModification(f"Tracking session {session_id} changed during append")
        await db.commit()
        return TrackingPointResult(session=await _reload(db, session_id), accepted=True)

    geometry = build_territory_geometry(path)
    territory = await territory_repo.add_territory(
        db,
        owner_id=owner_id,
        geometry=geometry,
        started_at=session.started_at,
        completed_at=now,
    )
    closed = await tracking_repo.update_recording(
        db,
        session_id,
        session.version,
        now,
        path=geometry.path,
        status=TrackingStatus.CLOSED,
        territory_id=territory.id,
    )
    if not closed:
        await db.rollback()
        raise ConcurrentModification(f"Tracking session {session_id} changed during closure")
    await db.commit()

    logger.info(
        "Territory claimed: territory=%s session=%s points=%d area=%.1f",
        territory.id,
        session_id,
        geometry.point_count,
        geometry.area,
    )
    return TrackingPointResult(
        session=await _reload(db, session_id),
        accepted=True,
        closed=True,
        territory=territory,
    )


async def abandon_session(
    db: AsyncSession, owner_id: UUID, session_id: UUID, now: datetime | None = None
) -> TrackingSession:
    """Discard a recording. An abandoned session never becomes a territory."""
    session = await get_owned_session(db, session_id, owner_id)
    if session.status != TrackingStatus.RECORDING:
        raise InvalidSessionState(session.status.value, "abandon")

    abandoned = await tracking_repo.update_recording(
        db, session_id, session.version, now or utcnow(), status=TrackingStatus.ABANDONED
    )
    if not abandoned:
        await db.rollback()
        raise ConcurrentModification(f"Tracking session {session_id} changed during abandon")
    await db.commit()

    logger.info("Tracking abandoned: session=%s points=%d", session_id, session.point_count)
    return await _reload(db, session_id)


async def _reload(db: AsyncSession, session_id: UUID) -> TrackingSession:
    session = await tracking_repo.get_session(db, session_id)
    if session is None:
        raise NotFound(f"Tracking session {session_id} not found")
    return session
