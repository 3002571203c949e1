"""Tracking session endpoints - walking a loop to claim territory."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.config import Settings
from earthlord_api.database import get_db
from earthlord_api.dependencies import get_current_user, get_settings
from earthlord_api.routes.conflicts import retry_on_conflict
from earthlord_api.schemas import TrackingPointCreate, TrackingPointResult, TrackingSession
from earthlord_api.services import tracking as tracking_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tracking-sessions", tags=["tracking"])


@router.post("", response_model=TrackingSession, status_code=status.HTTP_201_CREATED)
async def start_tracking(
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> TrackingSession:
    """Start recording a new path."""
    return await tracking_service.start_session(db, user_id)


@router.get("/{session_id}", response_model=TrackingSession)
async def get_tracking_session(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> TrackingSession:
    """
    Get a tracking session with its checkpointed path.

    Clients resuming from the background use this to restore their state.
    """
    return await tracking_service.get_owned_session(db, session_id, user_id)


@router.post("/{session_id}/points", response_model=TrackingPointResult)
async def add_tracking_point(
    session_id: UUID,
    point: TrackingPointCreate,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
    app_settings: Settings = Depends(get_settings),
) -> TrackingPointResult:
    """
    Report a GPS fix (raw WGS-84).

    Returns ``accepted=false`` for fixes too close to the previous point.
    When the path closes, ``closed=true`` and the new territory is included.
    """
    return await retry_on_conflict(
        lambda: tracking_service.append_point(
            db,
            user_id,
            session_id,
            point.to_point(),
            closure_tolerance_meters=app_settings.closure_tolerance_meters,
            min_closure_points=app_settings.min_closure_points,
            min_point_spacing_meters=app_settings.min_point_spacing_meters,
        )
    )


@router.post("/{session_id}/abandon", response_model=TrackingSession)
async def abandon_tracking(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> TrackingSession:
    """Discard a recording before it closes."""
    return await tracking_service.abandon_session(db, user_id, session_id)
