"""Tracking session repository - durable checkpoints of path recordings."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earthlord_api.clock import ensure_utc
from earthlord_api.models import TrackingSession as TrackingSessionModel
from earthlord_api.schemas import TrackingSession, TrackingStatus
from earthlord_shared.territory import parse_path_json


async def create_session(db: AsyncSession, owner_id: UUID, now: datetime) -> TrackingSession:
    session = TrackingSessionModel(
        owner_id=owner_id,
        status=TrackingStatus.RECORDING.value,
        path=[],
        version=1,
        started_at=now,
        updated_at=now,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)
    return _to_schema(session)


async def get_session(db: AsyncSession, session_id: UUID) -> TrackingSession | None:
    result = await db.execute(
        select(TrackingSessionModel)
        .where(TrackingSessionModel.id == session_id)
        .execution_options(populate_existing=True)
    )
    session = result.scalar_one_or_none()
    if session is None:
        return None
    return _to_schema(session)


async def update_recording(
    db: AsyncSession,
    session_id: UUID,
    expected_version: int,
    now: datetime,
    **values,
) -> bool:
    """Update a session that is still recording. Does not commit.

    Returns False when the session was closed, abandoned or appended to by
    another request since ``expected_version`` was read.
    """
    if "status" in values and isinstance(values["status"], TrackingStatus):
        values["status"] = values["status"].value
    result = await db.execute(
        update(TrackingSessionModel)
        .where(
            TrackingSessionModel.id == session_id,
            TrackingSessionModel.version == expected_version,
            TrackingSessionModel.status == TrackingStatus.RECORDING.value,
        )
        .values(version=expected_version + 1, updated_at=now, **values)
    )
    return result.rowcount == 1


def _to_schema(session: TrackingSessionModel) -> TrackingSession:
    return TrackingSession(
        id=session.id,
        owner_id=session.owner_id,
        status=session.status,
        path=parse_path_json(session.path),
        territory_id=session.territory_id,
        version=session.version,
        started_at=ensure_utc(session.started_at),
        updated_at=ensure_utc(session.updated_at),
    )
