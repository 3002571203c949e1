"""Territory and tracking session models."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earthlord_api.database import Base, JSONVariant

if TYPE_CHECKING:
    from earthlord_api.models.building import PlayerBuilding


class Territory(Base):
    """A claimed polygon traced by walking a closed path."""

    __tablename__ = "territories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # [{"lat": ..., "lon": ...}, ...] in recording order, raw WGS-84
    path: Mapped[list] = mapped_column(JSONVariant, nullable=False)
    # SRID=4326;POLYGON((lon lat, ...)) with the ring explicitly closed
    polygon_wkt: Mapped[str] = mapped_column(Text, nullable=False)
    bbox_min_lat: Mapped[float] = mapped_column(Float, nullable=False)
    bbox_max_lat: Mapped[float] = mapped_column(Float, nullable=False)
    bbox_min_lon: Mapped[float] = mapped_column(Float, nullable=False)
    bbox_max_lon: Mapped[float] = mapped_column(Float, nullable=False)
    area: Mapped[float] = mapped_column(Float, nullable=False)
    point_count: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    buildings: Mapped[list["PlayerBuilding"]] = relationship(
        "PlayerBuilding",
        back_populates="territory",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_territories_owner_id", "owner_id"),
        Index("ix_territories_is_active", "is_active"),
        Index(
            "ix_territories_bbox",
            "bbox_min_lat",
            "bbox_max_lat",
            "bbox_min_lon",
            "bbox_max_lon",
        ),
    )


class TrackingSession(Base):
    """Checkpoint of a live path recording.

    Every accepted GPS fix is written here so that a session survives the
    client backgrounding or the server restarting.
    """

    __tablename__ = "tracking_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="recording")
    path: Mapped[list] = mapped_column(JSONVariant, nullable=False, default=list)
    territory_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("territories.id", ondelete="SET NULL"), nullable=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_tracking_sessions_owner_status", "owner_id", "status"),
    )
